from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from tickerwatch.config import settings
from tickerwatch.db.session import SessionLocal
from tickerwatch.services.http import get_client
from tickerwatch.services.logging import configure_logging
from tickerwatch.services.marketdata.quotes import QuoteClient
from tickerwatch.services.marketdata.service import (
    STATUS_DONE,
    STATUS_INSUFFICIENT_DATA,
    STATUS_NETWORK_ERROR,
    STATUS_NO_DATA,
    TickerOutcome,
    TickerPipeline,
)
from tickerwatch.services.marketdata.store import PriceStore, StorageError
from tickerwatch.services.marketdata.symbols import InputError, normalize_symbols


logger = logging.getLogger(__name__)

STATUS_LABELS = {
    STATUS_INSUFFICIENT_DATA: "insufficient data",
    STATUS_NO_DATA: "no data",
    STATUS_NETWORK_ERROR: "network error",
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch daily closes and derive up/down conditions.")
    parser.add_argument("tickers", nargs="*", help="ticker symbols; read from stdin when omitted")
    parser.add_argument("--serve", action="store_true", help="run the read API instead")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def format_outcome(outcome: TickerOutcome) -> str:
    if outcome.status == STATUS_DONE:
        return f"{outcome.symbol}: done: {outcome.state}"
    label = STATUS_LABELS.get(outcome.status, "processing error")
    if outcome.detail and outcome.status != STATUS_INSUFFICIENT_DATA:
        return f"{outcome.symbol}: {label} ({outcome.detail})"
    return f"{outcome.symbol}: {label}"


async def run_tickers(symbols: List[str], store: PriceStore) -> List[TickerOutcome]:
    async with get_client() as client:
        pipeline = TickerPipeline(QuoteClient(client), store)
        return await pipeline.run(symbols)


def _read_tickers() -> str:
    print("Enter tickers separated by commas or spaces (e.g. AAPL, MSFT, GOOGL):")
    return sys.stdin.readline().strip()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(settings.log_level)

    if args.serve:
        import uvicorn

        uvicorn.run("tickerwatch.main:app", host=args.host, port=args.port)
        return 0

    store = PriceStore(SessionLocal)
    try:
        store.ensure_schema()
    except StorageError as exc:
        logger.exception("schema initialisation failed")
        print(f"Error: cannot initialise database: {exc}")
        return 1

    raw = args.tickers or [_read_tickers()]
    try:
        symbols = normalize_symbols(raw)
    except InputError as exc:
        print(f"Error: {exc}")
        return 1

    print(f"Processing tickers: {', '.join(symbols)}")
    try:
        outcomes = asyncio.run(run_tickers(symbols, store))
    except Exception as exc:
        logger.exception("run failed")
        print(f"Critical error: {exc}")
    else:
        for outcome in outcomes:
            print(format_outcome(outcome))

    print("\nAll tickers processed.")
    if not args.tickers and sys.stdin.isatty():
        input("Press Enter to exit...")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
