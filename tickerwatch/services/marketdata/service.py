from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from tickerwatch.config import settings
from tickerwatch.db.models import STATE_DOWN, STATE_UP
from tickerwatch.services.marketdata.quotes import NoDataError, QuoteClient, QuoteFetchError
from tickerwatch.services.marketdata.store import DuplicatePriceError, PriceStore
from tickerwatch.services.marketdata.symbols import normalize_symbols


logger = logging.getLogger(__name__)

STATUS_DONE = "done"
STATUS_INSUFFICIENT_DATA = "insufficient_data"
STATUS_NO_DATA = "no_data"
STATUS_NETWORK_ERROR = "network_error"
STATUS_PROCESSING_ERROR = "processing_error"


@dataclass(frozen=True)
class TickerOutcome:
    symbol: str
    status: str
    state: Optional[str] = None
    detail: Optional[str] = None


def derive_state(newest: Decimal, previous: Decimal) -> str:
    # an unchanged price counts as Down
    return STATE_UP if newest > previous else STATE_DOWN


class TickerPipeline:
    def __init__(
        self,
        quotes: QuoteClient,
        store: PriceStore,
        max_concurrency: Optional[int] = None,
        window_days: Optional[int] = None,
        semaphore: Optional[asyncio.Semaphore] = None,
    ) -> None:
        self.quotes = quotes
        self.store = store
        # a shared semaphore bounds units across several pipelines
        if semaphore is None:
            semaphore = asyncio.Semaphore(max_concurrency or settings.max_concurrency)
        self.semaphore = semaphore
        self.window_days = window_days or settings.window_days

    async def run(self, raw: Iterable[str]) -> List[TickerOutcome]:
        symbols = normalize_symbols(raw)
        logger.info("processing tickers: %s", ", ".join(symbols))
        return list(await asyncio.gather(*(self.process_ticker(symbol) for symbol in symbols)))

    async def process_ticker(self, symbol: str) -> TickerOutcome:
        async with self.semaphore:
            try:
                outcome = await self._process(symbol)
            except NoDataError as exc:
                outcome = TickerOutcome(symbol, STATUS_NO_DATA, detail=exc.reason)
            except QuoteFetchError as exc:
                detail = str(exc.status_code) if exc.status_code else str(exc)
                outcome = TickerOutcome(symbol, STATUS_NETWORK_ERROR, detail=detail)
            except Exception as exc:
                logger.exception("ticker processing failed", extra={"symbol": symbol})
                outcome = TickerOutcome(symbol, STATUS_PROCESSING_ERROR, detail=str(exc))
        level = logging.INFO if outcome.status in (STATUS_DONE, STATUS_INSUFFICIENT_DATA) else logging.WARNING
        logger.log(
            level,
            "ticker finished: %s",
            outcome.detail or outcome.state or outcome.status,
            extra={"symbol": symbol, "status": outcome.status},
        )
        return outcome

    async def _process(self, symbol: str) -> TickerOutcome:
        closes = await self.quotes.fetch_daily_closes(symbol, self.window_days)
        ticker_id = await asyncio.to_thread(self.store.get_or_create_ticker, symbol)

        inserted = 0
        for point in closes:
            if await asyncio.to_thread(self.store.price_exists, ticker_id, point.date):
                continue
            try:
                await asyncio.to_thread(self.store.insert_price, ticker_id, point.date, point.close)
                inserted += 1
            except DuplicatePriceError:
                continue
        logger.debug("stored %d new prices", inserted, extra={"symbol": symbol})

        last_two = await asyncio.to_thread(self.store.get_last_two_prices, ticker_id)
        if len(last_two) < 2:
            return TickerOutcome(symbol, STATUS_INSUFFICIENT_DATA)

        state = derive_state(last_two[0].value, last_two[1].value)
        await asyncio.to_thread(self.store.upsert_condition, ticker_id, state)
        return TickerOutcome(symbol, STATUS_DONE, state=state)
