from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List

import httpx
from fastapi import Body, Depends, FastAPI, HTTPException, Query

from tickerwatch.config import settings
from tickerwatch.db.session import SessionLocal
from tickerwatch.services.http import get_client
from tickerwatch.services.logging import configure_logging
from tickerwatch.services.marketdata.quotes import QuoteClient
from tickerwatch.services.marketdata.service import TickerOutcome, TickerPipeline
from tickerwatch.services.marketdata.store import PriceStore
from tickerwatch.services.marketdata.symbols import InputError


app = FastAPI(title=settings.app_name)
_START_TIME = datetime.utcnow()
store = PriceStore(SessionLocal)
# shared by every refresh so the fetch cap holds process-wide
refresh_limiter = asyncio.Semaphore(settings.max_concurrency)


def get_store() -> PriceStore:
    return store


def get_limiter() -> asyncio.Semaphore:
    return refresh_limiter


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with get_client() as client:
        yield client


@app.on_event("startup")
def startup() -> None:
    configure_logging(settings.log_level)
    store.ensure_schema()


@app.get("/health")
def health() -> dict:
    uptime_seconds = (datetime.utcnow() - _START_TIME).total_seconds()
    return {"status": "ok", "uptime_seconds": uptime_seconds}


@app.get("/api/tickers")
def api_tickers(db: PriceStore = Depends(get_store)) -> List[str]:
    return db.list_tickers()


@app.get("/api/conditions")
def api_conditions(db: PriceStore = Depends(get_store)) -> List[dict]:
    return [{"symbol": symbol, "state": state} for symbol, state in db.list_conditions()]


@app.get("/api/tickers/{symbol}/prices")
def api_ticker_prices(
    symbol: str,
    limit: int = Query(30, ge=1, le=500),
    db: PriceStore = Depends(get_store),
) -> dict:
    ticker_id = db.find_ticker_id(symbol.upper())
    if ticker_id is None:
        raise HTTPException(status_code=404, detail=f"Ticker not found: {symbol}")
    points = db.get_price_history(ticker_id, limit=limit)
    return {
        "symbol": symbol.upper(),
        "condition": db.get_condition(ticker_id),
        "prices": [{"date": p.date.isoformat(), "value": str(p.value)} for p in points],
    }


@app.post("/api/refresh")
async def api_refresh(
    payload: Dict[str, Any] = Body(...),
    db: PriceStore = Depends(get_store),
    client: httpx.AsyncClient = Depends(get_http_client),
    limiter: asyncio.Semaphore = Depends(get_limiter),
) -> List[dict]:
    raw = payload.get("tickers")
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail="tickers must be a string or a list of strings")
    pipeline = TickerPipeline(QuoteClient(client), db, semaphore=limiter)
    try:
        outcomes = await pipeline.run([str(item) for item in raw])
    except InputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [_outcome_to_dict(outcome) for outcome in outcomes]


def _outcome_to_dict(outcome: TickerOutcome) -> dict:
    return {
        "symbol": outcome.symbol,
        "status": outcome.status,
        "state": outcome.state,
        "detail": outcome.detail,
    }
