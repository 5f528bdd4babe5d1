from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from tickerwatch.config import settings


PRICE_QUANTUM = Decimal("0.0001")


class QuoteFetchError(Exception):
    def __init__(self, symbol: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.symbol = symbol
        self.status_code = status_code


class NoDataError(Exception):
    def __init__(self, symbol: str, reason: str) -> None:
        super().__init__(f"no data for {symbol}: {reason}")
        self.symbol = symbol
        self.reason = reason


@dataclass(frozen=True)
class DailyClose:
    date: date
    close: Decimal


class QuoteClient:
    def __init__(self, client: httpx.AsyncClient, base_url: Optional[str] = None) -> None:
        self.client = client
        self.base_url = (base_url or settings.quote_base_url).rstrip("/")

    async def fetch(self, symbol: str, start: int, end: int) -> Dict[str, Any]:
        url = f"{self.base_url}/{symbol}"
        params = {"period1": start, "period2": end, "interval": "1d"}
        try:
            resp = await self.client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            raise QuoteFetchError(symbol, str(exc), exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise QuoteFetchError(symbol, str(exc)) from exc
        except ValueError as exc:
            raise NoDataError(symbol, "response is not valid JSON") from exc

    async def fetch_daily_closes(self, symbol: str, window_days: Optional[int] = None) -> List[DailyClose]:
        days = settings.window_days if window_days is None else window_days
        end = datetime.now(tz=timezone.utc)
        start = end - timedelta(days=days)
        payload = await self.fetch(symbol, int(start.timestamp()), int(end.timestamp()))
        return parse_chart(symbol, payload)


def parse_chart(symbol: str, payload: Any) -> List[DailyClose]:
    chart = payload.get("chart") if isinstance(payload, dict) else None
    results = chart.get("result") if isinstance(chart, dict) else None
    if not isinstance(results, list):
        raise NoDataError(symbol, "missing 'chart' or 'result' section")
    if not results or not isinstance(results[0], dict):
        raise NoDataError(symbol, "empty result")

    result = results[0]
    timestamps = result.get("timestamp")
    indicators = result.get("indicators")
    if not isinstance(timestamps, list) or not isinstance(indicators, dict):
        raise NoDataError(symbol, "missing 'timestamp' or 'indicators' section")

    quotes = indicators.get("quote")
    if not isinstance(quotes, list) or not quotes or not isinstance(quotes[0], dict):
        raise NoDataError(symbol, "missing 'quote' section")
    closes = quotes[0].get("close")
    if not isinstance(closes, list) or not closes:
        raise NoDataError(symbol, "missing 'close' prices")
    if len(closes) != len(timestamps):
        raise NoDataError(symbol, "timestamp and close arrays differ in length")

    points: List[DailyClose] = []
    for ts, close in zip(timestamps, closes):
        # null closes mark days without a print
        if not _is_number(close) or not _is_number(ts):
            continue
        day = datetime.fromtimestamp(int(ts), tz=timezone.utc).date()
        points.append(DailyClose(date=day, close=_to_decimal(close)))
    return points


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _to_decimal(value: float) -> Decimal:
    return Decimal(str(value)).quantize(PRICE_QUANTUM)
