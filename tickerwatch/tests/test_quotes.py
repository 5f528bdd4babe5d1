from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import httpx
import pytest

from tickerwatch.services.marketdata.quotes import NoDataError, QuoteClient, QuoteFetchError, parse_chart
from tickerwatch.tests.payloads import chart_payload, day_ts


def test_parse_chart_skips_missing_closes():
    payload = chart_payload(
        [day_ts(2026, 10, 14), day_ts(2026, 10, 15), day_ts(2026, 10, 16)],
        [100.5, None, 101.12346],
    )
    points = parse_chart("AAPL", payload)
    assert [p.date for p in points] == [date(2026, 10, 14), date(2026, 10, 16)]
    assert points[0].close == Decimal("100.5000")
    assert points[1].close == Decimal("101.1235")


def test_parse_chart_uses_utc_date():
    # 23:30 UTC is still the 15th regardless of local time
    ts = day_ts(2026, 10, 15) + 9 * 3600
    points = parse_chart("AAPL", chart_payload([ts], [10]))
    assert points[0].date == date(2026, 10, 15)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"chart": {}},
        {"chart": {"result": None, "error": {"code": "Not Found"}}},
        {"chart": {"result": []}},
        {"chart": {"result": [{"indicators": {"quote": [{"close": [1.0]}]}}]}},
        {"chart": {"result": [{"timestamp": [1], "indicators": {"quote": []}}]}},
        {"chart": {"result": [{"timestamp": [1], "indicators": {"quote": [{"close": []}]}}]}},
        {"chart": {"result": [{"timestamp": [1, 2], "indicators": {"quote": [{"close": [1.0]}]}}]}},
    ],
)
def test_parse_chart_malformed_payload_is_no_data(payload):
    with pytest.raises(NoDataError) as excinfo:
        parse_chart("AAPL", payload)
    assert excinfo.value.symbol == "AAPL"


def test_fetch_daily_closes_builds_window_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=chart_payload([day_ts(2026, 10, 15)], [12.5]))

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            quotes = QuoteClient(client, base_url="https://quotes.test/v8/finance/chart/")
            return await quotes.fetch_daily_closes("AAPL", window_days=30)

    points = asyncio.run(scenario())
    assert points[0].close == Decimal("12.5000")
    assert seen["path"] == "/v8/finance/chart/AAPL"
    assert seen["params"]["interval"] == "1d"
    window = int(seen["params"]["period2"]) - int(seen["params"]["period1"])
    assert abs(window - 30 * 86400) <= 1


def test_fetch_http_error_carries_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"chart": {"result": None}})

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await QuoteClient(client, base_url="https://quotes.test/chart").fetch_daily_closes("BADSYM")

    with pytest.raises(QuoteFetchError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.status_code == 404


def test_fetch_transport_error_is_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await QuoteClient(client, base_url="https://quotes.test/chart").fetch_daily_closes("AAPL")

    with pytest.raises(QuoteFetchError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.status_code is None
