from __future__ import annotations

import httpx

from tickerwatch.config import settings


def get_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    timeout = httpx.Timeout(
        connect=settings.http_connect_timeout,
        read=settings.http_read_timeout,
        write=5.0,
        pool=5.0,
    )
    limits = httpx.Limits(max_keepalive_connections=5, max_connections=10)
    headers = {"User-Agent": settings.quote_user_agent, "Accept": "application/json"}
    return httpx.AsyncClient(timeout=timeout, limits=limits, headers=headers, transport=transport)
