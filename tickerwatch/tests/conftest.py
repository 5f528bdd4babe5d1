from __future__ import annotations

import pytest

from tickerwatch.db.session import build_sessionmaker
from tickerwatch.services.marketdata.store import PriceStore


@pytest.fixture
def session_factory(tmp_path):
    return build_sessionmaker(f"sqlite:///{tmp_path / 'stocks.db'}")


@pytest.fixture
def store(session_factory):
    price_store = PriceStore(session_factory)
    price_store.ensure_schema()
    return price_store
