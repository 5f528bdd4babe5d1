from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Iterator, List, Optional, Tuple

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tickerwatch.db.models import STATE_DOWN, STATE_UP, Base, Price, Ticker, TodaysCondition


class StorageError(Exception):
    pass


class DuplicatePriceError(StorageError):
    def __init__(self, ticker_id: int, day: date) -> None:
        super().__init__(f"price already stored for ticker {ticker_id} on {day.isoformat()}")
        self.ticker_id = ticker_id
        self.day = day


@dataclass(frozen=True)
class PricePoint:
    id: int
    ticker_id: int
    date: date
    value: Decimal


def _to_point(row: Price) -> PricePoint:
    return PricePoint(id=row.id, ticker_id=row.ticker_id, date=row.date, value=Decimal(row.value))


def _insert_for(db: Session):
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


class PriceStore:
    """Persistence for tickers, daily prices and conditions.

    Every public method holds one process-wide lock and runs in its own
    session, committed on success and rolled back on failure, so concurrent
    callers see the store as single-threaded.
    """

    _lock = threading.RLock()

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._lock:
            db = self.session_factory()
            try:
                yield db
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise StorageError(str(exc)) from exc
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def ensure_schema(self) -> None:
        with self._session() as db:
            Base.metadata.create_all(bind=db.get_bind())

    def get_or_create_ticker(self, symbol: str) -> int:
        with self._session() as db:
            ticker_id = db.query(Ticker.id).filter(Ticker.symbol == symbol).scalar()
            if ticker_id is not None:
                return ticker_id
            ticker = Ticker(symbol=symbol)
            db.add(ticker)
            db.flush()
            return ticker.id

    def find_ticker_id(self, symbol: str) -> Optional[int]:
        with self._session() as db:
            return db.query(Ticker.id).filter(Ticker.symbol == symbol).scalar()

    def price_exists(self, ticker_id: int, day: date) -> bool:
        with self._session() as db:
            found = db.query(Price.id).filter(Price.ticker_id == ticker_id, Price.date == day).first()
            return found is not None

    def insert_price(self, ticker_id: int, day: date, value: Decimal) -> None:
        with self._session() as db:
            db.add(Price(ticker_id=ticker_id, date=day, value=value))
            try:
                db.flush()
            except IntegrityError as exc:
                raise DuplicatePriceError(ticker_id, day) from exc

    def upsert_condition(self, ticker_id: int, state: str) -> None:
        if state not in (STATE_UP, STATE_DOWN):
            raise ValueError(f"unknown condition state: {state!r}")
        with self._session() as db:
            insert = _insert_for(db)
            stmt = insert(TodaysCondition).values(ticker_id=ticker_id, state=state)
            stmt = stmt.on_conflict_do_update(
                index_elements=["ticker_id"],
                set_={"state": stmt.excluded.state},
            )
            db.execute(stmt)

    def get_condition(self, ticker_id: int) -> Optional[str]:
        with self._session() as db:
            return db.query(TodaysCondition.state).filter(TodaysCondition.ticker_id == ticker_id).scalar()

    def get_last_two_prices(self, ticker_id: int) -> List[PricePoint]:
        return self.get_price_history(ticker_id, limit=2)

    def get_price_history(self, ticker_id: int, limit: int = 30) -> List[PricePoint]:
        with self._session() as db:
            rows = (
                db.query(Price)
                .filter(Price.ticker_id == ticker_id)
                .order_by(Price.date.desc())
                .limit(limit)
                .all()
            )
            return [_to_point(row) for row in rows]

    def list_tickers(self) -> List[str]:
        with self._session() as db:
            rows = db.query(Ticker.symbol).order_by(Ticker.symbol.asc()).all()
            return [row[0] for row in rows]

    def list_conditions(self) -> List[Tuple[str, str]]:
        with self._session() as db:
            rows = (
                db.query(Ticker.symbol, TodaysCondition.state)
                .join(TodaysCondition, TodaysCondition.ticker_id == Ticker.id)
                .order_by(Ticker.symbol.asc())
                .all()
            )
            return [(symbol, state) for symbol, state in rows]
