from __future__ import annotations

from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator


Base = declarative_base()

STATE_UP = "Up"
STATE_DOWN = "Down"


class FixedDecimal(TypeDecorator):
    """Decimal stored as an integer count of 10**-scale units."""

    impl = BigInteger
    cache_ok = True

    def __init__(self, scale: int = 4) -> None:
        super().__init__()
        self.scale = scale
        self.quantum = Decimal(1).scaleb(-scale)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(Decimal(value).quantize(self.quantum).scaleb(self.scale))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value).scaleb(-self.scale)


class Ticker(Base):
    __tablename__ = "tickers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String, unique=True, nullable=False)

    prices = relationship("Price", back_populates="ticker")
    condition = relationship("TodaysCondition", back_populates="ticker", uselist=False)


class Price(Base):
    __tablename__ = "prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticker_id = Column(Integer, ForeignKey("tickers.id"), nullable=False)
    date = Column(Date, nullable=False)
    value = Column(FixedDecimal(4), nullable=False)

    ticker = relationship("Ticker", back_populates="prices")

    __table_args__ = (
        UniqueConstraint("ticker_id", "date", name="uq_prices_ticker_date"),
        Index("ix_prices_ticker_date", "ticker_id", "date"),
    )


class TodaysCondition(Base):
    __tablename__ = "todays_conditions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticker_id = Column(Integer, ForeignKey("tickers.id"), unique=True, nullable=False)
    state = Column(String, nullable=False)

    ticker = relationship("Ticker", back_populates="condition")
