from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from tickerwatch.config import settings


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def build_sessionmaker(database_url: str) -> sessionmaker:
    return sessionmaker(bind=build_engine(database_url), autoflush=False, expire_on_commit=False)


SessionLocal = build_sessionmaker(settings.database_url)
