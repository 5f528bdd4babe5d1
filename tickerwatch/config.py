from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_env: str = "local"
    app_name: str = "tickerwatch"
    log_level: str = "INFO"

    database_url: str = "sqlite:///stocks.db"

    quote_base_url: str = "https://query1.finance.yahoo.com/v8/finance/chart"
    quote_user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"
    window_days: int = 30

    http_connect_timeout: float = 5.0
    http_read_timeout: float = 20.0

    max_concurrency: int = 5


settings = Settings()
