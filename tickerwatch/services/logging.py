from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple


TICKER_FIELDS: Tuple[str, ...] = ("symbol", "status")


class TickerJsonFormatter(logging.Formatter):
    """One JSON object per record, carrying per-ticker extras when present."""

    def __init__(self, fields: Tuple[str, ...] = TICKER_FIELDS) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self.fields = fields

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update({name: getattr(record, name) for name in self.fields if hasattr(record, name)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", handler: Optional[logging.Handler] = None) -> None:
    handler = handler or logging.StreamHandler()
    handler.setFormatter(TickerJsonFormatter())
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers = [handler]
    # request logs from the HTTP client are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
