from __future__ import annotations

import json
import logging
import sys
from typing import Any, Optional

from social_login.settings import get_settings

LOGGER_NAME = "social_login"
EXTRA_FIELDS = ("provider", "method", "url", "status_code")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, carrying provider request extras when set."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _LibraryHandler(logging.StreamHandler):
    pass


def configure_logging(as_json: Optional[bool] = None, log_level: Optional[str] = None) -> logging.Logger:
    """Send ``social_login`` records to stdout.

    Arguments default to the ``logging`` settings group. Calling it again
    swaps the handler it installed before; other handlers are left alone.
    """
    conf = get_settings().logging
    if as_json is None:
        as_json = conf.as_json
    level = (log_level or conf.level).upper()

    logger = logging.getLogger(LOGGER_NAME)
    for old in [h for h in logger.handlers if isinstance(h, _LibraryHandler)]:
        logger.removeHandler(old)

    handler = _LibraryHandler(sys.stdout)
    if as_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level, logging.INFO))
    return logger


def provider_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.providers.{name}")
