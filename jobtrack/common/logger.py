"""
Logging setup for the tracker's AI layer.

Service loggers tag each line with a request id and a service name so one
model call can be followed through cleanup, parsing and retries. Log level
and format come from Config (LOG_LEVEL, LOG_FORMAT) unless given.
"""

import json
import logging
import sys
from typing import Optional

from jobtrack.common.config import Config


class ServiceLogger(logging.LoggerAdapter):
    """Prefixes messages with [req:xxxxxxxx] and [service] when set."""

    def __init__(self, logger: logging.Logger, request_id: Optional[str] = None, service: Optional[str] = None):
        super().__init__(logger, {"request_id": request_id, "service": service})
        self.prefix = " ".join(
            part
            for part in (
                f"[req:{request_id[:8]}]" if request_id else "",
                f"[{service}]" if service else "",
            )
            if part
        )

    def process(self, msg, kwargs):
        if self.prefix:
            msg = f"{self.prefix} {msg}"
        return msg, kwargs


class JsonFormatter(logging.Formatter):
    """One JSON object per line for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: Optional[str] = None, format: Optional[str] = None) -> None:
    """
    Configure the root logger with a single stdout handler.

    Args:
        level: Log level name (default: Config.LOG_LEVEL)
        format: "simple" or "json" (default: Config.LOG_FORMAT)
    """
    log_level = getattr(logging, (level or Config.LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if (format or Config.LOG_FORMAT) == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(log_level)


def get_logger(name: str, request_id: Optional[str] = None, service: Optional[str] = None) -> ServiceLogger:
    """Return a ServiceLogger for `name` (usually __name__)."""
    return ServiceLogger(logging.getLogger(name), request_id=request_id, service=service)
