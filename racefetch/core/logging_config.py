"""Structured logging configuration.

Supports two modes via LOG_FORMAT env var:
- "json" (default for production): JSON-formatted log lines with request_id/race_id
- "text" (for development): Human-readable log lines
"""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from racefetch.core.context import get_race_id, get_request_id

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s/%(race_id)s] %(message)s"


class ContextIDFilter(logging.Filter):
    """Inject request_id and race_id into every log record."""

    def filter(self, record):
        record.request_id = get_request_id()
        record.race_id = get_race_id()
        return True


class TransportNoiseFilter(logging.Filter):
    """Drop per-request chatter from the HTTP client libraries below WARNING.

    Every strategy performs at least one request, so a single race would
    otherwise emit several "HTTP Request: GET ..." lines at INFO.
    """

    NOISY_LOGGERS = ("httpx", "httpcore", "curl_cffi")

    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        return not record.name.startswith(self.NOISY_LOGGERS)


def configure_logging(log_format: str = "json", log_level: str = "INFO"):
    """Configure root logger with the specified format.

    Args:
        log_format: "json" or "text"
        log_level: Python log level name
    """
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextIDFilter())
    handler.addFilter(TransportNoiseFilter())

    if log_format == "json":
        formatter = JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s %(request_id)s %(race_id)s",
            rename_fields={
                "levelname": "level",
                "name": "logger",
                "asctime": "timestamp",
            },
        )
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
