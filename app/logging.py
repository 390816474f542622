# app/logging.py
"""
Structured logging for the weather-aware rescheduler.

Every record carries an event name plus keyword fields:

    logger = get_logger(__name__)
    logger.info("booking_at_risk", booking_id=booking.id, severity="critical")

JSON output (the default) emits one object per line with timestamp,
level, logger, message and the fields. Plain output renders the same
fields as key=value pairs after the message.

Field values whose name looks like a credential are masked in both modes.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Field names that are never written out verbatim
SENSITIVE_FIELDS = frozenset({"api_key", "appid", "key", "password", "token", "authorization"})
MASK = "***"

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn", "sqlalchemy")


def scrub(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        name: MASK if name.lower() in SENSITIVE_FIELDS else value
        for name, value in fields.items()
    }


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(scrub(getattr(record, "structured_data", {})))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class KeyValueFormatter(logging.Formatter):
    """Human-readable lines: `<time> [LEVEL] logger: event k=v ...`."""

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = scrub(getattr(record, "structured_data", {}))
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


class StructuredLogger:
    """
    Wrapper around a stdlib logger that attaches keyword fields.

    bind() returns a child that adds fixed fields to every record, e.g.
    logger.bind(booking_id=booking.id).
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self._logger = logging.getLogger(name)
        self._context = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context) -> "StructuredLogger":
        return StructuredLogger(self.name, {**self._context, **context})

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        extra = {"structured_data": {**self._context, **kwargs}}
        self._logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, exc_info: bool = False, **kwargs):
        self._log(logging.CRITICAL, message, exc_info=exc_info, **kwargs)


_configured = False


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: Optional[str] = None,
):
    """
    (Re)configure the root logger.

    get_logger() applies the defaults on first use; an explicit call (app
    startup, the monitor CLI) replaces that setup with the configured level
    and format.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines (True) or key=value text (False)
        log_file: Optional file that also receives JSON lines
    """
    global _configured
    _configured = True

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredLogFormatter() if json_output else KeyValueFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredLogFormatter())
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    if not _configured:
        configure_logging()
    return StructuredLogger(name)


def get_weather_logger(component: str) -> StructuredLogger:
    """Logger for a weather component (gateway, cache)."""
    return get_logger(f"app.weather.{component}")


def get_scheduling_logger(component: str) -> StructuredLogger:
    """Logger for a scheduling component."""
    return get_logger(f"app.scheduling.{component}")


def get_api_logger() -> StructuredLogger:
    return get_logger("app.api")
