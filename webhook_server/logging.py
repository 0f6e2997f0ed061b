# webhook_server/logging.py
"""
Structured logging for the webhook server.

Call sites log an event name plus keyword fields:

    from webhook_server.logging import get_logger
    logger = get_logger(__name__)
    logger.info("hook_executing", path="/deploy", command="deploy.sh --prod")

The fields ride on the record as `structured_data`. They are rendered as one
JSON object per line (timestamp, level, logger, message, fields) or, for a
terminal, as `key=value` pairs after the event name.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple

# Keyword arguments meant for the logging call itself, not for the record
_CALL_KWARGS = ("exc_info", "stack_info", "stacklevel")

ACCESS_LOGGER = "uvicorn.access"

# uvicorn.error is left at the root level so startup failures still show
_QUIET_LOGGERS = ("uvicorn", "asyncio")


def _fields(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "structured_data", {})


class StructuredLogFormatter(logging.Formatter):
    """
    JSON formatter, one object per line.

    The timestamp is the moment the record was created, in UTC. Records at
    ERROR and above carry the file, line and function that logged them.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_fields(record),
        }

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
    """Plain text lines: `time [LEVEL] logger: event key=value ...`."""

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = _fields(record)
        if not fields:
            return line
        pairs = " ".join(
            f"{key}={json.dumps(value, default=str)}" for key, value in fields.items()
        )
        return f"{line} {pairs}"


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter taking an event name plus keyword fields.

    Example:
        logger = get_logger(__name__)
        logger.warning("hook_timed_out", path="/deploy", timeout=60)

    `exc_info`, `stack_info` and `stacklevel` keep their stdlib meaning;
    every other keyword becomes a structured field.
    """

    def __init__(self, name: str):
        super().__init__(logging.getLogger(name), {})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        call = {key: kwargs.pop(key) for key in _CALL_KWARGS if key in kwargs}
        call["extra"] = {"structured_data": dict(kwargs)}
        return msg, call


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: Optional[str] = None,
    access_log: bool = False,
) -> None:
    """
    Install the server's handlers on the root logger.

    Handlers from an earlier call are replaced. uvicorn's own loggers are held
    at WARNING since hooks share the server's stdout and stderr; the access
    logger is let through at INFO when `access_log` is set.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines (True) or key=value text (False) on stderr
        log_file: Optional file path that receives JSON lines
        access_log: Emit uvicorn's per-request access lines
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        StructuredLogFormatter() if json_output else KeyValueFormatter()
    )
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredLogFormatter())
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger(ACCESS_LOGGER).setLevel(logging.INFO if access_log else logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Structured logger for a module; pass `__name__`."""
    return StructuredLogger(name)
