"""
Structured logging for the storage layer.

Library modules log through ``StorageLoggerAdapter`` instances obtained from
``collection_logger``, so every record carries the collection (``books``,
``book_notes``) or mirror it concerns. Host applications that want those
records as single-line JSON call ``configure_structured_logging``.
"""

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

ROOT_LOGGER_NAME = "book_notes_storage"

# LogRecord attributes never copied into the JSON payload
_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "taskName", "message",
    }
)  # fmt: skip


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class StructuredJsonFormatter(logging.Formatter):
    """Render records as one JSON object per line.

    Payload fields: ``timestamp`` (UTC, from the record's creation time),
    ``level``, ``logger``, ``message``, then any storage context attached by
    StorageLoggerAdapter (``collection``, ``entity_id``, ``mirror`` ...), then
    ``static_fields`` such as a device or user id for the whole process.
    """

    def __init__(self, static_fields: Mapping[str, Any] | None = None):
        super().__init__()
        self.static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                payload[key] = _json_safe(value)

        for key, value in self.static_fields.items():
            payload.setdefault(key, _json_safe(value))

        return json.dumps(payload, default=str)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = ROOT_LOGGER_NAME,
    static_fields: Mapping[str, Any] | None = None,
) -> logging.Logger:
    """
    Send storage logs to stdout as JSON.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the library's root logger;
            None configures the root logger)
        static_fields: Fields added to every record, e.g. {"device": "ipad-2"}

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter(static_fields))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_storage_logger(name: str) -> logging.Logger:
    """Logger named ``book_notes_storage.{name}``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class StorageLoggerAdapter(logging.LoggerAdapter):
    """Attaches fixed storage context to every record.

    Context given at the call site (``extra=``) is kept; the adapter's own
    context wins on key collisions.
    """

    def process(self, msg: str, kwargs: Any) -> tuple[str, Any]:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra or {})
        kwargs["extra"] = extra
        return msg, kwargs


def collection_logger(component: str, **context: Any) -> StorageLoggerAdapter:
    """Adapter for one storage component scoped to a collection or mirror.

    Example:
        >>> log = collection_logger("interactor", collection="books")
        >>> log.debug("Cache miss", extra={"entity_id": "42"})
    """
    return StorageLoggerAdapter(get_storage_logger(component), context)
