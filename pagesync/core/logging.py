"""Logging for the connector core.

Every log line carries a set of *dimensions* (entity, page size, collection
id, ...) so a single page request can be followed across the sequencer and the
HTTP client. Dimensions are attached with ``with_context`` which returns a new
logger and never mutates the receiver, so loggers can be shared freely between
concurrent page requests.

Usage:
    from pagesync.core.logging import logger

    request_logger = logger.with_context(entity="members", page_size=50)
    request_logger.info("Starting datasource request")
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

from pagesync.core.config import Environment, settings

_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class _JSONFormatter(logging.Formatter):
    """One JSON object per line, dimensions flattened next to the message."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _TextFormatter(logging.Formatter):
    """Human readable output for local development."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        dims = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not dims:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in dims.items())
        return f"{base} [{rendered}]"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that carries dimensions and an optional message prefix."""

    def __init__(
        self,
        logger: logging.Logger,
        dimensions: Optional[Dict[str, Any]] = None,
        prefix: str = "",
    ):
        """Initialize the contextual logger.

        Args:
            logger: Underlying stdlib logger
            dimensions: Key/value pairs attached to every record
            prefix: Text prepended to every message
        """
        self.dimensions: Dict[str, Any] = dict(dimensions or {})
        self.prefix = prefix
        super().__init__(logger, self.dimensions)

    def process(self, msg, kwargs):
        """Merge dimensions into ``extra`` and apply the prefix."""
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return f"{self.prefix}{msg}", kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with additional dimensions."""
        merged = {**self.dimensions, **dimensions}
        return ContextualLogger(self.logger, merged, self.prefix)

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Return a new logger that prepends ``prefix`` to every message."""
        return ContextualLogger(self.logger, self.dimensions, f"{self.prefix}{prefix}")


class LoggerConfigurator:
    """Builds contextual loggers sharing one stdout handler."""

    _configured: bool = False

    @classmethod
    def _configure_root(cls) -> None:
        if cls._configured:
            return
        root = logging.getLogger("pagesync")
        root.setLevel(settings.LOG_LEVEL)
        handler = logging.StreamHandler(sys.stdout)
        if settings.ENVIRONMENT == Environment.LOCAL:
            handler.setFormatter(
                _TextFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        else:
            handler.setFormatter(_JSONFormatter())
        root.addHandler(handler)
        cls._configured = True

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Create a contextual logger.

        Args:
            name: Logger name, usually the module path
            dimensions: Initial dimensions attached to every record

        Returns:
            ContextualLogger bound to ``name``
        """
        cls._configure_root()
        return ContextualLogger(logging.getLogger(name), dimensions)


logger = LoggerConfigurator.configure_logger("pagesync")
