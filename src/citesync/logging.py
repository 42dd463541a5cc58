"""Logging configuration for citesync.

Engine loggers live under the "citesync" namespace. Failures and warnings
carry structured context: the document, citation and reference involved,
plus whatever the engine error itself knows (the operation it rejected,
the token it could not parse). The JSON format emits that context as fields
so rejected operations and quarantined records can be filtered per document.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

# Create the main logger for the citesync package
logger = logging.getLogger("citesync")

CONTEXT_ATTR = "citesync_context"

# Attributes of engine errors copied into the log context when set
ERROR_CONTEXT_FIELDS = (
    "operation",
    "citation_id",
    "reference_id",
    "token",
    "style",
    "missing_fields",
    "attempts",
    "last_status",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, structured context included."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, CONTEXT_ATTR, None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class DocumentAdapter(logging.LoggerAdapter):
    """Prefixes messages with the document they concern."""

    def process(self, msg, kwargs):
        return f"[{self.extra['document']}] {msg}", kwargs


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | None = None,
    format_style: str = "standard",
) -> logging.Logger:
    """
    Configure logging for the citesync package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to
        format_style: "standard" for human-readable, "json" for one object per line

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger.setLevel(level)
    logger.handlers.clear()

    if format_style == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger for an engine module, e.g. "resequencer"."""
    return logging.getLogger(f"citesync.{name}")


def document_logger(base: logging.Logger, document_id: str) -> DocumentAdapter:
    """Wrap a module logger so every message names the document."""
    return DocumentAdapter(base, {"document": document_id})


def error_context(error: Exception | str, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """Caller context merged with the error's own citation/reference details."""
    merged: dict[str, Any] = {}
    if isinstance(error, Exception):
        for name in ERROR_CONTEXT_FIELDS:
            value = getattr(error, name, None)
            if value not in (None, [], ""):
                merged[name] = value
    merged.update(context or {})
    return merged


def _format_context(context: dict[str, Any]) -> str:
    return ", ".join(f"{k}={v}" for k, v in context.items())


def log_failure(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    error: Exception | str,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """
    Log a rejected or failed operation.

    Args:
        logger: Logger instance to use
        operation: Name of the operation that failed
        error: Exception or error message
        context: Document, citation or reference ids involved
        level: Logging level (default: ERROR)
    """
    error_type = type(error).__name__ if isinstance(error, Exception) else "Error"
    message = getattr(error, "message", None) or str(error)
    merged = error_context(error, context)

    parts = [f"{operation} failed: [{error_type}] {message}"]
    if merged:
        parts.append(_format_context(merged))
    logger.log(level, " | ".join(parts), extra={CONTEXT_ATTR: merged})


def log_warning(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Log a recovered problem (best-effort rendering, quarantined record)."""
    parts = [f"{operation}: {message}"]
    if context:
        parts.append(_format_context(context))
    logger.warning(" | ".join(parts), extra={CONTEXT_ATTR: dict(context or {})})


# Initialize default logging (can be reconfigured by CLI or settings)
setup_logging(level=logging.WARNING)
