"""
Logging setup for TruthLens batch jobs and library callers.

Two output formats:
- JSON lines when ENVIRONMENT=production (log shippers parse these)
- Colored single-line output everywhere else

Usage:
    from truthlens.logging_config import configure_logging, log_timing

    configure_logging()

    @log_timing(operation="Viral detection", count_field="stories_count")
    def run_viral_detection():
        ...
"""

from __future__ import annotations

import functools
import json
import logging
import os
import time
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "taskName"}

# Extra fields rendered inline by the dev formatter, in this order.
_DEV_EXTRAS = ("duration_ms", "articles_count", "stories_count", "claims_count")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                payload[key] = value

        return json.dumps(payload, default=str)


class DevFormatter(logging.Formatter):
    """Readable colored output for local runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        stamp = datetime.now().strftime("%H:%M:%S")
        line = f"{stamp} {color}{record.levelname:8}{self.RESET} {record.name}: {record.getMessage()}"

        parts = []
        for key in _DEV_EXTRAS:
            if not hasattr(record, key):
                continue
            value = getattr(record, key)
            if key == "duration_ms":
                parts.append(f"{value}ms")
            else:
                parts.append(f"{key[: -len('_count')]}={value}")
        if parts:
            line += " [" + " ".join(parts) + "]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: Optional[str] = None,
    force_json: bool = False,
    force_dev: bool = False,
) -> None:
    """
    Install a single stream handler on the root logger.

    Args:
        level: Log level name. Falls back to LOG_LEVEL, then INFO.
        force_json: Always emit JSON.
        force_dev: Always emit the colored dev format.
    """
    environment = os.environ.get("ENVIRONMENT", "development")
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    if force_json:
        use_json = True
    elif force_dev:
        use_json = False
    else:
        use_json = environment == "production"

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if use_json else DevFormatter())

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level, logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    # ollama talks through httpx
    for name in ("httpx", "httpcore", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"environment": environment, "format": "json" if use_json else "dev"},
    )


def _result_count(result: Any, count_field: str) -> Optional[int]:
    if isinstance(result, (list, tuple, set)):
        return len(result)
    if isinstance(result, int) and not isinstance(result, bool):
        return result
    value = getattr(result, count_field.replace("_count", ""), None)
    if isinstance(value, int):
        return value
    return None


def log_timing(
    operation: Optional[str] = None,
    count_field: Optional[str] = None,
) -> Callable:
    """
    Log how long the wrapped call took.

    Args:
        operation: Name used in the log line (defaults to the function name).
        count_field: Extra field (e.g. ``articles_count``) filled from the
            result: its length for sequences, the value itself for ints, or
            the attribute named by the field without ``_count``.

    Works both bare (``@log_timing``) and called (``@log_timing(...)``).
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__)
            name = operation or func.__name__
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = round((time.perf_counter() - started) * 1000, 2)
                logger.error(
                    f"{name} failed: {e}",
                    extra={"duration_ms": elapsed},
                    exc_info=True,
                )
                raise

            extra: Dict[str, Any] = {
                "duration_ms": round((time.perf_counter() - started) * 1000, 2)
            }
            if count_field:
                count = _result_count(result, count_field)
                if count is not None:
                    extra[count_field] = count
            logger.info(f"{name} completed", extra=extra)
            return result

        return wrapper

    if callable(operation):
        func, operation = operation, None
        return decorator(func)
    return decorator
