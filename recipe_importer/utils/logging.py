"""
Logging configuration for the Drive recipe importer.

Records go to the Rich console and to two files: a combined log and an
error-only log. File records are written as JSON lines and carry
whatever context (folder, file, recipe) is active through ``LogContext``.
"""

import functools
import inspect
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from recipe_importer.config import get_settings

# Attributes of a bare LogRecord; anything else came from ``extra`` or context
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

_THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "urllib3", "google", "googleapiclient", "openai")


class StructuredFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update({k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS})

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class ContextFilter(logging.Filter):
    """Copy the active logging context onto every record."""

    def __init__(self) -> None:
        super().__init__()
        self.context: Dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        self.context.update(kwargs)

    def clear_context(self) -> None:
        self.context.clear()

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.items():
            setattr(record, key, value)
        return True


context_filter = ContextFilter()


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.addFilter(context_filter)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_file_path: Optional[Path] = None,
    error_log_file_path: Optional[Path] = None,
) -> None:
    """
    Configure logging for the application.

    Replaces any handlers already on the root logger.

    Args:
        log_level: Logging level (defaults to settings)
        log_file_path: Combined log file (defaults to settings, None disables)
        error_log_file_path: Error-only log file (defaults to settings, None disables)
    """
    settings = get_settings()
    level = logging.getLevelName((log_level or settings.log_level).upper())
    log_file_path = log_file_path or settings.get_log_file_path()
    error_log_file_path = error_log_file_path or settings.get_error_log_file_path()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=settings.dev_mode,
    )
    console_handler.setLevel(level)
    console_handler.addFilter(context_filter)
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root_logger.addHandler(console_handler)

    file_formatter = StructuredFormatter()
    if log_file_path:
        root_logger.addHandler(_file_handler(log_file_path, level, file_formatter))
    if error_log_file_path:
        root_logger.addHandler(_file_handler(error_log_file_path, logging.ERROR, file_formatter))

    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={
            "log_file": str(log_file_path) if log_file_path else None,
            "error_log_file": str(error_log_file_path) if error_log_file_path else None,
        },
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Context manager that adds key/value pairs to every record logged inside it.

    Nested contexts stack: leaving one restores exactly the values that were
    active when it was entered.

    Usage:
        with LogContext(folder_id=folder_id):
            logger.info("Listing folder")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.values = kwargs
        self._saved: Dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._saved = dict(context_filter.context)
        context_filter.set_context(**self.values)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        context_filter.clear_context()
        context_filter.set_context(**self._saved)


def _log_success(logger: logging.Logger, name: str, started: float) -> None:
    elapsed = time.perf_counter() - started
    logger.info(f"Completed {name} in {elapsed:.2f}s", extra={"duration_seconds": elapsed})


def _log_failure(logger: logging.Logger, name: str, started: float, error: Exception) -> None:
    elapsed = time.perf_counter() - started
    logger.error(f"Failed {name}: {error}", extra={"duration_seconds": elapsed, "error": str(error)})


def log_performance(func):
    """
    Log how long a function takes, and whether it failed.

    Works on both coroutine functions and plain functions.
    """
    logger = get_logger(func.__module__)
    name = func.__name__

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            started = time.perf_counter()
            with LogContext(operation=name):
                logger.debug(f"Starting {name}")
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(logger, name, started, e)
                    raise
                _log_success(logger, name, started)
                return result

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        started = time.perf_counter()
        with LogContext(operation=name):
            logger.debug(f"Starting {name}")
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_failure(logger, name, started, e)
                raise
            _log_success(logger, name, started)
            return result

    return sync_wrapper
