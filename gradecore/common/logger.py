"""
Application Logger

Logging setup for GradeCore. The package logger is named "gradecore";
modules hang their loggers below it with app_logger.getChild(...).
Level, format, JSON output and the optional log file come from Settings.
"""

import os
import sys
import json
import time
import logging
import datetime
import functools
import asyncio
from typing import Dict, Any, Optional, Callable, TypeVar

from gradecore.config import Settings, settings

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

F = TypeVar('F', bound=Callable[..., Any])

__all__ = [
    'configure_logger',
    'LoggerAdapter',
    'JsonFormatter',
    'with_context',
    'app_logger',
    'log_execution_time'
]


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Ids attached through LoggerAdapter (quiz_id, result_id, ...) are merged
    in as top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc).isoformat(),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        context = getattr(record, 'data', None)
        if isinstance(context, dict):
            entry.update(context)

        return json.dumps(entry, default=str)


def configure_logger(config: Optional[Settings] = None, name: str = "gradecore") -> logging.Logger:
    """
    (Re)configure the named logger from settings.

    Existing handlers are replaced, so calling this again after changing
    LOG_LEVEL or LOG_JSON takes effect immediately.

    Args:
        config: Settings to read LOG_* values from; defaults to the module settings
        name: Logger to configure

    Returns:
        The configured logger
    """
    config = config or settings

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers = []

    if config.LOG_JSON:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(config.LOG_FORMAT, DEFAULT_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.LOG_FILE:
        try:
            directory = os.path.dirname(config.LOG_FILE)
            if directory:
                os.makedirs(directory, exist_ok=True)
            file_handler = logging.FileHandler(config.LOG_FILE)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except (FileNotFoundError, PermissionError) as e:
            logger.warning(f"Could not create log file {config.LOG_FILE}: {e}")

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that tags every message with the ids an operation touches.

    The context travels in record.data, where JsonFormatter picks it up.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, context or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs = kwargs.copy()
        extra = dict(kwargs.get('extra') or {})
        data = dict(extra.get('data') or {})
        data.update(self.extra)

        extra['data'] = data
        kwargs['extra'] = extra
        return msg, kwargs

    def with_context(self, **context) -> 'LoggerAdapter':
        """New adapter with this adapter's context plus the given ids."""
        return LoggerAdapter(self.logger, {**self.extra, **context})


def with_context(name: Optional[str] = None, **context) -> LoggerAdapter:
    """Adapter on the package logger (or its `name` child) carrying `context`."""
    logger = app_logger.getChild(name) if name else app_logger
    return LoggerAdapter(logger, context)


def _package_logger() -> logging.Logger:
    logger = logging.getLogger("gradecore")
    # Leave handlers an embedding application installed alone
    if logger.handlers:
        return logger
    return configure_logger(settings)


app_logger = _package_logger()


def log_execution_time(logger: Optional[logging.Logger] = None) -> Callable[[F], F]:
    """
    Decorator logging how long a (sync or async) call took.

    Successful calls log at DEBUG; failures log at WARNING with the error
    and are re-raised unchanged.
    """
    log = logger or app_logger

    def report(func: Callable, started: float, error: Optional[Exception] = None) -> None:
        elapsed = time.perf_counter() - started
        if error is None:
            log.debug(f"{func.__name__} executed in {elapsed:.3f} seconds")
        else:
            log.warning(f"{func.__name__} failed after {elapsed:.3f} seconds: {error}")

    def decorator(func: F) -> F:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    report(func, started, e)
                    raise
                report(func, started)
                return result

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(func, started, e)
                raise
            report(func, started)
            return result

        return wrapper  # type: ignore

    return decorator
