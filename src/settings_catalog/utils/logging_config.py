"""Logging configuration for the Settings Catalog engine.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing decorators for codec and backend calls
- Structured context (policy_id, operation type)

Environment Variables:
    SETTINGS_CATALOG_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    SETTINGS_CATALOG_LOG_FILE: Path to log file (default: ~/.settings-catalog/settings-catalog.log)
    SETTINGS_CATALOG_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    SETTINGS_CATALOG_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from settings_catalog.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("replace_settings")
    async def replace_settings(self, policy_id, settings):
        ...

    # Or use context manager for sections:
    async with timed_section("apply", policy_id="abc-123"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import contextmanager, asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("settings_catalog.perf")
main_logger = logging.getLogger("settings_catalog")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("SETTINGS_CATALOG_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".settings-catalog" / "settings-catalog.log"
    path_str = os.environ.get("SETTINGS_CATALOG_LOG_FILE", str(default_path))
    return Path(path_str)


DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAIN_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-40s | %(levelname)-7s | %(message)s"
PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"


def _rotating_handler(path: Path, fmt: str, max_bytes: int, backups: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def setup_logging() -> None:
    """Configure logging for the application.

    Installs a console handler at SETTINGS_CATALOG_LOG_LEVEL plus two
    rotating DEBUG files next to each other: the main log and a
    ``settings-catalog-perf.log`` holding only timing lines.
    """
    log_level = get_log_level()
    log_file = get_log_file()
    max_bytes = int(os.environ.get("SETTINGS_CATALOG_LOG_MAX_SIZE", "10")) * 1024 * 1024
    backups = int(os.environ.get("SETTINGS_CATALOG_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)
    perf_log_file = log_file.parent / "settings-catalog-perf.log"

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(MAIN_FORMAT, datefmt=DATE_FORMAT))

    main_logger.setLevel(logging.DEBUG)  # handlers filter
    main_logger.addHandler(console_handler)
    main_logger.addHandler(_rotating_handler(log_file, MAIN_FORMAT, max_bytes, backups))

    # perf records stay out of the main handlers
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.propagate = False
    perf_logger.addHandler(_rotating_handler(perf_log_file, PERF_FORMAT, max_bytes, backups))
    perf_logger.addHandler(console_handler)

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.info(f"Performance logging to: {perf_log_file}")


def _policy_label(args: tuple, kwargs: dict) -> Optional[str]:
    """Best-effort policy id for a timed call."""
    if kwargs.get("policy_id"):
        return kwargs["policy_id"]
    if args and getattr(args[0], "policy_id", None):
        return args[0].policy_id
    if len(args) > 1 and isinstance(args[1], str):
        return args[1]
    return None


def _log_timing(
    operation: str,
    policy_id: Optional[str],
    start: float,
    error: Optional[BaseException] = None,
    extra: Optional[dict] = None,
) -> None:
    """Emit one perf line: operation | policy | elapsed | outcome [| extra]."""
    elapsed_ms = (time.perf_counter() - start) * 1000
    outcome = "OK" if error is None else f"FAIL: {error}"
    fields = [f"{operation:20s}", f"{policy_id or 'N/A':36s}", f"{elapsed_ms:8.2f}ms", outcome]
    if extra:
        fields.extend(f"{k}={v}" for k, v in extra.items())

    level = logging.INFO if error is None else logging.WARNING
    perf_logger.log(level, " | ".join(fields))


def timed(operation: str, policy_id: Optional[str] = None):
    """Decorator to log execution time of sync/async functions.

    Args:
        operation: Name of the operation (e.g., "encode_all", "get_settings")
        policy_id: Optional policy identifier (otherwise inferred from the
            ``policy_id`` argument or attribute)

    Usage:
        @timed("get_settings")
        async def get_settings(self, policy_id):
            ...
    """
    def decorator(func: Callable) -> Callable:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                label = policy_id or _policy_label(args, kwargs)
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_timing(operation, label, start, error=e)
                    raise
                _log_timing(operation, label, start)
                return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            label = policy_id or _policy_label(args, kwargs)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_timing(operation, label, start, error=e)
                raise
            _log_timing(operation, label, start)
            return result

        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, policy_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("apply", policy_id="abc-123", settings=12):
            await backend.replace_settings(...)
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        _log_timing(operation, policy_id, start, error=e, extra=extra)
        raise
    _log_timing(operation, policy_id, start, extra=extra)


@contextmanager
def timed_section_sync(operation: str, policy_id: Optional[str] = None, **extra):
    """Sync counterpart of timed_section."""
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        _log_timing(operation, policy_id, start, error=e, extra=extra)
        raise
    _log_timing(operation, policy_id, start, extra=extra)
