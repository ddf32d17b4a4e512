"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from tanzparty.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# stdlib loggers of the HTTP, database and SDK layers
NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "hpack",
    "asyncpg",
    "openai._base_client",
    "asyncio",
)


def configure_logging(
    *,
    level: str | None = None,
    log_dir: str | None = None,
    log_to_file: bool | None = None,
) -> None:
    """Install console (and optionally file) sinks for the collector."""
    console_level = (level or settings.app_log_level).upper()
    write_file = settings.log_to_file if log_to_file is None else log_to_file

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    if write_file:
        directory = Path(log_dir or settings.log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        logger.add(
            directory / "tanzparty_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="00:00",  # New file at midnight
            retention="7 days",
            compression="zip",
        )

    noisy_level = settings.noisy_log_level.upper()
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


def _emit(tag: str, payload: dict[str, Any], *, failed: bool, ok_level: str = "INFO") -> None:
    record = {"timestamp": datetime.now(timezone.utc).isoformat(), **payload}
    if failed:
        logger.error(f"{tag}_FAILED: {record}")
    else:
        logger.log(ok_level, f"{tag}: {record}")


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log one extraction-model request with token usage and latency."""
    _emit(
        "LLM_CALL",
        {
            "model": model,
            "caller": caller,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
            "duration_ms": duration_ms,
            "status": status,
            "error": error,
        },
        failed=bool(error),
    )


def log_db_operation(
    operation: str,
    table: str,
    status: str,
    details: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Log a statement against the events or visited_urls table."""
    _emit(
        "DB_OPERATION",
        {"operation": operation, "table": table, "status": status, "details": details, "error": error},
        failed=bool(error),
        ok_level="DEBUG",
    )


def log_url_outcome(url: str, success: bool, reason: str | None) -> None:
    """Log the terminal outcome for one candidate URL."""
    _emit("URL_OUTCOME", {"url": url, "success": success, "reason": reason}, failed=False)
