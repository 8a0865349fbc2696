"""Logging configuration for the printprep CLI.

- Unified loguru-based logging with consistent formatting
- Intercepts third-party library logs (httpx, httpcore, PIL, asyncio)
- Truncates inline image payloads so a single log line never carries
  megabytes of base64
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from click import Context
from loguru import logger

from printprep import __version__
from printprep.constants import (
    DEFAULT_LOG_RETENTION,
    DEFAULT_LOG_ROTATION,
    LOG_PREVIEW_CHARS,
)

# Third-party loggers to intercept and route to loguru
INTERCEPTED_LOGGERS = [
    # HTTP clients
    "httpx",
    "httpcore",
    # Image decoding
    "PIL",
    "PIL.Image",
    # Async
    "asyncio",
]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <5} | {module}:{line: <3} | {message}"

# data:image/png;base64,<long payload>
_DATA_URI_PATTERN = re.compile(r"(data:[\w/+.-]+;base64,)([A-Za-z0-9+/=]{%d,})" % LOG_PREVIEW_CHARS)


def truncate_data_uris(message: str) -> str:
    """Shorten base64 payloads inside a message.

    Examples:
        >>> truncate_data_uris("got data:image/png;base64," + "A" * 500)[:40]
        'got data:image/png;base64,AAAAAAAAAAAAAA'
    """

    def _shorten(match: re.Match[str]) -> str:
        payload = match.group(2)
        return f"{match.group(1)}{payload[:16]}...({len(payload)} chars)"

    return _DATA_URI_PATTERN.sub(_shorten, message)


def _patch_record(record: Any) -> None:
    record["message"] = truncate_data_uris(record["message"])


class InterceptHandler(logging.Handler):
    """Intercept standard logging and forward to loguru.

    Uses the record's built-in location info instead of frame tracing.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.bind(
            name=record.name,
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        ).opt(exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    verbose: bool,
    log_dir: str | None = None,
    log_level: str = "DEBUG",
    rotation: str = DEFAULT_LOG_ROTATION,
    retention: str = DEFAULT_LOG_RETENTION,
    quiet: bool = False,
) -> tuple[int | None, Path | None]:
    """Configure logging.

    Args:
        verbose: Show DEBUG on the console (INFO otherwise).
        log_dir: Directory for log files. Supports ~ expansion.
        log_level: Log level for file output.
        rotation: Log file rotation size.
        retention: Log file retention period.
        quiet: Disable console logging entirely.

    Returns:
        Tuple of (console_handler_id, log_file_path). Log file path is None
        if file logging is disabled.
    """
    logger.remove()
    logger.configure(patcher=_patch_record)

    console_handler_id: int | None = None
    if not quiet:
        console_handler_id = logger.add(
            sys.stderr,
            level="DEBUG" if verbose else "INFO",
            format=CONSOLE_FORMAT,
        )

    log_file_path: Path | None = None
    if log_dir:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        log_file_path = log_path / f"printprep_{timestamp}.log"
        logger.add(
            log_file_path,
            level=log_level,
            rotation=rotation,
            retention=retention,
            format=FILE_FORMAT,
        )

    _setup_log_interception()

    return console_handler_id, log_file_path


def _setup_log_interception() -> None:
    """Route third-party stdlib loggers into loguru (WARNING+ only)."""
    intercept_handler = InterceptHandler()

    for logger_name in INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(logger_name)
        stdlib_logger.handlers.clear()
        stdlib_logger.addHandler(intercept_handler)
        stdlib_logger.propagate = False
        stdlib_logger.setLevel(logging.WARNING)


def print_version(ctx: Context, param: Any, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    from printprep.cli.main import console

    console.print(f"printprep {__version__}")
    ctx.exit(0)
