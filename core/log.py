"""Logging configuration for the quotawake service."""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import colorlog

# Base format string for log messages (without colors)
BASE_LOG_FORMAT = (
    "%(asctime)s %(levelname)8s %(message)s (%(name)s@%(filename)s:%(lineno)d)"
)

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

# Per-slot request traces (slot.logging), one JSON object per line
REQUEST_LOGGER_NAME = "quotawake.requests"


def setup_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
    use_colors: bool = True,
    enable_file_logging: bool = False,
    log_dir: Path | None = None,
    is_test_env: bool = False,
) -> None:
    """Configure logging for the quotawake service.

    Args:
        level: Logging level to use (number or name such as "DEBUG")
        format_string: Custom format string for console messages
        use_colors: Whether to use colored output for console
        enable_file_logging: Whether to enable file logging
        log_dir: Directory for log files (defaults to ./logs or ./logs/test)
        is_test_env: Whether this is a test environment
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if log_dir is None:
        log_dir = Path("logs")
        if is_test_env:
            log_dir = log_dir / "test"

    if enable_file_logging:
        log_dir.mkdir(parents=True, exist_ok=True)

    console_format = format_string or _get_console_format(use_colors)

    handlers = [_create_console_handler(console_format, use_colors)]

    if enable_file_logging:
        handlers.append(_create_file_handler(log_dir, BASE_LOG_FORMAT, is_test_env))

    _configure_request_log(log_dir if enable_file_logging else None, is_test_env)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,
    )
    # httpx logs every request at INFO; slot-level logging covers it
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _get_console_format(use_colors: bool) -> str:
    """Get console format string based on color preference."""
    if use_colors:
        return (
            "%(asctime)s %(log_color)s%(levelname)8s%(reset)s %(message)s "
            "\033[90m(%(name)s@%(filename)s:%(lineno)d)\033[0m"
        )
    return BASE_LOG_FORMAT


def _create_console_handler(format_string: str, use_colors: bool) -> logging.Handler:
    """Create console handler with appropriate formatter."""
    console_handler = logging.StreamHandler(sys.stdout)

    if use_colors:
        console_formatter: logging.Formatter = colorlog.ColoredFormatter(
            format_string,
            datefmt="%m-%d %H:%M:%S",
            log_colors=LOG_COLORS,
            secondary_log_colors={},
            style="%",
        )
    else:
        console_formatter = logging.Formatter(format_string, datefmt="%m-%d %H:%M:%S")

    console_handler.setFormatter(console_formatter)
    return console_handler


def _create_file_handler(
    log_dir: Path, format_string: str, is_test_env: bool
) -> logging.Handler:
    """Create file handler with appropriate configuration."""
    file_formatter = logging.Formatter(format_string, datefmt="%m-%d %H:%M:%S")

    if is_test_env:
        file_handler: logging.Handler = logging.FileHandler(
            log_dir / "test.log", mode="w"
        )
    else:
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "quotawake.log",
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=4,  # Keep 4 backup files (total 5 files)
            encoding="utf-8",
        )

    file_handler.setFormatter(file_formatter)
    return file_handler


class JsonLinesFormatter(logging.Formatter):
    """Render request trace records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat()
        }
        entry.update(getattr(record, "trace", {}))
        return json.dumps(entry, default=str, ensure_ascii=False)


def _configure_request_log(log_dir: Path | None, is_test_env: bool) -> None:
    """Attach (or detach) the JSONL file handler of the request logger."""
    request_logger = logging.getLogger(REQUEST_LOGGER_NAME)
    # Traces are opt-in per slot, so they bypass the global level
    request_logger.setLevel(logging.INFO)
    for handler in list(request_logger.handlers):
        request_logger.removeHandler(handler)
        handler.close()

    if log_dir is None:
        return

    if is_test_env:
        file_handler: logging.Handler = logging.FileHandler(
            log_dir / "requests.jsonl", mode="w", encoding="utf-8"
        )
    else:
        # Daily files, kept for two weeks
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_dir / "requests.jsonl",
            when="midnight",
            backupCount=14,
            encoding="utf-8",
        )
    file_handler.setFormatter(JsonLinesFormatter())
    request_logger.addHandler(file_handler)


def log_request(slot: int, action: str, method: str, url: str, **fields: Any) -> None:
    """Record one upstream request of a slot with verbose logging enabled.

    The record goes to the console like any other INFO message and, when
    file logging is on, as a JSON line to ``requests.jsonl``.

    Args:
        slot: Slot id
        action: quota, wake or warmup
        method: HTTP method
        url: Request URL
        **fields: request_body, status, response_body or error
    """
    trace = {"slot": slot, "action": action, "method": method, "url": url}
    trace.update({key: value for key, value in fields.items() if value is not None})
    details = " ".join(f"{key}={trace[key]}" for key in fields if key in trace)
    logging.getLogger(REQUEST_LOGGER_NAME).info(
        f"slot {slot} [LOG] {action} {method} {url} {details}".rstrip(),
        extra={"trace": trace},
    )


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def setup_production_logging(level: int | str = logging.INFO) -> None:
    """Setup logging for production environment with file rotation."""
    setup_logging(level=level, enable_file_logging=True, is_test_env=False)


def setup_test_logging(level: int | str = logging.DEBUG) -> None:
    """Setup logging for test environment with file overwrite."""
    setup_logging(level=level, enable_file_logging=True, is_test_env=True)
