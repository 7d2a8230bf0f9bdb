"""Unit tests for core logging functionality."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from core import get_logger, setup_logging, setup_test_logging
from core.log import REQUEST_LOGGER_NAME, log_request


@pytest.fixture(autouse=True)
def restore_test_logging() -> Iterator[None]:
    """Put the session logging configuration back after each test."""
    yield
    setup_test_logging()


def test_setup_logging_defaults() -> None:
    """Test setup_logging with default parameters."""
    setup_logging()
    root_logger = logging.getLogger()
    assert root_logger.level == logging.INFO


def test_setup_logging_level_name() -> None:
    """Level names from the environment are accepted in any case."""
    setup_logging(level="debug")
    assert logging.getLogger().level == logging.DEBUG


def test_setup_logging_unknown_level_name() -> None:
    """An unknown level name falls back to INFO."""
    setup_logging(level="chatty")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_httpx() -> None:
    """Per-request httpx logs are raised to WARNING."""
    setup_logging(level=logging.DEBUG)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_file_logging_writes_rotating_log(tmp_path: Path) -> None:
    """Production file logging writes quotawake.log in the log directory."""
    setup_logging(enable_file_logging=True, log_dir=tmp_path, use_colors=False)
    get_logger("quotawake.test").info("slot 1: quota poller started")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_file = tmp_path / "quotawake.log"
    assert log_file.exists()
    assert "slot 1: quota poller started" in log_file.read_text()


def test_get_logger() -> None:
    """Test get_logger returns a logger instance."""
    logger = get_logger("test_logger")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "test_logger"


class TestRequestTrace:
    """Verbose per-slot request traces."""

    def test_trace_written_as_json_line(self, tmp_path: Path) -> None:
        setup_logging(enable_file_logging=True, log_dir=tmp_path, use_colors=False)

        log_request(
            2,
            "wake",
            "POST",
            "https://api.example.test/chat",
            request_body={"model": "glm"},
            status=200,
            error=None,
        )
        for handler in logging.getLogger(REQUEST_LOGGER_NAME).handlers:
            handler.flush()

        lines = (tmp_path / "requests.jsonl").read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["slot"] == 2
        assert entry["action"] == "wake"
        assert entry["status"] == 200
        assert entry["request_body"] == {"model": "glm"}
        assert "error" not in entry
        assert "ts" in entry

    def test_trace_ignores_global_level(self) -> None:
        setup_logging(level="WARNING")

        assert not get_logger("core.scheduler").isEnabledFor(logging.INFO)
        assert logging.getLogger(REQUEST_LOGGER_NAME).isEnabledFor(logging.INFO)

    def test_no_file_handler_without_file_logging(self) -> None:
        setup_logging(enable_file_logging=False)
        assert logging.getLogger(REQUEST_LOGGER_NAME).handlers == []
