"""Tests for logger module."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

from rulekeeper.util.logger import (
    MAX_LOG_BYTES,
    NOISY_LOGGERS,
    ConsoleHandler,
    get_log_filepath,
    get_logger,
    handle_exception,
    resolve_log_level,
    stderr_is_terminal,
)


class TestStderrIsTerminal:
    """Tests for stderr_is_terminal function."""

    @patch('sys.stderr.isatty')
    def test_tty(self, mock_isatty):
        mock_isatty.return_value = True
        assert stderr_is_terminal() is True

    @patch('sys.stderr.isatty')
    def test_no_tty(self, mock_isatty):
        mock_isatty.return_value = False
        assert stderr_is_terminal() is False

    @patch('sys.stderr.isatty')
    def test_exception(self, mock_isatty):
        mock_isatty.side_effect = Exception("Error")
        assert stderr_is_terminal() is False


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=level, pathname="test.py", lineno=10,
        msg=msg, args=(), exc_info=None, func="test_func",
    )


def test_console_handler_colours_by_level():
    rendered = ConsoleHandler(use_color=True).render(_record(logging.ERROR, "Error message"))

    assert rendered.startswith("\033[31m")
    assert rendered.endswith("\033[0m")
    assert "[ERROR] [test:test_func:10] Error message" in rendered


def test_console_handler_plain_without_terminal():
    rendered = ConsoleHandler(use_color=False).render(_record(logging.INFO, "Plain message"))

    assert "\033[" not in rendered
    assert rendered.endswith("Plain message")


def test_resolve_log_level_reads_environment(monkeypatch):
    monkeypatch.setenv("RULEKEEPER_LOG_LEVEL", "warning")
    assert resolve_log_level() == logging.WARNING

    monkeypatch.setenv("RULEKEEPER_LOG_LEVEL", "not-a-level")
    assert resolve_log_level() == logging.DEBUG


class TestGetLogger:
    """Tests for get_logger function."""

    def test_attaches_console_and_rotating_file(self, monkeypatch):
        monkeypatch.setenv("RULEKEEPER_LOG_LEVEL", "WARNING")
        logger = get_logger("rulekeeper_test_logger_1")

        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        console = [h for h in logger.handlers if isinstance(h, ConsoleHandler)]
        assert console and console[0].level == logging.WARNING
        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].level == logging.DEBUG
        assert file_handlers[0].maxBytes == MAX_LOG_BYTES

    def test_returns_existing(self):
        logger1 = get_logger("rulekeeper_test_logger_2")
        handler_count = len(logger1.handlers)
        logger2 = get_logger("rulekeeper_test_logger_2")

        assert logger1 is logger2
        assert len(logger2.handlers) == handler_count


def test_all_loggers_share_session_file():
    assert get_log_filepath() == get_log_filepath()
    assert get_log_filepath().suffix == ".log"


def test_noisy_libraries_are_silenced():
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.ERROR


def test_handle_exception_logs_uncaught_errors():
    with patch("logging.error") as mock_error:
        handle_exception(ValueError, ValueError("boom"), None)

    mock_error.assert_called_once()
    assert mock_error.call_args.kwargs["exc_info"][0] is ValueError


def test_handle_exception_passes_keyboard_interrupt_through():
    with patch.object(sys, "__excepthook__") as default_hook:
        handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)

    default_hook.assert_called_once()


def test_logging_with_exception_does_not_raise():
    logger = get_logger("rulekeeper_test_logger_3")
    try:
        raise ValueError("Test exception")
    except ValueError:
        logger.exception("Exception occurred")
