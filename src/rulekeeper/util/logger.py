"""
Logging for RuleKeeper.

Every logger writes DEBUG and above to one rotating file per process under
``logs/`` (or ``RULEKEEPER_LOG_DIR``) and prints to the console through
prompt_toolkit at the level named by ``RULEKEEPER_LOG_LEVEL``.
"""

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from datetime import datetime
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR: Path = Path(os.getenv("RULEKEEPER_LOG_DIR") or Path(__file__).parents[3] / "logs").resolve()
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

MAX_LOG_BYTES: int = 5 * 1024 * 1024
LOG_BACKUP_COUNT: int = 3

NOISY_LOGGERS = (
    "discord", "discord.gateway", "discord.client", "discord.http",
    "openai", "openai._base_client", "httpx", "httpcore",
    "websockets", "aiohttp", "urllib3",
)

_session_log_path: Path | None = None
_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def stderr_is_terminal() -> bool:
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


class ConsoleHandler(logging.Handler):
    """Print records with prompt_toolkit, coloured by level when attached to a terminal."""

    def __init__(self, use_color: bool | None = None):
        super().__init__()
        self.use_color = stderr_is_terminal() if use_color is None else use_color
        self.setFormatter(_formatter)

    def render(self, record: logging.LogRecord) -> str:
        line = self.format(record)
        color = LEVEL_COLORS.get(record.levelname) if self.use_color else None
        return f"{color}{line}{RESET_COLOR}" if color else line

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.render(record)))
        except Exception:
            self.handleError(record)


def resolve_log_level() -> int:
    """Return the console level from ``RULEKEEPER_LOG_LEVEL`` (defaults to DEBUG)."""
    level = logging.getLevelName(os.getenv("RULEKEEPER_LOG_LEVEL", "DEBUG").upper())
    return level if isinstance(level, int) else logging.DEBUG


def get_log_filepath() -> Path:
    """Timestamped log file shared by every logger in this process."""
    global _session_log_path
    if _session_log_path is None:
        _session_log_path = LOGS_DIR / (datetime.now().strftime(DATE_FORMAT) + ".log")
    return _session_log_path


def get_logger(logger_name: str) -> logging.Logger:
    """Return the named logger, attaching the console and session file handlers once."""
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    level = resolve_log_level()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = ConsoleHandler()
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    # the file keeps DEBUG so rule document formatting problems can be traced
    file_handler = RotatingFileHandler(
        get_log_filepath(),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(_formatter)
    logger.addHandler(file_handler)
    return logger


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` that logs uncaught exceptions; Ctrl+C keeps the default behaviour."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
    else:
        logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


def silence_noisy_loggers(names=NOISY_LOGGERS) -> None:
    """Raise library loggers to ERROR and drop their own handlers."""
    for name in names:
        library_logger = logging.getLogger(name)
        library_logger.setLevel(logging.ERROR)
        library_logger.propagate = False
        library_logger.handlers = []


silence_noisy_loggers()
