"""Logging infrastructure for agent-sessions.

Modules log through get_logger(), which hangs every logger under the
"agent-sessions" root. setup_logging() attaches the handlers to that root
once per process; library use without it stays silent.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from agent_sessions.core.constants import AGENT_HOME_ENV, DEFAULT_AGENT_HOME_NAME

ROOT_LOGGER_NAME = "agent-sessions"

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_FILE_NAME = "agent-sessions.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB per file
BACKUP_COUNT = 5

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def default_log_file() -> Path:
    """$AGENT_HOME/logs/agent-sessions.log, or under ~/.agent when unset."""
    home = os.environ.get(AGENT_HOME_ENV)
    base = Path(home).expanduser() if home else Path.home() / DEFAULT_AGENT_HOME_NAME
    return base / "logs" / LOG_FILE_NAME


def get_log_level_from_env() -> int:
    """Level named by AGENT_LOG_LEVEL, WARNING if unset or unknown."""
    level_str = os.environ.get("AGENT_LOG_LEVEL", "WARNING")
    return parse_log_level(level_str) or logging.WARNING


def parse_log_level(level: str | int | None) -> int | None:
    """Convert a level name (as found in config files) to a logging constant.

    Args:
        level: Level name, numeric level, or None.

    Returns:
        Logging level constant, or None when the name is unknown.
    """
    if level is None or isinstance(level, int):
        return level
    return LOG_LEVEL_MAP.get(level.strip().upper())


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    # Files capture everything regardless of the console level
    handler.setLevel(logging.DEBUG)
    return handler


def _console_handler(level: int, rich_console: bool) -> logging.Handler:
    if rich_console:
        return RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
            level=level,
        )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def setup_logging(
    level: int | None = None,
    log_file: Path | None = None,
    console_output: bool = True,
    rich_console: bool = True,
    file_logging: bool = False,
) -> None:
    """Configure logging for agent-sessions.

    Console level comes from, in order: the level argument,
    AGENT_LOG_LEVEL, then WARNING. Console output goes to stderr so
    command output on stdout stays machine readable. Calling this again
    replaces the previous handlers.

    Args:
        level: Console logging level.
        log_file: Rotating log file path. Defaults to default_log_file().
        console_output: Show logs on the console.
        rich_console: Format console output with Rich.
        file_logging: Also write to the rotating log file.
    """
    if level is None:
        level = get_log_level_from_env()

    handlers: list[logging.Handler] = []
    if file_logging:
        handlers.append(_file_handler(log_file or default_log_file()))
    if console_output:
        handlers.append(_console_handler(level, rich_console))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    # DEBUG at the root so each handler filters on its own level
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get the logger "agent-sessions.<name>"."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
