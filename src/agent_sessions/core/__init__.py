"""Core package containing interfaces, errors, and logging."""

from agent_sessions.core.errors import (
    AgentSessionsError,
    ConfigError,
    InvalidSessionIdError,
    InvalidSessionNameError,
    ReservedSessionNameError,
    SessionError,
    SessionStorageError,
    SessionValidationError,
)
from agent_sessions.core.interfaces import IConfigLoader, ISessionRepository
from agent_sessions.core.logging import get_logger, setup_logging

__all__ = [
    "AgentSessionsError",
    "ConfigError",
    "IConfigLoader",
    "ISessionRepository",
    "InvalidSessionIdError",
    "InvalidSessionNameError",
    "ReservedSessionNameError",
    "SessionError",
    "SessionStorageError",
    "SessionValidationError",
    "get_logger",
    "setup_logging",
]
