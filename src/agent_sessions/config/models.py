"""Configuration models for agent-sessions.

This module defines Pydantic models for all configuration sections,
including validation and defaults.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agent_sessions.core.constants import (
    AGENT_HOME_ENV,
    DEFAULT_AGENT_HOME_NAME,
    DEFAULT_MAX_SESSIONS,
    DEFAULT_SESSION_NAME_MAX_LENGTH,
    SESSIONS_DIR_NAME,
)
from agent_sessions.core.logging import LOG_LEVEL_MAP


def get_agent_home() -> Path:
    """Get the agent home directory.

    Returns:
        $AGENT_HOME if set and non-empty, else ~/.agent.
    """
    env_home = os.environ.get(AGENT_HOME_ENV)
    if env_home:
        return Path(env_home).expanduser()
    return Path.home() / DEFAULT_AGENT_HOME_NAME


def default_session_dir() -> Path:
    """Get the default session storage directory."""
    return get_agent_home() / SESSIONS_DIR_NAME


class SessionConfig(BaseModel):
    """Session store configuration.

    Attributes:
        session_dir: Directory holding session files, the index and the
            last-session pointer. "~" is expanded.
        max_sessions: Sessions kept after every save (1+).
        auto_save: Whether callers should save after every exchange.
        name_max_length: Maximum length of a sanitized session name (1-255).
    """

    model_config = ConfigDict(validate_assignment=True)

    session_dir: Path = Field(default_factory=default_session_dir)
    max_sessions: int = Field(default=DEFAULT_MAX_SESSIONS, ge=1)
    auto_save: bool = True
    name_max_length: int = Field(
        default=DEFAULT_SESSION_NAME_MAX_LENGTH, ge=1, le=255
    )

    @field_validator("session_dir", mode="before")
    @classmethod
    def expand_session_dir(cls, v: str | Path) -> Path:
        """Expand ~ in the session directory."""
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("session_dir must be a non-empty path")
            v = Path(v.strip())
        return v.expanduser()


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Console log level name.
        file_logging: Also write a rotating log file.
        log_file: Custom log file path.
    """

    model_config = ConfigDict(validate_assignment=True)

    level: str = "WARNING"
    file_logging: bool = False
    log_file: Path | None = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and validate the level name."""
        v = v.strip().upper()
        if v not in LOG_LEVEL_MAP:
            raise ValueError(
                f"Invalid log level: {v}. Valid: {', '.join(LOG_LEVEL_MAP)}"
            )
        return v


class AgentSessionsConfig(BaseModel):
    """Root configuration model.

    Attributes:
        session: Session store settings.
        logging: Logging settings.
    """

    model_config = ConfigDict(validate_assignment=True)

    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
