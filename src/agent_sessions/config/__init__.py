"""Configuration package for agent-sessions."""

from agent_sessions.config.loader import ConfigLoader
from agent_sessions.config.models import (
    AgentSessionsConfig,
    LoggingConfig,
    SessionConfig,
    default_session_dir,
    get_agent_home,
)
from agent_sessions.config.sources import (
    EnvironmentSource,
    IConfigSource,
    JsonFileSource,
    YamlFileSource,
)

__all__ = [
    "AgentSessionsConfig",
    "ConfigLoader",
    "EnvironmentSource",
    "IConfigSource",
    "JsonFileSource",
    "LoggingConfig",
    "SessionConfig",
    "YamlFileSource",
    "default_session_dir",
    "get_agent_home",
]
