"""Configuration sources for agent-sessions.

Each source yields a partial settings dict; ConfigLoader layers them.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar

import yaml

from agent_sessions.core import ConfigError, get_logger

logger = get_logger("config.sources")


class IConfigSource(ABC):
    """A place settings can come from."""

    @abstractmethod
    def load(self) -> dict[str, Any]:
        """Load settings from this source.

        Returns:
            Settings dictionary, empty when the source is absent.

        Raises:
            ConfigError: If the source exists but cannot be parsed.
        """
        ...

    @abstractmethod
    def exists(self) -> bool:
        """Check if source exists."""
        ...


class _SettingsFile(IConfigSource):
    """Settings file whose document root must be a mapping."""

    format_name: ClassVar[str]
    root_kind: ClassVar[str]
    parse_errors: ClassVar[tuple[type[Exception], ...]]

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Settings file location."""
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> dict[str, Any]:
        if not self.exists():
            return {}

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot read %s: %s", self._path, e)
            raise ConfigError(f"Cannot read {self._path}: {e}") from e

        if not text.strip():
            return {}

        try:
            data = self._parse(text)
        except self.parse_errors as e:
            logger.warning("Invalid %s in %s: %s", self.format_name, self._path, e)
            raise ConfigError(f"Invalid {self.format_name} in {self._path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"{self.format_name} root must be {self.root_kind}, "
                f"got {type(data).__name__}"
            )
        return data

    @abstractmethod
    def _parse(self, text: str) -> Any:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._path})"


class JsonFileSource(_SettingsFile):
    """settings.json and settings.local.json."""

    format_name = "JSON"
    root_kind = "object"
    parse_errors = (json.JSONDecodeError,)

    def _parse(self, text: str) -> Any:
        return json.loads(text)


class YamlFileSource(_SettingsFile):
    """settings.yaml, read with yaml.safe_load."""

    format_name = "YAML"
    root_kind = "mapping"
    parse_errors = (yaml.YAMLError,)

    def _parse(self, text: str) -> Any:
        return yaml.safe_load(text)


class EnvironmentSource(IConfigSource):
    """Settings from AGENT_* environment variables.

    Variable to setting:
    - AGENT_SESSION_DIR -> session.session_dir
    - AGENT_MAX_SESSIONS -> session.max_sessions
    - AGENT_AUTO_SAVE -> session.auto_save
    - AGENT_LOG_LEVEL -> logging.level

    Empty variables are ignored.
    """

    MAPPINGS: ClassVar[dict[str, tuple[str, str]]] = {
        "AGENT_SESSION_DIR": ("session", "session_dir"),
        "AGENT_MAX_SESSIONS": ("session", "max_sessions"),
        "AGENT_AUTO_SAVE": ("session", "auto_save"),
        "AGENT_LOG_LEVEL": ("logging", "level"),
    }

    TRUTHY: ClassVar[frozenset[str]] = frozenset({"true", "1", "yes", "on"})

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        """Initialize environment source.

        Args:
            environ: Variables to read. Defaults to a snapshot of os.environ.
        """
        self._environ = environ if environ is not None else dict(os.environ)

    def load(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        for env_var, (section, key) in self.MAPPINGS.items():
            raw = self._environ.get(env_var)
            if raw:
                settings.setdefault(section, {})[key] = self._coerce(key, raw)
        return settings

    def exists(self) -> bool:
        return True

    def _coerce(self, key: str, raw: str) -> Any:
        # Bad integers pass through so model validation reports them
        if key == "auto_save":
            return raw.strip().lower() in self.TRUTHY
        if key == "max_sessions":
            try:
                return int(raw)
            except ValueError:
                logger.warning("Invalid integer value for %s: %s", key, raw)
        return raw

    def __repr__(self) -> str:
        return "EnvironmentSource()"
