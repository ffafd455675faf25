"""Layered settings loader for agent-sessions."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from agent_sessions.config.models import AgentSessionsConfig, get_agent_home
from agent_sessions.config.sources import (
    EnvironmentSource,
    IConfigSource,
    JsonFileSource,
    YamlFileSource,
)
from agent_sessions.core import ConfigError, IConfigLoader, get_logger

logger = get_logger("config.loader")

SETTINGS_STEM = "settings"
LOCAL_SETTINGS_FILE = "settings.local.json"
_SUFFIX_SOURCES: dict[str, type[JsonFileSource] | type[YamlFileSource]] = {
    ".json": JsonFileSource,
    ".yaml": YamlFileSource,
    ".yml": YamlFileSource,
}


class ConfigLoader(IConfigLoader):
    """Builds AgentSessionsConfig from every settings layer.

    Layers, lowest precedence first:
    1. Model defaults
    2. User settings ($AGENT_HOME or ~/.agent, settings.json or settings.yaml)
    3. Project settings (./.agent, settings.json or settings.yaml)
    4. Local project overrides (./.agent/settings.local.json)
    5. AGENT_* environment variables

    A layer that cannot be parsed is skipped. The merged result must
    validate or load_all() raises ConfigError.
    """

    def __init__(
        self,
        user_dir: Path | None = None,
        project_dir: Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> None:
        """Initialize configuration loader.

        Args:
            user_dir: User settings directory. Defaults to get_agent_home().
            project_dir: Project settings directory. Defaults to ./.agent
            environ: Environment mapping. Defaults to os.environ.
        """
        self._user_dir = user_dir or get_agent_home()
        self._project_dir = project_dir or Path.cwd() / ".agent"
        self._environ = environ
        self._config: AgentSessionsConfig | None = None

    @property
    def config(self) -> AgentSessionsConfig:
        """Last loaded configuration, loaded on first access."""
        if self._config is None:
            self._config = self.load_all()
        return self._config

    @property
    def user_dir(self) -> Path:
        return self._user_dir

    @property
    def project_dir(self) -> Path:
        return self._project_dir

    def sources(self) -> list[IConfigSource]:
        """Settings sources in merge order."""
        return [
            self._settings_file(self._user_dir),
            self._settings_file(self._project_dir),
            JsonFileSource(self._project_dir / LOCAL_SETTINGS_FILE),
            EnvironmentSource(self._environ),
        ]

    def load_all(self) -> AgentSessionsConfig:
        """Merge every source and validate the result.

        Raises:
            ConfigError: If the merged settings fail validation.
        """
        merged: dict[str, Any] = {}
        for source in self.sources():
            layer = self._read_layer(source)
            if layer:
                merged = self.merge(merged, layer)

        try:
            return AgentSessionsConfig.model_validate(merged)
        except ValidationError as e:
            logger.error("Configuration validation failed: %s", e)
            raise ConfigError(f"Configuration validation failed: {e}") from e

    def _settings_file(self, directory: Path) -> IConfigSource:
        # JSON wins when both exist
        json_path = directory / f"{SETTINGS_STEM}.json"
        yaml_path = directory / f"{SETTINGS_STEM}.yaml"
        if yaml_path.exists() and not json_path.exists():
            return YamlFileSource(yaml_path)
        return JsonFileSource(json_path)

    def _read_layer(self, source: IConfigSource) -> dict[str, Any]:
        try:
            if not source.exists():
                return {}
            layer = source.load()
        except ConfigError as e:
            logger.debug("Skipped config source %s: %s", source, e)
            return {}
        except FileNotFoundError:
            logger.debug("Config source %s disappeared before load", source)
            return {}

        if layer:
            logger.debug("Loaded config from %s", source)
        return layer

    def load(self, path: Path) -> dict[str, Any]:
        """Load one settings file, choosing the parser by suffix.

        Raises:
            ConfigError: If the suffix is unsupported or the file is invalid.
        """
        suffix = path.suffix.lower()
        source_cls = _SUFFIX_SOURCES.get(suffix)
        if source_cls is None:
            raise ConfigError(f"Unsupported configuration format: {suffix}")
        return source_cls(path).load()

    def merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into a copy of base.

        Nested dicts merge key by key; any other value in override replaces
        the one in base. Neither input is modified or shared with the result.
        """
        result = copy.deepcopy(base)
        for key, value in override.items():
            current = result.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                result[key] = self.merge(current, value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def validate(self, config: dict[str, Any]) -> tuple[bool, list[str]]:
        """Check settings against the model without raising."""
        try:
            AgentSessionsConfig.model_validate(config)
        except ValidationError as e:
            return False, [str(err["msg"]) for err in e.errors()]
        return True, []

    def reload(self) -> AgentSessionsConfig:
        """Load again from all sources, keeping the old config on failure."""
        try:
            self._config = self.load_all()
            logger.info("Configuration reloaded")
        except ConfigError as e:
            logger.error("Failed to reload configuration: %s", e)
        return self.config
