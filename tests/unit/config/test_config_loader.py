"""Unit tests for the configuration loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from agent_sessions.config import AgentSessionsConfig, ConfigLoader
from agent_sessions.core import ConfigError, IConfigLoader


@pytest.fixture
def dirs(temp_dir: Path) -> tuple[Path, Path]:
    user_dir = temp_dir / "user"
    project_dir = temp_dir / "project"
    user_dir.mkdir()
    project_dir.mkdir()
    return user_dir, project_dir


def _write_json(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data), encoding="utf-8")


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_implements_interface(self, dirs: tuple[Path, Path]) -> None:
        """Test ConfigLoader satisfies IConfigLoader."""
        assert isinstance(ConfigLoader(*dirs, environ={}), IConfigLoader)

    def test_defaults(self, dirs: tuple[Path, Path]) -> None:
        """Test defaults apply with no sources."""
        config = ConfigLoader(*dirs, environ={}).load_all()
        assert isinstance(config, AgentSessionsConfig)
        assert config.session.max_sessions == 50
        assert config.logging.level == "WARNING"

    def test_precedence(self, dirs: tuple[Path, Path]) -> None:
        """Test user < project < local < environment."""
        user_dir, project_dir = dirs
        _write_json(user_dir / "settings.json", {"session": {"max_sessions": 10, "auto_save": False}})
        _write_json(project_dir / "settings.json", {"session": {"max_sessions": 20}})
        _write_json(project_dir / "settings.local.json", {"logging": {"level": "info"}})

        loader = ConfigLoader(user_dir, project_dir, environ={"AGENT_LOG_LEVEL": "error"})
        config = loader.load_all()

        assert config.session.max_sessions == 20
        assert config.session.auto_save is False
        assert config.logging.level == "ERROR"

    def test_yaml_fallback(self, dirs: tuple[Path, Path]) -> None:
        """Test settings.yaml is read when settings.json is absent."""
        user_dir, project_dir = dirs
        (user_dir / "settings.yaml").write_text(
            "session:\n  max_sessions: 7\n", encoding="utf-8"
        )
        config = ConfigLoader(user_dir, project_dir, environ={}).load_all()
        assert config.session.max_sessions == 7

    def test_json_preferred_over_yaml(self, dirs: tuple[Path, Path]) -> None:
        """Test settings.json wins when both exist."""
        user_dir, project_dir = dirs
        _write_json(user_dir / "settings.json", {"session": {"max_sessions": 3}})
        (user_dir / "settings.yaml").write_text(
            "session:\n  max_sessions: 9\n", encoding="utf-8"
        )
        config = ConfigLoader(user_dir, project_dir, environ={}).load_all()
        assert config.session.max_sessions == 3

    def test_invalid_file_skipped(self, dirs: tuple[Path, Path]) -> None:
        """Test an unparseable file is skipped rather than fatal."""
        user_dir, project_dir = dirs
        (project_dir / "settings.json").write_text("{broken", encoding="utf-8")
        config = ConfigLoader(user_dir, project_dir, environ={}).load_all()
        assert config.session.max_sessions == 50

    def test_invalid_values_raise(self, dirs: tuple[Path, Path]) -> None:
        """Test values failing validation raise ConfigError."""
        loader = ConfigLoader(*dirs, environ={"AGENT_MAX_SESSIONS": "0"})
        with pytest.raises(ConfigError, match="validation failed"):
            loader.load_all()

    def test_session_dir_from_env(self, dirs: tuple[Path, Path], temp_dir: Path) -> None:
        """Test AGENT_SESSION_DIR sets the session directory."""
        target = temp_dir / "elsewhere"
        config = ConfigLoader(*dirs, environ={"AGENT_SESSION_DIR": str(target)}).load_all()
        assert config.session.session_dir == target

    def test_config_property_caches(self, dirs: tuple[Path, Path]) -> None:
        """Test the config property loads once."""
        loader = ConfigLoader(*dirs, environ={})
        assert loader.config is loader.config

    def test_reload_keeps_old_config_on_error(self, dirs: tuple[Path, Path]) -> None:
        """Test a failed reload preserves the previous configuration."""
        user_dir, project_dir = dirs
        loader = ConfigLoader(user_dir, project_dir, environ={})
        original = loader.config
        _write_json(project_dir / "settings.json", {"session": {"max_sessions": -1}})

        assert loader.reload() is original

    def test_reload_picks_up_changes(self, dirs: tuple[Path, Path]) -> None:
        """Test reload reads the files again."""
        user_dir, project_dir = dirs
        loader = ConfigLoader(user_dir, project_dir, environ={})
        assert loader.config.session.max_sessions == 50
        _write_json(project_dir / "settings.json", {"session": {"max_sessions": 4}})

        assert loader.reload().session.max_sessions == 4


class TestLoaderHelpers:
    """Tests for load, merge and validate."""

    def test_load_by_suffix(self, temp_dir: Path) -> None:
        """Test load picks the parser from the file suffix."""
        json_path = temp_dir / "a.json"
        yml_path = temp_dir / "a.yml"
        _write_json(json_path, {"x": 1})
        yml_path.write_text("x: 2\n", encoding="utf-8")

        loader = ConfigLoader(temp_dir, temp_dir, environ={})
        assert loader.load(json_path) == {"x": 1}
        assert loader.load(yml_path) == {"x": 2}

    def test_load_unsupported(self, temp_dir: Path) -> None:
        """Test unknown suffixes raise ConfigError."""
        with pytest.raises(ConfigError, match="Unsupported"):
            ConfigLoader(temp_dir, temp_dir, environ={}).load(temp_dir / "a.toml")

    def test_merge_deep(self, temp_dir: Path) -> None:
        """Test nested dicts merge and inputs are untouched."""
        loader = ConfigLoader(temp_dir, temp_dir, environ={})
        base = {"session": {"max_sessions": 1, "auto_save": True}, "keep": [1]}
        override = {"session": {"max_sessions": 2}}

        merged = loader.merge(base, override)

        assert merged == {"session": {"max_sessions": 2, "auto_save": True}, "keep": [1]}
        assert base["session"]["max_sessions"] == 1
        merged["keep"].append(2)
        assert base["keep"] == [1]

    def test_validate(self, temp_dir: Path) -> None:
        """Test validate reports errors without raising."""
        loader = ConfigLoader(temp_dir, temp_dir, environ={})
        assert loader.validate({"session": {"max_sessions": 5}}) == (True, [])
        ok, errors = loader.validate({"session": {"max_sessions": 0}})
        assert ok is False
        assert errors
