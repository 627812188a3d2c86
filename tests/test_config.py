"""Integration tests for the ConfigManager."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from event_observers.core.config import ConfigManager
from event_observers.core.events import Priority
from event_observers.core.exceptions import ConfigError


class TestConfigManagerDefaults:
    """Tests for in-memory configuration."""

    def test_get_returns_default_when_empty(self) -> None:
        """An empty config returns the provided default."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        assert cfg.get("default_priority", default="low") == "low"

    def test_set_global_and_get(self) -> None:
        """Values set via ``set_global`` are retrievable."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        cfg.set_global("trace_mismatches", True)

        assert cfg.get("trace_mismatches") is True

    def test_typed_defaults(self) -> None:
        """Without any setting the typed accessors return the built-in defaults."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))

        assert cfg.default_priority() is Priority.NORMAL
        assert cfg.failure_level() == logging.INFO
        assert cfg.trace_mismatches() is False


class TestConfigManagerToml:
    """Tests for TOML-based configuration loading."""

    def test_load_global_config(self, tmp_path: Path) -> None:
        """Global config.toml values are loaded correctly."""
        config_dir = tmp_path / "cfg"
        config_dir.mkdir()
        (config_dir / "config.toml").write_text('default_priority = "high"\nfailure_level = "error"\n')

        cfg = ConfigManager(config_dir=config_dir)
        cfg.load()

        assert cfg.default_priority() is Priority.HIGH
        assert cfg.failure_level() == logging.ERROR

    def test_load_per_owner_config(self, tmp_path: Path) -> None:
        """Per-owner TOML files override global values."""
        config_dir = tmp_path / "cfg"
        owners_dir = config_dir / "owners"
        owners_dir.mkdir(parents=True)
        (config_dir / "config.toml").write_text('default_priority = "low"\n')
        (owners_dir / "scoreboard.toml").write_text('default_priority = "monitor"\ntrace_mismatches = true\n')

        cfg = ConfigManager(config_dir=config_dir)
        cfg.load()

        assert cfg.default_priority(owner="scoreboard") is Priority.MONITOR
        assert cfg.trace_mismatches(owner="scoreboard") is True
        assert cfg.default_priority() is Priority.LOW
        assert cfg.default_priority(owner="unknown") is Priority.LOW

    def test_load_missing_dir_is_silent(self, tmp_path: Path) -> None:
        """Loading from a non-existent directory does not raise."""
        cfg = ConfigManager(config_dir=tmp_path / "does_not_exist")
        cfg.load()

        assert cfg.get("anything") is None

    def test_invalid_toml_raises(self, tmp_path: Path) -> None:
        """A malformed file raises ``ConfigError`` naming the file."""
        (tmp_path / "config.toml").write_text("default_priority = \n")

        cfg = ConfigManager(config_dir=tmp_path)
        with pytest.raises(ConfigError, match="config.toml"):
            cfg.load()


class TestConfigManagerValidation:
    """Tests for rejecting unusable values."""

    def test_unknown_priority(self) -> None:
        """An unknown priority name raises ``ConfigError``."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        cfg.set_global("default_priority", "urgent")

        with pytest.raises(ConfigError, match="Unknown priority"):
            cfg.default_priority()

    def test_unknown_failure_level(self) -> None:
        """An unknown level name raises ``ConfigError``."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        cfg.set_global("failure_level", "loud")

        with pytest.raises(ConfigError, match="failure_level"):
            cfg.failure_level()

    def test_numeric_failure_level(self) -> None:
        """An integer level is used as-is."""
        cfg = ConfigManager(config_dir=Path("/nonexistent"))
        cfg.set_global("failure_level", 25)

        assert cfg.failure_level() == 25
