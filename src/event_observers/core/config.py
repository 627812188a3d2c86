"""ConfigManager — global and per-owner observer settings backed by TOML files."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from event_observers.core.events import Priority
from event_observers.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "event-observers"


class ConfigManager:
    """Hierarchical configuration for observer façades.

    Global defaults live in ``config.toml``; an owner (the component that
    creates a façade) can override them in ``owners/<owner>.toml``.

    Recognised keys:

    * ``default_priority`` — priority name, e.g. ``"high"``.
    * ``failure_level`` — logging level name for callback failure reports.
    * ``trace_mismatches`` — log deliveries dropped by the exact-type check.

    Args:
        config_dir: Root directory for configuration files.
                    Defaults to ``~/.config/event-observers/``.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialise the config manager.

        Args:
            config_dir: Custom configuration directory.  Uses the
                        platform default if ``None``.
        """
        self._config_dir = config_dir or _DEFAULT_CONFIG_DIR
        self._global: dict[str, Any] = {}
        self._per_owner: dict[str, dict[str, Any]] = {}

    @property
    def config_dir(self) -> Path:
        """Return the configuration directory path."""
        return self._config_dir

    def load(self) -> None:
        """Load global and per-owner config from ``config_dir``.

        Missing files are silently skipped.

        Raises:
            ConfigError: If a file exists but is not valid TOML.
        """
        global_file = self._config_dir / "config.toml"
        if global_file.is_file():
            self._global = self._read_toml(global_file)
            logger.info("Loaded global config from %s", global_file)

        owners_dir = self._config_dir / "owners"
        if owners_dir.is_dir():
            for toml_file in owners_dir.glob("*.toml"):
                owner = toml_file.stem
                self._per_owner[owner] = self._read_toml(toml_file)
                logger.info("Loaded config for owner '%s'", owner)

    def get(self, key: str, *, owner: str | None = None, default: Any = None) -> Any:
        """Retrieve a config value with optional owner-level override.

        Args:
            key: The configuration key.
            owner: If given, check the owner-specific config first.
            default: Fallback value when the key is not found.

        Returns:
            The configuration value, or *default*.
        """
        if owner and owner in self._per_owner:
            value = self._per_owner[owner].get(key)
            if value is not None:
                return value
        return self._global.get(key, default)

    def set_global(self, key: str, value: Any) -> None:
        """Set a global configuration value (in-memory only).

        Args:
            key: The configuration key.
            value: The value to store.
        """
        self._global[key] = value

    # ── typed accessors ───────────────────────────────────────
    def default_priority(self, *, owner: str | None = None) -> Priority:
        """Return the priority used when a subscription does not name one."""
        return Priority.parse(self.get("default_priority", owner=owner, default=Priority.NORMAL))

    def failure_level(self, *, owner: str | None = None) -> int:
        """Return the logging level for callback failure reports.

        Raises:
            ConfigError: If the configured value is not a known level.
        """
        value = self.get("failure_level", owner=owner, default=logging.INFO)
        if isinstance(value, int):
            return value
        level = logging.getLevelName(str(value).upper())
        if not isinstance(level, int):
            msg = f"Unknown failure_level {value!r}"
            raise ConfigError(msg)
        return level

    def trace_mismatches(self, *, owner: str | None = None) -> bool:
        """Return whether ignored deliveries are logged."""
        return bool(self.get("trace_mismatches", owner=owner, default=False))

    @staticmethod
    def _read_toml(path: Path) -> dict[str, Any]:
        """Read and parse a TOML file.

        Args:
            path: Path to the TOML file.

        Returns:
            Parsed dictionary.
        """
        with path.open("rb") as fh:
            try:
                return tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {path}: {exc}"
                raise ConfigError(msg) from exc
