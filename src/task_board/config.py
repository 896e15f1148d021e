"""Configuration for task-board using YAML files."""

from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".task-board"

DEFAULTS: dict[str, Any] = {
    "api.base_url": "http://localhost:3000",
    "api.timeout": 10.0,
    "user.id": "currentUser",
}

# keys the commands read, with a one-line description for `config keys`
KNOWN_KEYS: dict[str, str] = {
    "api.base_url": "Base URL of the task service",
    "api.timeout": "Request timeout in seconds",
    "project.id": "Project whose board is loaded and where new tasks are created",
    "user.id": "User recorded on time entries",
}

NUMERIC_KEYS = frozenset({"api.timeout"})


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


class Config:
    """Board settings stored in YAML.

    The local file lives in .task-board/config.yaml under the working
    directory and the global one in ~/.task-board/config.yaml. Lookups try the
    local file, then the global file, then the built-in defaults.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            use_global: Read and write the global file only
            config_dir: Directory holding config.yaml (overrides the default location)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif use_global:
            self.config_dir = Path.home() / CONFIG_DIR_NAME
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
        self.is_global = use_global
        self.config_file = self.config_dir / "config.yaml"
        self._config = self._load()

        self._global_config: dict[str, Any] = {}
        global_file = Path.home() / CONFIG_DIR_NAME / "config.yaml"
        if not self.is_global and global_file.exists() and global_file != self.config_file:
            try:
                self._global_config = _read_yaml(global_file)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning("Ignoring unreadable global config", path=str(global_file), error=str(e))

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    def _load(self) -> dict[str, Any]:
        if not self.config_file.exists():
            logger.debug("Config file does not exist, starting empty", path=str(self.config_file))
            return {}
        try:
            config = _read_yaml(self.config_file)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", path=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e
        logger.debug("Config loaded", keys=list(config))
        return config

    def _save(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error("Failed to save config", path=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e
        logger.debug("Config saved", path=str(self.config_file))

    def get(self, key: str, default: Any = None) -> Any:
        """Look a key up in local config, then global config, then the defaults."""
        if key in self._config:
            return self._config[key]
        if key in self._global_config:
            return self._global_config[key]
        if default is None:
            return DEFAULTS.get(key)
        return default

    def source(self, key: str) -> str | None:
        """Name the layer a key resolves from: "local", "global", "default" or None."""
        if key in self._config:
            return "global" if self.is_global else "local"
        if key in self._global_config:
            return "global"
        if key in DEFAULTS:
            return "default"
        return None

    def get_float(self, key: str, default: float | None = None) -> float | None:
        """Like ``get`` but converted to float.

        Raises:
            ValueError: If the stored value is not a number
        """
        value = self.get(key, default)
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Config value {key}={value!r} is not a number") from e

    def set(self, key: str, value: Any) -> None:
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        logger.debug("Unsetting config value", key=key)
        if key in self._config:
            del self._config[key]
            self._save()

    def list(self) -> dict[str, Any]:
        """All explicitly set values, local overriding global."""
        if self.is_global:
            return dict(self._config)
        merged = dict(self._global_config)
        merged.update(self._config)
        return merged


def get_config(use_global: bool = False) -> Config:
    """Get a configuration instance."""
    return Config(use_global=use_global)
