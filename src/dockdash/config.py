"""
Configuration management for dockdash.

This module provides configuration file support with YAML format,
user preferences, and default settings.

Features:
- YAML configuration file at ~/.config/dockdash/config.yaml
- Default values with user overrides
- Keybinding customization
- Docker endpoint and sampling cadence
- Log location override

Architecture:
- ConfigManager: Main configuration interface
- Merges user config with defaults
- Provides typed access to settings
- Handles missing/invalid config gracefully
"""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "dockdash" / "config.yaml"
DEFAULT_DOCKER_ENDPOINT = "unix://var/run/docker.sock"


@dataclass
class KeyBindings:
    """Customizable key bindings."""
    quit: str = "q"
    inspect: str = "i"
    left: str = "left"
    right: str = "right"
    up: str = "up"
    down: str = "down"


@dataclass
class UIConfig:
    """UI-related configuration."""
    max_visible_rows: int = 30
    tick_interval: float = 1.0  # seconds
    input_poll_interval: float = 0.05  # seconds between key reads


@dataclass
class DockerConfig:
    """Docker-related configuration."""
    endpoint: str = DEFAULT_DOCKER_ENDPOINT
    stats_interval: float = 2.0  # seconds
    timeout: int = 10


@dataclass
class BusConfig:
    """Signal queue sizing."""
    queue_size: int = 16


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file_path: Optional[str] = None  # None discards log output
    max_size_mb: int = 10
    backup_count: int = 5


@dataclass
class AppConfig:
    """Main application configuration."""
    keybindings: KeyBindings = field(default_factory=KeyBindings)
    ui: UIConfig = field(default_factory=UIConfig)
    docker: DockerConfig = field(default_factory=DockerConfig)
    bus: BusConfig = field(default_factory=BusConfig)
    logging: LogConfig = field(default_factory=LogConfig)


class ConfigManager:
    """Configuration manager with YAML file support."""

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        self.config_file = Path(config_file) if config_file else DEFAULT_CONFIG_FILE
        self._config: AppConfig = AppConfig()
        self.load_config()

    def load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r') as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    raise ValueError("top level must be a mapping")

                # Merge with defaults
                self._config = self._merge_configs(AppConfig(), user_config)
                logger.debug(f"Loaded configuration from {self.config_file}")
            else:
                # Create default config file
                self.save_config()
                logger.info(f"Created default configuration at {self.config_file}")
        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.error(f"Failed to load config: {e}, using defaults")
            self._config = AppConfig()

    def save_config(self) -> None:
        """Save current configuration to YAML file."""
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w') as f:
                yaml.safe_dump(asdict(self._config), f, default_flow_style=False, indent=2)
            logger.debug(f"Saved configuration to {self.config_file}")
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    def get_config(self) -> AppConfig:
        """Get current configuration."""
        return self._config

    def _merge_configs(self, default: AppConfig, user: Dict[str, Any]) -> AppConfig:
        """Merge user config with defaults."""
        for section in ('keybindings', 'ui', 'docker', 'bus', 'logging'):
            if isinstance(user.get(section), dict):
                self._merge_dataclass(getattr(default, section), user[section])
        return default

    def _merge_dataclass(self, obj: Any, updates: Dict[str, Any]) -> None:
        """Merge updates into dataclass object."""
        for key, value in updates.items():
            if hasattr(obj, key):
                setattr(obj, key, value)
            else:
                logger.warning(f"Ignoring unknown config key {key!r}")
