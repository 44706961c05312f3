"""Configuration manager for shellgate."""

from typing import Dict, Any, List, Optional
from pathlib import Path
import sys

import yaml

from ..commands.gate import PolicyConfiguration
from ..constants import CONFIG_DIR, DEFAULT_DEBUG_MODE, DEFAULT_ENABLE_DEBUG
from ..utils.logging import logger
from ..utils.helpers import get_current_context, format_template_string, safe_file_write
from .templates import CONFIG_TEMPLATE


class ConfigManager:
    """Manages configuration loading, validation, and setup for shellgate."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Custom configuration directory path
        """
        self.config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self.config_file = self.config_dir / "config.yaml"

        self._config: Optional[Dict[str, Any]] = None

    def initialize(self) -> bool:
        """Write the template if needed, then load the configuration.

        Returns:
            True if the config file already existed, False if it was just generated
        """
        existed = self._perform_initial_setup()
        self._config = self._load_config()
        return existed

    def _perform_initial_setup(self) -> bool:
        """Creates config directory and default file if they don't exist.

        Returns:
            True if no setup was needed, False if the template was created
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create config directory {self.config_dir}: {e}")
            sys.exit(1)

        if self.config_file.exists():
            return True

        formatted_config = format_template_string(CONFIG_TEMPLATE, **get_current_context())
        if not safe_file_write(self.config_file, formatted_config, "config template"):
            sys.exit(1)
        logger.system(f"Configuration template generated: {self.config_file}")
        logger.system("Review it to restrict which commands the assistant may run.")
        return False

    def _load_config(self) -> Dict[str, Any]:
        """Load and validate the configuration file."""
        try:
            with open(self.config_file, 'r') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML file {self.config_file}: {e}")
            sys.exit(1)
        except IOError as e:
            logger.error(f"Could not read {self.config_file}: {e}")
            sys.exit(1)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            logger.error(f"{self.config_file} is not a valid YAML dictionary.")
            sys.exit(1)

        for key in ("core_tools", "exclude_tools"):
            config_data[key] = self._validate_tool_list(config_data, key)

        target_dir = config_data.get("target_dir")
        if target_dir is not None and not isinstance(target_dir, str):
            logger.error(f"target_dir in {self.config_file} must be a path string.")
            sys.exit(1)
        config_data["target_dir"] = target_dir

        for key, default in (("enable_debug", DEFAULT_ENABLE_DEBUG),
                             ("debug_mode", DEFAULT_DEBUG_MODE)):
            value = config_data.get(key, default)
            if not isinstance(value, bool):
                logger.warning(f"{key} in {self.config_file} must be true/false. "
                               f"Defaulting to {str(default).lower()}.")
                value = default
            config_data[key] = value

        logger.debug(f"Configuration loaded successfully from {self.config_file}")
        return config_data

    def _validate_tool_list(self, config_data: Dict[str, Any], key: str) -> List[str]:
        value = config_data.get(key)
        if value is None:
            return []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            logger.error(f"'{key}' in {self.config_file} must be a list of strings.")
            sys.exit(1)
        logger.debug(f"Loaded {len(value)} {key} entries.")
        return value

    @property
    def config(self) -> Dict[str, Any]:
        """Get the current configuration."""
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call initialize() first.")
        return self._config.copy()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call initialize() first.")
        return self._config.get(key, default)

    @property
    def policy(self) -> PolicyConfiguration:
        """Allow/deny lists as a frozen policy."""
        return PolicyConfiguration(
            core_tools=tuple(self.get("core_tools", [])),
            exclude_tools=tuple(self.get("exclude_tools", [])),
        )

    @property
    def target_dir(self) -> Path:
        """Project root; the current directory unless configured."""
        configured = self.get("target_dir")
        return Path(configured).expanduser().resolve() if configured else Path.cwd()

    @property
    def debug_mode(self) -> bool:
        return self.get("debug_mode", DEFAULT_DEBUG_MODE)

    def reload(self) -> None:
        """Reload the configuration from disk."""
        self._config = self._load_config()

    def is_initialized(self) -> bool:
        """Check if the configuration has been initialized."""
        return self._config is not None


def create_config_manager(config_dir: Optional[Path] = None) -> ConfigManager:
    """Create and initialize a configuration manager.

    Args:
        config_dir: Custom configuration directory path

    Returns:
        Initialized ConfigManager instance
    """
    manager = ConfigManager(config_dir)
    manager.initialize()
    return manager
