"""Configuration management for shellgate."""

from .manager import ConfigManager, create_config_manager
from .templates import CONFIG_TEMPLATE

__all__ = [
    "ConfigManager",
    "create_config_manager",
    "CONFIG_TEMPLATE",
]
