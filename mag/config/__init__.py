"""Configuration management for mag."""

from .manager import ConfigManager, create_config_manager

__all__ = [
    "ConfigManager",
    "create_config_manager",
]
