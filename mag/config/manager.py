"""Application configuration: ``config.yaml`` under the mag config directory."""

import sys
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

import yaml

from ..constants import (
    CONFIG_DIR, DEFAULT_PROVIDER, DEFAULT_COMMAND_TIMEOUT, DEFAULT_LLM_TIMEOUT,
    DEFAULT_POLL_INTERVAL, DEFAULT_ENABLE_DEBUG, DEFAULT_RESOLVE_COMMANDS_WITH_LLM
)
from ..llm.providers import normalize_provider_name, available_providers
from ..utils.logging import logger
from ..utils.helpers import format_template_string, safe_file_write
from .templates import CONFIG_TEMPLATE

TIMEOUT_KEYS = {"llm_timeout": DEFAULT_LLM_TIMEOUT, "command_timeout": DEFAULT_COMMAND_TIMEOUT}
FLAG_KEYS = {"enable_debug": DEFAULT_ENABLE_DEBUG,
             "resolve_commands_with_llm": DEFAULT_RESOLVE_COMMANDS_WITH_LLM}
STRING_KEYS = ("model", "endpoint")


class ConfigManager:
    """Loads ``config.yaml``, writing the commented template on first run.

    Invalid values are fatal: they are logged and the process exits with
    status 1. A malformed true/false flag only warns and takes its default.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self.config_file = self.config_dir / "config.yaml"
        self._config: Optional[Dict[str, Any]] = None

    def initialize(self) -> None:
        if not self.config_file.exists():
            self._write_template()
        self._config = self._validate_config(self._read_yaml())

    def _fail(self, message: str) -> NoReturn:
        logger.error(message)
        sys.exit(1)

    def _write_template(self) -> None:
        content = format_template_string(
            CONFIG_TEMPLATE,
            provider=DEFAULT_PROVIDER,
            llm_timeout=DEFAULT_LLM_TIMEOUT,
            command_timeout=DEFAULT_COMMAND_TIMEOUT,
            poll_interval=DEFAULT_POLL_INTERVAL,
        )
        if not safe_file_write(self.config_file, content, "config template"):
            sys.exit(1)
        logger.system(f"Review {self.config_file} to choose your LLM provider.")

    def _read_yaml(self) -> Dict[str, Any]:
        try:
            with open(self.config_file, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self._fail(f"Error parsing YAML file {self.config_file}: {e}")
        except OSError as e:
            self._fail(f"Could not read {self.config_file}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            self._fail(f"{self.config_file} is not a valid YAML dictionary.")
        return data

    def _validate_config(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize every known key, exiting on the first invalid one."""
        raw_provider = data.get("provider") or DEFAULT_PROVIDER
        provider = normalize_provider_name(str(raw_provider))
        if provider is None:
            self._fail(f"provider in {self.config_file} must be one of {available_providers()}, "
                       f"got '{raw_provider}'.")
        data["provider"] = provider

        for key in STRING_KEYS:
            value = data.get(key) or ""
            if not isinstance(value, str):
                self._fail(f"{key} in {self.config_file} must be a string.")
            data[key] = value

        for key, default in TIMEOUT_KEYS.items():
            value = data.get(key, default)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                self._fail(f"{key} ('{value}') in {self.config_file} must be a positive integer.")
            data[key] = value

        poll = data.get("poll_interval", DEFAULT_POLL_INTERVAL)
        if isinstance(poll, bool) or not isinstance(poll, (int, float)) or poll <= 0:
            self._fail(f"poll_interval ('{poll}') in {self.config_file} must be a positive number.")
        data["poll_interval"] = float(poll)

        for key, default in FLAG_KEYS.items():
            value = data.get(key, default)
            if not isinstance(value, bool):
                logger.warning(f"{key} in {self.config_file} must be true/false. "
                               f"Defaulting to {str(default).lower()}.")
                value = default
            data[key] = value

        logger.debug(f"Configuration loaded from {self.config_file}")
        return data

    @property
    def config(self) -> Dict[str, Any]:
        """A copy of the validated configuration."""
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call initialize() first.")
        return dict(self._config)

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def reload(self) -> None:
        self._config = self._validate_config(self._read_yaml())


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
