"""Loading and saving the policy document."""

import json
import os
from pathlib import Path
from typing import Optional

from ..constants import POLICY_DIR_NAME, POLICY_FILE_NAME
from ..errors import ConfigurationError, ValidationError
from ..utils.helpers import atomic_json_write
from ..utils.logging import logger
from .settings import PolicySettings, create_default_settings


class PolicyStore:
    """Reads and writes ``<base_dir>/.mag/policy.json``."""

    def __init__(self, base_dir: Optional[Path] = None):
        """Initialize the policy store.

        Args:
            base_dir: Project directory holding the ``.mag`` folder (default: cwd)
        """
        self.base_dir = Path(base_dir) if base_dir else Path(os.getcwd())
        self.policy_dir = self.base_dir / POLICY_DIR_NAME
        self.policy_file = self.policy_dir / POLICY_FILE_NAME

    def exists(self) -> bool:
        return self.policy_file.exists()

    def load(self) -> PolicySettings:
        """Load and validate the policy file.

        Raises:
            ConfigurationError: if the file is unreadable, not JSON, fails the
                schema check, or violates a settings invariant
        """
        try:
            with open(self.policy_file, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Error parsing policy file {self.policy_file}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Could not read policy file {self.policy_file}: {e}")

        try:
            settings = PolicySettings.from_dict(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid policy file {self.policy_file}: {e}")

        error = settings.validate()
        if error:
            raise ConfigurationError(f"Policy validation failed for {self.policy_file}: {error}")

        logger.debug(f"Policy loaded from {self.policy_file}")
        return settings

    def save(self, settings: PolicySettings) -> None:
        """Persist settings atomically.

        Raises:
            OSError: if the file cannot be written
        """
        atomic_json_write(self.policy_file, settings.to_dict())
        logger.debug(f"Policy saved to {self.policy_file}")

    def load_or_create(self) -> PolicySettings:
        """Load the policy, writing defaults first when no file exists.

        A file that exists but is broken is never replaced by defaults.
        """
        if not self.exists():
            settings = create_default_settings()
            try:
                self.save(settings)
            except OSError as e:
                raise ConfigurationError(f"Could not create default policy {self.policy_file}: {e}")
            logger.system(f"Created default policy at {self.policy_file}")
            return settings
        return self.load()


def create_policy_store(base_dir: Optional[Path] = None) -> PolicyStore:
    """Create a policy store rooted at ``base_dir`` (default: cwd)."""
    return PolicyStore(base_dir)
