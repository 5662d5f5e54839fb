"""Policy engine: authorizes paths and shell commands before any side effect."""

import os
import re
import threading
from typing import List, Optional, Tuple

from ..constants import TOOL_BASH, BYTES_PER_MB, HARD_BLOCKED_COMMANDS
from ..utils.helpers import resolve_path, is_within_directory
from ..utils.logging import logger
from .settings import Operation, PolicySettings
from .store import PolicyStore


class PolicyChecker:
    """Answers authorization queries against the active policy settings.

    The settings object is replaced whole by :meth:`update_settings`; every
    query reads the current reference once, so a reader never sees a mix of
    old and new rules.
    """

    def __init__(self, settings: PolicySettings,
                 store: Optional[PolicyStore] = None,
                 working_directory: Optional[str] = None):
        """Initialize the checker.

        Args:
            settings: Validated settings to enforce
            store: Where accepted updates are persisted (None keeps them in memory)
            working_directory: Root every path must stay inside (default: cwd at query time)
        """
        self._settings = settings
        self._store = store
        self._working_directory = working_directory
        self._lock = threading.Lock()

    @property
    def settings(self) -> PolicySettings:
        """A copy of the active settings, safe to modify and pass to update_settings."""
        return self._settings.copy()

    def _root(self) -> str:
        return os.path.realpath(self._working_directory or os.getcwd())

    @property
    def working_directory(self) -> str:
        """Resolved root that relative paths are checked against."""
        return self._root()

    # -- path rules -------------------------------------------------------

    def is_allowed(self, tool: str, operation: Operation, path: str) -> bool:
        """Whether ``tool`` may perform ``operation`` on ``path``.

        The path must resolve inside the working directory, must not carry a
        blocked extension, and must start with one of the allowed directory
        prefixes (relative to the working directory).
        """
        settings = self._settings
        if not path:
            return False

        root = self._root()
        resolved = resolve_path(path, root)
        if not is_within_directory(resolved, root):
            logger.debug(f"Path '{path}' resolves outside {root}")
            return False

        if self._extension_blocked(settings, resolved):
            logger.debug(f"Path '{path}' has a blocked extension")
            return False

        op_policy = settings.get_operation_policy(tool, operation)
        if op_policy is None or not op_policy.allowed_directories:
            return False

        relative = os.path.relpath(resolved, root).replace(os.sep, "/")
        for allowed in op_policy.allowed_directories:
            if allowed == "":
                return True
            if relative.startswith(allowed):
                return True
        return False

    def is_extension_blocked(self, path: str) -> bool:
        return self._extension_blocked(self._settings, path)

    @staticmethod
    def _extension_blocked(settings: PolicySettings, path: str) -> bool:
        name = os.path.basename(path)
        extension = os.path.splitext(name)[1]
        if not extension and name.startswith(".") and name.count(".") == 1:
            # ".env" style dotfiles are all extension
            extension = name
        if not extension:
            return False
        blocked = {e.lower() for e in settings.global_settings.blocked_extensions}
        return extension.lower() in blocked

    def is_file_size_allowed(self, size_bytes: int) -> bool:
        return size_bytes <= self._settings.global_settings.max_file_size_mb * BYTES_PER_MB

    def get_allowed_directories(self, tool: str, operation: Operation) -> List[str]:
        op_policy = self._settings.get_operation_policy(tool, operation)
        return list(op_policy.allowed_directories) if op_policy else []

    def requires_confirmation(self, tool: str, operation: Operation) -> bool:
        op_policy = self._settings.get_operation_policy(tool, operation)
        return op_policy.confirmation_required if op_policy else True

    @property
    def auto_backup(self) -> bool:
        return self._settings.global_settings.auto_backup

    # -- command rules ----------------------------------------------------

    def is_bash_command_allowed(self, command: str) -> bool:
        return not self.get_bash_command_violation_reason(command)

    def get_bash_command_violation_reason(self, command: str) -> str:
        """Human-readable rule the command breaks, or an empty string."""
        op_policy = self._settings.get_operation_policy(TOOL_BASH, Operation.CREATE)
        normalized = re.sub(r"\s+", " ", command.strip())

        for pattern in HARD_BLOCKED_COMMANDS:
            if pattern in normalized:
                return f"Command contains blocked operation: '{pattern}'"

        if op_policy is None:
            return ""

        for blocked in op_policy.blocked_commands:
            if blocked and blocked in command:
                return f"Command contains blocked operation: '{blocked}'"

        if op_policy.allowed_commands:
            tokens = command.split()
            first = tokens[0] if tokens else ""
            if first not in op_policy.allowed_commands:
                return f"Command not in allowed list: '{first}'"
        return ""

    def check_bash_command(self, command: str) -> Tuple[bool, str]:
        reason = self.get_bash_command_violation_reason(command)
        if reason:
            logger.policy(f"Denied '{command}': {reason}")
        return not reason, reason

    # -- updates ----------------------------------------------------------

    def update_settings(self, new_settings: PolicySettings) -> Tuple[bool, str]:
        """Validate, persist, then swap in ``new_settings``.

        Returns:
            (True, "") on success; (False, reason) leaving the prior settings active
        """
        error = new_settings.validate()
        if error:
            logger.policy(f"Policy update rejected: {error}")
            return False, error

        accepted = new_settings.copy()
        with self._lock:
            if self._store is not None:
                try:
                    self._store.save(accepted)
                except OSError as e:
                    logger.error(f"Failed to save policy: {e}")
                    return False, f"Failed to save policy: {e}"
            self._settings = accepted

        logger.policy("Policy settings updated")
        return True, ""

    def get_summary(self) -> str:
        settings = self._settings
        lines = [
            f"Policy version {settings.version}",
            f"  Blocked extensions: {', '.join(settings.global_settings.blocked_extensions) or '(none)'}",
            f"  Max file size: {settings.global_settings.max_file_size_mb} MB",
            f"  Auto backup: {settings.global_settings.auto_backup}",
        ]
        for tool_name, tool_policy in settings.tools.items():
            lines.append(f"  {tool_name}:")
            for operation in Operation:
                op_policy = tool_policy.get(operation)
                if not op_policy.allowed_directories:
                    dirs = "(disabled)"
                else:
                    dirs = ", ".join(d if d else "(any)" for d in op_policy.allowed_directories)
                confirm = " [confirm]" if op_policy.confirmation_required else ""
                lines.append(f"    {operation.value}: {dirs}{confirm}")
            bash_create = tool_policy.create
            if bash_create.allowed_commands:
                lines.append(f"    allowed commands: {' '.join(bash_create.allowed_commands)}")
            if bash_create.blocked_commands:
                lines.append(f"    blocked commands: {' '.join(bash_create.blocked_commands)}")
        return "\n".join(lines)


def create_policy_checker(store: Optional[PolicyStore] = None,
                          working_directory: Optional[str] = None) -> PolicyChecker:
    """Load (or create) the policy through ``store`` and build a checker.

    Raises:
        ConfigurationError: if an existing policy file is invalid
    """
    store = store or PolicyStore(working_directory)
    return PolicyChecker(store.load_or_create(), store, working_directory)
