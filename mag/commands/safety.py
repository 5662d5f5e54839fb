"""Shell gateway's own guard against destructive commands."""

import re
from typing import List, Tuple

from ..utils.logging import logger


class CommandSafetyChecker:
    """Rejects commands the shell gateway refuses to run no matter what policy allows."""

    def __init__(self):
        self.blocked_commands = [
            "rm -rf /",
            "sudo rm",
            "format",
            "fdisk",
            "mkfs",
            "dd if=/dev/zero",
            ":(){ :|:& };:",
            "chmod 000",
            "chown root",
            "passwd",
            "su -",
            "sudo su",
            "reboot",
            "shutdown",
            "halt",
            "poweroff",
            "init 0",
            "init 6",
        ]

        self.dangerous_patterns = [
            # Writing to device files or raw disks
            r'>\s*/dev/(?!null\b)',
            r'/dev/sd[a-z]',
            # Recursive force remove, directly or chained
            r'rm\s+.*-rf',
            r'\|\s*rm\b',
            r';\s*rm\b',
            r'&&\s*rm\b',
            r'\$\([^)]*\brm\b',
        ]

        self.warning_patterns = [
            r'sudo\s+',
            r'chmod\s+.*777',
            r'\|\s*(sh|bash|zsh)\b',
            r'(curl|wget)\s+',
        ]

    def check_command_safety(self, command: str) -> Tuple[bool, List[str]]:
        """Check if a command is safe to execute.

        Args:
            command: Command to check

        Returns:
            Tuple of (is_safe, reasons); reasons are warnings when is_safe is True
        """
        lowered = command.lower()
        for blocked in self.blocked_commands:
            # Blocked entries match as the command itself or after a space
            if lowered.startswith(blocked) or f" {blocked}" in lowered:
                logger.warning(f"Blocked command detected: {command}")
                return False, [f"Command contains blocked command '{blocked}'"]

        for pattern in self.dangerous_patterns:
            if re.search(pattern, command, re.IGNORECASE):
                logger.warning(f"Dangerous pattern detected in command: {command}")
                return False, [f"Dangerous pattern detected: {pattern}"]

        warnings = [f"Potentially risky pattern: {p}" for p in self.warning_patterns
                    if re.search(p, command, re.IGNORECASE)]
        return True, warnings


def create_safety_checker() -> CommandSafetyChecker:
    """Create a command safety checker with default patterns."""
    return CommandSafetyChecker()
