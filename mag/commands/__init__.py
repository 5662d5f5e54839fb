"""Shell command execution and safety checks for mag."""

from .executor import CommandExecutor, CommandResult, create_command_executor
from .safety import CommandSafetyChecker, create_safety_checker

__all__ = [
    "CommandExecutor",
    "CommandResult",
    "create_command_executor",
    "CommandSafetyChecker",
    "create_safety_checker",
]
