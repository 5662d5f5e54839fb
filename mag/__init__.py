"""
mag - LLM-driven task orchestration with policy-gated tool execution.

An LLM plans work as todos inside its chat replies; mag applies those
directives to an in-memory todo store, classifies each todo as a file or
shell task, checks it against a per-project policy, and executes it
through file and shell gateways under user control (pause, resume, stop,
cancel).
"""

__version__ = "1.0.0"
__author__ = "mag Team"

# Main API imports
from .core.coordinator import Coordinator, create_coordinator
from .core.application import MagApp, create_application
from .config.manager import ConfigManager, create_config_manager
from .policy.checker import PolicyChecker, create_policy_checker
from .todos.manager import TodoManager, create_todo_manager

__all__ = [
    "Coordinator",
    "create_coordinator",
    "MagApp",
    "create_application",
    "ConfigManager",
    "create_config_manager",
    "PolicyChecker",
    "create_policy_checker",
    "TodoManager",
    "create_todo_manager",
    "__version__",
]
