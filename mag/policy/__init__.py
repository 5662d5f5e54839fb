"""Policy engine for mag."""

from .settings import (
    Operation,
    OperationPolicy,
    ToolPolicy,
    GlobalSettings,
    PolicySettings,
    validate_schema,
    create_default_settings,
)
from .store import PolicyStore, create_policy_store
from .checker import PolicyChecker, create_policy_checker

__all__ = [
    "Operation",
    "OperationPolicy",
    "ToolPolicy",
    "GlobalSettings",
    "PolicySettings",
    "validate_schema",
    "create_default_settings",
    "PolicyStore",
    "create_policy_store",
    "PolicyChecker",
    "create_policy_checker",
]
