"""Policy settings: per-tool, per-operation allow-lists plus global file rules."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..constants import (
    TOOL_FILE, TOOL_BASH, TOOL_TODO, POLICY_VERSION, MAX_FILE_SIZE_MB_LIMIT
)
from ..errors import ValidationError


class Operation(Enum):
    """CRUD operation a policy entry governs."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


OPERATION_ORDER = [Operation.CREATE, Operation.READ, Operation.UPDATE, Operation.DELETE]


@dataclass
class OperationPolicy:
    """Rules for one tool + operation.

    ``allowed_directories`` entries are prefixes ending in '/'. The empty
    string allows every directory; an empty list disables the operation.
    Command lists only mean something for the bash tool.
    """
    allowed_directories: List[str] = field(default_factory=list)
    confirmation_required: bool = True
    allowed_commands: List[str] = field(default_factory=list)
    blocked_commands: List[str] = field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return bool(self.allowed_directories)


@dataclass
class ToolPolicy:
    """The four operation policies of one logical tool."""
    create: OperationPolicy = field(default_factory=OperationPolicy)
    read: OperationPolicy = field(default_factory=OperationPolicy)
    update: OperationPolicy = field(default_factory=OperationPolicy)
    delete: OperationPolicy = field(default_factory=OperationPolicy)

    def get(self, operation: Operation) -> OperationPolicy:
        return getattr(self, operation.value)


@dataclass
class GlobalSettings:
    blocked_extensions: List[str] = field(
        default_factory=lambda: [".key", ".pem", ".env", ".secret", ".crt"])
    max_file_size_mb: int = 10
    auto_backup: bool = False


def _default_tools() -> Dict[str, ToolPolicy]:
    bash_create = OperationPolicy([], True)
    bash_create.allowed_commands = [
        "make", "cmake", "gcc", "g++", "npm", "cargo", "python", "python3", "pip",
        "ls", "pwd", "find", "grep", "cat", "head", "tail", "wc", "sort", "uniq",
        "awk", "sed", "git",
    ]
    bash_create.blocked_commands = [
        "rm", "rmdir", "dd", "mkfs", "format", "fdisk", "mount", "umount",
        "chmod 777", "chown", "su", "sudo", "passwd", "systemctl", "shutdown",
        "reboot", "kill -9", "curl", "wget", "nc",
    ]

    return {
        TOOL_FILE: ToolPolicy(
            create=OperationPolicy(["src/", "tests/", "docs/"], True),
            read=OperationPolicy(["src/", "tests/", "docs/"], False),
            update=OperationPolicy(["src/", "tests/"], True),
            delete=OperationPolicy([], True),
        ),
        TOOL_TODO: ToolPolicy(
            create=OperationPolicy([], False),
            read=OperationPolicy([], False),
            update=OperationPolicy([], False),
            delete=OperationPolicy([], True),
        ),
        TOOL_BASH: ToolPolicy(
            create=bash_create,
            read=OperationPolicy([], False),
            update=OperationPolicy([], True),
            delete=OperationPolicy([], True),
        ),
    }


@dataclass
class PolicySettings:
    """Complete authorization ruleset.

    Instances are treated as immutable once handed to the policy checker;
    changes are made on a copy and swapped in whole.
    """
    global_settings: GlobalSettings = field(default_factory=GlobalSettings)
    tools: Dict[str, ToolPolicy] = field(default_factory=_default_tools)
    version: str = POLICY_VERSION

    def get_operation_policy(self, tool: str, operation: Operation) -> Optional[OperationPolicy]:
        tool_policy = self.tools.get(tool)
        if tool_policy is None:
            return None
        return tool_policy.get(operation)

    def copy(self) -> "PolicySettings":
        return copy.deepcopy(self)

    def validate(self) -> Optional[str]:
        """Check the invariants; return the first violated rule or None."""
        for ext in self.global_settings.blocked_extensions:
            if not ext:
                return "Empty extension in global.blocked_extensions"
            if not ext.startswith("."):
                return f"Extension '{ext}' must start with '.' in global.blocked_extensions"

        size = self.global_settings.max_file_size_mb
        if isinstance(size, bool) or not isinstance(size, int) or not 0 < size <= MAX_FILE_SIZE_MB_LIMIT:
            return f"global.max_file_size_mb must be between 1 and {MAX_FILE_SIZE_MB_LIMIT}, got {size}"

        for tool_name, tool_policy in self.tools.items():
            if not tool_name:
                return "Empty tool name in tools"
            for operation in OPERATION_ORDER:
                for directory in tool_policy.get(operation).allowed_directories:
                    if directory == "":
                        continue
                    where = f"{tool_name}.{operation.value}"
                    if not directory.endswith("/"):
                        return f"Directory '{directory}' in {where} must end with '/'"
                    if ".." in directory.split("/"):
                        return (f"Directory '{directory}' in {where} contains invalid "
                                f"path traversal sequence '..'")
        return None

    # -- persisted form ---------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        tools = {}
        for tool_name, tool_policy in self.tools.items():
            tool_data = {}
            for operation in OPERATION_ORDER:
                op_policy = tool_policy.get(operation)
                op_data = {
                    "allowed_directories": list(op_policy.allowed_directories),
                    "confirmation_required": op_policy.confirmation_required,
                }
                if tool_name == TOOL_BASH:
                    if op_policy.allowed_commands:
                        op_data["allowed_commands"] = list(op_policy.allowed_commands)
                    if op_policy.blocked_commands:
                        op_data["blocked_commands"] = list(op_policy.blocked_commands)
                tool_data[operation.value] = op_data
            tools[tool_name] = tool_data

        return {
            "version": self.version,
            "global": {
                "blocked_extensions": list(self.global_settings.blocked_extensions),
                "max_file_size_mb": self.global_settings.max_file_size_mb,
                "auto_backup": self.global_settings.auto_backup,
            },
            "tools": tools,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PolicySettings":
        """Build settings from their persisted form.

        Raises:
            ValidationError: naming the missing or invalid field path
        """
        error = validate_schema(data)
        if error:
            raise ValidationError(error)

        global_data = data["global"]
        tools = {}
        for tool_name, tool_data in data["tools"].items():
            operations = {}
            for operation in OPERATION_ORDER:
                op_data = tool_data[operation.value]
                operations[operation.value] = OperationPolicy(
                    allowed_directories=[str(d) for d in op_data["allowed_directories"]],
                    confirmation_required=op_data["confirmation_required"],
                    allowed_commands=[str(c) for c in op_data.get("allowed_commands", [])],
                    blocked_commands=[str(c) for c in op_data.get("blocked_commands", [])],
                )
            tools[tool_name] = ToolPolicy(**operations)

        return cls(
            global_settings=GlobalSettings(
                blocked_extensions=[str(e) for e in global_data["blocked_extensions"]],
                max_file_size_mb=global_data["max_file_size_mb"],
                auto_backup=global_data["auto_backup"],
            ),
            tools=tools,
            version=data["version"],
        )


def validate_schema(data: Any) -> Optional[str]:
    """Structural check of a persisted policy document; first problem or None."""
    if not isinstance(data, dict):
        return "Policy document must be an object"
    if not isinstance(data.get("version"), str):
        return "Missing or invalid 'version' field (must be string)"

    global_data = data.get("global")
    if not isinstance(global_data, dict):
        return "Missing or invalid 'global' field (must be object)"
    if not isinstance(global_data.get("blocked_extensions"), list):
        return "Missing or invalid 'global.blocked_extensions' field (must be array)"
    size = global_data.get("max_file_size_mb")
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        return "Missing or invalid 'global.max_file_size_mb' field (must be positive integer)"
    if not isinstance(global_data.get("auto_backup"), bool):
        return "Missing or invalid 'global.auto_backup' field (must be boolean)"

    tools = data.get("tools")
    if not isinstance(tools, dict):
        return "Missing or invalid 'tools' field (must be object)"

    for tool_name, tool_data in tools.items():
        if not isinstance(tool_data, dict):
            return f"Tool '{tool_name}' must be an object"
        for operation in OPERATION_ORDER:
            path = f"{tool_name}.{operation.value}"
            op_data = tool_data.get(operation.value)
            if not isinstance(op_data, dict):
                return f"Missing or invalid '{path}' field (must be object)"
            if not isinstance(op_data.get("allowed_directories"), list):
                return f"Missing or invalid '{path}.allowed_directories' field (must be array)"
            if not isinstance(op_data.get("confirmation_required"), bool):
                return f"Missing or invalid '{path}.confirmation_required' field (must be boolean)"
            for key in ("allowed_commands", "blocked_commands"):
                if key in op_data and not isinstance(op_data[key], list):
                    return f"Missing or invalid '{path}.{key}' field (must be array)"
    return None


def create_default_settings() -> PolicySettings:
    """Settings used when no policy file exists yet."""
    return PolicySettings()
