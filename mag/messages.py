"""Command and result envelopes exchanged between the coordinator and tool gateways."""

import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ValidationError
from .utils.helpers import now_millis


class CommandType(Enum):
    """Kind of action a generic command carries."""
    FILE_WRITE = "FILE_WRITE"
    BASH_COMMAND = "BASH_COMMAND"


def _require(data: Dict[str, Any], key: str, kind: type, name: str) -> Any:
    value = data.get(key)
    if not isinstance(value, kind):
        raise ValidationError(f"Missing or invalid '{key}' field in {name}")
    return value


@dataclass
class ExecutionContext:
    """Working directory and output captured around one applied operation."""
    working_directory_before: str = ""
    working_directory_after: str = ""
    command_output: str = ""
    command_stderr: str = ""
    exit_code: int = 0
    timestamp_ms: int = field(default_factory=now_millis)

    def has_output(self) -> bool:
        return bool(self.command_output or self.command_stderr)

    def combined_output(self) -> str:
        """stdout followed by stderr, the latter tagged."""
        result = self.command_output
        if self.command_stderr:
            if result:
                result += "\n"
            result += f"[STDERR]: {self.command_stderr}"
        return result

    def summary(self) -> str:
        lines = [f"Exit code: {self.exit_code}"]
        if self.working_directory_before != self.working_directory_after:
            lines.append(f"Directory: {self.working_directory_before} -> {self.working_directory_after}")
        else:
            lines.append(f"Directory: {self.working_directory_after}")
        if self.has_output():
            lines.append(self.combined_output())
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionContext":
        return cls(
            working_directory_before=data.get("working_directory_before", ""),
            working_directory_after=data.get("working_directory_after", ""),
            command_output=data.get("command_output", ""),
            command_stderr=data.get("command_stderr", ""),
            exit_code=int(data.get("exit_code", 0)),
            timestamp_ms=int(data.get("timestamp_ms", 0)),
        )


@dataclass
class WriteFileCommand:
    """A proposed file write."""
    path: str
    content: str
    command: str = "WriteFile"
    request_execution: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WriteFileCommand":
        return cls(
            path=_require(data, "path", str, "WriteFile command"),
            content=_require(data, "content", str, "WriteFile command"),
            command=data.get("command", "WriteFile"),
            request_execution=bool(data.get("request_execution", False)),
        )


@dataclass
class BashCommand:
    """A proposed shell command."""
    bash_command: str
    working_directory: str = ""
    description: str = ""
    command: str = "BashCommand"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BashCommand":
        return cls(
            bash_command=_require(data, "bash_command", str, "BashCommand"),
            working_directory=data.get("working_directory") or "",
            description=data.get("description") or "",
            command=data.get("command", "BashCommand"),
        )


@dataclass
class GenericCommand:
    """An LLM-proposed action tagged as a file write or a shell command."""
    type: CommandType
    description: str = ""
    file_path: str = ""
    file_content: str = ""
    bash_command: str = ""
    working_directory: str = ""

    @property
    def is_file_write(self) -> bool:
        return self.type == CommandType.FILE_WRITE

    @property
    def is_bash_command(self) -> bool:
        return self.type == CommandType.BASH_COMMAND

    def to_write_file_command(self) -> WriteFileCommand:
        if not self.is_file_write:
            raise ValidationError("Generic command is not a file write")
        return WriteFileCommand(path=self.file_path, content=self.file_content)

    def to_bash_command(self) -> BashCommand:
        if not self.is_bash_command:
            raise ValidationError("Generic command is not a bash command")
        return BashCommand(
            bash_command=self.bash_command,
            working_directory=self.working_directory,
            description=self.description,
        )

    def summary(self) -> str:
        if self.is_file_write:
            return f"Write {len(self.file_content.encode('utf-8'))} bytes to '{self.file_path}'"
        return f"Run '{self.bash_command}'"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenericCommand":
        try:
            command_type = CommandType(data.get("type"))
        except ValueError:
            raise ValidationError(f"Unknown generic command type: {data.get('type')!r}")
        return cls(
            type=command_type,
            description=data.get("description") or "",
            file_path=data.get("file_path") or "",
            file_content=data.get("file_content") or "",
            bash_command=data.get("bash_command") or "",
            working_directory=data.get("working_directory") or "",
        )


@dataclass
class DryRunResult:
    """Side-effect-free preview of a file write."""
    description: str
    success: bool = True
    error_message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DryRunResult":
        return cls(
            description=data.get("description", ""),
            success=bool(data.get("success", False)),
            error_message=data.get("error_message", ""),
        )


@dataclass
class ApplyResult:
    """Outcome of an applied file write or shell command."""
    description: str
    success: bool = True
    error_message: str = ""
    execution_context: Optional[ExecutionContext] = None

    def execution_summary(self) -> str:
        if self.execution_context is None:
            return self.description
        return f"{self.description}\n{self.execution_context.summary()}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "success": self.success,
            "error_message": self.error_message,
            "execution_context": self.execution_context.to_dict() if self.execution_context else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApplyResult":
        context = data.get("execution_context")
        return cls(
            description=data.get("description", ""),
            success=bool(data.get("success", False)),
            error_message=data.get("error_message", ""),
            execution_context=ExecutionContext.from_dict(context) if context else None,
        )


@dataclass
class ShellResult:
    """Result of a shell gateway call."""
    command: str
    success: bool
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    working_directory_before: str = ""
    working_directory_after: str = ""
    error_message: str = ""

    def to_execution_context(self) -> ExecutionContext:
        return ExecutionContext(
            working_directory_before=self.working_directory_before,
            working_directory_after=self.working_directory_after,
            command_output=self.stdout,
            command_stderr=self.stderr,
            exit_code=self.exit_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShellResult":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__ if k in data})


def to_json(envelope: Any) -> str:
    """Serialize any envelope defined here."""
    return json.dumps(envelope.to_dict())


def from_json(cls, text: str):
    """Inverse of :func:`to_json` for the given envelope class."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON for {cls.__name__}: {e}")
    if not isinstance(data, dict):
        raise ValidationError(f"{cls.__name__} must be a JSON object")
    return cls.from_dict(data)
