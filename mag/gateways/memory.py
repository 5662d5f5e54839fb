"""In-memory gateways and LLM backend for exercising the core without side effects."""

from typing import Callable, Dict, List, Optional, Union

from ..errors import CommunicationError, ValidationError
from ..llm.providers import normalize_provider_name
from ..messages import (
    ApplyResult, CommandType, DryRunResult, ExecutionContext, GenericCommand,
    ShellResult, WriteFileCommand,
)
from .base import FileGateway, LLMBackend, ShellGateway


class MemoryFileGateway(FileGateway):
    """Keeps written files in a dict keyed by path."""

    def __init__(self, working_directory: str = "/workspace"):
        self.files: Dict[str, str] = {}
        self.dry_runs: List[str] = []
        self.fail_paths: set = set()
        self.working_directory = working_directory

    def dry_run(self, path: str, content: str) -> DryRunResult:
        self.dry_runs.append(path)
        verb = "overwrite existing" if path in self.files else "create new"
        size = len(content.encode("utf-8"))
        return DryRunResult(description=f"[DRY-RUN] Will {verb} file '{path}' with {size} bytes.")

    def apply(self, path: str, content: str) -> ApplyResult:
        size = len(content.encode("utf-8"))
        context = ExecutionContext(
            working_directory_before=self.working_directory,
            working_directory_after=self.working_directory,
        )
        if path in self.fail_paths:
            context.exit_code = 1
            return ApplyResult(description="", success=False,
                               error_message=f"Failed to write '{path}'",
                               execution_context=context)
        self.files[path] = content
        context.command_output = f"Created file: {path} ({size} bytes)"
        return ApplyResult(description=f"[APPLIED] Successfully wrote {size} bytes to '{path}'.",
                           execution_context=context)


ShellResponse = Union[int, ShellResult, Callable[[str], ShellResult]]


class MemoryShellGateway(ShellGateway):
    """Records commands and answers with scripted results.

    ``responses`` maps a command to an exit code, a full ShellResult, or a
    callable producing one. Unlisted commands succeed with no output.
    A command of the form ``cd <dir>`` moves the simulated cwd.
    """

    def __init__(self, working_directory: str = "/workspace"):
        self.commands: List[str] = []
        self.responses: Dict[str, ShellResponse] = {}
        self._cwd = working_directory
        self.before_execute: Optional[Callable[[str], None]] = None

    @property
    def current_directory(self) -> str:
        return self._cwd

    def execute(self, command: str, working_directory: Optional[str] = None) -> ShellResult:
        if self.before_execute:
            self.before_execute(command)
        self.commands.append(command)
        before = working_directory or self._cwd

        response = self.responses.get(command, 0)
        if callable(response):
            return response(command)
        if isinstance(response, ShellResult):
            return response

        after = before
        if response == 0 and command.startswith("cd "):
            after = command[3:].strip()
            self._cwd = after
        return ShellResult(
            command=command,
            success=response == 0,
            exit_code=response,
            working_directory_before=before,
            working_directory_after=after,
        )


class ScriptedLLMBackend(LLMBackend):
    """LLM backend that replays queued replies.

    Queues are consumed front to back; an empty queue falls back to a
    default. Setting ``error`` makes every call raise CommunicationError.
    """

    def __init__(self, provider: str = "anthropic"):
        self.chat_replies: List[str] = []
        self.generic_actions: List[GenericCommand] = []
        self.file_actions: List[WriteFileCommand] = []
        self.prompts: List[str] = []
        self.histories: List[List[Dict[str, str]]] = []
        self.error: Optional[str] = None
        self._provider = provider

    def _check(self, prompt: str) -> None:
        self.prompts.append(prompt)
        if self.error:
            raise CommunicationError(self.error)

    def propose_file_action(self, prompt: str) -> WriteFileCommand:
        self._check(prompt)
        if self.file_actions:
            return self.file_actions.pop(0)
        return WriteFileCommand(path="src/output.txt", content=prompt)

    def propose_generic_action(self, prompt: str) -> GenericCommand:
        self._check(prompt)
        if self.generic_actions:
            return self.generic_actions.pop(0)
        raise CommunicationError("No scripted generic action")

    def chat(self, prompt: str) -> str:
        self._check(prompt)
        return self.chat_replies.pop(0) if self.chat_replies else ""

    def chat_with_history(self, prompt: str, history: List[Dict[str, str]]) -> str:
        self.histories.append(list(history))
        return self.chat(prompt)

    def set_provider(self, name: str) -> None:
        provider = normalize_provider_name(name)
        if provider is None:
            raise ValidationError(f"Unknown provider: {name}")
        self._provider = provider

    def get_current_provider(self) -> str:
        return self._provider


def bash_action(command: str, description: str = "") -> GenericCommand:
    """Shorthand for a scripted shell proposal."""
    return GenericCommand(type=CommandType.BASH_COMMAND, bash_command=command, description=description)


def file_action(path: str, content: str, description: str = "") -> GenericCommand:
    """Shorthand for a scripted file-write proposal."""
    return GenericCommand(type=CommandType.FILE_WRITE, file_path=path, file_content=content,
                          description=description)
