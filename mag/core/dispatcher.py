"""Routes a single todo to the file or shell gateway after a policy check."""

import os

from ..constants import TOOL_BASH, TOOL_FILE
from ..errors import CommunicationError, PolicyViolation, TaskExecutionError
from ..gateways.base import FileGateway, LLMBackend, ShellGateway
from ..messages import ApplyResult, BashCommand, WriteFileCommand
from ..policy.checker import PolicyChecker
from ..policy.settings import Operation
from ..todos.models import Todo
from ..utils.helpers import resolve_path
from ..utils.logging import logger
from .classifier import TaskKind, classify, extract_shell_command


class TaskDispatcher:
    """Executes one task end to end.

    Every failure is raised: PolicyViolation when the policy denies the
    action, TaskExecutionError when the gateway reports failure, and
    CommunicationError from the LLM backend as-is.
    """

    def __init__(self,
                 llm: LLMBackend,
                 file_gateway: FileGateway,
                 shell_gateway: ShellGateway,
                 policy: PolicyChecker,
                 resolve_commands_with_llm: bool = True):
        self.llm = llm
        self.file_gateway = file_gateway
        self.shell_gateway = shell_gateway
        self.policy = policy
        self.resolve_commands_with_llm = resolve_commands_with_llm

    def execute_single(self, todo: Todo) -> ApplyResult:
        prompt = todo.prompt_text
        kind = classify(prompt)
        logger.debug(f"Todo {todo.id} classified as {kind.value}")
        if kind == TaskKind.SHELL:
            return self.run_shell(self.resolve_shell_command(prompt))
        return self.run_file_write(self.llm.propose_file_action(prompt))

    def resolve_shell_command(self, prompt: str) -> BashCommand:
        """Exact command for a shell task: the LLM's answer if it gives one, else the heuristic."""
        if self.resolve_commands_with_llm:
            try:
                proposal = self.llm.propose_generic_action(prompt)
                if proposal.is_bash_command and proposal.bash_command.strip():
                    logger.debug(f"LLM resolved command: {proposal.bash_command}")
                    return proposal.to_bash_command()
                logger.debug("LLM did not propose a shell command; using heuristic extraction")
            except CommunicationError as e:
                logger.warning(f"Could not resolve command with LLM ({e}); using heuristic extraction")

        command = extract_shell_command(prompt)
        return BashCommand(bash_command=command, description=prompt)

    def run_shell(self, request: BashCommand) -> ApplyResult:
        command = request.bash_command
        allowed, reason = self.policy.check_bash_command(command)
        if not allowed:
            raise PolicyViolation(f"Command '{command}' denied: {reason}", tool=TOOL_BASH, target=command)

        logger.execute(f"Running: {command}")
        result = self.shell_gateway.execute(command, request.working_directory or None)
        context = result.to_execution_context()

        if not result.success:
            detail = result.error_message or result.stderr.strip() or result.stdout.strip()
            message = f"Command '{command}' failed with exit code {result.exit_code}"
            raise TaskExecutionError(f"{message}: {detail}" if detail else message, result.exit_code)

        return ApplyResult(description=f"Executed '{command}'", execution_context=context)

    def authorize_file_write(self, command: WriteFileCommand) -> Operation:
        """Raise PolicyViolation unless the write is permitted.

        Returns:
            UPDATE when the target already exists under the policy root, otherwise CREATE
        """
        path = command.path
        target = resolve_path(path, self.policy.working_directory)
        operation = Operation.UPDATE if os.path.exists(target) else Operation.CREATE
        if not self.policy.is_allowed(TOOL_FILE, operation, path):
            allowed = ", ".join(self.policy.get_allowed_directories(TOOL_FILE, operation)) or "none"
            logger.policy(f"Denied {operation.value} of '{path}' (allowed: {allowed})")
            raise PolicyViolation(
                f"Policy denies {operation.value} of '{path}' (allowed directories: {allowed})",
                tool=TOOL_FILE, target=path)

        size = len(command.content.encode("utf-8"))
        if not self.policy.is_file_size_allowed(size):
            raise PolicyViolation(f"File '{path}' is too large ({size} bytes)", tool=TOOL_FILE, target=path)
        return operation

    def run_file_write(self, command: WriteFileCommand) -> ApplyResult:
        if not command.path:
            raise TaskExecutionError("LLM proposed a file write without a path")
        self.authorize_file_write(command)

        preview = self.file_gateway.dry_run(command.path, command.content)
        if not preview.success:
            raise TaskExecutionError(f"Dry run failed for '{command.path}': {preview.error_message}")
        logger.execute(preview.description)

        result = self.file_gateway.apply(command.path, command.content)
        if not result.success:
            raise TaskExecutionError(f"Apply failed for '{command.path}': {result.error_message}")
        logger.execute(result.description)
        return result


def create_task_dispatcher(llm: LLMBackend,
                           file_gateway: FileGateway,
                           shell_gateway: ShellGateway,
                           policy: PolicyChecker,
                           resolve_commands_with_llm: bool = True) -> TaskDispatcher:
    return TaskDispatcher(llm, file_gateway, shell_gateway, policy, resolve_commands_with_llm)
