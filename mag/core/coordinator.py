"""Coordinator: the single owner of the todo store, wiring LLM, policy, gateways and execution."""

from typing import Callable, Dict, List, Optional, Tuple

from ..constants import TOOL_BASH, TOOL_FILE, DEFAULT_POLL_INTERVAL
from ..errors import PolicyViolation, TaskExecutionError, ValidationError
from ..gateways.base import FileGateway, LLMBackend, ShellGateway
from ..messages import ApplyResult
from ..policy.checker import PolicyChecker
from ..policy.settings import Operation
from ..todos.manager import TodoManager
from ..todos.models import Todo
from ..utils.logging import logger
from .controller import BatchReport, ExecutionController, TaskOutcome
from .directives import DirectiveParser, ParseOutcome
from .dispatcher import TaskDispatcher

ConfirmCallback = Callable[[str], bool]


class Coordinator:
    """Front door for every operation a user interface can invoke."""

    def __init__(self,
                 llm: LLMBackend,
                 file_gateway: FileGateway,
                 shell_gateway: ShellGateway,
                 policy: PolicyChecker,
                 store: Optional[TodoManager] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 resolve_commands_with_llm: bool = True,
                 confirm: Optional[ConfirmCallback] = None):
        """Initialize the coordinator.

        Args:
            llm: Backend used for chat and action proposals
            file_gateway: File write gateway
            shell_gateway: Shell command gateway
            policy: Policy engine consulted before every side effect
            store: Todo store (a fresh one if omitted)
            poll_interval: Seconds between pause checks during batch execution
            resolve_commands_with_llm: Ask the LLM for exact shell commands of todos
            confirm: Asked before applying an action whose policy requires confirmation
        """
        self.llm = llm
        self.policy = policy
        self.store = store or TodoManager()
        self.dispatcher = TaskDispatcher(llm, file_gateway, shell_gateway, policy, resolve_commands_with_llm)
        self.controller = ExecutionController(self.store, self.dispatcher.execute_single, poll_interval)
        self.parser = DirectiveParser(self.store, self.controller)
        self.confirm = confirm
        self.always_approve = False
        self.chat_mode = True
        self.history: List[Dict[str, str]] = []

    # -- conversation -----------------------------------------------------

    def chat(self, prompt: str) -> ParseOutcome:
        """Send ``prompt`` with the running conversation and apply directives in the reply."""
        outcome = self.chat_with_history(prompt, self.history)
        self.history.append({"role": "user", "content": prompt})
        self.history.append({"role": "assistant", "content": outcome.text})
        return outcome

    def chat_with_history(self, prompt: str, history: List[Dict[str, str]]) -> ParseOutcome:
        """One chat exchange against an explicit history. CommunicationError propagates."""
        if history:
            reply = self.llm.chat_with_history(prompt, history)
        else:
            reply = self.llm.chat(prompt)
        logger.debug(f"Raw reply:\n{reply}")
        return self.parser.parse(reply)

    def clear_history(self) -> None:
        self.history.clear()

    def set_chat_mode(self, enabled: bool) -> None:
        self.chat_mode = enabled

    def run_action(self, prompt: str) -> Optional[ApplyResult]:
        """Ask for one action, check it, preview it, confirm it, then perform it.

        Returns:
            The apply result, or None if the user declined

        Raises:
            PolicyViolation, TaskExecutionError, CommunicationError
        """
        action = self.llm.propose_generic_action(prompt)
        logger.llm(f"Proposed: {action.summary()}")

        if action.is_bash_command:
            request = action.to_bash_command()
            allowed, reason = self.policy.check_bash_command(request.bash_command)
            if not allowed:
                raise PolicyViolation(f"Command '{request.bash_command}' denied: {reason}",
                                      tool=TOOL_BASH, target=request.bash_command)
            if not self._confirmed(TOOL_BASH, Operation.CREATE, f"Run '{request.bash_command}'?"):
                return None
            return self.dispatcher.run_shell(request)

        command = action.to_write_file_command()
        operation = self.dispatcher.authorize_file_write(command)
        preview = self.dispatcher.file_gateway.dry_run(command.path, command.content)
        if not preview.success:
            raise TaskExecutionError(f"Dry run failed for '{command.path}': {preview.error_message}")
        logger.system(preview.description)
        if not self._confirmed(TOOL_FILE, operation, "Apply this change?"):
            return None
        result = self.dispatcher.file_gateway.apply(command.path, command.content)
        if not result.success:
            raise TaskExecutionError(f"Apply failed for '{command.path}': {result.error_message}")
        return result

    def _confirmed(self, tool: str, operation: Operation, question: str) -> bool:
        if self.always_approve or self.confirm is None:
            return True
        if not self.policy.requires_confirmation(tool, operation):
            return True
        return self.confirm(question)

    # -- providers --------------------------------------------------------

    def set_provider(self, name: str) -> Tuple[bool, str]:
        try:
            self.llm.set_provider(name)
        except ValidationError as e:
            return False, str(e)
        return True, f"Switched to {self.llm.get_current_provider()}"

    def get_current_provider(self) -> str:
        return self.llm.get_current_provider()

    # -- todos ------------------------------------------------------------

    def add_todo(self, title: str, description: str = "") -> int:
        return self.store.add(title, description)

    def update_todo(self, todo_id: int, title: Optional[str] = None,
                    description: Optional[str] = None) -> bool:
        return self.store.update(todo_id, title=title, description=description)

    def delete_todo(self, todo_id: int) -> bool:
        return self.store.delete(todo_id)

    def mark_complete(self, todo_id: int) -> bool:
        """False if no such todo. Completing an already completed todo is a no-op."""
        if not self.store.exists(todo_id):
            return False
        self.store.mark_completed(todo_id)
        return True

    def mark_pending(self, todo_id: int) -> bool:
        if not self.store.exists(todo_id):
            return False
        self.store.mark_pending(todo_id)
        return True

    def list_todos(self, include_completed: bool = True) -> List[Todo]:
        return self.store.list_todos(include_completed)

    # -- execution --------------------------------------------------------

    def execute_next(self) -> Optional[TaskOutcome]:
        return self.controller.execute_next()

    def execute_todo(self, todo_id: int) -> Optional[TaskOutcome]:
        return self.controller.execute_todo(todo_id)

    def execute_all(self) -> BatchReport:
        return self.controller.execute_all_pending()

    def execute_until(self, stop_id: int) -> BatchReport:
        return self.controller.execute_until(stop_id)

    def execute_range(self, start_id: int, end_id: int) -> BatchReport:
        return self.controller.execute_range(start_id, end_id)

    def pause(self) -> str:
        return self.controller.pause()

    def resume(self) -> str:
        return self.controller.resume()

    def stop(self) -> str:
        return self.controller.stop()

    def cancel(self) -> str:
        return self.controller.cancel()

    @property
    def execution_in_progress(self) -> bool:
        return self.controller.in_progress

    def status(self) -> Dict[str, object]:
        return {
            "provider": self.get_current_provider(),
            "mode": "chat" if self.chat_mode else "action",
            "execution_state": self.controller.state.value,
            "todos": self.store.count(),
            "pending": self.store.count_pending(),
            "completed": len(self.store.get_completed()),
            "history_messages": len(self.history),
        }


def create_coordinator(llm: LLMBackend,
                       file_gateway: FileGateway,
                       shell_gateway: ShellGateway,
                       policy: PolicyChecker,
                       **kwargs) -> Coordinator:
    return Coordinator(llm, file_gateway, shell_gateway, policy, **kwargs)
