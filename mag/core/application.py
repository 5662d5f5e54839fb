"""Main application class for mag: the interactive control surface."""

import signal
import sys
import threading
from pathlib import Path
from typing import Callable, Optional

from ..config.manager import create_config_manager
from ..constants import CLR_BOLD_CYAN, CLR_RED, CLR_RESET, CLR_YELLOW
from ..errors import CommunicationError, MagError, PolicyViolation, TaskExecutionError, ValidationError
from ..gateways.local import create_local_gateways
from ..llm.client import create_llm_client
from ..policy.checker import create_policy_checker
from ..utils.helpers import check_dependencies
from ..utils.logging import logger
from .controller import BatchReport, TaskOutcome
from .coordinator import Coordinator

HELP_TEXT = """Commands:
  /help                          Show this help
  /status                        Provider, mode, execution state and todo counts
  /todo                          List todos
  /todo add TITLE [| DESC]       Add a todo
  /todo update ID TITLE [| DESC] Change a todo's title and description
  /todo done ID                  Mark a todo completed
  /todo pending ID               Put a todo back to pending
  /todo delete ID                Delete a todo
  /do all | next | N | until N | N-M
                                 Execute pending todos (runs in the background)
  /pause /resume /stop /cancel   Control a running execution
  /provider NAME                 Switch LLM provider
  /claude /chatgpt /gemini /mistral
                                 Provider shortcuts
  /history [clear]               Show or clear the conversation history
  /chat                          Toggle chat mode (off: every prompt becomes one action)
  /policy                        Show the active policy
  /exit                          Quit"""

PROVIDER_SHORTCUTS = ["claude", "chatgpt", "gemini", "mistral"]


def _split_title(text: str):
    """'Title | description' -> (title, description)."""
    title, _, description = text.partition("|")
    return title.strip(), description.strip()


class MagApp:
    """Routes user input to slash commands, chat, or single actions."""

    def __init__(self, coordinator: Coordinator):
        self.coordinator = coordinator
        self._worker: Optional[threading.Thread] = None
        self._running = True

    # -- input ------------------------------------------------------------

    def handle_input(self, user_input: str) -> bool:
        """Handle one line of input. Returns False when the session should end."""
        user_input = user_input.strip()
        if not user_input:
            return True
        if user_input.startswith("/"):
            return self.handle_command(user_input)
        if user_input.lower() in ("exit", "quit"):
            return self.handle_command("/exit")
        self.handle_prompt(user_input)
        return True

    def handle_prompt(self, prompt: str) -> bool:
        """Send a prompt in the current mode. True if it was handled without error."""
        if self.batch_running:
            logger.warning("Execution in progress. Use /pause, /stop or /cancel first.")
            return False
        try:
            if self.coordinator.chat_mode:
                outcome = self.coordinator.chat(prompt)
                logger.llm(outcome.text)
                return True
            result = self.coordinator.run_action(prompt)
            if result is None:
                logger.user("Action declined.")
            else:
                logger.system(result.execution_summary())
            return True
        except PolicyViolation as e:
            logger.policy(str(e))
        except (CommunicationError, TaskExecutionError) as e:
            logger.error(str(e))
        return False

    def handle_command(self, line: str) -> bool:
        parts = line[1:].split(maxsplit=1)
        name = parts[0].lower() if parts else ""
        args = parts[1].strip() if len(parts) > 1 else ""

        if name in ("exit", "quit"):
            if self.batch_running:
                logger.system(self.coordinator.cancel())
            logger.system("Goodbye!")
            self._running = False
            return False

        handlers = {
            "help": lambda a: logger.system(HELP_TEXT),
            "status": self._cmd_status,
            "todo": self._cmd_todo,
            "do": self._cmd_do,
            "pause": lambda a: logger.system(self.coordinator.pause()),
            "resume": lambda a: logger.system(self.coordinator.resume()),
            "stop": lambda a: logger.system(self.coordinator.stop()),
            "cancel": lambda a: logger.system(self.coordinator.cancel()),
            "provider": self._cmd_provider,
            "history": self._cmd_history,
            "chat": self._cmd_chat,
            "policy": lambda a: logger.system(self.coordinator.policy.get_summary()),
        }
        if name in PROVIDER_SHORTCUTS:
            self._cmd_provider(name)
        elif name in handlers:
            handlers[name](args)
        else:
            logger.warning(f"Unknown command: /{name}. Type /help for a list of commands.")
        return True

    # -- slash commands ---------------------------------------------------

    def _cmd_status(self, args: str) -> None:
        logger.system("Status:")
        for key, value in self.coordinator.status().items():
            logger.system(f"  {key}: {value}")

    def _cmd_todo(self, args: str) -> None:
        if not args:
            logger.todo(self.coordinator.parser.render_todo_list().strip())
            return
        if self.batch_running:
            logger.warning("Cannot modify todos while execution is in progress.")
            return

        action, _, rest = args.partition(" ")
        action = action.lower()
        rest = rest.strip()
        try:
            if action == "add":
                title, description = _split_title(rest)
                todo_id = self.coordinator.add_todo(title, description)
                logger.todo(f"Added: {title} (ID: {todo_id})")
            elif action == "update":
                id_text, _, text = rest.partition(" ")
                title, description = _split_title(text)
                todo_id = int(id_text)
                if self.coordinator.update_todo(todo_id, title=title, description=description or None):
                    logger.todo(f"Updated: ID {todo_id}")
                else:
                    logger.warning(f"Todo {todo_id} not found or unchanged")
            elif action in ("done", "pending", "delete"):
                todo_id = int(rest)
                operation = {
                    "done": self.coordinator.mark_complete,
                    "pending": self.coordinator.mark_pending,
                    "delete": self.coordinator.delete_todo,
                }[action]
                if operation(todo_id):
                    logger.todo(f"{action.capitalize()}: ID {todo_id}")
                else:
                    logger.warning(f"Todo {todo_id} not found")
            else:
                logger.warning(f"Unknown /todo action '{action}'. Type /help for usage.")
        except ValidationError as e:
            logger.warning(str(e))
        except ValueError:
            logger.warning(f"Expected a numeric todo id: {rest}")

    def _cmd_do(self, args: str) -> None:
        target = args.lower()
        try:
            if target in ("", "all"):
                self.start_batch(self.coordinator.execute_all)
            elif target == "next":
                self.start_batch(self.coordinator.execute_next)
            elif target.startswith("until "):
                self.start_batch(self.coordinator.execute_until, int(target[6:]))
            elif "-" in target:
                start, _, end = target.partition("-")
                self.start_batch(self.coordinator.execute_range, int(start), int(end))
            else:
                self.start_batch(self.coordinator.execute_todo, int(target))
        except ValueError:
            logger.warning(f"Invalid /do argument: '{args}'. Type /help for usage.")

    def _cmd_provider(self, args: str) -> None:
        if not args:
            logger.system(f"Current provider: {self.coordinator.get_current_provider()}")
            return
        ok, message = self.coordinator.set_provider(args)
        if ok:
            logger.system(message)
        else:
            logger.error(message)

    def _cmd_history(self, args: str) -> None:
        if args.lower() == "clear":
            self.coordinator.clear_history()
            logger.system("Conversation history cleared.")
            return
        history = self.coordinator.history
        if not history:
            logger.system("No conversation history yet.")
            return
        for message in history:
            logger.system(f"{message['role']}: {message['content']}")

    def _cmd_chat(self, args: str) -> None:
        enabled = not self.coordinator.chat_mode
        self.coordinator.set_chat_mode(enabled)
        logger.system(f"Chat mode {'enabled' if enabled else 'disabled'}.")

    # -- background execution ---------------------------------------------

    @property
    def batch_running(self) -> bool:
        worker_alive = self._worker is not None and self._worker.is_alive()
        return worker_alive or self.coordinator.execution_in_progress

    def start_batch(self, operation: Callable, *args) -> bool:
        """Run an execution operation on the worker thread. False if one is already running."""
        if self.batch_running:
            logger.warning("Execution already in progress.")
            return False
        self._worker = threading.Thread(target=self._run_batch, args=(operation,) + args,
                                        name="mag-execution", daemon=True)
        self._worker.start()
        return True

    def _run_batch(self, operation: Callable, *args) -> None:
        try:
            result = operation(*args)
        except MagError as e:
            logger.error(f"Execution failed: {e}")
            return
        if isinstance(result, BatchReport):
            logger.system(result.summary())
        elif isinstance(result, TaskOutcome):
            if result.success:
                logger.system(f"Executed: {result.title}")
            else:
                logger.error(f"Failed to execute todo {result.todo_id}: {result.error}")
        elif result is None:
            logger.system("No matching pending todo to execute.")

    def wait_for_execution(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker finishes. True if nothing is left running."""
        if self._worker is not None:
            self._worker.join(timeout)
        return not self.batch_running

    # -- confirmation -----------------------------------------------------

    def confirm(self, question: str) -> bool:
        """Ask the user to confirm an action. 'a' approves everything for the rest of the session."""
        while True:
            decision = input(f"{CLR_YELLOW}{question} (y)es/(n)o/(a)lways: {CLR_RESET}").strip().lower()
            if decision in ("y", "n", "a"):
                break
            print(f"{CLR_RED}Invalid choice. Enter y, n, or a.{CLR_RESET}")
        if decision == "a":
            self.coordinator.always_approve = True
            logger.user("All further actions approved for this session.")
        return decision in ("y", "a")

    # -- session ----------------------------------------------------------

    def run_interactive_mode(self) -> None:
        """Read-eval loop until /exit or end of input."""
        self._setup_signal_handlers()
        logger.system(f"mag ready ({self.coordinator.get_current_provider()}). "
                      "Type /help for commands, /exit to quit.")
        while self._running:
            try:
                user_input = input(f"\n{CLR_BOLD_CYAN}mag>{CLR_RESET} ")
                if not self.handle_input(user_input):
                    break
            except KeyboardInterrupt:
                if self.batch_running:
                    logger.system(self.coordinator.cancel())
                else:
                    logger.system("\nUse /exit to stop gracefully")
            except EOFError:
                logger.system("\nGoodbye!")
                break
        if self._worker is not None and self._worker.is_alive():
            self.coordinator.cancel()
            self.wait_for_execution()

    def run_single_task(self, prompt: str) -> bool:
        """Handle one prompt, wait for any execution it started, and report success."""
        success = self.handle_prompt(prompt)
        self.wait_for_execution()
        return success

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        def signal_handler(sig, frame):
            logger.system(f"Received signal {sig}, shutting down gracefully...")
            if self.batch_running:
                self.coordinator.cancel()
            sys.exit(0)

        signal.signal(signal.SIGTERM, signal_handler)
        if hasattr(signal, 'SIGHUP'):
            signal.signal(signal.SIGHUP, signal_handler)


def create_application(config_dir: Optional[str] = None,
                       debug: bool = False,
                       provider: Optional[str] = None) -> MagApp:
    """Load configuration and policy, then wire the production gateways into an application.

    Args:
        config_dir: Custom configuration directory path
        debug: Enable debug logging
        provider: Provider name overriding the configured one

    Returns:
        Ready-to-run MagApp instance

    Raises:
        ConfigurationError: if the policy file is invalid
        ValidationError: if the provider is unknown
    """
    logger.set_debug(debug)
    config_manager = create_config_manager(Path(config_dir) if config_dir else None)
    config = config_manager.config
    if not debug and config.get("enable_debug", False):
        logger.set_debug(True)
    if provider:
        config["provider"] = provider
        config["model"] = ""

    check_dependencies()

    policy = create_policy_checker()
    llm = create_llm_client(config, policy)
    file_gateway, shell_gateway = create_local_gateways(config["command_timeout"],
                                                        backup_enabled=lambda: policy.auto_backup)
    coordinator = Coordinator(
        llm, file_gateway, shell_gateway, policy,
        poll_interval=config["poll_interval"],
        resolve_commands_with_llm=config["resolve_commands_with_llm"],
    )
    app = MagApp(coordinator)
    coordinator.confirm = app.confirm
    logger.debug("Application initialization complete")
    return app
