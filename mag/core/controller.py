"""Batch execution of todos with cooperative pause/resume/stop/cancel."""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from ..constants import DEFAULT_POLL_INTERVAL
from ..messages import ApplyResult
from ..todos.manager import TodoManager
from ..todos.models import Todo
from ..utils.logging import logger


class ExecutionState(Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


class ExecutionStateMachine:
    """Execution state shared between the batch worker and control commands.

    All access goes through the transition methods, which hold a lock. Each
    returns False when the transition does not apply in the current state.
    A run is active from ``start`` until ``finish``; a stop or cancel only
    asks the active loop to end, so no second run can start before it has.
    """

    def __init__(self):
        self._state = ExecutionState.STOPPED
        self._active = False
        self._lock = threading.Lock()

    @property
    def state(self) -> ExecutionState:
        with self._lock:
            return self._state

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return self._active or self._state in (ExecutionState.RUNNING, ExecutionState.PAUSED)

    def _transition(self, allowed_from, target: ExecutionState) -> bool:
        with self._lock:
            if self._state not in allowed_from:
                return False
            self._state = target
            return True

    def start(self) -> bool:
        with self._lock:
            if self._active or self._state not in (ExecutionState.STOPPED, ExecutionState.CANCELLED):
                return False
            self._state = ExecutionState.RUNNING
            self._active = True
            return True

    def pause(self) -> bool:
        return self._transition((ExecutionState.RUNNING,), ExecutionState.PAUSED)

    def resume(self) -> bool:
        return self._transition((ExecutionState.PAUSED,), ExecutionState.RUNNING)

    def stop(self) -> bool:
        return self._transition((ExecutionState.RUNNING, ExecutionState.PAUSED), ExecutionState.STOPPED)

    def cancel(self) -> bool:
        return self._transition((ExecutionState.RUNNING, ExecutionState.PAUSED), ExecutionState.CANCELLED)

    def finish(self) -> None:
        """End of run: an active state drops back to STOPPED, CANCELLED stays visible."""
        with self._lock:
            if self._state in (ExecutionState.RUNNING, ExecutionState.PAUSED):
                self._state = ExecutionState.STOPPED
            self._active = False

    def wait_while_paused(self, poll_interval: float) -> bool:
        """Sleep-poll until not paused. True if the batch may continue."""
        while True:
            state = self.state
            if state == ExecutionState.RUNNING:
                return True
            if state != ExecutionState.PAUSED:
                return False
            time.sleep(poll_interval)


@dataclass
class TaskOutcome:
    todo_id: int
    title: str
    success: bool
    error: str = ""
    result: Optional[ApplyResult] = None


@dataclass
class BatchReport:
    """What a batch run did."""
    outcomes: List[TaskOutcome] = field(default_factory=list)
    halted_on_failure: bool = False
    interrupted: bool = False
    message: str = ""

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    def summary(self) -> str:
        if self.message:
            return self.message
        text = f"Executed {self.succeeded} of {len(self.outcomes)} todo(s)"
        if self.failed:
            text += f", {self.failed} failed"
        if self.halted_on_failure:
            text += " (halted on first failure)"
        elif self.interrupted:
            text += " (interrupted)"
        return text + "."


class ExecutionController:
    """Runs todos through a task runner and keeps the store's statuses in step.

    ``execute_all_pending`` keeps going after a failed task; ``execute_until``
    and ``execute_range`` stop the rest of the sequence at the first failure.
    A failed task goes back to PENDING so it can be retried.
    """

    def __init__(self,
                 store: TodoManager,
                 run_task: Callable[[Todo], ApplyResult],
                 poll_interval: float = DEFAULT_POLL_INTERVAL):
        """Initialize the controller.

        Args:
            store: Todo store whose statuses are updated
            run_task: Executes one todo, raising on failure (usually TaskDispatcher.execute_single)
            poll_interval: Seconds between pause-flag checks
        """
        self.store = store
        self.run_task = run_task
        self.poll_interval = poll_interval
        self.state_machine = ExecutionStateMachine()

    @property
    def state(self) -> ExecutionState:
        return self.state_machine.state

    @property
    def in_progress(self) -> bool:
        return self.state_machine.in_progress

    # -- single tasks -----------------------------------------------------

    def execute_single(self, todo: Todo) -> TaskOutcome:
        """Run one todo, marking it in progress, then completed or back to pending."""
        self.store.mark_in_progress(todo.id)
        logger.execute(f"--- Executing: {todo.title} ---")
        try:
            result = self.run_task(todo)
        except Exception as e:
            self.store.mark_pending(todo.id)
            logger.error(f"Failed: {todo.title} - {e}")
            return TaskOutcome(todo.id, todo.title, success=False, error=str(e))

        self.store.mark_completed(todo.id)
        logger.execute(f"Completed: {todo.title}")
        return TaskOutcome(todo.id, todo.title, success=True, result=result)

    def execute_next(self) -> Optional[TaskOutcome]:
        """Run the earliest pending todo now. None if nothing is pending."""
        todo = self.store.get_next_pending()
        if todo is None:
            return None
        return self.execute_single(todo)

    def execute_todo(self, todo_id: int) -> Optional[TaskOutcome]:
        """Run one todo by id. None unless it exists and is pending."""
        todo = self.store.get(todo_id)
        if todo is None or not todo.is_pending:
            return None
        return self.execute_single(todo)

    # -- batches ----------------------------------------------------------

    def execute_all_pending(self) -> BatchReport:
        return self._run_batch(self.store.get_execution_queue(), halt_on_failure=False)

    def execute_until(self, stop_id: int) -> BatchReport:
        return self._run_batch(self.store.get_until(stop_id), halt_on_failure=True)

    def execute_range(self, start_id: int, end_id: int) -> BatchReport:
        return self._run_batch(self.store.get_range(start_id, end_id), halt_on_failure=True)

    def _run_batch(self, queue: List[Todo], halt_on_failure: bool) -> BatchReport:
        if not queue:
            return BatchReport(message="No pending todos to execute.")
        if not self.state_machine.start():
            return BatchReport(message="Execution already in progress.")

        report = BatchReport()
        logger.execute(f"Executing {len(queue)} pending todo(s)... Use /pause, /stop, or /cancel to control execution.")
        try:
            for todo in queue:
                if not self.state_machine.wait_while_paused(self.poll_interval):
                    report.interrupted = True
                    logger.execute("Execution interrupted.")
                    break

                current = self.store.get(todo.id)
                if current is None or not current.is_pending:
                    logger.debug(f"Skipping todo {todo.id}: no longer pending")
                    continue

                outcome = self.execute_single(current)
                report.outcomes.append(outcome)
                if not outcome.success and halt_on_failure:
                    report.halted_on_failure = True
                    logger.warning("Stopping sequence after failed todo.")
                    break
        finally:
            self.state_machine.finish()

        logger.execute(report.summary())
        return report

    # -- control ----------------------------------------------------------

    def pause(self) -> str:
        if self.state_machine.pause():
            return "Execution paused. Use /resume to continue or /stop to stop completely."
        return "No execution in progress to pause."

    def resume(self) -> str:
        if self.state_machine.resume():
            return "Execution resumed."
        return "No paused execution to resume."

    def stop(self) -> str:
        if self.state_machine.stop():
            return "Execution stopped. Remaining todos are still pending."
        return "No execution in progress to stop."

    def cancel(self) -> str:
        if self.state_machine.cancel():
            return "Execution cancelled. Remaining todos are still pending."
        return "No execution in progress to cancel."


def create_execution_controller(store: TodoManager,
                                run_task: Callable[[Todo], ApplyResult],
                                poll_interval: float = DEFAULT_POLL_INTERVAL) -> ExecutionController:
    return ExecutionController(store, run_task, poll_interval)
