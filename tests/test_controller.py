import threading
import time

from mag.core.controller import ExecutionController, ExecutionState, ExecutionStateMachine
from mag.gateways.memory import MemoryShellGateway
from mag.todos.manager import TodoManager


def wait_for(condition, timeout: float = 2.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.005)
    return False


def test_state_machine_transitions() -> None:
    machine = ExecutionStateMachine()
    assert machine.state == ExecutionState.STOPPED
    assert not machine.pause()
    assert not machine.resume()
    assert machine.start()
    assert not machine.start()
    assert machine.pause()
    assert machine.state == ExecutionState.PAUSED
    assert machine.resume()
    assert machine.cancel()
    assert machine.state == ExecutionState.CANCELLED
    assert not machine.stop()
    # The cancelled run has not finished yet
    assert not machine.start()
    assert machine.in_progress
    machine.finish()
    assert not machine.in_progress
    assert machine.start()
    assert machine.stop()
    assert machine.state == ExecutionState.STOPPED


def test_finish_keeps_cancelled_visible() -> None:
    machine = ExecutionStateMachine()
    machine.start()
    machine.cancel()
    machine.finish()
    assert machine.state == ExecutionState.CANCELLED


def test_control_commands_without_execution(controller: ExecutionController) -> None:
    assert controller.pause() == "No execution in progress to pause."
    assert controller.resume() == "No paused execution to resume."
    assert controller.stop() == "No execution in progress to stop."
    assert controller.cancel() == "No execution in progress to cancel."


def test_execute_all_continues_after_failure(controller: ExecutionController, store: TodoManager,
                                             shell_gateway: MemoryShellGateway) -> None:
    shell_gateway.responses["make"] = 2
    store.add("Build the project")
    store.add("Write notes")
    store.add("Test everything")

    report = controller.execute_all_pending()

    assert [o.success for o in report.outcomes] == [False, True, True]
    assert not report.halted_on_failure
    assert store.get(1).is_pending
    assert store.get(2).is_completed
    assert store.get(3).is_completed
    assert controller.state == ExecutionState.STOPPED
    assert report.summary() == "Executed 2 of 3 todo(s), 1 failed."


def test_execute_range_halts_on_first_failure(controller: ExecutionController, store: TodoManager,
                                              shell_gateway: MemoryShellGateway) -> None:
    shell_gateway.responses["make"] = 1
    store.add("Write notes")
    store.add("Build the project")
    store.add("Test everything")

    report = controller.execute_range(1, 3)

    assert report.halted_on_failure
    assert len(report.outcomes) == 2
    assert store.get(1).is_completed
    assert store.get(2).is_pending
    assert store.get(3).is_pending
    assert shell_gateway.commands == ["make"]


def test_execute_until_halts_on_first_failure(controller: ExecutionController, store: TodoManager,
                                              shell_gateway: MemoryShellGateway) -> None:
    shell_gateway.responses["make"] = 1
    store.add("Build the project")
    store.add("Write notes")
    store.add("Test everything")

    report = controller.execute_until(3)

    assert report.halted_on_failure
    assert len(report.outcomes) == 1
    assert store.get(2).is_pending


def test_execute_until_excludes_stop_id(controller: ExecutionController, store: TodoManager) -> None:
    store.add("Write notes")
    store.add("Draft readme")
    store.add("Draft changelog")
    controller.execute_until(3)
    assert store.get(1).is_completed
    assert store.get(2).is_completed
    assert store.get(3).is_pending


def test_empty_queue_message(controller: ExecutionController) -> None:
    assert controller.execute_all_pending().summary() == "No pending todos to execute."
    assert controller.execute_next() is None


def test_second_batch_is_refused_while_running(controller: ExecutionController, store: TodoManager) -> None:
    store.add("Write notes")
    controller.state_machine.start()
    report = controller.execute_all_pending()
    assert report.message == "Execution already in progress."
    assert store.get(1).is_pending


def test_execute_todo_runs_only_pending(controller: ExecutionController, store: TodoManager) -> None:
    todo_id = store.add("Write notes")
    store.mark_completed(todo_id)
    assert controller.execute_todo(todo_id) is None
    assert controller.execute_todo(999) is None


def test_execute_next_runs_earliest(controller: ExecutionController, store: TodoManager) -> None:
    store.add("Write notes")
    store.add("Draft readme")
    outcome = controller.execute_next()
    assert outcome.success
    assert outcome.title == "Write notes"
    assert store.get(2).is_pending


def test_stop_leaves_remaining_todos_pending(controller: ExecutionController, store: TodoManager,
                                             shell_gateway: MemoryShellGateway) -> None:
    shell_gateway.before_execute = lambda command: controller.stop()
    store.add("Build the project")
    store.add("Test everything")
    store.add("Write notes")

    report = controller.execute_all_pending()

    assert report.interrupted
    assert store.get(1).is_completed
    assert store.get(2).is_pending
    assert store.get(3).is_pending
    assert controller.state == ExecutionState.STOPPED


def test_cancel_never_unwinds_running_task(controller: ExecutionController, store: TodoManager,
                                           shell_gateway: MemoryShellGateway) -> None:
    shell_gateway.before_execute = lambda command: controller.cancel()
    store.add("Build the project")
    store.add("Write notes")

    report = controller.execute_all_pending()

    assert report.interrupted
    assert store.get(1).is_completed
    assert store.get(2).is_pending
    assert controller.state == ExecutionState.CANCELLED

    shell_gateway.before_execute = None
    controller.execute_all_pending()
    assert store.get(2).is_completed


def test_pause_and_resume_from_another_thread(controller: ExecutionController, store: TodoManager,
                                              shell_gateway: MemoryShellGateway) -> None:
    paused_once = []

    def pause_on_first(command: str) -> None:
        if not paused_once:
            paused_once.append(command)
            controller.pause()

    shell_gateway.before_execute = pause_on_first
    store.add("Build the project")
    store.add("Test everything")

    worker = threading.Thread(target=controller.execute_all_pending)
    worker.start()

    assert wait_for(lambda: store.get(1).is_completed)
    assert controller.state == ExecutionState.PAUSED
    time.sleep(0.05)
    assert store.get(2).is_pending

    assert controller.resume() == "Execution resumed."
    worker.join(timeout=2)
    assert not worker.is_alive()
    assert store.get(2).is_completed
    assert controller.state == ExecutionState.STOPPED


def test_stop_while_paused(controller: ExecutionController, store: TodoManager,
                           shell_gateway: MemoryShellGateway) -> None:
    shell_gateway.before_execute = lambda command: controller.pause()
    store.add("Build the project")
    store.add("Test everything")

    worker = threading.Thread(target=controller.execute_all_pending)
    worker.start()
    assert wait_for(lambda: store.get(1).is_completed)

    assert controller.stop() == "Execution stopped. Remaining todos are still pending."
    worker.join(timeout=2)
    assert not worker.is_alive()
    assert store.get(2).is_pending


def test_new_batch_refused_until_stopped_batch_ends(store: TodoManager) -> None:
    release = threading.Event()
    started = threading.Event()
    runners = {}

    def run_task(todo):
        runners.setdefault(todo.id, []).append(threading.current_thread().name)
        if todo.id == 1:
            started.set()
            release.wait(timeout=2)
        return None

    controller = ExecutionController(store, run_task, poll_interval=0.01)
    for title in ("Write notes", "Draft readme", "Draft changelog"):
        store.add(title)

    reports = []
    first = threading.Thread(target=lambda: reports.append(controller.execute_all_pending()), name="first")
    first.start()
    assert started.wait(timeout=2)

    assert controller.stop() == "Execution stopped. Remaining todos are still pending."
    second = controller.execute_all_pending()
    assert second.message == "Execution already in progress."
    assert controller.in_progress

    release.set()
    first.join(timeout=2)
    assert not first.is_alive()
    assert reports[0].interrupted
    assert runners == {1: ["first"]}
    assert store.get(2).is_pending
    assert store.get(3).is_pending
    assert not controller.in_progress

    assert controller.execute_all_pending().succeeded == 2
