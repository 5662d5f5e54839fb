import pytest

from mag.core.application import MagApp
from mag.core.coordinator import Coordinator
from mag.gateways.memory import MemoryShellGateway, ScriptedLLMBackend, bash_action
from mag.todos.manager import TodoManager


@pytest.fixture()
def app(coordinator: Coordinator) -> MagApp:
    return MagApp(coordinator)


def test_todo_commands(app: MagApp, store: TodoManager) -> None:
    app.handle_input("/todo add Write notes | for the meeting")
    todo = store.get(1)
    assert todo.title == "Write notes"
    assert todo.description == "for the meeting"

    app.handle_input("/todo update 1 Write better notes | short")
    assert store.get(1).title == "Write better notes"
    assert store.get(1).description == "short"

    app.handle_input("/todo done 1")
    assert store.get(1).is_completed
    app.handle_input("/todo pending 1")
    assert store.get(1).is_pending
    app.handle_input("/todo delete 1")
    assert store.is_empty()


def test_bad_todo_arguments_do_not_raise(app: MagApp, store: TodoManager) -> None:
    assert app.handle_input("/todo done x")
    assert app.handle_input("/todo add   ")
    assert app.handle_input("/todo frobnicate 1")
    assert app.handle_input("/todo")
    assert store.is_empty()


@pytest.mark.parametrize("command, completed", [
    ("/do all", [1, 2, 3]),
    ("/do", [1, 2, 3]),
    ("/do next", [1]),
    ("/do 2", [2]),
    ("/do until 3", [1, 2]),
    ("/do 2-3", [2, 3]),
])
def test_do_commands_run_in_background(app: MagApp, store: TodoManager, command: str, completed) -> None:
    for title in ("Write notes", "Draft readme", "Draft changelog"):
        store.add(title)
    app.handle_input(command)
    assert app.wait_for_execution(timeout=5)
    assert [t.id for t in store.get_completed()] == completed


def test_invalid_do_argument(app: MagApp, store: TodoManager) -> None:
    store.add("Write notes")
    assert app.handle_input("/do soon")
    assert app.wait_for_execution(timeout=1)
    assert store.get(1).is_pending


def test_mutations_refused_while_batch_runs(app: MagApp, coordinator: Coordinator,
                                            llm: ScriptedLLMBackend, store: TodoManager) -> None:
    coordinator.controller.state_machine.start()
    assert app.batch_running
    app.handle_input("/todo add Write notes")
    assert store.is_empty()
    assert not app.handle_prompt("hello")
    assert llm.prompts == []
    assert not app.start_batch(coordinator.execute_all)
    coordinator.controller.state_machine.finish()


def test_control_commands_reach_controller(app: MagApp, coordinator: Coordinator, store: TodoManager,
                                           shell_gateway: MemoryShellGateway) -> None:
    shell_gateway.before_execute = lambda command: app.handle_input("/stop")
    store.add("Build the project")
    store.add("Test everything")
    app.handle_input("/do all")
    assert app.wait_for_execution(timeout=5)
    assert store.get(1).is_completed
    assert store.get(2).is_pending


def test_chat_prompt(app: MagApp, llm: ScriptedLLMBackend, store: TodoManager) -> None:
    llm.chat_replies.append('add_todo("Write notes", "x")')
    assert app.handle_input("help me plan")
    assert store.count() == 1
    assert llm.prompts == ["help me plan"]


def test_action_mode(app: MagApp, coordinator: Coordinator, llm: ScriptedLLMBackend) -> None:
    app.handle_input("/chat")
    assert not coordinator.chat_mode
    llm.error = "offline"
    assert not app.handle_prompt("build it")
    app.handle_input("/chat")
    assert coordinator.chat_mode


def test_provider_commands(app: MagApp, coordinator: Coordinator) -> None:
    app.handle_input("/provider gemini")
    assert coordinator.get_current_provider() == "gemini"
    app.handle_input("/chatgpt")
    assert coordinator.get_current_provider() == "openai"
    app.handle_input("/claude")
    assert coordinator.get_current_provider() == "anthropic"
    app.handle_input("/provider bard")
    assert coordinator.get_current_provider() == "anthropic"


def test_informational_commands(app: MagApp) -> None:
    for command in ("/help", "/status", "/policy", "/history", "/history clear", "/pause", "/resume",
                    "/cancel", "/nonsense"):
        assert app.handle_input(command)


def test_exit(app: MagApp) -> None:
    assert not app.handle_input("/exit")
    assert not app.handle_input("quit")


def test_confirm_always_approves_session(app: MagApp, coordinator: Coordinator, monkeypatch) -> None:
    answers = iter(["x", "a"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    assert app.confirm("Apply this change?")
    assert coordinator.always_approve


def test_action_result_is_reported_with_its_context(app: MagApp, coordinator: Coordinator,
                                                    llm: ScriptedLLMBackend, capsys) -> None:
    coordinator.set_chat_mode(False)
    llm.generic_actions.append(bash_action("ls"))
    assert app.handle_prompt("list the files")
    out = capsys.readouterr().out
    assert "Executed 'ls'" in out
    assert "Exit code: 0" in out
    assert "Directory: /workspace" in out
