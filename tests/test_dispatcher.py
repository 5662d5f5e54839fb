import pytest

from mag.core.dispatcher import TaskDispatcher
from mag.errors import CommunicationError, PolicyViolation, TaskExecutionError
from mag.gateways.memory import (
    MemoryFileGateway, MemoryShellGateway, ScriptedLLMBackend, bash_action, file_action,
)
from mag.messages import WriteFileCommand
from mag.policy.checker import PolicyChecker
from mag.policy.settings import Operation, create_default_settings
from mag.todos.models import Todo


def test_file_task_writes_llm_proposal(dispatcher: TaskDispatcher, llm: ScriptedLLMBackend,
                                       file_gateway: MemoryFileGateway) -> None:
    llm.file_actions.append(WriteFileCommand(path="src/hello.py", content="print('hi')\n"))
    result = dispatcher.execute_single(Todo(id=1, title="Create hello world", description="Python script"))
    assert result.success
    assert file_gateway.files == {"src/hello.py": "print('hi')\n"}
    assert file_gateway.dry_runs == ["src/hello.py"]
    assert llm.prompts == ["Create hello world - Python script"]


def test_file_task_outside_allowed_directories_is_denied(dispatcher: TaskDispatcher, llm: ScriptedLLMBackend,
                                                         file_gateway: MemoryFileGateway) -> None:
    llm.file_actions.append(WriteFileCommand(path="main.py", content="x"))
    with pytest.raises(PolicyViolation) as exc_info:
        dispatcher.execute_single(Todo(id=1, title="Write notes"))
    assert "src/, tests/, docs/" in str(exc_info.value)
    assert file_gateway.files == {}
    assert file_gateway.dry_runs == []


def test_file_task_with_blocked_extension_is_denied(dispatcher: TaskDispatcher, llm: ScriptedLLMBackend) -> None:
    llm.file_actions.append(WriteFileCommand(path="src/.env", content="TOKEN=1"))
    with pytest.raises(PolicyViolation):
        dispatcher.execute_single(Todo(id=1, title="Write notes"))


def test_existing_file_is_checked_as_update(dispatcher: TaskDispatcher, llm: ScriptedLLMBackend, workdir) -> None:
    (workdir / "docs").mkdir()
    (workdir / "docs" / "guide.md").write_text("old")
    llm.file_actions.append(WriteFileCommand(path="docs/guide.md", content="new"))
    # docs/ may be created but not updated
    with pytest.raises(PolicyViolation, match="update"):
        dispatcher.execute_single(Todo(id=1, title="Write notes"))


def test_failed_apply_raises(dispatcher: TaskDispatcher, llm: ScriptedLLMBackend,
                             file_gateway: MemoryFileGateway) -> None:
    file_gateway.fail_paths.add("src/output.txt")
    with pytest.raises(TaskExecutionError):
        dispatcher.execute_single(Todo(id=1, title="Write notes"))


def test_shell_task_uses_heuristic_command(dispatcher: TaskDispatcher, shell_gateway: MemoryShellGateway) -> None:
    result = dispatcher.execute_single(Todo(id=1, title="Build the project"))
    assert shell_gateway.commands == ["make"]
    assert result.execution_context.exit_code == 0


def test_shell_task_nonzero_exit_raises(dispatcher: TaskDispatcher, shell_gateway: MemoryShellGateway) -> None:
    shell_gateway.responses["make test"] = 2
    with pytest.raises(TaskExecutionError) as exc_info:
        dispatcher.execute_single(Todo(id=1, title="Test everything"))
    assert exc_info.value.exit_code == 2


def test_shell_task_denied_by_policy_never_reaches_gateway(dispatcher: TaskDispatcher,
                                                           shell_gateway: MemoryShellGateway) -> None:
    with pytest.raises(PolicyViolation, match="Command not in allowed list: 'echo'"):
        dispatcher.execute_single(Todo(id=1, title="run echo hi"))
    assert shell_gateway.commands == []


def test_llm_resolves_shell_command_first(llm: ScriptedLLMBackend, file_gateway, shell_gateway, policy) -> None:
    dispatcher = TaskDispatcher(llm, file_gateway, shell_gateway, policy, resolve_commands_with_llm=True)
    llm.generic_actions.append(bash_action("python3 src/main.py", "run the app"))
    dispatcher.execute_single(Todo(id=1, title="Run the app"))
    assert shell_gateway.commands == ["python3 src/main.py"]


def test_heuristic_used_when_llm_cannot_resolve(llm: ScriptedLLMBackend, file_gateway, shell_gateway,
                                                policy) -> None:
    dispatcher = TaskDispatcher(llm, file_gateway, shell_gateway, policy, resolve_commands_with_llm=True)
    llm.generic_actions.append(file_action("src/a.py", "x"))
    dispatcher.execute_single(Todo(id=1, title="Build the project"))
    dispatcher.execute_single(Todo(id=2, title="Test everything"))
    assert shell_gateway.commands == ["make", "make test"]


def test_llm_failure_on_file_task_propagates(dispatcher: TaskDispatcher, llm: ScriptedLLMBackend) -> None:
    llm.error = "connection refused"
    with pytest.raises(CommunicationError, match="connection refused"):
        dispatcher.execute_single(Todo(id=1, title="Write notes"))


def test_existing_file_is_checked_under_the_policy_root(workdir, llm: ScriptedLLMBackend,
                                                        file_gateway: MemoryFileGateway,
                                                        shell_gateway: MemoryShellGateway) -> None:
    project = workdir / "project"
    (project / "src").mkdir(parents=True)
    (project / "src" / "kept.txt").write_text("old")
    (workdir / "src").mkdir()
    (workdir / "src" / "elsewhere.txt").write_text("old")
    policy = PolicyChecker(create_default_settings(), working_directory=str(project))
    dispatcher = TaskDispatcher(llm, file_gateway, shell_gateway, policy, resolve_commands_with_llm=False)

    assert dispatcher.authorize_file_write(WriteFileCommand("src/kept.txt", "new")) == Operation.UPDATE
    assert dispatcher.authorize_file_write(WriteFileCommand("src/elsewhere.txt", "new")) == Operation.CREATE
