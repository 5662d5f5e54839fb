"""Shared test fixtures."""

import pytest

from mag.core.controller import ExecutionController
from mag.core.coordinator import Coordinator
from mag.core.directives import DirectiveParser
from mag.core.dispatcher import TaskDispatcher
from mag.gateways.memory import MemoryFileGateway, MemoryShellGateway, ScriptedLLMBackend
from mag.policy.checker import PolicyChecker
from mag.policy.settings import create_default_settings
from mag.todos.manager import TodoManager


@pytest.fixture()
def workdir(tmp_path, monkeypatch):
    """Run each test inside its own empty project directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def store() -> TodoManager:
    return TodoManager()


@pytest.fixture()
def policy(workdir) -> PolicyChecker:
    return PolicyChecker(create_default_settings(), working_directory=str(workdir))


@pytest.fixture()
def llm() -> ScriptedLLMBackend:
    return ScriptedLLMBackend()


@pytest.fixture()
def file_gateway() -> MemoryFileGateway:
    return MemoryFileGateway()


@pytest.fixture()
def shell_gateway() -> MemoryShellGateway:
    return MemoryShellGateway()


@pytest.fixture()
def dispatcher(llm, file_gateway, shell_gateway, policy) -> TaskDispatcher:
    # Heuristic extraction unless a test opts in to LLM resolution
    return TaskDispatcher(llm, file_gateway, shell_gateway, policy, resolve_commands_with_llm=False)


@pytest.fixture()
def controller(store, dispatcher) -> ExecutionController:
    return ExecutionController(store, dispatcher.execute_single, poll_interval=0.01)


@pytest.fixture()
def parser(store, controller) -> DirectiveParser:
    return DirectiveParser(store, controller)


@pytest.fixture()
def coordinator(llm, file_gateway, shell_gateway, policy, store) -> Coordinator:
    return Coordinator(llm, file_gateway, shell_gateway, policy, store=store,
                       poll_interval=0.01, resolve_commands_with_llm=False)
