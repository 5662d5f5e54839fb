"""Core orchestration: classification, dispatch, execution control and directive parsing."""

from .classifier import TaskKind, classify, extract_shell_command
from .dispatcher import TaskDispatcher, create_task_dispatcher
from .controller import (
    ExecutionState,
    ExecutionStateMachine,
    ExecutionController,
    TaskOutcome,
    BatchReport,
    create_execution_controller,
)
from .directives import DirectiveParser, ParseOutcome, create_directive_parser
from .coordinator import Coordinator, create_coordinator

__all__ = [
    "TaskKind",
    "classify",
    "extract_shell_command",
    "TaskDispatcher",
    "create_task_dispatcher",
    "ExecutionState",
    "ExecutionStateMachine",
    "ExecutionController",
    "TaskOutcome",
    "BatchReport",
    "create_execution_controller",
    "DirectiveParser",
    "ParseOutcome",
    "create_directive_parser",
    "Coordinator",
    "create_coordinator",
]
