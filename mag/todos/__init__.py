"""Todo store for mag."""

from .models import Todo, TodoStatus
from .manager import TodoManager, create_todo_manager

__all__ = [
    "Todo",
    "TodoStatus",
    "TodoManager",
    "create_todo_manager",
]
