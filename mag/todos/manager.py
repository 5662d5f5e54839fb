"""Ordered todo store with status lifecycle and execution-queue queries."""

import datetime
from dataclasses import replace
from typing import Any, Dict, List, Optional

from ..errors import ValidationError
from ..utils.logging import logger
from .models import Todo, TodoStatus


class TodoManager:
    """Owns every todo and hands out copies.

    Ids start at 1, increase strictly and are never reused, even after a
    delete or a reload from serialized form. Callers outside the store only
    ever see copies, so status changes go through the ``mark_*`` and
    ``update`` methods. The store does no locking of its own; a single
    coordinator owns it.
    """

    def __init__(self):
        self._todos: List[Todo] = []
        self._next_id = 1

    # -- mutation ---------------------------------------------------------

    def add(self, title: str, description: str = "") -> int:
        """Add a pending todo.

        Args:
            title: Non-empty title
            description: Optional free-text description

        Returns:
            The new todo's id

        Raises:
            ValidationError: if title is empty
        """
        if not title or not title.strip():
            raise ValidationError("Todo title cannot be empty")

        now = datetime.datetime.now()
        todo = Todo(
            id=self._next_id,
            title=title,
            description=description or "",
            created_at=now,
            updated_at=now,
        )
        self._next_id += 1
        self._todos.append(todo)
        logger.debug(f"Todo {todo.id} added: {title}")
        return todo.id

    def update(self, todo_id: int,
               title: Optional[str] = None,
               description: Optional[str] = None,
               status: Optional[TodoStatus] = None) -> bool:
        """Apply the given fields to a todo.

        An empty title is ignored. Returns True only when something changed.
        """
        todo = self._find(todo_id)
        if todo is None:
            return False

        changed = False
        if title and title != todo.title:
            todo.title = title
            changed = True
        if description is not None and description != todo.description:
            todo.description = description
            changed = True
        if status is not None and status != todo.status:
            todo.status = status
            changed = True

        if changed:
            todo.updated_at = datetime.datetime.now()
        return changed

    def delete(self, todo_id: int) -> bool:
        todo = self._find(todo_id)
        if todo is None:
            return False
        self._todos.remove(todo)
        logger.debug(f"Todo {todo_id} deleted")
        return True

    def mark_in_progress(self, todo_id: int) -> bool:
        return self.update(todo_id, status=TodoStatus.IN_PROGRESS)

    def mark_completed(self, todo_id: int) -> bool:
        return self.update(todo_id, status=TodoStatus.COMPLETED)

    def mark_pending(self, todo_id: int) -> bool:
        return self.update(todo_id, status=TodoStatus.PENDING)

    def clear(self) -> None:
        """Remove every todo. Id assignment continues where it left off."""
        self._todos.clear()

    # -- queries ----------------------------------------------------------

    def get(self, todo_id: int) -> Optional[Todo]:
        todo = self._find(todo_id)
        return replace(todo) if todo else None

    def exists(self, todo_id: int) -> bool:
        return self._find(todo_id) is not None

    def list_todos(self, include_completed: bool = False) -> List[Todo]:
        """Todos in insertion order, completed ones only when requested."""
        return [replace(t) for t in self._todos
                if include_completed or t.status != TodoStatus.COMPLETED]

    def get_pending(self) -> List[Todo]:
        return [replace(t) for t in self._todos if t.status == TodoStatus.PENDING]

    def get_completed(self) -> List[Todo]:
        return [replace(t) for t in self._todos if t.status == TodoStatus.COMPLETED]

    def count_pending(self) -> int:
        return sum(1 for t in self._todos if t.status == TodoStatus.PENDING)

    def count(self) -> int:
        return len(self._todos)

    def is_empty(self) -> bool:
        return not self._todos

    def get_execution_queue(self) -> List[Todo]:
        """Pending todos in FIFO order (creation time, then id)."""
        pending = self.get_pending()
        pending.sort(key=lambda t: (t.created_at, t.id))
        return pending

    def get_next_pending(self) -> Optional[Todo]:
        queue = self.get_execution_queue()
        return queue[0] if queue else None

    def get_until(self, stop_id: int) -> List[Todo]:
        """Queue entries before the todo whose id is ``stop_id`` (exclusive).

        If ``stop_id`` is not in the queue, the whole queue is returned.
        """
        result = []
        for todo in self.get_execution_queue():
            if todo.id == stop_id:
                break
            result.append(todo)
        return result

    def get_range(self, start_id: int, end_id: int) -> List[Todo]:
        """Queue entries from ``start_id`` through ``end_id``, both inclusive.

        Empty if ``start_id`` is not queued; runs to the end of the queue if
        ``end_id`` does not follow it.
        """
        result = []
        collecting = False
        for todo in self.get_execution_queue():
            if todo.id == start_id:
                collecting = True
            if collecting:
                result.append(todo)
                if todo.id == end_id:
                    break
        return result

    # -- serialization ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "next_id": self._next_id,
            "todos": [t.to_dict() for t in self._todos],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TodoManager":
        """Rebuild a store, keeping ``next_id`` so ids stay unique.

        Raises:
            ValidationError: on a malformed document
        """
        if not isinstance(data, dict) or not isinstance(data.get("todos", []), list):
            raise ValidationError("Todo store document must hold a 'todos' list")

        manager = cls()
        manager._todos = [Todo.from_dict(item) for item in data.get("todos", [])]
        highest = max((t.id for t in manager._todos), default=0)
        try:
            next_id = int(data.get("next_id", highest + 1))
        except (TypeError, ValueError):
            raise ValidationError("Invalid 'next_id' in todo store document")
        manager._next_id = max(next_id, highest + 1)
        return manager

    def _find(self, todo_id: int) -> Optional[Todo]:
        for todo in self._todos:
            if todo.id == todo_id:
                return todo
        return None


def create_todo_manager() -> TodoManager:
    """Create an empty todo store."""
    return TodoManager()
