"""Todo task model."""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from ..errors import ValidationError


class TodoStatus(Enum):
    """Lifecycle of a todo."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_string(cls, value: str) -> "TodoStatus":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown todo status: {value!r}")


def _now() -> datetime.datetime:
    return datetime.datetime.now()


@dataclass
class Todo:
    """A unit of work owned by the todo store."""
    id: int
    title: str
    description: str = ""
    status: TodoStatus = TodoStatus.PENDING
    created_at: datetime.datetime = field(default_factory=_now)
    updated_at: datetime.datetime = field(default_factory=_now)

    @property
    def is_pending(self) -> bool:
        return self.status == TodoStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status == TodoStatus.COMPLETED

    @property
    def prompt_text(self) -> str:
        """Title and description joined the way tasks are handed to the dispatcher."""
        if not self.description:
            return self.title
        return f"{self.title} - {self.description}"

    @property
    def status_glyph(self) -> str:
        if self.status == TodoStatus.COMPLETED:
            return "✅"
        if self.status == TodoStatus.IN_PROGRESS:
            return "🔄"
        return "⏳"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Todo":
        try:
            return cls(
                id=int(data["id"]),
                title=str(data["title"]),
                description=str(data.get("description", "")),
                status=TodoStatus.from_string(data.get("status", "pending")),
                created_at=datetime.datetime.fromisoformat(data["created_at"]),
                updated_at=datetime.datetime.fromisoformat(data["updated_at"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, ValidationError):
                raise
            raise ValidationError(f"Invalid todo record: {e}")
