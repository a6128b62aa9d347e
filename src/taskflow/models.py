"""Core task models and constants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

VALID_STATUSES = ("pending", "in-progress", "completed")
VALID_PRIORITIES = ("low", "medium", "high")
SORT_KEYS = ("title", "priority", "dueDate", "status")
FILTER_ALL = "all"

DEFAULT_STATUS = "pending"
DEFAULT_PRIORITY = "medium"

TASK_KEYS = (
    "id",
    "title",
    "description",
    "status",
    "priority",
    "category",
    "dueDate",
    "createdAt",
    "updatedAt",
)


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str
    status: str
    priority: str
    category: str
    due_date: str
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "category": self.category,
            "dueDate": self.due_date,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Build a task from its stored form; raises ValueError for bad records."""
        missing = [key for key in TASK_KEYS if key not in data]
        if missing:
            raise ValueError(f"task record missing keys {missing}")
        bad = [key for key in TASK_KEYS if not isinstance(data[key], str)]
        if bad:
            raise ValueError(f"task record has non-string values for {bad}")
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            status=data["status"],
            priority=data["priority"],
            category=data["category"],
            due_date=data["dueDate"],
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
        )


@dataclass(slots=True)
class TaskFormData:
    title: str = ""
    description: str = ""
    priority: str = DEFAULT_PRIORITY
    category: str = ""
    due_date: str = ""


@dataclass(slots=True)
class TaskStats:
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    completion_rate: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "completed": self.completed,
            "pending": self.pending,
            "overdue": self.overdue,
            "completionRate": self.completion_rate,
        }


class TaskError(Exception):
    """Base error for task operations."""


class TaskValidationError(TaskError):
    """Raised when submitted form data is invalid.

    ``errors`` maps form field names to user-facing messages.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(self.errors.values()))


class TaskNotFoundError(TaskError):
    """Raised when a task cannot be located."""


class TaskConflictError(TaskError):
    """Raised for ambiguous task selectors."""


class TaskStorageError(TaskError):
    """Raised when the task collection cannot be written."""
