"""Task store: validation and the mutating task operations."""

from __future__ import annotations

from dataclasses import replace
import datetime as dt
import logging
from pathlib import Path
from typing import Callable
import uuid

from .models import (
    DEFAULT_STATUS,
    VALID_PRIORITIES,
    VALID_STATUSES,
    Task,
    TaskConflictError,
    TaskFormData,
    TaskNotFoundError,
    TaskValidationError,
)
from .query import parse_due_date
from . import storage

logger = logging.getLogger(__name__)


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def format_timestamp(moment: dt.datetime) -> str:
    stamp = moment.astimezone(dt.timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def parse_timestamp(value: str) -> dt.datetime | None:
    try:
        moment = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.timezone.utc)
    return moment


def validate_task_form(
    form: TaskFormData,
    *,
    today: dt.date,
    allow_past_due: bool = False,
) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not form.title.strip():
        errors["title"] = "Title is required"
    if not form.description.strip():
        errors["description"] = "Description is required"
    if not form.category.strip():
        errors["category"] = "Category is required"
    if form.priority not in VALID_PRIORITIES:
        errors["priority"] = f"Invalid priority: {form.priority}"

    due_text = form.due_date.strip()
    if not due_text:
        errors["dueDate"] = "Due date is required"
    else:
        due = parse_due_date(due_text)
        if due is None:
            errors["dueDate"] = "Due date must be a valid date (YYYY-MM-DD)"
        elif not allow_past_due and due < today:
            errors["dueDate"] = "Due date cannot be in the past"
    return errors


class TaskStore:
    """Owns the persisted task collection for one data root.

    Every mutation reloads the slot, applies the change to the in-memory
    snapshot and saves the whole collection before returning. Callers only
    ever receive copies of stored tasks.
    """

    def __init__(
        self,
        data_root: Path,
        *,
        now: Callable[[], dt.datetime] | None = None,
        today: Callable[[], dt.date] | None = None,
    ) -> None:
        self.data_root = data_root.resolve()
        self._now = now or _utc_now
        self._today = today or dt.date.today
        self._tasks: list[Task] = []

    def ensure_layout(self) -> None:
        self.data_root.mkdir(parents=True, exist_ok=True)

    def _stamp(self, previous: str | None = None) -> str:
        moment = self._now()
        if previous:
            earlier = parse_timestamp(previous)
            if earlier is not None and moment < earlier:
                moment = earlier
        return format_timestamp(moment)

    def _refresh(self) -> list[Task]:
        self._tasks = storage.load_tasks(self.data_root)
        return self._tasks

    def _index_of(self, task_id: str) -> int:
        for idx, task in enumerate(self._tasks):
            if task.id == task_id:
                return idx
        raise TaskNotFoundError(f"Task not found: {task_id}")

    def _new_id(self) -> str:
        existing = {task.id for task in self._tasks}
        while True:
            candidate = str(uuid.uuid4())
            if candidate not in existing:
                return candidate

    def load_all(self) -> list[Task]:
        return [replace(task) for task in self._refresh()]

    def save_all(self, tasks: list[Task]) -> None:
        self._tasks = [replace(task) for task in tasks]
        storage.save_tasks(self.data_root, self._tasks)

    def _persist(self) -> None:
        storage.save_tasks(self.data_root, self._tasks)

    def get(self, task_id: str) -> Task:
        self._refresh()
        return replace(self._tasks[self._index_of(task_id)])

    def resolve(self, selector: str) -> Task:
        """Find a task by full id or unique id prefix."""
        selector = selector.strip()
        if not selector:
            raise TaskNotFoundError("Task selector is empty")
        tasks = self._refresh()
        for task in tasks:
            if task.id == selector:
                return replace(task)
        matches = [task for task in tasks if task.id.startswith(selector)]
        if not matches:
            raise TaskNotFoundError(f"Task not found: {selector}")
        if len(matches) > 1:
            ids = ", ".join(task.id for task in matches)
            raise TaskConflictError(f"Ambiguous task selector '{selector}': {ids}")
        return replace(matches[0])

    def create(self, form: TaskFormData) -> Task:
        errors = validate_task_form(form, today=self._today())
        if errors:
            raise TaskValidationError(errors)

        self._refresh()
        stamp = self._stamp()
        task = Task(
            id=self._new_id(),
            title=form.title.strip(),
            description=form.description.strip(),
            status=DEFAULT_STATUS,
            priority=form.priority,
            category=form.category.strip(),
            due_date=form.due_date.strip(),
            created_at=stamp,
            updated_at=stamp,
        )
        self._tasks.append(task)
        self._persist()
        logger.info("Created task %s", task.id)
        return replace(task)

    def update(self, task_id: str, form: TaskFormData, status: str) -> Task:
        errors = validate_task_form(form, today=self._today(), allow_past_due=True)
        if status not in VALID_STATUSES:
            errors["status"] = f"Invalid status: {status}"
        if errors:
            raise TaskValidationError(errors)

        self._refresh()
        idx = self._index_of(task_id)
        current = self._tasks[idx]
        updated = replace(
            current,
            title=form.title.strip(),
            description=form.description.strip(),
            priority=form.priority,
            category=form.category.strip(),
            due_date=form.due_date.strip(),
            status=status,
            updated_at=self._stamp(current.updated_at),
        )
        self._tasks[idx] = updated
        self._persist()
        logger.info("Updated task %s", task_id)
        return replace(updated)

    def toggle_status(self, task_id: str) -> Task:
        self._refresh()
        idx = self._index_of(task_id)
        current = self._tasks[idx]
        new_status = "pending" if current.status == "completed" else "completed"
        updated = replace(
            current,
            status=new_status,
            updated_at=self._stamp(current.updated_at),
        )
        self._tasks[idx] = updated
        self._persist()
        logger.info("Toggled task %s to %s", task_id, new_status)
        return replace(updated)

    def delete(self, task_id: str) -> bool:
        tasks = self._refresh()
        remaining = [task for task in tasks if task.id != task_id]
        removed = len(remaining) != len(tasks)
        self._tasks = remaining
        self._persist()
        if removed:
            logger.info("Deleted task %s", task_id)
        else:
            logger.debug("Delete of unknown task %s ignored", task_id)
        return removed
