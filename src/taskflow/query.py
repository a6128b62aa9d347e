"""Read-side views over a task collection: filtering, sorting and stats."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import math
import re
import unicodedata
from typing import Iterable

from .models import FILTER_ALL, Task, TaskStats


PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}
DUE_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


@dataclass(frozen=True)
class TaskFilter:
    search_term: str = ""
    status: str = FILTER_ALL
    priority: str = FILTER_ALL


def parse_due_date(value: str) -> dt.date | None:
    """Parse a calendar date written exactly as YYYY-MM-DD."""
    text = value.strip()
    if not DUE_DATE_RE.fullmatch(text):
        return None
    try:
        return dt.date.fromisoformat(text)
    except ValueError:
        return None


def is_overdue(task: Task, today: dt.date | None = None) -> bool:
    if task.status == "completed":
        return False
    due = parse_due_date(task.due_date)
    if due is None:
        return False
    return due < (today or dt.date.today())


def _matches(task: Task, criteria: TaskFilter) -> bool:
    term = criteria.search_term.casefold()
    if term and term not in task.title.casefold() and term not in task.description.casefold():
        return False
    if criteria.status != FILTER_ALL and task.status != criteria.status:
        return False
    if criteria.priority != FILTER_ALL and task.priority != criteria.priority:
        return False
    return True


def filter_tasks(tasks: Iterable[Task], criteria: TaskFilter | None = None) -> list[Task]:
    criteria = criteria or TaskFilter()
    return [task for task in tasks if _matches(task, criteria)]


def _title_key(title: str) -> tuple[str, str]:
    # Accents and case only break ties, lowercase first.
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), title.swapcase()


def _due_key(task: Task) -> tuple[int, dt.date]:
    due = parse_due_date(task.due_date)
    if due is None:
        return 1, dt.date.max
    return 0, due


def sort_tasks(tasks: Iterable[Task], key: str) -> list[Task]:
    """Return a new stably sorted list; unknown keys keep the input order."""
    items = list(tasks)
    if key == "title":
        return sorted(items, key=lambda task: _title_key(task.title))
    if key == "priority":
        return sorted(items, key=lambda task: -PRIORITY_RANK.get(task.priority, 0))
    if key == "dueDate":
        return sorted(items, key=_due_key)
    if key == "status":
        return sorted(items, key=lambda task: task.status)
    return items


def query_tasks(
    tasks: Iterable[Task],
    criteria: TaskFilter | None = None,
    sort_key: str = "dueDate",
) -> list[Task]:
    return sort_tasks(filter_tasks(tasks, criteria), sort_key)


def recent_tasks(tasks: Iterable[Task], limit: int = 5) -> list[Task]:
    return list(tasks)[: max(limit, 0)]


def compute_stats(tasks: Iterable[Task], today: dt.date | None = None) -> TaskStats:
    today = today or dt.date.today()
    items = list(tasks)
    total = len(items)
    completed = sum(1 for task in items if task.status == "completed")
    pending = sum(1 for task in items if task.status == "pending")
    overdue = sum(1 for task in items if is_overdue(task, today))
    completion_rate = math.floor(completed / total * 100 + 0.5) if total else 0
    return TaskStats(
        total=total,
        completed=completed,
        pending=pending,
        overdue=overdue,
        completion_rate=completion_rate,
    )
