"""Renderers for list, detail and dashboard command output."""

from __future__ import annotations

import datetime as dt
import json
from typing import Iterable

from .models import Task, TaskStats
from .query import is_overdue


LIST_COLUMNS = (
    ("id", 8),
    ("title", 32),
    ("status", 11),
    ("priority", 8),
    ("category", 14),
    ("due", 12),
)


def _priority_style(priority: str) -> str:
    return {
        "high": "bold red",
        "medium": "yellow",
        "low": "dim",
    }.get(priority, "white")


def _status_style(status: str) -> str:
    return {
        "pending": "magenta",
        "in-progress": "cyan",
        "completed": "green",
    }.get(status, "white")


def _truncate(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width == 1:
        return "…"
    return f"{value[: width - 1]}…"


def _short_id(task: Task) -> str:
    return task.id[:8]


def _task_list_row(task: Task, today: dt.date | None) -> dict[str, str]:
    due = task.due_date
    if is_overdue(task, today):
        due = f"{due} !"
    return {
        "id": _short_id(task),
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "category": task.category,
        "due": due,
    }


def _empty_message(total: int) -> str:
    if total == 0:
        return "No tasks yet. Get started by creating your first task."
    return "No tasks match your filters. Try adjusting your search or filter criteria."


def _showing_line(shown: int, total: int) -> str:
    return f"Showing {shown} of {total} tasks"


def render_task_list_plain(
    tasks: Iterable[Task],
    *,
    total: int,
    today: dt.date | None = None,
) -> str:
    rows = [_task_list_row(task, today) for task in tasks]
    if not rows:
        return _empty_message(total)

    widths = dict(LIST_COLUMNS)
    headers = [name for name, _ in LIST_COLUMNS]
    lines = []
    lines.append("  ".join(name.ljust(widths[name]) for name in headers).rstrip())
    lines.append("  ".join("-" * widths[name] for name in headers))
    for row in rows:
        rendered = [_truncate(row[name], widths[name]).ljust(widths[name]) for name in headers]
        lines.append("  ".join(rendered).rstrip())
    lines.append("")
    lines.append(_showing_line(len(rows), total))
    return "\n".join(lines)


def render_task_list_rich(
    tasks: Iterable[Task],
    *,
    total: int,
    today: dt.date | None = None,
):
    from rich import box
    from rich.console import Group
    from rich.table import Table
    from rich.text import Text

    task_list = list(tasks)
    if not task_list:
        return _empty_message(total)

    table = Table(
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold white",
        pad_edge=False,
    )
    for name, width in LIST_COLUMNS:
        table.add_column(
            name,
            style="dim" if name == "id" else ("bold" if name == "title" else ""),
            min_width=width,
            max_width=width,
            overflow="ellipsis",
            no_wrap=True,
        )

    for task in task_list:
        overdue = is_overdue(task, today)
        title_style = "strike dim" if task.status == "completed" else "bold"
        table.add_row(
            _short_id(task),
            Text(task.title, style=title_style),
            Text(task.status, style=_status_style(task.status)),
            Text(task.priority, style=_priority_style(task.priority)),
            task.category,
            Text(task.due_date, style="bold red" if overdue else ""),
            style="on grey15" if overdue else None,
        )

    footer = Text(_showing_line(len(task_list), total), style="bright_black")
    return Group(table, footer)


def render_task_list_json(
    tasks: Iterable[Task],
    *,
    total: int,
    today: dt.date | None = None,
) -> str:
    items = []
    for task in tasks:
        item = task.to_dict()
        item["overdue"] = is_overdue(task, today)
        items.append(item)
    payload = {"total": total, "shown": len(items), "tasks": items}
    return json.dumps(payload, indent=2)


def _detail_rows(task: Task, today: dt.date | None) -> list[tuple[str, str]]:
    return [
        ("id", task.id),
        ("status", task.status),
        ("priority", task.priority),
        ("category", task.category),
        ("due", task.due_date + (" (overdue)" if is_overdue(task, today) else "")),
        ("created", task.created_at),
        ("updated", task.updated_at),
    ]


def render_task_detail_plain(task: Task, today: dt.date | None = None) -> str:
    lines = [task.title, "=" * max(1, len(task.title))]
    width = max(len(label) for label, _ in _detail_rows(task, today))
    for label, value in _detail_rows(task, today):
        lines.append(f"{label.ljust(width)}  {value}")
    lines.append("")
    lines.append(task.description)
    return "\n".join(lines)


def render_task_detail_rich(task: Task, today: dt.date | None = None):
    from rich import box
    from rich.console import Group
    from rich.panel import Panel
    from rich.table import Table
    from rich.text import Text

    meta = Table(box=box.SIMPLE, show_header=False, pad_edge=False)
    meta.add_column("field", style="bright_black")
    meta.add_column("value")
    for label, value in _detail_rows(task, today):
        if label == "status":
            meta.add_row(label, Text(value, style=_status_style(value)))
        elif label == "priority":
            meta.add_row(label, Text(value, style=_priority_style(value)))
        elif label == "due" and is_overdue(task, today):
            meta.add_row(label, Text(value, style="bold red"))
        else:
            meta.add_row(label, value)

    return Panel(
        Group(meta, Text(""), Text(task.description)),
        title=Text(task.title, style="bold"),
        title_align="left",
        border_style=_status_style(task.status),
    )


def render_task_detail_json(task: Task, today: dt.date | None = None) -> str:
    payload = task.to_dict()
    payload["overdue"] = is_overdue(task, today)
    return json.dumps(payload, indent=2)


def _stat_cards(stats: TaskStats) -> list[tuple[str, str]]:
    return [
        ("Total tasks", str(stats.total)),
        ("Completed", str(stats.completed)),
        ("Pending", str(stats.pending)),
        ("Overdue", str(stats.overdue)),
        ("Completion rate", f"{stats.completion_rate}%"),
    ]


def _progress_bar(rate: int, width: int = 30) -> str:
    filled = round(width * max(0, min(rate, 100)) / 100)
    return "#" * filled + "." * (width - filled)


def _recent_line(task: Task) -> str:
    return f"[{task.status}] {task.title} (due {task.due_date}, {task.priority})"


def render_dashboard_plain(stats: TaskStats, recent: Iterable[Task]) -> str:
    lines = []
    width = max(len(label) for label, _ in _stat_cards(stats))
    for label, value in _stat_cards(stats):
        lines.append(f"{label.ljust(width)}  {value}")
    lines.append("")
    lines.append(f"[{_progress_bar(stats.completion_rate)}] {stats.completion_rate}%")
    lines.append(f"{stats.completed} of {stats.total} tasks completed")
    lines.append("")
    lines.append("Recent tasks")
    recent_list = list(recent)
    if not recent_list:
        lines.append("  No tasks yet. Create your first task to get started.")
    for task in recent_list:
        lines.append(f"  {_recent_line(task)}")
    return "\n".join(lines)


def render_dashboard_rich(stats: TaskStats, recent: Iterable[Task]):
    from rich import box
    from rich.columns import Columns
    from rich.console import Group
    from rich.panel import Panel
    from rich.progress_bar import ProgressBar
    from rich.table import Table
    from rich.text import Text

    styles = {
        "Completed": "green",
        "Pending": "magenta",
        "Overdue": "red",
        "Completion rate": "cyan",
    }
    cards = [
        Panel(Text(value, style=f"bold {styles.get(label, 'white')}"), title=label, box=box.ROUNDED)
        for label, value in _stat_cards(stats)
    ]

    progress = Group(
        ProgressBar(total=100, completed=stats.completion_rate, width=40),
        Text(f"{stats.completed} of {stats.total} tasks completed", style="bright_black"),
    )

    recent_table = Table(box=box.SIMPLE_HEAVY, show_header=True, header_style="bold white", pad_edge=False)
    recent_table.add_column("status")
    recent_table.add_column("title", style="bold")
    recent_table.add_column("due")
    recent_table.add_column("priority")
    recent_list = list(recent)
    for task in recent_list:
        recent_table.add_row(
            Text(task.status, style=_status_style(task.status)),
            task.title,
            task.due_date,
            Text(task.priority, style=_priority_style(task.priority)),
        )
    recent_body = (
        recent_table
        if recent_list
        else Text("No tasks yet. Create your first task to get started.", style="dim")
    )

    return Group(
        Columns(cards),
        Panel(progress, title="Completion Progress", box=box.ROUNDED),
        Panel(recent_body, title="Recent Tasks", box=box.ROUNDED),
    )


def render_dashboard_json(stats: TaskStats, recent: Iterable[Task]) -> str:
    payload = {
        "stats": stats.to_dict(),
        "recent": [task.to_dict() for task in recent],
    }
    return json.dumps(payload, indent=2)
