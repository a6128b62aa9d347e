"""Prompt-based interactive helpers."""

from __future__ import annotations

import typer

from .models import DEFAULT_PRIORITY, VALID_PRIORITIES, VALID_STATUSES, Task, TaskFormData
from .selector_ui import SelectorUnavailableError, select_fuzzy, select_one, select_text


def _warn_selector_fallback(exc: Exception) -> None:
    message = str(exc)
    if not message:
        return
    typer.echo(f"Warning: {message}; falling back to numeric prompts.", err=True)


def _safe_prompt(message: str, *, default: str = "") -> str | None:
    try:
        selected = select_text(message, default_value=default)
    except SelectorUnavailableError:
        pass
    else:
        return selected

    try:
        return typer.prompt(message, default=default, show_default=bool(default))
    except (typer.Abort, KeyboardInterrupt, EOFError):
        return None


def _prompt_single_choice(title: str, options: list[tuple[str, str]], default_value: str) -> str | None:
    try:
        selected = select_one(title, options, default_value=default_value)
    except SelectorUnavailableError as exc:
        _warn_selector_fallback(exc)
    else:
        return selected

    typer.echo(title)
    default_index = 1
    for idx, (value, label) in enumerate(options, start=1):
        typer.echo(f"{idx}. {label}")
        if value == default_value:
            default_index = idx

    while True:
        raw = _safe_prompt("Enter number", default=str(default_index))
        if raw is None:
            return None
        try:
            index = int(raw)
        except ValueError:
            typer.echo("Invalid selection. Enter a number.")
            continue
        if 1 <= index <= len(options):
            return options[index - 1][0]
        typer.echo("Selection out of range.")


def _task_label(task: Task) -> str:
    return f"{task.title} ({task.id[:8]}) [{task.status}] due {task.due_date}"


def choose_task(tasks: list[Task], title: str = "Select task") -> str | None:
    if not tasks:
        return None

    options = [(task.id, _task_label(task)) for task in tasks]
    try:
        selected = select_fuzzy(title, options)
    except SelectorUnavailableError as exc:
        _warn_selector_fallback(exc)
    else:
        return selected

    typer.echo(title)
    for idx, task in enumerate(tasks, start=1):
        typer.echo(f"{idx}. {_task_label(task)}")
    typer.echo("0. cancel")

    raw = _safe_prompt("Enter number", default="1")
    if raw is None:
        return None
    try:
        index = int(raw)
    except ValueError:
        return None
    if index == 0:
        return None
    if 1 <= index <= len(tasks):
        return tasks[index - 1].id
    return None


def choose_command(
    commands: list[tuple[str, str]],
    title: str = "Select command",
) -> str | None:
    if not commands:
        return None

    selector_options = [(name, f"{name:<10}  {summary}".rstrip()) for name, summary in commands]
    try:
        selected = select_one(title, selector_options, default_value=commands[0][0])
    except SelectorUnavailableError as exc:
        _warn_selector_fallback(exc)
    else:
        return selected

    typer.echo("")
    typer.echo("taskflow command palette")
    typer.echo("=" * 72)
    typer.echo(title)
    typer.echo("-" * 72)
    for idx, (name, summary) in enumerate(commands, start=1):
        typer.echo(f"{idx:>2}. {name:<10}  {summary}")
    typer.echo(" 0. cancel")

    raw = _safe_prompt("Enter number", default="1")
    if raw is None:
        return None
    try:
        index = int(raw)
    except ValueError:
        return None
    if index == 0:
        return None
    if 1 <= index <= len(commands):
        return commands[index - 1][0]
    return None


def _show_errors(errors: dict[str, str] | None) -> None:
    for field, message in (errors or {}).items():
        typer.echo(f"  {field}: {message}", err=True)


def create_form(
    defaults: TaskFormData | None = None,
    errors: dict[str, str] | None = None,
) -> TaskFormData | None:
    """Collect new-task fields; returns None when the user cancels."""
    current = defaults or TaskFormData()
    _show_errors(errors)

    title = _safe_prompt("title", default=current.title)
    if title is None:
        return None
    description = _safe_prompt("description", default=current.description)
    if description is None:
        return None
    priority = _prompt_single_choice(
        "priority",
        [(value, value) for value in VALID_PRIORITIES],
        default_value=current.priority or DEFAULT_PRIORITY,
    )
    if priority is None:
        return None
    category = _safe_prompt("category (e.g. Work, Personal, Study)", default=current.category)
    if category is None:
        return None
    due_date = _safe_prompt("due date (YYYY-MM-DD)", default=current.due_date)
    if due_date is None:
        return None
    return TaskFormData(
        title=title,
        description=description,
        priority=priority,
        category=category,
        due_date=due_date,
    )


def edit_form(
    task: Task,
    defaults: tuple[TaskFormData, str] | None = None,
    errors: dict[str, str] | None = None,
) -> tuple[TaskFormData, str] | None:
    """Collect edited fields prefilled from ``task``; returns (form, status) or None."""
    if defaults is None:
        current = TaskFormData(
            title=task.title,
            description=task.description,
            priority=task.priority,
            category=task.category,
            due_date=task.due_date,
        )
        current_status = task.status
    else:
        current, current_status = defaults
    _show_errors(errors)

    title = _safe_prompt("title", default=current.title)
    if title is None:
        return None
    description = _safe_prompt("description", default=current.description)
    if description is None:
        return None
    status = _prompt_single_choice(
        "status",
        [(value, value) for value in VALID_STATUSES],
        default_value=current_status,
    )
    if status is None:
        return None
    priority = _prompt_single_choice(
        "priority",
        [(value, value) for value in VALID_PRIORITIES],
        default_value=current.priority,
    )
    if priority is None:
        return None
    category = _safe_prompt("category", default=current.category)
    if category is None:
        return None
    due_date = _safe_prompt("due date (YYYY-MM-DD)", default=current.due_date)
    if due_date is None:
        return None
    form = TaskFormData(
        title=title,
        description=description,
        priority=priority,
        category=category,
        due_date=due_date,
    )
    return form, status
