"""CLI entrypoint for taskflow."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
import sys
from typing import Annotated

import click
import typer

from . import render, storage
from .logging_setup import setup_logging
from .models import (
    SORT_KEYS,
    VALID_PRIORITIES,
    VALID_STATUSES,
    Task,
    TaskError,
    TaskFormData,
    TaskNotFoundError,
    TaskValidationError,
)
from .prompt_ui import choose_command, choose_task, create_form, edit_form
from .query import TaskFilter, compute_stats, query_tasks, recent_tasks
from .service import TaskStore

STATUS_FILTER_CHOICES = click.Choice(["all", *VALID_STATUSES])
PRIORITY_FILTER_CHOICES = click.Choice(["all", *VALID_PRIORITIES])
SORT_CHOICES = click.Choice(list(SORT_KEYS))

NoInteractiveOption = Annotated[
    bool,
    typer.Option("--nointeractive", help="Disable interactive prompts for this command"),
]
DataRootOption = Annotated[Path | None, typer.Option("--data-root", help="Explicit .taskflow path")]
JsonOption = Annotated[bool, typer.Option("--json", help="Emit JSON")]
TaskArgument = Annotated[str | None, typer.Argument(help="Task id or unique id prefix")]


def _can_interact() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def _can_prompt(interactive_enabled: bool) -> bool:
    return interactive_enabled and _can_interact()


def _can_render_rich_output() -> bool:
    return sys.stdout.isatty()


app = typer.Typer(help="Personal task tracker with a terminal dashboard")


def _print_rich(renderable) -> None:
    from rich.console import Console

    Console().print(renderable)


def _today() -> dt.date:
    return dt.date.today()


def _echo_root_notice(root: Path, multiple_found: bool) -> None:
    typer.echo(f"Using data root: {root}", err=True)
    if multiple_found:
        typer.echo("Warning: multiple .taskflow roots found; using nearest ancestor.", err=True)


def _warn_config(message: str) -> None:
    typer.echo(f"Warning: {message}", err=True)


def _resolve_interactive_enabled(data_root: Path | None, nointeractive: bool) -> bool:
    if nointeractive:
        return False
    if data_root is None:
        return storage.DEFAULT_INTERACTIVE_ENABLED
    return storage.resolve_interactive_enabled(data_root, warn=_warn_config)


def _resolve_existing_root(data_root: Path | None) -> Path:
    if data_root is not None:
        root = data_root.resolve()
        if not root.exists():
            raise typer.BadParameter(f"data root not found: {root}")
        return root

    root, multiple = storage.choose_data_root(Path.cwd())
    if root is None:
        raise TaskError(
            "No .taskflow root found from current directory upward. Run 'taskflow init' first."
        )
    _echo_root_notice(root, multiple)
    return root


def _resolve_init_root(data_root: Path | None) -> Path:
    if data_root is not None:
        return data_root.resolve()

    root, multiple = storage.choose_data_root(Path.cwd())
    if root is not None:
        _echo_root_notice(root, multiple)
        return root

    default_root = storage.default_init_root(Path.cwd())
    typer.echo(f"No .taskflow found. Initializing at: {default_root}", err=True)
    return default_root


def _root_for_interactive_lookup(data_root: Path | None) -> Path | None:
    if data_root is not None:
        root = data_root.resolve()
        if root.exists():
            return root
        return None
    root, _ = storage.choose_data_root(Path.cwd())
    return root


def _store(data_root: Path | None = None, *, init: bool = False) -> TaskStore:
    root = _resolve_init_root(data_root) if init else _resolve_existing_root(data_root)
    store = TaskStore(root)
    store.ensure_layout()
    return store


def _select_task_if_missing(
    store: TaskStore,
    selector: str | None,
    prompt: str,
    *,
    interactive_enabled: bool,
) -> Task:
    if selector:
        return store.resolve(selector)
    tasks = store.load_all()
    if not tasks:
        raise TaskError("No tasks available.")
    if not _can_prompt(interactive_enabled):
        raise TaskError("task id is required in non-interactive mode")
    selected = choose_task(tasks, title=prompt)
    if not selected:
        _exit_canceled(1)
    return store.get(selected)


def _run_and_handle(fn) -> None:
    try:
        fn()
    except TaskValidationError as exc:
        for field, message in exc.errors.items():
            typer.echo(f"Error: {field}: {message}", err=True)
        raise typer.Exit(code=1) from exc
    except TaskError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _exit_canceled(code: int) -> None:
    typer.echo("Canceled.")
    raise typer.Exit(code=code)


def _command_choices() -> list[tuple[str, str]]:
    choices: list[tuple[str, str]] = []
    for command in app.registered_commands:
        if not command.name or command.callback is None:
            continue
        doc = (command.callback.__doc__ or "").strip()
        summary = doc.splitlines()[0] if doc else ""
        choices.append((command.name, summary))
    return choices


def _find_command(name: str):
    for command in app.registered_commands:
        if command.name == name and command.callback is not None:
            return command
    return None


def _run_command_picker(ctx: typer.Context, *, data_root: Path | None) -> None:
    selected = choose_command(_command_choices(), title="Select a taskflow command")
    if not selected:
        _exit_canceled(0)
    command = _find_command(selected)
    if command is None or command.callback is None:
        return
    kwargs: dict[str, object] = {}
    if data_root is not None:
        kwargs["data_root"] = data_root
    ctx.invoke(command.callback, **kwargs)


@app.callback(invoke_without_command=True)
def root_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
    nointeractive: NoInteractiveOption = False,
    data_root: DataRootOption = None,
) -> None:
    """Open an interactive command picker when no command is provided."""
    setup_logging(verbose=verbose)
    if ctx.invoked_subcommand is not None:
        return

    root_for_interactive = _root_for_interactive_lookup(data_root)
    interactive_enabled = _resolve_interactive_enabled(root_for_interactive, nointeractive=nointeractive)

    if not interactive_enabled:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    if not _can_interact():
        typer.echo(ctx.get_help())
        typer.echo("Error: command selection requires an interactive terminal.", err=True)
        raise typer.Exit(code=2)

    _run_command_picker(ctx, data_root=data_root)


@app.command("init")
def init_cmd(data_root: DataRootOption = None) -> None:
    """Initialize the .taskflow data directory."""

    def _inner() -> None:
        store = _store(data_root, init=True)
        typer.echo(f"Initialized data root: {store.data_root}")
        cfg_path = storage.config_path(store.data_root)
        if storage.write_default_config_if_missing(store.data_root):
            typer.echo(
                f"Created config: {cfg_path} "
                f"(interactive_enabled={storage.DEFAULT_INTERACTIVE_ENABLED}, "
                f"default_sort={storage.DEFAULT_SORT})"
            )
        else:
            typer.echo(f"Using existing config: {cfg_path}")

    _run_and_handle(_inner)


@app.command("dashboard")
def dashboard_cmd(
    as_json: JsonOption = False,
    data_root: DataRootOption = None,
) -> None:
    """Show task statistics and recent tasks."""

    def _inner() -> None:
        store = _store(data_root)
        tasks = store.load_all()
        stats = compute_stats(tasks, today=_today())
        recent = recent_tasks(tasks)
        if as_json:
            typer.echo(render.render_dashboard_json(stats, recent))
        elif _can_render_rich_output():
            _print_rich(render.render_dashboard_rich(stats, recent))
        else:
            typer.echo(render.render_dashboard_plain(stats, recent))

    _run_and_handle(_inner)


@app.command("list")
def list_cmd(
    search: Annotated[str, typer.Option("--search", "-s", help="Match title or description")] = "",
    status: Annotated[str, typer.Option("--status", click_type=STATUS_FILTER_CHOICES)] = "all",
    priority: Annotated[str, typer.Option("--priority", click_type=PRIORITY_FILTER_CHOICES)] = "all",
    sort: Annotated[
        str | None,
        typer.Option("--sort", click_type=SORT_CHOICES, show_default=False),
    ] = None,
    as_json: JsonOption = False,
    data_root: DataRootOption = None,
) -> None:
    """List tasks with search, filters and sorting."""

    def _inner() -> None:
        store = _store(data_root)
        tasks = store.load_all()
        sort_key = sort or storage.resolve_default_sort(store.data_root, warn=_warn_config)
        criteria = TaskFilter(search_term=search, status=status, priority=priority)
        shown = query_tasks(tasks, criteria, sort_key)
        today = _today()
        if as_json:
            typer.echo(render.render_task_list_json(shown, total=len(tasks), today=today))
        elif _can_render_rich_output():
            _print_rich(render.render_task_list_rich(shown, total=len(tasks), today=today))
        else:
            typer.echo(render.render_task_list_plain(shown, total=len(tasks), today=today))

    _run_and_handle(_inner)


@app.command("create")
def create_cmd(
    title: Annotated[str | None, typer.Option("--title")] = None,
    description: Annotated[str | None, typer.Option("--description")] = None,
    priority: Annotated[str, typer.Option("--priority", help="low, medium or high")] = "medium",
    category: Annotated[str | None, typer.Option("--category")] = None,
    due: Annotated[str | None, typer.Option("--due", help="Due date, YYYY-MM-DD")] = None,
    nointeractive: NoInteractiveOption = False,
    data_root: DataRootOption = None,
) -> None:
    """Create a new pending task."""

    def _inner() -> None:
        store = _store(data_root)
        interactive_enabled = _resolve_interactive_enabled(store.data_root, nointeractive=nointeractive)

        form = TaskFormData(
            title=title or "",
            description=description or "",
            priority=priority,
            category=category or "",
            due_date=due or "",
        )
        missing = any(value is None for value in (title, description, category, due))
        open_form = missing and _can_prompt(interactive_enabled)
        errors: dict[str, str] | None = None

        while True:
            if open_form:
                submitted = create_form(form, errors)
                if submitted is None:
                    _exit_canceled(1)
                form = submitted
            try:
                task = store.create(form)
            except TaskValidationError as exc:
                if not open_form:
                    raise
                errors = exc.errors
                continue
            break
        typer.echo(f"Created: {task.title} ({task.id})")

    _run_and_handle(_inner)


@app.command("view")
def view_cmd(
    task_id: TaskArgument = None,
    as_json: JsonOption = False,
    nointeractive: NoInteractiveOption = False,
    data_root: DataRootOption = None,
) -> None:
    """Show a detailed view of one task."""

    def _inner() -> None:
        store = _store(data_root)
        interactive_enabled = _resolve_interactive_enabled(store.data_root, nointeractive=nointeractive)
        task = _select_task_if_missing(
            store,
            task_id,
            "Select a task to view",
            interactive_enabled=interactive_enabled,
        )
        today = _today()
        if as_json:
            typer.echo(render.render_task_detail_json(task, today))
        elif _can_render_rich_output():
            _print_rich(render.render_task_detail_rich(task, today))
        else:
            typer.echo(render.render_task_detail_plain(task, today))

    _run_and_handle(_inner)


@app.command("edit")
def edit_cmd(
    task_id: TaskArgument = None,
    title: Annotated[str | None, typer.Option("--title")] = None,
    description: Annotated[str | None, typer.Option("--description")] = None,
    priority: Annotated[str | None, typer.Option("--priority")] = None,
    category: Annotated[str | None, typer.Option("--category")] = None,
    due: Annotated[str | None, typer.Option("--due", help="Due date, YYYY-MM-DD")] = None,
    status: Annotated[str | None, typer.Option("--status", help="pending, in-progress or completed")] = None,
    nointeractive: NoInteractiveOption = False,
    data_root: DataRootOption = None,
) -> None:
    """Edit a task's fields and status."""

    def _inner() -> None:
        store = _store(data_root)
        interactive_enabled = _resolve_interactive_enabled(store.data_root, nointeractive=nointeractive)
        task = _select_task_if_missing(
            store,
            task_id,
            "Select a task to edit",
            interactive_enabled=interactive_enabled,
        )

        edits = (title, description, priority, category, due, status)
        has_edit_flags = any(value is not None for value in edits)
        form = TaskFormData(
            title=task.title if title is None else title,
            description=task.description if description is None else description,
            priority=task.priority if priority is None else priority,
            category=task.category if category is None else category,
            due_date=task.due_date if due is None else due,
        )
        new_status = task.status if status is None else status
        open_form = _can_prompt(interactive_enabled) and (task_id is None or not has_edit_flags)
        errors: dict[str, str] | None = None
        defaults: tuple[TaskFormData, str] = (form, new_status)

        while True:
            if open_form:
                submitted = edit_form(task, defaults, errors)
                if submitted is None:
                    _exit_canceled(1)
                form, new_status = submitted
            try:
                updated = store.update(task.id, form, new_status)
            except TaskValidationError as exc:
                if not open_form:
                    raise
                errors = exc.errors
                defaults = (form, new_status)
                continue
            break
        typer.echo(f"Updated: {updated.title}")

    _run_and_handle(_inner)


@app.command("toggle")
def toggle_cmd(
    task_id: TaskArgument = None,
    nointeractive: NoInteractiveOption = False,
    data_root: DataRootOption = None,
) -> None:
    """Flip a task between completed and pending."""

    def _inner() -> None:
        store = _store(data_root)
        interactive_enabled = _resolve_interactive_enabled(store.data_root, nointeractive=nointeractive)
        task = _select_task_if_missing(
            store,
            task_id,
            "Select a task to toggle",
            interactive_enabled=interactive_enabled,
        )
        toggled = store.toggle_status(task.id)
        typer.echo(f"Marked {toggled.status}: {toggled.title}")

    _run_and_handle(_inner)


@app.command("delete")
def delete_cmd(
    task_id: TaskArgument = None,
    nointeractive: NoInteractiveOption = False,
    data_root: DataRootOption = None,
) -> None:
    """Delete a task permanently."""

    def _inner() -> None:
        store = _store(data_root)
        interactive_enabled = _resolve_interactive_enabled(store.data_root, nointeractive=nointeractive)
        try:
            task = _select_task_if_missing(
                store,
                task_id,
                "Select a task to delete",
                interactive_enabled=interactive_enabled,
            )
        except TaskNotFoundError:
            if not task_id:
                raise
            store.delete(task_id.strip())
            typer.echo(f"No task matches {task_id}; nothing deleted.")
            return
        store.delete(task.id)
        typer.echo(f"Deleted: {task.title} ({task.id})")

    _run_and_handle(_inner)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
