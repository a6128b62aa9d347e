from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner
import yaml

from taskflow import storage
from taskflow.cli import app


runner = CliRunner()


def _days(offset: int) -> str:
    return (dt.date.today() + dt.timedelta(days=offset)).isoformat()


def _init(tmp_path: Path) -> Path:
    root = tmp_path / ".taskflow"
    result = runner.invoke(app, ["init", "--data-root", str(root)])
    assert result.exit_code == 0
    return root


def _create(root: Path, title: str, *extra: str, due: str | None = None) -> str:
    result = runner.invoke(
        app,
        [
            "create",
            "--title",
            title,
            "--description",
            f"{title} details",
            "--category",
            "Work",
            "--due",
            due or _days(3),
            "--data-root",
            str(root),
            *extra,
        ],
    )
    assert result.exit_code == 0, result.output
    return result.output.strip().rsplit("(", 1)[1].rstrip(")")


def _stored(root: Path) -> list[dict]:
    return json.loads(storage.slot_path(root).read_text(encoding="utf-8"))


def _list_json(root: Path, *args: str) -> dict:
    result = runner.invoke(app, ["list", "--json", "--data-root", str(root), *args])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_init_idempotent(tmp_path: Path) -> None:
    root = tmp_path / ".taskflow"
    r1 = runner.invoke(app, ["init", "--data-root", str(root)])
    r2 = runner.invoke(app, ["init", "--data-root", str(root)])
    assert r1.exit_code == 0
    assert r2.exit_code == 0
    assert "Created config" in r1.output
    assert "Using existing config" in r2.output
    cfg = yaml.safe_load((root / "config.yaml").read_text(encoding="utf-8"))
    assert cfg["settings"] == {"interactive_enabled": True, "default_sort": "dueDate"}


def test_commands_require_existing_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 1
    assert "Run 'taskflow init' first" in result.output


def test_root_discovered_from_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = _init(tmp_path)
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    result = runner.invoke(app, ["dashboard"])
    assert result.exit_code == 0
    assert f"Using data root: {root.resolve()}" in result.output


def test_create_writes_pending_task(tmp_path: Path) -> None:
    root = _init(tmp_path)
    task_id = _create(root, "Write report", "--priority", "high")

    [record] = _stored(root)
    assert record["id"] == task_id
    assert record["status"] == "pending"
    assert record["priority"] == "high"
    assert record["createdAt"] == record["updatedAt"]


def test_create_rejects_past_due_date(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(
        app,
        [
            "create",
            "--title",
            "Late",
            "--description",
            "too late",
            "--category",
            "Work",
            "--due",
            _days(-1),
            "--data-root",
            str(root),
        ],
    )
    assert result.exit_code == 1
    assert "Error: dueDate: Due date cannot be in the past" in result.output
    assert not storage.slot_path(root).exists()


def test_create_missing_fields_non_interactive(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["create", "--title", "Only title", "--data-root", str(root)])
    assert result.exit_code == 1
    assert "Error: description: Description is required" in result.output
    assert "Error: category: Category is required" in result.output
    assert "Error: dueDate: Due date is required" in result.output


def test_create_opens_form_when_interactive(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = _init(tmp_path)
    forms = iter(
        [
            {"due_date": _days(-2)},
            {"due_date": _days(2)},
        ]
    )
    seen_errors: list[dict[str, str] | None] = []

    def _create_form(defaults, errors):
        seen_errors.append(errors)
        defaults.title = "From form"
        defaults.description = "typed"
        defaults.category = "Home"
        defaults.due_date = next(forms)["due_date"]
        return defaults

    monkeypatch.setattr("taskflow.cli._can_interact", lambda: True)
    monkeypatch.setattr("taskflow.cli.create_form", _create_form)

    result = runner.invoke(app, ["create", "--data-root", str(root)])
    assert result.exit_code == 0, result.output
    assert seen_errors == [None, {"dueDate": "Due date cannot be in the past"}]
    assert [record["title"] for record in _stored(root)] == ["From form"]


def test_edit_without_id_prefills_form_with_flag_values(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    root = _init(tmp_path)
    task_id = _create(root, "Old title", due=_days(3))
    seen_defaults = []

    def _edit_form(task, defaults, errors):
        seen_defaults.append(defaults)
        return defaults

    monkeypatch.setattr("taskflow.cli._can_interact", lambda: True)
    monkeypatch.setattr("taskflow.cli.choose_task", lambda tasks, title: task_id)
    monkeypatch.setattr("taskflow.cli.edit_form", _edit_form)

    args = ["edit", "--title", "New title", "--status", "in-progress", "--data-root", str(root)]
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    form, status = seen_defaults[0]
    assert (form.title, status) == ("New title", "in-progress")
    assert [(record["title"], record["status"]) for record in _stored(root)] == [("New title", "in-progress")]


def test_list_filters_and_sorts(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "Buy milk", "--priority", "low", due=_days(1))
    _create(root, "Ship release", "--priority", "high", due=_days(5))
    _create(root, "Milk the budget", "--priority", "medium", due=_days(2))

    by_due = _list_json(root)
    assert [task["title"] for task in by_due["tasks"]] == ["Buy milk", "Milk the budget", "Ship release"]

    by_priority = _list_json(root, "--sort", "priority")
    assert [task["priority"] for task in by_priority["tasks"]] == ["high", "medium", "low"]

    searched = _list_json(root, "--search", "MILK", "--sort", "title")
    assert searched["total"] == 3
    assert [task["title"] for task in searched["tasks"]] == ["Buy milk", "Milk the budget"]

    filtered = _list_json(root, "--priority", "high", "--status", "pending")
    assert [task["title"] for task in filtered["tasks"]] == ["Ship release"]


def test_list_uses_configured_default_sort(tmp_path: Path) -> None:
    root = _init(tmp_path)
    (root / "config.yaml").write_text("settings:\n  default_sort: title\n", encoding="utf-8")
    _create(root, "zeta", due=_days(1))
    _create(root, "alpha", due=_days(4))

    payload = _list_json(root)
    assert [task["title"] for task in payload["tasks"]] == ["alpha", "zeta"]


def test_list_rejects_unknown_filter_value(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["list", "--status", "done", "--data-root", str(root)])
    assert result.exit_code == 2


def test_list_plain_output_and_empty_states(tmp_path: Path) -> None:
    root = _init(tmp_path)
    empty = runner.invoke(app, ["list", "--data-root", str(root)])
    assert "No tasks yet" in empty.output

    _create(root, "Write report")
    listed = runner.invoke(app, ["list", "--data-root", str(root)])
    assert "Write report" in listed.output
    assert "Showing 1 of 1 tasks" in listed.output

    nothing = runner.invoke(app, ["list", "--search", "zzz", "--data-root", str(root)])
    assert "No tasks match your filters" in nothing.output


def test_list_survives_malformed_storage(tmp_path: Path) -> None:
    root = _init(tmp_path)
    storage.slot_path(root).write_text("[{broken", encoding="utf-8")

    result = runner.invoke(app, ["list", "--data-root", str(root)])
    assert result.exit_code == 0
    assert "No tasks yet" in result.output


def test_view_accepts_id_prefix(tmp_path: Path) -> None:
    root = _init(tmp_path)
    task_id = _create(root, "Write report")

    result = runner.invoke(app, ["view", task_id[:8], "--json", "--data-root", str(root)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["id"] == task_id
    assert payload["overdue"] is False


def test_view_unknown_task_fails(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["view", "nope", "--data-root", str(root)])
    assert result.exit_code == 1
    assert "Task not found: nope" in result.output


def test_view_requires_id_when_not_interactive(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "Write report")
    result = runner.invoke(app, ["view", "--data-root", str(root)])
    assert result.exit_code == 1
    assert "task id is required in non-interactive mode" in result.output


def test_edit_updates_only_given_fields(tmp_path: Path) -> None:
    root = _init(tmp_path)
    task_id = _create(root, "Write report")
    before = _stored(root)[0]

    result = runner.invoke(
        app,
        ["edit", task_id, "--status", "in-progress", "--due", _days(-10), "--data-root", str(root)],
    )
    assert result.exit_code == 0, result.output

    after = _stored(root)[0]
    assert after["status"] == "in-progress"
    assert after["dueDate"] == _days(-10)
    assert after["title"] == before["title"]
    assert after["createdAt"] == before["createdAt"]
    assert after["updatedAt"] >= before["updatedAt"]


def test_edit_rejects_empty_title(tmp_path: Path) -> None:
    root = _init(tmp_path)
    task_id = _create(root, "Write report")
    result = runner.invoke(app, ["edit", task_id, "--title", " ", "--data-root", str(root)])
    assert result.exit_code == 1
    assert "Error: title: Title is required" in result.output
    assert _stored(root)[0]["title"] == "Write report"


def test_toggle_round_trip(tmp_path: Path) -> None:
    root = _init(tmp_path)
    task_id = _create(root, "Write report")

    first = runner.invoke(app, ["toggle", task_id, "--data-root", str(root)])
    assert "Marked completed: Write report" in first.output
    second = runner.invoke(app, ["toggle", task_id, "--data-root", str(root)])
    assert "Marked pending: Write report" in second.output
    assert _stored(root)[0]["status"] == "pending"


def test_delete_twice_is_noop(tmp_path: Path) -> None:
    root = _init(tmp_path)
    keep_id = _create(root, "Keep")
    drop_id = _create(root, "Drop")

    r1 = runner.invoke(app, ["delete", drop_id, "--data-root", str(root)])
    assert r1.exit_code == 0
    assert "Deleted: Drop" in r1.output

    r2 = runner.invoke(app, ["delete", drop_id, "--data-root", str(root)])
    assert r2.exit_code == 0
    assert "nothing deleted" in r2.output
    assert [record["id"] for record in _stored(root)] == [keep_id]


def test_dashboard_json_stats(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "A", due=_days(0))
    done_id = _create(root, "B", due=_days(1))
    runner.invoke(app, ["toggle", done_id, "--data-root", str(root)])

    records = _stored(root)
    records[0]["dueDate"] = _days(-1)
    storage.slot_path(root).write_text(json.dumps(records), encoding="utf-8")

    result = runner.invoke(app, ["dashboard", "--json", "--data-root", str(root)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["stats"] == {
        "total": 2,
        "completed": 1,
        "pending": 1,
        "overdue": 1,
        "completionRate": 50,
    }
    assert [task["title"] for task in payload["recent"]] == ["A", "B"]


def test_dashboard_plain(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "Write report")
    result = runner.invoke(app, ["dashboard", "--data-root", str(root)])
    assert result.exit_code == 0
    assert "0 of 1 tasks completed" in result.output


def test_root_without_command_prints_help_when_not_interactive(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["--nointeractive", "--data-root", str(root)])
    assert result.exit_code == 0
    assert "Usage" in result.output

    no_tty = runner.invoke(app, ["--data-root", str(root)])
    assert no_tty.exit_code == 2
    assert "requires an interactive terminal" in no_tty.output


def test_root_command_picker_invokes_selected_command(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    root = _init(tmp_path)
    _create(root, "Write report")
    monkeypatch.setattr("taskflow.cli._can_interact", lambda: True)
    monkeypatch.setattr("taskflow.cli.choose_command", lambda choices, title: "dashboard")

    result = runner.invoke(app, ["--data-root", str(root)])
    assert result.exit_code == 0, result.output
    assert "0 of 1 tasks completed" in result.output
