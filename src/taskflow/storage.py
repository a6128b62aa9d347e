"""Storage slot IO and config loading for taskflow."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Iterable

import yaml

from .models import SORT_KEYS, Task, TaskStorageError

logger = logging.getLogger(__name__)

DATA_DIR_NAME = ".taskflow"
STORAGE_SLOT = "taskflow-tasks"
DEFAULT_INTERACTIVE_ENABLED = True
DEFAULT_SORT = "dueDate"


def find_repo_root(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in [start, *start.parents]:
        if (candidate / ".git").exists():
            return candidate
    return None


def discover_data_roots(start: Path) -> list[Path]:
    start = start.resolve()
    roots: list[Path] = []
    for candidate in [start, *start.parents]:
        data_dir = candidate / DATA_DIR_NAME
        if data_dir.is_dir():
            roots.append(data_dir)
    return roots


def choose_data_root(start: Path) -> tuple[Path | None, bool]:
    roots = discover_data_roots(start)
    if not roots:
        return None, False
    return roots[0], len(roots) > 1


def default_init_root(start: Path) -> Path:
    repo_root = find_repo_root(start)
    base = repo_root if repo_root is not None else start.resolve()
    return base / DATA_DIR_NAME


def slot_path(data_root: Path) -> Path:
    return data_root / f"{STORAGE_SLOT}.json"


def config_path(data_root: Path) -> Path:
    return data_root / "config.yaml"


def default_config(
    interactive_enabled: bool = DEFAULT_INTERACTIVE_ENABLED,
    default_sort: str = DEFAULT_SORT,
) -> dict[str, Any]:
    return {
        "settings": {
            "interactive_enabled": interactive_enabled,
            "default_sort": default_sort,
        }
    }


def write_default_config_if_missing(data_root: Path) -> bool:
    path = config_path(data_root)
    if path.exists():
        return False
    payload = yaml.safe_dump(default_config(), sort_keys=False, default_flow_style=False)
    path.write_text(payload, encoding="utf-8")
    return True


def read_config(data_root: Path, warn: Callable[[str], None] | None = None) -> dict[str, Any]:
    path = config_path(data_root)
    if not path.exists():
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        if warn is not None:
            warn(f"Unable to parse config at {path}. Falling back to defaults.")
        return {}
    if not isinstance(payload, dict):
        if warn is not None:
            warn(f"Invalid config format at {path}. Falling back to defaults.")
        return {}
    return payload


def _settings(data_root: Path, warn: Callable[[str], None] | None) -> dict[str, Any]:
    data = read_config(data_root, warn=warn)
    for key in data.keys():
        if key != "settings" and warn is not None:
            warn(f"Unsupported config key '{key}' in {config_path(data_root)}. Ignoring.")

    settings = data.get("settings", {})
    if not isinstance(settings, dict):
        if warn is not None:
            warn(f"Invalid settings section in {config_path(data_root)}. Using defaults.")
        return {}

    supported = {"interactive_enabled", "default_sort"}
    for key in settings.keys():
        if key not in supported and warn is not None:
            warn(f"Unsupported settings key '{key}' in {config_path(data_root)}. Ignoring.")
    return settings


def resolve_interactive_enabled(
    data_root: Path,
    warn: Callable[[str], None] | None = None,
) -> bool:
    value = _settings(data_root, warn).get("interactive_enabled")
    if value is None:
        return DEFAULT_INTERACTIVE_ENABLED
    if not isinstance(value, bool):
        if warn is not None:
            warn(
                f"Invalid settings.interactive_enabled in {config_path(data_root)}. "
                f"Using default '{DEFAULT_INTERACTIVE_ENABLED}'."
            )
        return DEFAULT_INTERACTIVE_ENABLED
    return value


def resolve_default_sort(
    data_root: Path,
    warn: Callable[[str], None] | None = None,
) -> str:
    value = _settings(data_root, warn).get("default_sort")
    if value is None:
        return DEFAULT_SORT
    if value not in SORT_KEYS:
        if warn is not None:
            warn(
                f"Invalid settings.default_sort in {config_path(data_root)}. "
                f"Using default '{DEFAULT_SORT}'."
            )
        return DEFAULT_SORT
    return value


def load_tasks(data_root: Path) -> list[Task]:
    """Read the storage slot.

    A missing slot or an unparseable payload reads as an empty collection.
    Records that do not have the task shape are skipped.
    """
    path = slot_path(data_root)
    if not path.exists():
        return []
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable task data at %s: %s", path, exc)
        return []
    if not isinstance(payload, list):
        logger.warning("Ignoring task data at %s: expected a JSON array", path)
        return []

    tasks: list[Task] = []
    seen_ids: set[str] = set()
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            logger.warning("Skipping task record %d in %s: not an object", index, path)
            continue
        try:
            task = Task.from_dict(item)
        except ValueError as exc:
            logger.warning("Skipping task record %d in %s: %s", index, path, exc)
            continue
        if task.id in seen_ids:
            logger.warning("Skipping task record %d in %s: duplicate id %s", index, path, task.id)
            continue
        seen_ids.add(task.id)
        tasks.append(task)
    logger.debug("Loaded %d tasks from %s", len(tasks), path)
    return tasks


def save_tasks(data_root: Path, tasks: Iterable[Task]) -> None:
    """Overwrite the storage slot; readers never observe a partial write."""
    path = slot_path(data_root)
    payload = [task.to_dict() for task in tasks]
    tmp_path = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        raise TaskStorageError(f"Unable to save tasks to {path}: {exc}") from exc
    logger.debug("Saved %d tasks to %s", len(payload), path)
