"""Terminal pickers for taskflow, drawn with InquirerPy.

Each picker returns the chosen value, ``None`` when the user backs out
(Ctrl-C, Ctrl-D, or an empty list), and raises
:class:`SelectorUnavailableError` when no picker can be drawn so callers
can fall back to plain prompts.
"""

from __future__ import annotations

import sys
from typing import Any, Callable


class SelectorUnavailableError(RuntimeError):
    """No terminal picker can be shown here."""


Option = tuple[str, str]


def _load_inquirer():
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        raise SelectorUnavailableError("interactive selector requires a TTY")
    try:
        from InquirerPy import inquirer
    except ImportError as exc:  # pragma: no cover - environment dependent
        raise SelectorUnavailableError("InquirerPy unavailable") from exc
    return inquirer


def _run(build: Callable[[Any], Any], what: str) -> str | None:
    inquirer = _load_inquirer()
    try:
        answer = build(inquirer).execute()
    except (KeyboardInterrupt, EOFError):
        return None
    except Exception as exc:
        raise SelectorUnavailableError(f"{what} failed") from exc
    return None if answer is None else str(answer)


def _as_choices(options: list[Option]) -> list[dict[str, str]]:
    return [{"name": label, "value": value} for value, label in options]


_COMMON = {"vi_mode": False, "mandatory": False, "raise_keyboard_interrupt": True}


def select_one(title: str, options: list[Option], *, default_value: str | None = None) -> str | None:
    """Arrow-key list picker over ``(value, label)`` pairs."""
    if not options:
        _load_inquirer()
        return None
    return _run(
        lambda inquirer: inquirer.select(
            message=title,
            choices=_as_choices(options),
            default=default_value,
            pointer=">",
            **_COMMON,
        ),
        "list picker",
    )


def select_fuzzy(title: str, options: list[Option], *, default_value: str | None = None) -> str | None:
    """Type-to-filter picker, used for long task lists."""
    if not options:
        _load_inquirer()
        return None
    return _run(
        lambda inquirer: inquirer.fuzzy(
            message=title,
            choices=_as_choices(options),
            default=default_value,
            **_COMMON,
        ),
        "fuzzy picker",
    )


def select_text(title: str, *, default_value: str = "") -> str | None:
    """Single-line text input prefilled with ``default_value``."""
    return _run(
        lambda inquirer: inquirer.text(message=title, default=default_value, **_COMMON),
        "text prompt",
    )
