"""Logging configuration for the taskflow CLI."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "taskflow"


class _StderrHandler(logging.StreamHandler):
    """Stream handler that always writes to the current ``sys.stderr``."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    def emit(self, record: logging.LogRecord) -> None:
        # sys.stderr may be swapped after setup (pytest capture, CliRunner).
        self.stream = sys.stderr
        super().emit(record)


def setup_logging(*, verbose: bool = False) -> None:
    """Send taskflow logs to stderr.

    Warnings only by default; ``verbose`` adds info and debug records.
    Safe to call more than once.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(logger.handlers):
        if isinstance(handler, _StderrHandler):
            logger.removeHandler(handler)

    handler = _StderrHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
