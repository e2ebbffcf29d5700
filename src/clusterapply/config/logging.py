"""Shared logging helpers for clusterapply."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Set up the root logger for CLI runs.

    Thin wrapper over ``logging.basicConfig``. ``force=True`` replaces handlers
    installed earlier, which tests and repeated CLI invocations rely on.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
