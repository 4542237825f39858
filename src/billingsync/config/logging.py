"""Shared logging helpers for billingsync."""

from __future__ import annotations

import logging
import os


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the level
    defaults to ``LOG_LEVEL`` from the environment (INFO when unset). Pass
    ``force=True`` to reconfigure during tests or specialised entry points.
    """

    if level is None:
        level_name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        level = logging.getLevelNamesMapping().get(level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
