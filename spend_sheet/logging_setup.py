"""Centralized logging configuration for the ``spend_sheet`` package.

Entrypoints (the CLI, the HTTP app factory) call ``configure_logging`` once.
Library modules only call ``get_logger("spend_sheet.<module>")`` and never
attach handlers of their own.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "spend_sheet"
_LEVEL_ENV = "SPEND_SHEET_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _level_from_text(text: str) -> int | None:
    text = text.strip().upper()
    if text.isdigit():
        return int(text)
    numeric = getattr(logging, text, None)
    return numeric if isinstance(numeric, int) else None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        parsed = _level_from_text(level)
        if parsed is not None:
            return parsed
    # Env override when ``level`` is missing or unrecognised
    env_val = os.getenv(_LEVEL_ENV)
    if env_val:
        parsed = _level_from_text(env_val)
        if parsed is not None:
            return parsed
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach a single ``StreamHandler`` to the package root logger.

    ``level`` falls back to ``SPEND_SHEET_LOG_LEVEL`` and then ``INFO``.
    Repeated calls are no-ops.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, silencing the package root until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
