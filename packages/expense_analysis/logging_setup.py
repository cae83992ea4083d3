"""Logging for the ``expense_analysis`` package.

Library modules only ever call ``get_logger("expense_analysis.<module>")``;
the package root logger stays silent (a ``NullHandler``) until an entrypoint
such as the CLI calls :func:`configure_logging`, which installs one
``StreamHandler`` and stops propagation to the root logger.

Messages are short ``event key=value`` lines, for example
``analyze:model_failed error=TransportFailure latency_ms=812``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "expense_analysis"
_LEVEL_ENV = "EXPENSE_ANALYSIS_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# SDK and PDF-parsing loggers that are chatty at INFO; held at WARNING unless DEBUG is asked for.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "openai", "google_genai", "pdfminer")

_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Install the package's single handler; later calls are no-ops.

    Parameters
    ----------
    level:
        ``int`` or level name. ``None`` reads ``EXPENSE_ANALYSIS_LOG_LEVEL``
        and defaults to ``INFO``; unknown names also mean ``INFO``.
    fmt:
        Format string (default ``"%(asctime)s %(name)s %(levelname)s %(message)s"``).
    stream:
        Where the handler writes (``sys.stderr``).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = _parse_level(level)
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    pkg_logger.handlers = [
        h for h in pkg_logger.handlers if not isinstance(h, logging.NullHandler)
    ]

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(resolved)
    pkg_logger.propagate = False

    if resolved > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``; the package root gets a ``NullHandler`` if unconfigured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
