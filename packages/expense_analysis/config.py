"""Environment-driven settings.

Values are read at call time (never at import) so tests and the CLI's
``.env`` loading can change them freely.
"""

from __future__ import annotations

import os
from pathlib import Path

from .logging_setup import get_logger

_logger = get_logger("expense_analysis.config")

_PROVIDERS: tuple[str, ...] = ("openai", "gemini", "none")

DEFAULT_OPENAI_MODEL = "gpt-5"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    s = raw.strip()
    return s or None


def model_provider() -> str:
    """Resolve the model provider name.

    ``EA_MODEL_PROVIDER`` wins when set to a known value. Otherwise the first
    provider with an API key in the environment is chosen (OpenAI, then
    Gemini), and ``"none"`` when neither key is present.
    """

    explicit = _env_str("EA_MODEL_PROVIDER")
    if explicit is not None:
        name = explicit.lower()
        if name in _PROVIDERS:
            return name
        _logger.warning("config:unknown_provider value=%s", explicit)
    if _env_str("OPENAI_API_KEY"):
        return "openai"
    if _env_str("GEMINI_API_KEY"):
        return "gemini"
    return "none"


def openai_model() -> str:
    return _env_str("EA_OPENAI_MODEL") or DEFAULT_OPENAI_MODEL


def gemini_model() -> str:
    return _env_str("EA_GEMINI_MODEL") or DEFAULT_GEMINI_MODEL


def model_timeout() -> float | None:
    """Seconds allowed for one model call, or ``None`` for no deadline."""

    raw = _env_str("EA_MODEL_TIMEOUT")
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        _logger.warning("config:invalid_timeout value=%s", raw)
        return None
    return value if value > 0 else None


def results_dir() -> Path:
    """Return the file-store root.

    Default: ``./results`` under the current working directory.
    Override: ``EA_RESULTS_DIR`` (absolute or relative).
    """

    root = _env_str("EA_RESULTS_DIR")
    if root:
        return Path(root).expanduser().resolve()
    return (Path.cwd() / "results").resolve()


def database_url() -> str | None:
    return _env_str("DATABASE_URL")


def max_workers(n_documents: int) -> int:
    """Worker count for analyzing several documents at once.

    Honors ``EA_MAX_WORKERS`` when it is a positive integer, capped to the
    number of documents; defaults to ``min(4, n_documents)``.
    """

    raw = _env_str("EA_MAX_WORKERS")
    try:
        requested = int(raw) if raw else None
    except ValueError:
        requested = None
    if requested is not None and requested > 0:
        return max(1, min(requested, n_documents))
    return max(1, min(4, n_documents))
