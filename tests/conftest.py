"""Pytest configuration for test isolation.

Results are persisted under a project-relative directory (``./results``) by
default, and the model provider is picked from whatever API keys happen to be
in the environment. Both would make tests depend on the developer's machine:
a stray ``OPENAI_API_KEY`` would send real requests, and stored results from
one test could be read by another.

An autouse fixture points the results root at the test's own temporary
directory and clears every provider/database setting, so each test starts
from "no model configured, file store in tmp".
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

_CLEARED_ENV = (
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "EA_MODEL_PROVIDER",
    "EA_OPENAI_MODEL",
    "EA_GEMINI_MODEL",
    "EA_MODEL_TIMEOUT",
    "EA_MAX_WORKERS",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _CLEARED_ENV:
        monkeypatch.delenv(name, raising=False)

    results_root = tmp_path / "results"
    results_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("EA_RESULTS_DIR", os.fspath(results_root))
