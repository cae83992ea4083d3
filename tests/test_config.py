from pathlib import Path

import pytest

from expense_analysis import config


def test_provider_defaults_to_none():
    assert config.model_provider() == "none"


def test_provider_follows_available_keys(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g")
    assert config.model_provider() == "gemini"
    monkeypatch.setenv("OPENAI_API_KEY", "o")
    assert config.model_provider() == "openai"


def test_explicit_provider_wins(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OPENAI_API_KEY", "o")
    monkeypatch.setenv("EA_MODEL_PROVIDER", " Gemini ")
    assert config.model_provider() == "gemini"

    monkeypatch.setenv("EA_MODEL_PROVIDER", "claude")
    assert config.model_provider() == "openai"


@pytest.mark.parametrize(
    ("raw", "expected"), [(None, None), ("2.5", 2.5), ("0", None), ("-1", None), ("soon", None)]
)
def test_model_timeout(raw: str | None, expected: float | None, monkeypatch: pytest.MonkeyPatch):
    if raw is not None:
        monkeypatch.setenv("EA_MODEL_TIMEOUT", raw)
    assert config.model_timeout() == expected


def test_model_names(monkeypatch: pytest.MonkeyPatch):
    assert config.openai_model() == config.DEFAULT_OPENAI_MODEL
    monkeypatch.setenv("EA_GEMINI_MODEL", "gemini-2.5-pro")
    assert config.gemini_model() == "gemini-2.5-pro"


def test_results_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    assert config.results_dir() == (tmp_path / "results").resolve()

    monkeypatch.delenv("EA_RESULTS_DIR")
    monkeypatch.chdir(tmp_path)
    assert config.results_dir() == (tmp_path / "results").resolve()


@pytest.mark.parametrize(
    ("raw", "n", "expected"),
    [(None, 10, 4), (None, 2, 2), ("8", 10, 8), ("8", 3, 3), ("0", 10, 4), ("x", 10, 4)],
)
def test_max_workers(raw: str | None, n: int, expected: int, monkeypatch: pytest.MonkeyPatch):
    if raw is not None:
        monkeypatch.setenv("EA_MAX_WORKERS", raw)
    assert config.max_workers(n) == expected
