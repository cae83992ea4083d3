"""Public API for the ``expense_analysis`` package.

Thin entry points over :class:`~expense_analysis.pipeline.AnalysisPipeline`
and :func:`~expense_analysis.summary.compute_summary`. The model collaborator
defaults to whatever the environment configures (see
:mod:`expense_analysis.config`); with no provider configured every analysis
takes the fallback path.
"""

from __future__ import annotations

from collections.abc import Iterable

from . import config
from .model_clients import create_model_caller
from .models import AnalysisResult, Summary, TransactionRecord
from .pipeline import AnalysisPipeline, ModelCaller
from .summary import compute_summary


def analyze(
    raw_text: str,
    *,
    call_model: ModelCaller | None = None,
    timeout: float | None = None,
) -> AnalysisResult:
    """Classify the transactions in one document's extracted text.

    Input
    -----
    raw_text:
        Text extracted from a bank statement (possibly empty).
    call_model:
        Model collaborator; defaults to the configured provider.
    timeout:
        Deadline for the model call in seconds; defaults to
        ``EA_MODEL_TIMEOUT``.

    Output
    ------
    A non-empty :class:`AnalysisResult`. Model and parse failures demote to
    the pattern-based fallback and are never raised.
    """

    caller = call_model if call_model is not None else create_model_caller()
    deadline = timeout if timeout is not None else config.model_timeout()
    return AnalysisPipeline(caller, timeout=deadline).analyze(raw_text)


def fallback_analyze(raw_text: str) -> AnalysisResult:
    """Analyze with the pattern-based extractor only (no model call)."""

    return AnalysisPipeline().fallback_analyze(raw_text)


def recompute_summary(transactions: Iterable[TransactionRecord]) -> Summary:
    """Summarize ``transactions`` (used after corrections)."""

    return compute_summary(transactions)
