"""Exception types raised across ``expense_analysis``.

The pipeline recovers ``TransportFailure`` and ``ParseFailure`` internally by
demoting to the pattern-based fallback; they never escape
:func:`expense_analysis.api.analyze`. The remaining types belong to the
document and storage boundaries and are surfaced to callers.
"""

from __future__ import annotations


class ExpenseAnalysisError(Exception):
    """Base class for package errors."""


class TransportFailure(ExpenseAnalysisError):
    """The model collaborator was unreachable, errored, or timed out."""


class ParseFailure(ExpenseAnalysisError, ValueError):
    """The model replied, but no usable transactions could be recovered."""


class NoJsonFound(ParseFailure):
    """The model reply contained no ``{ ... }`` object at all."""


class UnsupportedDocument(ExpenseAnalysisError, ValueError):
    """A document's format has no text extractor."""


class ResultNotFound(ExpenseAnalysisError, KeyError):
    """No stored analysis exists for the requested document identifier."""

    def __init__(self, document_id: str) -> None:
        super().__init__(document_id)
        self.document_id = document_id

    def __str__(self) -> str:
        return f"analysis result not found: {self.document_id}"


class InvalidTransactionIndex(ExpenseAnalysisError, IndexError):
    """A correction referenced a transaction position outside the result."""


class ConcurrentUpdateError(ExpenseAnalysisError, RuntimeError):
    """A compare-and-swap correction kept losing to concurrent writers."""


__all__ = [
    "ExpenseAnalysisError",
    "TransportFailure",
    "ParseFailure",
    "NoJsonFound",
    "UnsupportedDocument",
    "ResultNotFound",
    "InvalidTransactionIndex",
    "ConcurrentUpdateError",
]
