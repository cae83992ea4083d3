"""Public interface for the ``expense_analysis`` package.

This module exposes the package's API functions and public models/types as
the stable import surface; there is no runtime logic here, only re-exports.
"""

from .api import analyze, fallback_analyze, recompute_summary
from .errors import (
    ConcurrentUpdateError,
    ExpenseAnalysisError,
    InvalidTransactionIndex,
    NoJsonFound,
    ParseFailure,
    ResultNotFound,
    TransportFailure,
    UnsupportedDocument,
)
from .models import AnalysisResult, Summary, TransactionRecord
from .pipeline import AnalysisPipeline, ModelCaller
from .taxonomy import CATEGORIES, TAXONOMY, TAXONOMY_VERSION, UNKNOWN

__all__ = [
    # API
    "analyze",
    "fallback_analyze",
    "recompute_summary",
    "AnalysisPipeline",
    "ModelCaller",
    # Models
    "AnalysisResult",
    "Summary",
    "TransactionRecord",
    # Taxonomy
    "CATEGORIES",
    "TAXONOMY",
    "TAXONOMY_VERSION",
    "UNKNOWN",
    # Errors
    "ExpenseAnalysisError",
    "TransportFailure",
    "ParseFailure",
    "NoJsonFound",
    "UnsupportedDocument",
    "ResultNotFound",
    "InvalidTransactionIndex",
    "ConcurrentUpdateError",
]
