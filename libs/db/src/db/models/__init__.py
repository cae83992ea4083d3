"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the analysis-result model used by ``expense_analysis``.
"""

from .analysis import Base, EaAnalysisResult

__all__ = [
    "Base",
    "EaAnalysisResult",
]
