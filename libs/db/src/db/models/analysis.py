from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: ea_analysis_results
# ---------------------------


class EaAnalysisResult(Base):
    """One stored analysis per document.

    ``summary`` is derived from ``transactions`` and rewritten together with
    it. ``version`` increments on every write and backs compare-and-swap
    corrections.
    """

    __tablename__ = "ea_analysis_results"

    document_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    transactions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    summary: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )

    __table_args__ = (
        CheckConstraint(
            "source IN ('model','pattern','amounts','demo')",
            name="ck_ea_analysis_results_source",
        ),
        CheckConstraint("version >= 1", name="ck_ea_analysis_results_version"),
    )
