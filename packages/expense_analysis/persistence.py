# ruff: noqa: I001
"""SQL-backed result storage.

Rows live in ``ea_analysis_results`` (ORM model in ``db.models.analysis``,
sessions from ``db.client``). Each row holds the transaction list and its
summary as JSON plus a ``version`` counter.

Corrections use optimistic compare-and-swap on ``version``: read, apply the
correction in memory, then ``UPDATE ... WHERE version = :read_version``. A
lost race re-reads and retries a bounded number of times before raising
:class:`~expense_analysis.errors.ConcurrentUpdateError`.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.analysis import EaAnalysisResult
from .errors import ConcurrentUpdateError, ResultNotFound
from .logging_setup import get_logger
from .models import AnalysisResult
from .storage import apply_correction, validate_category, validate_document_id

_MAX_CAS_ATTEMPTS: int = 5

_logger = get_logger("expense_analysis.persistence")


def _row_values(result: AnalysisResult) -> dict[str, Any]:
    data = result.to_json_dict()
    return {
        "transactions": data["transactions"],
        "summary": data["summary"],
        "source": result.source,
    }


def _row_to_result(row: EaAnalysisResult) -> AnalysisResult:
    # The stored summary is ignored; it is recomputed from the transactions.
    return AnalysisResult.model_validate({"transactions": row.transactions, "source": row.source})


def _load_row(session: Session, document_id: str) -> EaAnalysisResult:
    row = session.get(EaAnalysisResult, document_id)
    if row is None:
        raise ResultNotFound(document_id)
    return row


class SqlResultStore:
    """Result store over the shared ``db`` engine bound to ``database_url``."""

    def __init__(self, database_url: str | None = None) -> None:
        self._database_url = database_url

    def save(self, document_id: str, result: AnalysisResult) -> None:
        validate_document_id(document_id)
        values = _row_values(result)
        with session_scope(database_url=self._database_url) as session:
            res = session.execute(
                update(EaAnalysisResult)
                .where(EaAnalysisResult.document_id == document_id)
                .values(
                    **values,
                    version=EaAnalysisResult.version + 1,
                    updated_at=func.now(),
                )
            )
            if res.rowcount == 0:
                session.add(EaAnalysisResult(document_id=document_id, version=1, **values))
        _logger.info(
            "persistence:saved document_id=%s transactions=%d",
            document_id,
            len(result.transactions),
        )

    def load(self, document_id: str) -> AnalysisResult:
        validate_document_id(document_id)
        with session_scope(database_url=self._database_url) as session:
            return _row_to_result(_load_row(session, document_id))

    def update_category(
        self,
        document_id: str,
        index: int,
        category: str,
        subcategory: str | None = None,
    ) -> AnalysisResult:
        validate_document_id(document_id)
        validate_category(category)

        for attempt in range(1, _MAX_CAS_ATTEMPTS + 1):
            with session_scope(database_url=self._database_url) as session:
                row = _load_row(session, document_id)
                current = _row_to_result(row)
                read_version = row.version

            updated = apply_correction(current, index, category, subcategory)

            with session_scope(database_url=self._database_url) as session:
                res = session.execute(
                    update(EaAnalysisResult)
                    .where(
                        (EaAnalysisResult.document_id == document_id)
                        & (EaAnalysisResult.version == read_version)
                    )
                    .values(
                        **_row_values(updated),
                        version=read_version + 1,
                        updated_at=func.now(),
                    )
                )
                swapped = res.rowcount == 1

            if swapped:
                _logger.info(
                    "persistence:corrected document_id=%s index=%d version=%d",
                    document_id,
                    index,
                    read_version + 1,
                )
                return updated
            _logger.warning(
                "persistence:cas_conflict document_id=%s attempt=%d version=%d",
                document_id,
                attempt,
                read_version,
            )

        raise ConcurrentUpdateError(
            f"correction of {document_id} lost {_MAX_CAS_ATTEMPTS} consecutive update races"
        )


__all__ = ["SqlResultStore"]
