"""Data models for ``expense_analysis``.

All models are immutable pydantic v2 models. ``AnalysisResult.summary`` is a
computed field derived from ``transactions`` on every access, so a stored or
corrected result can never carry a stale summary; any summary present in
input data is ignored and recomputed.
"""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .normalizers import normalize_date, parse_amount
from .taxonomy import UNKNOWN, canonical_label

DEFAULT_CONFIDENCE: int = 50

# Which extraction path produced a result's transactions.
type ResultSource = Literal["model", "pattern", "amounts", "demo"]


class TransactionRecord(BaseModel):
    """One financial movement.

    ``amount`` is signed (negative = outflow). ``category`` is always one of
    the taxonomy labels or ``"Unknown"``; unrecognized labels are mapped to
    ``"Unknown"`` rather than rejected.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    date: str
    description: str
    amount: float
    category: str = UNKNOWN
    subcategory: str | None = None
    confidence: int = DEFAULT_CONFIDENCE

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, v: Any) -> Any:
        if isinstance(v, str):
            s = normalize_date(v)
            if not s:
                raise ValueError("date must be non-empty")
            return s
        return v

    @field_validator("description")
    @classmethod
    def _description_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("description must be non-empty")
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("amount must be a number")
        if isinstance(v, str):
            parsed = parse_amount(v)
            if parsed is None:
                raise ValueError(f"amount is not numeric: {v!r}")
            return parsed
        return v

    @field_validator("amount")
    @classmethod
    def _amount_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("amount must be finite")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def _canonical_category(cls, v: Any) -> str:
        return canonical_label(v) or UNKNOWN

    @field_validator("subcategory", mode="before")
    @classmethod
    def _blank_subcategory_is_none(cls, v: Any) -> Any:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, v: Any) -> int:
        if v is None or isinstance(v, bool):
            return DEFAULT_CONFIDENCE
        try:
            value = float(v)
        except (TypeError, ValueError):
            return DEFAULT_CONFIDENCE
        if not math.isfinite(value):
            return DEFAULT_CONFIDENCE
        return max(0, min(100, round(value)))


class Summary(BaseModel):
    """Aggregate statistics over a transaction list.

    Serialized with camelCase keys (``totalTransactions``, ``categoryAmounts``
    ...). Amount totals use ``|amount|``: they track magnitude, not net flow.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    total_transactions: int
    categorized_transactions: int
    category_breakdown: dict[str, int]
    total_amount: float
    category_amounts: dict[str, float]


class AnalysisResult(BaseModel):
    """One document's transactions plus their derived summary."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    transactions: tuple[TransactionRecord, ...]
    source: ResultSource = "model"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def summary(self) -> Summary:
        from .summary import compute_summary  # imported lazily to avoid a cycle

        return compute_summary(self.transactions)

    def with_category(
        self, index: int, category: str, subcategory: str | None = None
    ) -> AnalysisResult:
        """Return a copy with one transaction re-categorized.

        ``subcategory`` replaces the existing value only when provided.
        Raises ``IndexError`` for positions outside the transaction list.
        """

        if not 0 <= index < len(self.transactions):
            raise IndexError(f"transaction index out of range: {index}")
        current = self.transactions[index]
        data = current.model_dump()
        data["category"] = category
        if subcategory:
            data["subcategory"] = subcategory
        updated = list(self.transactions)
        updated[index] = TransactionRecord.model_validate(data)
        return AnalysisResult(transactions=tuple(updated), source=self.source)

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-ready mapping (camelCase summary keys, ``None`` fields omitted)."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
