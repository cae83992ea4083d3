"""Summary aggregation over transaction records.

Always recomputed from the full transaction list; never patched
incrementally. Amounts accumulate as ``Decimal`` so per-category totals add
up exactly to the overall total before being rounded to cents.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from .models import Summary, TransactionRecord
from .taxonomy import UNKNOWN

_CENT = Decimal("0.01")


def _magnitude(amount: float) -> Decimal:
    # str() keeps the shortest repr, so 45.99 stays 45.99 rather than its binary expansion
    return abs(Decimal(str(amount)))


def _to_float(value: Decimal) -> float:
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def compute_summary(transactions: Iterable[TransactionRecord]) -> Summary:
    """Return counts and absolute-amount totals per category.

    - ``total_transactions``: number of records.
    - ``categorized_transactions``: records whose category is not ``Unknown``.
    - ``category_breakdown``: category -> count, in first-seen order.
    - ``total_amount``: sum of ``|amount|``.
    - ``category_amounts``: category -> sum of ``|amount|``.
    """

    total = 0
    categorized = 0
    breakdown: dict[str, int] = {}
    amounts: dict[str, Decimal] = {}
    total_amount = Decimal(0)

    for tx in transactions:
        category = tx.category or UNKNOWN
        magnitude = _magnitude(tx.amount)
        total += 1
        if category != UNKNOWN:
            categorized += 1
        breakdown[category] = breakdown.get(category, 0) + 1
        amounts[category] = amounts.get(category, Decimal(0)) + magnitude
        total_amount += magnitude

    return Summary(
        total_transactions=total,
        categorized_transactions=categorized,
        category_breakdown=breakdown,
        total_amount=_to_float(total_amount),
        category_amounts={k: _to_float(v) for k, v in amounts.items()},
    )


recompute_summary = compute_summary
