import math

import pytest
from pydantic import ValidationError

from expense_analysis.api import recompute_summary
from expense_analysis.models import AnalysisResult, TransactionRecord
from expense_analysis.summary import compute_summary


def _tx(description: str, amount: float, category: str) -> TransactionRecord:
    return TransactionRecord(
        date="2025-06-01", description=description, amount=amount, category=category
    )


def _sample() -> list[TransactionRecord]:
    return [
        _tx("Paper", -45.99, "Office costs"),
        _tx("Toner", -10.01, "Office costs"),
        _tx("Refund", 20, "Unknown"),
        _tx("Train", -0.1, "Travel costs"),
        _tx("Bus", -0.2, "Travel costs"),
    ]


def test_summary_counts_and_magnitudes():
    s = compute_summary(_sample())

    assert s.total_transactions == 5
    assert s.categorized_transactions == 4
    assert s.category_breakdown == {"Office costs": 2, "Unknown": 1, "Travel costs": 2}
    assert s.category_amounts == {"Office costs": 56.0, "Unknown": 20.0, "Travel costs": 0.3}
    assert s.total_amount == 76.3


def test_category_amounts_sum_to_total():
    s = compute_summary(_sample())
    assert math.isclose(sum(s.category_amounts.values()), s.total_amount)


def test_summary_is_pure():
    txs = _sample()
    assert recompute_summary(txs) == recompute_summary(txs)


def test_empty_summary():
    s = compute_summary([])
    assert s.total_transactions == 0
    assert s.total_amount == 0.0
    assert s.category_breakdown == {}


def test_summary_serializes_with_camel_case_keys():
    result = AnalysisResult(transactions=tuple(_sample()), source="pattern")
    data = result.to_json_dict()

    assert set(data["summary"]) == {
        "totalTransactions",
        "categorizedTransactions",
        "categoryBreakdown",
        "totalAmount",
        "categoryAmounts",
    }
    assert data["source"] == "pattern"
    assert "subcategory" not in data["transactions"][0]


def test_stored_summary_is_ignored_on_load():
    result = AnalysisResult(transactions=tuple(_sample()), source="model")
    data = result.to_json_dict()
    data["summary"]["totalTransactions"] = 999

    loaded = AnalysisResult.model_validate(data)
    assert loaded.summary.total_transactions == 5
    assert loaded == result


def test_with_category_recomputes_summary():
    result = AnalysisResult(transactions=tuple(_sample()))
    updated = result.with_category(2, "Things you resell", "Stock")

    assert updated.transactions[2].category == "Things you resell"
    assert updated.transactions[2].subcategory == "Stock"
    assert updated.summary.categorized_transactions == 5
    assert "Unknown" not in updated.summary.category_breakdown
    # original untouched
    assert result.transactions[2].category == "Unknown"


def test_with_category_out_of_range():
    result = AnalysisResult(transactions=tuple(_sample()))
    with pytest.raises(IndexError):
        result.with_category(5, "Office costs")
    with pytest.raises(IndexError):
        result.with_category(-1, "Office costs")


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, 50), ("85", 85), (72.6, 73), (-4, 0), (101, 100), ("high", 50), (True, 50)],
)
def test_confidence_coercion(value, expected):
    tx = TransactionRecord(
        date="2025-01-01", description="x", amount=1, category="Office costs", confidence=value
    )
    assert tx.confidence == expected


@pytest.mark.parametrize("amount", [True, "abc", float("nan"), float("inf")])
def test_invalid_amounts_rejected(amount):
    with pytest.raises(ValidationError):
        TransactionRecord(date="2025-01-01", description="x", amount=amount)


def test_blank_description_rejected():
    with pytest.raises(ValidationError):
        TransactionRecord(date="2025-01-01", description="   ", amount=1)


def test_missing_category_defaults_to_unknown():
    tx = TransactionRecord(date="2025-01-01", description="x", amount=1)
    assert tx.category == "Unknown"
    assert tx.confidence == 50
