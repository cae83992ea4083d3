from datetime import date

import pytest

from expense_analysis import api
from expense_analysis.errors import TransportFailure
from expense_analysis.pipeline import AnalysisPipeline
from expense_analysis.prompting import TEXT_BEGIN
from tests.helpers.model_stub import BlockingModel, ScriptedModel, transactions_json

STATEMENT = (
    "E X A M P L E   B U S I N E S S   B A N K\n"
    "05/06/2025   OFFICE SUPPLIES LTD   £45.99\n"
)

MODEL_TX = {
    "date": "2025-06-05",
    "description": "Office Supplies Ltd",
    "amount": -45.99,
    "category": "Office costs",
    "subcategory": "Supplies",
    "confidence": 92,
}


def test_model_path_success():
    model = ScriptedModel(transactions_json(MODEL_TX))
    result = AnalysisPipeline(model).analyze(STATEMENT)

    assert result.source == "model"
    assert len(result.transactions) == 1
    tx = result.transactions[0]
    assert tx.subcategory == "Supplies"
    assert tx.confidence == 92
    assert result.summary.total_amount == 45.99

    # The model sees the normalized text inside the markers.
    assert len(model.prompts) == 1
    assert TEXT_BEGIN in model.prompts[0]
    assert "EXAMPLEBUSINESSBANK" in model.prompts[0]


def test_no_model_uses_fallback():
    result = AnalysisPipeline().analyze(STATEMENT)

    assert result.source == "pattern"
    (tx,) = result.transactions
    assert tx.date == "2025-06-05"
    assert tx.category == "Office costs"
    assert abs(tx.amount) == 45.99
    assert tx.confidence == 65


@pytest.mark.parametrize(
    "outcome",
    [
        RuntimeError("connection reset"),
        TransportFailure("HTTP 503"),
        "I'm unable to analyze this document.",
        '{"transactions": [{"description": "no date"}]}',
    ],
)
def test_model_failures_demote_to_fallback(outcome):
    model = ScriptedModel(outcome)
    pipeline = AnalysisPipeline(model)

    result = pipeline.analyze(STATEMENT)

    assert result == pipeline.fallback_analyze(STATEMENT)
    assert result.source == "pattern"
    # No retry at the orchestration level.
    assert len(model.prompts) == 1


def test_no_json_reply_matches_fallback_analyze():
    result = api.analyze(STATEMENT, call_model=ScriptedModel("no braces here"))
    assert result == api.fallback_analyze(STATEMENT)


def test_deeply_nested_reply_demotes():
    reply = '{"transactions": ' + "[" * 50_000 + "]" * 50_000 + "}"
    pipeline = AnalysisPipeline(ScriptedModel(reply))

    assert pipeline.analyze(STATEMENT) == pipeline.fallback_analyze(STATEMENT)


def test_non_text_reply_demotes():
    result = AnalysisPipeline(ScriptedModel(None)).analyze(STATEMENT)  # type: ignore[arg-type]
    assert result.source == "pattern"


def test_deadline_expiry_demotes():
    model = BlockingModel()
    try:
        result = AnalysisPipeline(model, timeout=0.05).analyze(STATEMENT)
    finally:
        model.release.set()

    assert model.calls == 1
    assert result.source == "pattern"


def test_fallback_analyze_never_calls_model():
    model = ScriptedModel(transactions_json(MODEL_TX))
    result = AnalysisPipeline(model).fallback_analyze(STATEMENT)

    assert model.prompts == []
    assert result.source == "pattern"


def test_empty_text_yields_demo_rows():
    result = AnalysisPipeline(today=date(2026, 3, 1)).analyze("")

    assert result.source == "demo"
    assert result.summary.total_transactions >= 3
    assert {t.date for t in result.transactions} == {"2026-03-01"}


@pytest.mark.parametrize("text", ["", " ", "\n", "no transactions", "E X A M P L E"])
def test_fallback_analyze_is_total(text):
    assert api.fallback_analyze(text).summary.total_transactions >= 1


def test_api_analyze_without_configured_provider_uses_fallback():
    result = api.analyze(STATEMENT)
    assert result.source == "pattern"


def test_api_analyze_reads_timeout_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EA_MODEL_TIMEOUT", "0.05")
    model = BlockingModel()
    try:
        result = api.analyze(STATEMENT, call_model=model)
    finally:
        model.release.set()
    assert result.source == "pattern"


def test_recompute_summary_matches_result_summary():
    result = AnalysisPipeline(ScriptedModel(transactions_json(MODEL_TX, MODEL_TX))).analyze(
        STATEMENT
    )
    assert api.recompute_summary(result.transactions) == result.summary
    assert result.summary.category_breakdown == {"Office costs": 2}
