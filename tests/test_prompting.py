import pytest

from expense_analysis.normalizers import normalize_text
from expense_analysis.prompting import (
    TEXT_BEGIN,
    TEXT_END,
    build_analysis_prompt,
    render_taxonomy,
)
from expense_analysis.taxonomy import CATEGORIES, TAXONOMY


def test_prompt_embeds_text_between_markers():
    text = normalize_text("05/06/2025   OFFICE SUPPLIES LTD   £45.99")
    prompt = build_analysis_prompt(text)
    assert f"{TEXT_BEGIN}\n{text}\n{TEXT_END}" in prompt


def test_prompt_lists_every_category_with_examples():
    prompt = build_analysis_prompt("")
    for c in TAXONOMY:
        assert f"- {c.label} ({c.examples})" in prompt
    assert len(CATEGORIES) == 9


def test_prompt_states_fields_and_json_only_contract():
    prompt = build_analysis_prompt("x")
    for field in ("Date", "Description", "Amount", "Subcategory", "Confidence level (0-100"):
        assert field in prompt
    assert '"transactions"' in prompt
    assert "Only return the JSON object" in prompt


def test_prompt_is_deterministic():
    assert build_analysis_prompt("abc") == build_analysis_prompt("abc")


def test_render_taxonomy_preserves_order():
    lines = render_taxonomy().splitlines()
    assert lines[0].startswith("- Office costs")
    assert lines[-1].startswith("- Other expenses")


def test_empty_taxonomy_rejected():
    with pytest.raises(ValueError):
        build_analysis_prompt("x", taxonomy=())
