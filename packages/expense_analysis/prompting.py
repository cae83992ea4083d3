"""Prompt construction for statement analysis.

Builds the single instruction string sent to the model: the expert preamble,
the normalized document text delimited by ``BEGIN_``/``END_`` markers, the
category taxonomy with examples, the required output fields and the strict
JSON-only output contract.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from .taxonomy import TAXONOMY, Category

TEXT_BEGIN = "BEGIN_STATEMENT_TEXT"
TEXT_END = "END_STATEMENT_TEXT"

_EXAMPLE_OUTPUT: dict[str, list[dict[str, object]]] = {
    "transactions": [
        {
            "date": "2025-06-15",
            "description": "Office Supplies Ltd",
            "amount": -45.99,
            "category": "Office costs",
            "subcategory": "Supplies",
            "confidence": 95,
        }
    ]
}


def build_system_instructions() -> str:
    """Return the expert preamble that opens every analysis prompt."""

    return (
        "You are a financial analysis expert specializing in UK business expense "
        "categorization. Analyze bank statements and categorize transactions "
        "according to UK business expense categories."
    )


def render_taxonomy(taxonomy: Sequence[Category] = TAXONOMY) -> str:
    """Render one ``- Label (examples)`` line per category, in taxonomy order."""

    return "\n".join(f"- {c.label} ({c.examples})" for c in taxonomy)


def build_analysis_prompt(text: str, taxonomy: Sequence[Category] = TAXONOMY) -> str:
    """Return the complete instruction for one normalized document ``text``."""

    if not taxonomy:
        raise ValueError("taxonomy must contain at least one category")

    example = json.dumps(_EXAMPLE_OUTPUT, indent=2, ensure_ascii=False)
    return "\n".join(
        [
            build_system_instructions(),
            "",
            "Please analyze this bank statement text and categorize each transaction "
            "according to UK business expense categories.",
            "",
            "Bank Statement Text:",
            TEXT_BEGIN,
            text,
            TEXT_END,
            "",
            "Please identify and categorize each transaction using these UK business "
            "expense categories:",
            render_taxonomy(taxonomy),
            "",
            "For each transaction, provide:",
            "1. Date (format: YYYY-MM-DD or DD/MM/YYYY)",
            "2. Description (merchant/payee name)",
            "3. Amount (negative for expenses/debits, positive for income/credits)",
            "4. Category from the list above",
            "5. Subcategory (if applicable)",
            "6. Confidence level (0-100 based on how certain you are about the "
            "categorization)",
            "",
            "Return the results in this JSON format:",
            example,
            "",
            "IMPORTANT: Only return the JSON object with a top-level \"transactions\" "
            "array, no additional text. Make sure all amounts are included and "
            "confidence levels are realistic (70-95 for clear transactions, 50-69 for "
            "uncertain ones).",
        ]
    )
