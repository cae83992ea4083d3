"""Business expense taxonomy shared by the prompt builder and the fallback matcher.

The labels are stable strings: exported results and stored corrections refer
to them verbatim, so any change here bumps ``TAXONOMY_VERSION``.
"""

from __future__ import annotations

from dataclasses import dataclass

TAXONOMY_VERSION: int = 1

UNKNOWN: str = "Unknown"
OTHER_EXPENSES: str = "Other expenses"


@dataclass(frozen=True, slots=True)
class Category:
    """One taxonomy entry.

    ``examples`` are shown to the model; ``keywords`` drive the fallback
    matcher (lowercase substrings).
    """

    label: str
    examples: str
    keywords: tuple[str, ...] = ()


TAXONOMY: tuple[Category, ...] = (
    Category(
        "Office costs",
        "rent, utilities, supplies",
        ("office", "supplies", "stationery"),
    ),
    Category(
        "Travel costs",
        "transport, accommodation, meals while traveling",
        ("travel", "hotel", "transport"),
    ),
    Category("Clothing expenses", "uniforms, protective clothing"),
    Category(
        "Staff costs",
        "salaries, benefits, training",
        ("salary", "staff", "employee"),
    ),
    Category("Things you resell", "stock, materials"),
    Category(
        "Legal and financial costs",
        "legal fees, accounting, insurance",
        ("legal", "accountant", "insurance"),
    ),
    Category(
        "Marketing and entertainment",
        "advertising, client entertainment",
        ("marketing", "advertising", "entertainment"),
    ),
    Category(
        "Equipment and software",
        "computers, software licenses, tools",
        ("software", "computer", "equipment"),
    ),
    Category(OTHER_EXPENSES, "miscellaneous business costs"),
)

CATEGORIES: tuple[str, ...] = tuple(c.label for c in TAXONOMY)

# Every label a stored transaction may carry.
ALLOWED_LABELS: frozenset[str] = frozenset((*CATEGORIES, UNKNOWN))

# Evaluation order of the fallback matcher; first hit wins.
_RULE_ORDER: tuple[str, ...] = (
    "Office costs",
    "Travel costs",
    "Equipment and software",
    "Marketing and entertainment",
    "Legal and financial costs",
    "Staff costs",
)

_BY_LABEL: dict[str, Category] = {c.label: c for c in TAXONOMY}

KEYWORD_RULES: tuple[tuple[str, tuple[str, ...]], ...] = tuple(
    (label, _BY_LABEL[label].keywords) for label in _RULE_ORDER
)

_BY_FOLDED: dict[str, str] = {label.casefold(): label for label in ALLOWED_LABELS}


def canonical_label(raw: object) -> str | None:
    """Return the canonical spelling of ``raw`` when it names a known label.

    Matching ignores case and surrounding/internal whitespace runs. Returns
    ``None`` for anything outside the taxonomy.
    """

    if not isinstance(raw, str):
        return None
    key = " ".join(raw.split()).casefold()
    return _BY_FOLDED.get(key)


def guess_category(description: str) -> str:
    """Pick a category from keyword substrings in ``description``.

    Case-insensitive; the first matching rule in ``KEYWORD_RULES`` wins and
    no match yields ``"Unknown"``.
    """

    text = description.lower()
    for label, keywords in KEYWORD_RULES:
        if any(k in text for k in keywords):
            return label
    return UNKNOWN
