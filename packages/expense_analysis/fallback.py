"""Pattern-based transaction extraction used when the model path is unavailable.

Three tiers, each tried only when the previous one found nothing:

1. Lines carrying both a date token and an amount token.
2. Any amount-like values anywhere in the text (synthetic expense rows).
3. Fixed demonstration rows, so the result is never empty.
"""

from __future__ import annotations

import re
from datetime import date as _date

from .logging_setup import get_logger
from .models import ResultSource, TransactionRecord
from .normalizers import DATE_RE, normalize_date, parse_amount
from .taxonomy import OTHER_EXPENSES, guess_category

_logger = get_logger("expense_analysis.fallback")

AMOUNT_RE = re.compile(r"([+-]?£?\d{1,3}(?:,\d{3})*(?:\.\d{2})?)")
_UNSIGNED_AMOUNT_RE = re.compile(r"£?\d{1,3}(?:,\d{3})*(?:\.\d{2})?")

PATTERN_CONFIDENCE = 65
AMOUNT_ONLY_CONFIDENCE = 45
AMOUNT_ONLY_DATE = "2025-06-15"
AMOUNT_ONLY_LIMIT = 10
AMOUNT_ONLY_CEILING = 10_000

_MIN_DESCRIPTION_LEN = 3

# (description, amount, category, subcategory, confidence)
_DEMO_ROWS: tuple[tuple[str, float, str, str, int], ...] = (
    ("Demo - Office Supplies", -45.99, "Office costs", "Supplies", 75),
    ("Demo - Software License", -29.99, "Equipment and software", "Software", 80),
    ("Demo - Travel Expense", -125.50, "Travel costs", "Transport", 70),
)


def _line_transaction(line: str, line_index: int) -> TransactionRecord | None:
    date_match = DATE_RE.search(line)
    if date_match is None:
        return None
    # Amounts are looked for only outside the date token.
    remainder = line[: date_match.start()] + " " + line[date_match.end() :]
    amounts = [
        a for a in (parse_amount(tok) for tok in AMOUNT_RE.findall(remainder)) if a is not None
    ]
    if not amounts:
        return None
    amount = max(amounts, key=abs)

    description = " ".join(AMOUNT_RE.sub("", remainder).split())
    if len(description) < _MIN_DESCRIPTION_LEN:
        description = f"Transaction {line_index + 1}"

    return TransactionRecord(
        date=normalize_date(date_match.group(0)),
        description=description,
        amount=amount,
        category=guess_category(description),
        confidence=PATTERN_CONFIDENCE,
    )


def extract_line_transactions(text: str) -> list[TransactionRecord]:
    """Tier 1: one record per line holding both a date and an amount.

    The amount with the greatest magnitude on the line is taken as the
    transaction amount; the description is whatever remains once date and
    amount tokens are removed.
    """

    out: list[TransactionRecord] = []
    for index, line in enumerate(text.split("\n")):
        tx = _line_transaction(line, index)
        if tx is not None:
            out.append(tx)
    return out


def extract_amount_transactions(text: str) -> list[TransactionRecord]:
    """Tier 2: synthetic expense rows from bare amount values.

    Values are deduplicated in first-seen order, kept only when strictly
    between 0 and 10,000, and capped at ten rows.
    """

    seen: dict[float, None] = {}
    for token in _UNSIGNED_AMOUNT_RE.findall(text):
        value = parse_amount(token)
        if value is None or not 0 < value < AMOUNT_ONLY_CEILING:
            continue
        seen.setdefault(value, None)

    return [
        TransactionRecord(
            date=AMOUNT_ONLY_DATE,
            description=f"Transaction from document - Amount {value:g}",
            amount=-value,
            category=OTHER_EXPENSES,
            confidence=AMOUNT_ONLY_CONFIDENCE,
        )
        for value in list(seen)[:AMOUNT_ONLY_LIMIT]
    ]


def demo_transactions(today: _date | None = None) -> list[TransactionRecord]:
    """Tier 3: the fixed demonstration rows, dated ``today``."""

    day = (today or _date.today()).isoformat()
    return [
        TransactionRecord(
            date=day,
            description=description,
            amount=amount,
            category=category,
            subcategory=subcategory,
            confidence=confidence,
        )
        for description, amount, category, subcategory, confidence in _DEMO_ROWS
    ]


def extract_transactions(
    text: str, *, today: _date | None = None
) -> tuple[list[TransactionRecord], ResultSource]:
    """Run the three tiers over normalized ``text``; never returns an empty list.

    Returns ``(transactions, source)`` where ``source`` names the tier that
    produced them (``"pattern"``, ``"amounts"`` or ``"demo"``).
    """

    transactions = extract_line_transactions(text)
    _logger.info("fallback:pattern_tier transactions=%d", len(transactions))
    if transactions:
        return transactions, "pattern"

    transactions = extract_amount_transactions(text)
    if transactions:
        _logger.info("fallback:amount_tier transactions=%d", len(transactions))
        return transactions, "amounts"

    _logger.warning("fallback:no_transactions_found using_demo_rows=%d", len(_DEMO_ROWS))
    return demo_transactions(today), "demo"
