"""Text, date and amount normalization for extracted document text.

PDF and Word extraction frequently yields character-spaced runs such as
``"E X A M P L E"``. :func:`normalize_text` repairs those lines without
touching ordinary prose; the date and amount helpers are shared by the
fallback extractor and model-response validation.
"""

from __future__ import annotations

import re

# A line is treated as character-spaced only when it has more than this many
# tokens and more than half of them are a single character.
_DESPACE_MIN_TOKENS = 10
_DESPACE_SINGLE_RATIO = 0.5

# Day/month/year token; digit lookarounds keep it from matching inside ISO dates.
DATE_RE = re.compile(r"(?<!\d)(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})(?!\d)")
_DMY_RE = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})")
_YMD_RE = re.compile(r"(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})")


def _is_character_spaced(tokens: list[str]) -> bool:
    if len(tokens) <= _DESPACE_MIN_TOKENS:
        return False
    singles = sum(1 for t in tokens if len(t) == 1)
    return singles > len(tokens) * _DESPACE_SINGLE_RATIO


def normalize_line(line: str) -> str:
    """Normalize a single line (see :func:`normalize_text`)."""

    tokens = line.split()
    if _is_character_spaced(tokens):
        return "".join(tokens)
    return " ".join(tokens)


def normalize_text(text: str) -> str:
    """Collapse character-spaced lines and whitespace runs, keeping line structure.

    - A line with more than 10 whitespace-separated tokens, more than half of
      them one character long, is joined with no separator
      (``"E X A M P L E ..."`` -> ``"EXAMPLE..."``).
    - Every other line has its whitespace runs collapsed to single spaces and
      is trimmed.
    - Line breaks are preserved (``\\r\\n`` is read as ``\\n``).

    Pure and idempotent: normalizing normalized text returns it unchanged.
    """

    return "\n".join(normalize_line(line) for line in text.splitlines())


def normalize_date(raw: str) -> str:
    """Rewrite a date token as ``YYYY-MM-DD``.

    ``D[/-]M[/-]Y`` tokens are read day first, with two-digit years prefixed
    by ``20``. Year-first ``YYYY[/-]M[/-]D`` tokens are zero-padded. Anything
    else is returned trimmed but otherwise unchanged.
    """

    s = raw.strip()
    m = _DMY_RE.fullmatch(s)
    if m is not None:
        day, month, year = m.groups()
        if len(year) == 2:
            year = f"20{year}"
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    m = _YMD_RE.fullmatch(s)
    if m is not None:
        year, month, day = m.groups()
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return s


def parse_amount(raw: str) -> float | None:
    """Parse an amount token such as ``"£1,234.50"`` or ``"-45.99"``.

    Pound signs, thousands separators and surrounding whitespace are removed.
    Returns ``None`` when the remainder is not a number.
    """

    s = raw.replace("£", "").replace(",", "").strip()
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None
