"""Recovery of transaction records from loosely structured model output.

Models often return near-valid JSON: wrapped in Markdown fences, with
trailing commas, or with missing separators between objects. Each recovery
step is a small pure function over text:

1. :func:`strip_code_fences`
2. :func:`extract_json_object` (first ``{`` to last ``}``)
3. strict ``json.loads`` of the extracted span
4. :func:`repair_structure` (structural fixes, newlines preserved), then a
   second strict ``json.loads``
5. when both fail, :func:`reconstruct_objects` rebuilds candidate objects
   from ``"key": value`` pairs block by block
6. :func:`validate_transactions` filters and types the candidates

:func:`parse_model_response` composes them and raises
:class:`~expense_analysis.errors.ParseFailure` (or its subclass
:class:`~expense_analysis.errors.NoJsonFound`) when nothing usable remains.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from .errors import NoJsonFound, ParseFailure
from .logging_setup import get_logger
from .models import TransactionRecord

_logger = get_logger("expense_analysis.repair")

REQUIRED_FIELDS: tuple[str, ...] = ("date", "description", "category")

_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*")
_DUPLICATE_COMMA_RE = re.compile(r",\s*,")
_EMPTY_VALUE_RE = re.compile(r":\s*(?=[,}\]])")
_TRAILING_COMMA_RE = re.compile(r",(\s*)([}\]])")
_ADJACENT_OBJECTS_RE = re.compile(r"}(\s*){")
_HSPACE_RE = re.compile(r"[ \t\r\f\v]+")

# Quoted string (possibly unterminated at end of line), a brace, or anything else.
_TOKEN_RE = re.compile(r'"(?:[^"\\\n]|\\.)*"?|[{}]|[^"{}]+')
_PAIR_RE = re.compile(r'"(\w+)"\s*:\s*("(?:[^"\\\n]|\\.)*"?|[^,\[\]{}"]+)')


# ---------------------------------------------------------------------------
# Text-level tiers
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove Markdown code-fence markers (```` ``` ```` / ```` ```json ````)."""

    return _FENCE_RE.sub("", text).strip()


def extract_json_object(text: str) -> str:
    """Return the span from the first ``{`` to the last ``}`` (inclusive).

    Raises :class:`NoJsonFound` when there is no such span.
    """

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise NoJsonFound("no JSON object found in model response")
    return text[start : end + 1]


def repair_structure(text: str) -> str:
    """Apply structural fixes for common model-output defects.

    - collapse duplicate commas (``,,`` -> ``,``)
    - fill empty values with ``null`` (``"a": ,`` -> ``"a": null,``)
    - drop trailing commas before ``}`` / ``]``
    - insert commas between adjacent objects (``}{`` -> ``},{``)
    - collapse horizontal whitespace runs; line breaks are kept
    """

    s = text
    while True:
        collapsed = _DUPLICATE_COMMA_RE.sub(",", s)
        if collapsed == s:
            break
        s = collapsed
    s = _EMPTY_VALUE_RE.sub(": null", s)
    s = _TRAILING_COMMA_RE.sub(r"\1\2", s)
    s = _ADJACENT_OBJECTS_RE.sub(r"},\1{", s)
    lines = (_HSPACE_RE.sub(" ", line).strip() for line in s.split("\n"))
    return "\n".join(line for line in lines if line)


def _coerce_value(raw: str) -> Any:
    v = raw.strip()
    if v.startswith('"'):
        if len(v) >= 2 and v.endswith('"'):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return v[1:-1]
        return v[1:]
    lowered = v.lower()
    if lowered == "null":
        return None
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(v)
    except ValueError:
        pass
    try:
        return float(v)
    except ValueError:
        return v


def _pairs(segment: str) -> dict[str, Any]:
    return {m.group(1): _coerce_value(m.group(2)) for m in _PAIR_RE.finditer(segment)}


def reconstruct_objects(text: str) -> list[dict[str, Any]]:
    """Rebuild flat objects from ``"key": value`` pairs, tracking ``{``/``}`` blocks.

    Scans line by line. An opening brace starts a new (innermost) block and
    discards any partially collected outer pairs; a closing brace completes
    the current block, which is kept when it collected at least one pair.
    Quoted values become strings, numeric-looking values numbers, and
    ``null``/``true``/``false`` their JSON meaning. Braces inside quoted
    strings are ignored.
    """

    objects: list[dict[str, Any]] = []
    current: dict[str, Any] | None = None

    for line in text.splitlines():
        pending = ""
        for m in _TOKEN_RE.finditer(line):
            tok = m.group(0)
            if tok not in ("{", "}"):
                pending += tok
                continue
            if current is not None and pending:
                current.update(_pairs(pending))
            pending = ""
            if tok == "{":
                current = {}
            else:
                if current:
                    objects.append(current)
                current = None
        if current is not None and pending:
            current.update(_pairs(pending))

    return objects


# ---------------------------------------------------------------------------
# Record validation
# ---------------------------------------------------------------------------


def _has_required_fields(item: Mapping[str, Any]) -> bool:
    for key in REQUIRED_FIELDS:
        value = item.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            return False
    # Zero is a valid amount; only absence/null disqualifies.
    return item.get("amount") is not None


def validate_transactions(items: Iterable[Any]) -> list[TransactionRecord]:
    """Keep complete entries and type them as :class:`TransactionRecord`.

    Entries missing ``date``, ``description`` or ``category``, or whose
    ``amount`` is absent/null, are discarded. Missing ``confidence`` defaults
    to 50. Entries that still fail model validation (for example a
    non-numeric amount) are discarded and logged.
    """

    out: list[TransactionRecord] = []
    dropped = 0
    for item in items:
        if not isinstance(item, Mapping) or not _has_required_fields(item):
            dropped += 1
            continue
        try:
            out.append(TransactionRecord.model_validate(dict(item)))
        except ValidationError as e:
            dropped += 1
            _logger.debug("repair:invalid_transaction errors=%d", e.error_count())
    if dropped:
        _logger.info("repair:dropped_entries count=%d kept=%d", dropped, len(out))
    return out


def _strict_items(text: str) -> list[Any] | None:
    try:
        decoded = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        # RecursionError: nesting deeper than the decoder can follow
        return None
    if isinstance(decoded, Mapping):
        items = decoded.get("transactions")
        if isinstance(items, list):
            return items
    return None


def parse_model_response(text: str) -> list[TransactionRecord]:
    """Turn raw model output into validated transaction records.

    Raises :class:`NoJsonFound` when the reply holds no ``{ ... }`` span and
    :class:`ParseFailure` when no complete transaction survives.
    """

    body = extract_json_object(strip_code_fences(text or ""))

    # Well-formed JSON is decoded as is, so string values never see the repairs.
    items = _strict_items(body)
    tier = "strict"
    repaired = body
    if items is None:
        repaired = repair_structure(body)
        items = _strict_items(repaired)
        tier = "repaired"
    if items is None:
        items = reconstruct_objects(repaired)
        tier = "reconstructed"
        if not items:
            raise ParseFailure("model response could not be parsed or reconstructed")

    records = validate_transactions(items)
    if not records:
        raise ParseFailure("model response contained no complete transactions")
    _logger.info("repair:parsed tier=%s transactions=%d", tier, len(records))
    return records
