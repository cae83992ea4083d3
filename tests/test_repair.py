import pytest

from expense_analysis.errors import NoJsonFound, ParseFailure
from expense_analysis.repair import (
    extract_json_object,
    parse_model_response,
    reconstruct_objects,
    repair_structure,
    strip_code_fences,
    validate_transactions,
)

WELL_FORMED = (
    '{"transactions": [{"date":"2025-01-01","description":"Shop","amount":-10,'
    '"category":"Office costs","confidence":90}]}'
)


# ---- Text-level tiers ---------------------------------------------------------


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_extract_json_object_spans_first_to_last_brace():
    assert extract_json_object('Sure! {"a": {"b": 1}} Thanks') == '{"a": {"b": 1}}'


def test_extract_json_object_without_braces():
    with pytest.raises(NoJsonFound):
        extract_json_object("I could not find any transactions.")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('{"a": 1,,, "b": 2}', '{"a": 1, "b": 2}'),
        ('{"a": , "b": 2}', '{"a": null, "b": 2}'),
        ('{"a": [1, 2,], "b": 3,}', '{"a": [1, 2], "b": 3}'),
        ('[{"a": 1}{"a": 2}]', '[{"a": 1},{"a": 2}]'),
        ('{"a":   1,\n\n   "b":\t2}', '{"a": 1,\n"b": 2}'),
    ],
)
def test_repair_structure(raw, expected):
    assert repair_structure(raw) == expected


def test_reconstruct_objects_reads_blocks_line_by_line():
    text = (
        '{"transactions": [\n'
        '{"date": "2025-01-01" "description": "Shop {main}", "amount": -10, "ok": true}\n'
        '{"date": "2025-01-02", "description": "Train", "amount": 12.5, "note": null}\n'
        "]}"
    )
    assert reconstruct_objects(text) == [
        {"date": "2025-01-01", "description": "Shop {main}", "amount": -10, "ok": True},
        {"date": "2025-01-02", "description": "Train", "amount": 12.5, "note": None},
    ]


def test_reconstruct_objects_handles_multiline_blocks():
    text = '{\n"date": "2025-02-01",\n"description": "Hotel"\n"amount": -99.5\n}'
    assert reconstruct_objects(text) == [
        {"date": "2025-02-01", "description": "Hotel", "amount": -99.5}
    ]


# ---- Validation ---------------------------------------------------------------


def test_validate_transactions_filters_incomplete_entries():
    items = [
        {"date": "2025-01-01", "description": "A", "amount": 0, "category": "Office costs"},
        {"date": "2025-01-02", "description": "B", "amount": None, "category": "Office costs"},
        {"date": "2025-01-03", "description": "C", "amount": -5, "category": ""},
        {"description": "D", "amount": -5, "category": "Office costs"},
        {"date": "2025-01-05", "description": "E", "amount": "abc", "category": "Office costs"},
        "not an object",
    ]
    records = validate_transactions(items)
    assert [r.description for r in records] == ["A"]
    assert records[0].amount == 0.0
    assert records[0].confidence == 50


def test_validate_transactions_normalizes_model_values():
    (record,) = validate_transactions(
        [
            {
                "date": "05/06/2025",
                "description": "  Taxi  ",
                "amount": "£1,234.50",
                "category": "travel COSTS",
                "subcategory": " ",
                "confidence": 150,
            }
        ]
    )
    assert record.date == "2025-06-05"
    assert record.description == "Taxi"
    assert record.amount == 1234.5
    assert record.category == "Travel costs"
    assert record.subcategory is None
    assert record.confidence == 100


def test_unrecognized_category_becomes_unknown():
    (record,) = validate_transactions(
        [{"date": "2025-01-01", "description": "X", "amount": 1, "category": "Pets"}]
    )
    assert record.category == "Unknown"


# ---- End to end ---------------------------------------------------------------


def test_trailing_comma_parses_like_well_formed():
    trailing = (
        '{"transactions": [{"date":"2025-01-01","description":"Shop","amount":-10,'
        '"category":"Office costs","confidence":90,}]}'
    )
    records = parse_model_response(trailing)
    assert records == parse_model_response(WELL_FORMED)
    assert len(records) == 1
    assert records[0].amount == -10.0
    assert records[0].confidence == 90


def test_fenced_response_with_missing_object_commas():
    text = (
        "Here you go:\n```json\n"
        '{"transactions": [\n'
        '  {"date": "2025-01-01", "description": "Shop", "amount": -10, "category": "Office costs"}\n'
        '  {"date": "2025-01-02", "description": "Train", "amount": -20, "category": "Travel costs"}\n'
        "]}\n```"
    )
    records = parse_model_response(text)
    assert [r.description for r in records] == ["Shop", "Train"]
    assert [r.confidence for r in records] == [50, 50]


def test_reconstruction_when_strict_parse_fails():
    text = (
        '{"transactions": [\n'
        '{"date": "2025-01-01" "description": "Shop", "amount": -10, "category": "Office costs"}\n'
        "]}"
    )
    (record,) = parse_model_response(text)
    assert record.date == "2025-01-01"
    assert record.amount == -10.0
    assert record.category == "Office costs"


def test_no_json_is_a_parse_failure():
    with pytest.raises(NoJsonFound):
        parse_model_response("Sorry, I can't read this statement.")
    with pytest.raises(ParseFailure):
        parse_model_response("")


def test_all_entries_filtered_is_a_parse_failure():
    with pytest.raises(ParseFailure):
        parse_model_response('{"transactions": [{"date": "2025-01-01", "amount": 5}]}')
    with pytest.raises(ParseFailure):
        parse_model_response('{"transactions": []}')


def test_valid_json_string_values_are_left_alone():
    text = (
        '{"transactions": [{"date":"2025-01-01","description":"Ref:, 12 A,,B",'
        '"amount":-10,"category":"Office costs"}]}'
    )
    (record,) = parse_model_response(text)
    assert record.description == "Ref:, 12 A,,B"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("2025/06/05", "2025-06-05"), ("2025-6-5", "2025-06-05"), ("05/06/2025", "2025-06-05")],
)
def test_model_dates_are_stored_as_iso(raw: str, expected: str):
    text = (
        '{"transactions": [{"date":"' + raw + '","description":"Shop",'
        '"amount":-10,"category":"Office costs"}]}'
    )
    (record,) = parse_model_response(text)
    assert record.date == expected


def test_deeply_nested_reply_is_a_parse_failure():
    text = '{"transactions": ' + "[" * 50_000 + "]" * 50_000 + "}"
    with pytest.raises(ParseFailure):
        parse_model_response(text)
