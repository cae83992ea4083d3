from expense_analysis.normalizers import (
    normalize_date,
    normalize_line,
    normalize_text,
    parse_amount,
)


def test_character_spaced_line_is_joined():
    assert normalize_text("E X A M P L E   B A N K") == "EXAMPLEBANK"


def test_eleven_single_char_tokens_trigger_despacing():
    line = " ".join("ABCDEFGHIJK")
    assert normalize_line(line) == "ABCDEFGHIJK"


def test_ten_tokens_never_trigger_despacing():
    line = " ".join("ABCDEFGHIJ")
    assert normalize_line(line) == line


def test_mostly_words_line_is_only_whitespace_collapsed():
    # 9 tokens, 3 of them single characters
    line = "Paid  to   A  B  C Office Supplies Ltd today"
    assert normalize_line(line) == "Paid to A B C Office Supplies Ltd today"


def test_line_structure_is_preserved():
    raw = "  Statement   for June \r\n05/06/2025   OFFICE SUPPLIES LTD   £45.99\n\nEnd"
    assert normalize_text(raw) == (
        "Statement for June\n05/06/2025 OFFICE SUPPLIES LTD £45.99\n\nEnd"
    )


def test_normalize_text_is_idempotent():
    raw = "S T A T E M E N T   O F   A C C O U N T\n  01/06/2025  Coffee   3.20  \n\tTotal\t"
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_empty_text():
    assert normalize_text("") == ""


def test_normalize_date_variants():
    assert normalize_date("05/06/25") == "2025-06-05"
    assert normalize_date("5-6-2025") == "2025-06-05"
    assert normalize_date("2025-06-05") == "2025-06-05"
    assert normalize_date(" June 5th ") == "June 5th"


def test_normalize_date_year_first_tokens_are_padded():
    assert normalize_date("2025/06/05") == "2025-06-05"
    assert normalize_date("2025-6-5") == "2025-06-05"


def test_normalize_date_leaves_partial_matches_unchanged():
    assert normalize_date("05/06/2025 extra") == "05/06/2025 extra"
    assert normalize_date("123/06/2025") == "123/06/2025"
    assert normalize_date("2025-06") == "2025-06"


def test_parse_amount():
    assert parse_amount("£1,234.50") == 1234.5
    assert parse_amount("-45.99") == -45.99
    assert parse_amount(" 12 ") == 12.0
    assert parse_amount("£") is None
    assert parse_amount("n/a") is None
