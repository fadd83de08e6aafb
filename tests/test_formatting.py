import pytest

from agreement_auditor.core.formatting import format_currency, format_thousand, parse_number


class TestFormatCurrency:
    def test_groups_thousands_with_dots(self):
        assert format_currency(8_000_000) == "Rp\u00a08.000.000"

    def test_small_amounts(self):
        assert format_currency(0) == "Rp\u00a00"
        assert format_currency(999) == "Rp\u00a0999"

    def test_rounds_to_whole_rupiah(self):
        assert format_currency(1499.5) == "Rp\u00a01.500"
        assert format_currency(1499.4) == "Rp\u00a01.499"

    def test_negative(self):
        assert format_currency(-2_500_000) == "-Rp\u00a02.500.000"


class TestFormatThousand:
    def test_integer(self):
        assert format_thousand(1_500_000) == "1.500.000"

    def test_empty_for_zero_and_none(self):
        assert format_thousand(0) == ""
        assert format_thousand(None) == ""

    def test_fraction_uses_comma(self):
        assert format_thousand(1234.5) == "1.234,5"


class TestParseNumber:
    @pytest.mark.parametrize("text, expected", [
        ("1.500.000", 1_500_000),
        ("Rp 12.500", 12_500),
        ("12,5", 12.5),
        ("  750 ", 750),
        (42, 42),
        (3.5, 3.5),
    ])
    def test_parses(self, text, expected):
        assert parse_number(text) == expected

    def test_empty_is_zero(self):
        assert parse_number("") == 0
        assert parse_number(None) == 0

    def test_round_trips_formatted_input(self):
        assert parse_number(format_thousand(25_000_000)) == 25_000_000

    @pytest.mark.parametrize("text", ["abc", "Rp", "-"])
    def test_rejects_non_numeric(self, text):
        with pytest.raises(ValueError):
            parse_number(text)

    def test_rejects_bool(self):
        with pytest.raises(ValueError):
            parse_number(True)
