"""Tests for field validation and direct-answer parsing."""

from datetime import date

import pytest

from intake.state.schema_registry import FieldSpec, FieldType
from intake.state.validation import format_hint, parse_date, parse_direct_answer, validate_field

TODAY = date(2024, 6, 15)


def spec(type_, name="f", **kw) -> FieldSpec:
    return FieldSpec(name=name, type=type_, **kw)


class TestPhone:
    def test_formats_ten_digits(self):
        assert validate_field(spec(FieldType.PHONE), "704-555-0123") == "(704) 555-0123"

    def test_drops_leading_country_code(self):
        assert validate_field(spec(FieldType.PHONE), "+1 (704) 555 0123") == "(704) 555-0123"

    def test_custom_format(self):
        assert validate_field(spec(FieldType.PHONE, format="XXX-XXX-XXXX"), "7045550123") == "704-555-0123"

    @pytest.mark.parametrize("raw", ["555-0123", "1234567890", "0000000000", "call me"])
    def test_rejects_short_or_fake(self, raw):
        assert validate_field(spec(FieldType.PHONE), raw) is None


class TestEmailZipState:
    def test_email_lowercased(self):
        assert validate_field(spec(FieldType.EMAIL), "  Dana.Lee@Example.COM ") == "dana.lee@example.com"

    def test_email_invalid(self):
        assert validate_field(spec(FieldType.EMAIL), "dana@") is None

    @pytest.mark.parametrize("raw", ["28202", "28202-1234"])
    def test_zip_valid(self, raw):
        assert validate_field(spec(FieldType.ZIP), raw) == raw

    def test_zip_invalid(self):
        assert validate_field(spec(FieldType.ZIP), "2820") is None

    def test_zip_rejects_bool(self):
        assert validate_field(spec(FieldType.ZIP), True) is None
        assert validate_field(spec(FieldType.ZIP), False) is None

    def test_state_code_and_name(self):
        assert validate_field(spec(FieldType.STATE), "nc") == "NC"
        assert validate_field(spec(FieldType.STATE), "North Carolina") == "NC"
        assert validate_field(spec(FieldType.STATE), "District of Columbia") == "DC"
        assert validate_field(spec(FieldType.STATE), "Narnia") is None


class TestDate:
    def test_relative_yesterday_in_field_format(self):
        s = spec(FieldType.DATE, format="MM/DD/YYYY")
        assert validate_field(s, "yesterday", today=TODAY) == "06/14/2024"

    def test_weeks_ago_default_iso(self):
        assert validate_field(spec(FieldType.DATE), "2 weeks ago", today=TODAY) == "2024-06-01"

    def test_month_name_with_ordinal(self):
        assert validate_field(spec(FieldType.DATE), "March 3rd, 2024", today=TODAY) == "2024-03-03"

    def test_us_slash_date(self):
        assert validate_field(spec(FieldType.DATE), "06/01/2024", today=TODAY) == "2024-06-01"

    def test_last_month_clamps_day(self):
        assert parse_date("last month", date(2024, 3, 31)) == date(2024, 2, 29)

    def test_future_rejected(self):
        assert validate_field(spec(FieldType.DATE), "2030-01-01", today=TODAY) is None

    def test_gibberish_rejected(self):
        assert validate_field(spec(FieldType.DATE), "a while back", today=TODAY) is None

    @pytest.mark.parametrize(
        "raw", ["999999999 days ago", "99999999999999999999 days ago", "5000 years ago", "120000 months ago"]
    )
    def test_out_of_range_relative_rejected(self, raw):
        assert parse_date(raw, TODAY) is None
        assert validate_field(spec(FieldType.DATE), raw, today=TODAY) is None

    def test_before_1900_rejected(self):
        assert validate_field(spec(FieldType.DATE), "1850-01-01", today=TODAY) is None
        assert validate_field(spec(FieldType.DATE), "1900-01-01", today=TODAY) == "1900-01-01"


class TestBoolean:
    @pytest.mark.parametrize("raw", ["Yes", "yeah", "I do", True])
    def test_yes(self, raw):
        assert validate_field(spec(FieldType.BOOLEAN), raw) == "yes"

    @pytest.mark.parametrize("raw", ["no", "Nope.", "I don't have one", "I have not", False])
    def test_no(self, raw):
        assert validate_field(spec(FieldType.BOOLEAN), raw) == "no"

    @pytest.mark.parametrize(
        "raw", ["maybe", "I'm not sure", "I don't know", "I don\u2019t know", "unsure", "no idea", "can't remember"]
    )
    def test_unclear(self, raw):
        assert validate_field(spec(FieldType.BOOLEAN), raw) is None


class TestEnumNumberText:
    DEBT = ["Under $10,000", "$10,000 - $25,000", "$25,000 - $50,000", "Over $50,000"]

    def test_enum_case_and_punctuation_insensitive(self):
        s = spec(FieldType.ENUM, allowed_values=self.DEBT)
        assert validate_field(s, "over $50,000") == "Over $50,000"
        assert validate_field(s, "under 10,000") == "Under $10,000"

    def test_enum_no_match(self):
        assert validate_field(spec(FieldType.ENUM, allowed_values=self.DEBT), "about $20k") is None

    def test_number_parsing(self):
        s = spec(FieldType.NUMBER)
        assert validate_field(s, "$3,500") == 3500
        assert validate_field(s, "2.5k") == 2500
        assert validate_field(s, "-5") is None
        assert validate_field(s, "lots") is None

    def test_text_collapses_whitespace(self):
        assert validate_field(spec(FieldType.TEXT), "  hit   from behind ") == "hit from behind"

    def test_text_too_long(self):
        assert validate_field(spec(FieldType.TEXT), "x" * 1001) is None

    def test_none_and_blank(self):
        assert validate_field(spec(FieldType.TEXT), None) is None
        assert validate_field(spec(FieldType.TEXT), "   ") is None


class TestDirectAnswer:
    def test_phone_inside_sentence(self):
        assert parse_direct_answer(spec(FieldType.PHONE), "sure, it's 704 555 0123") == "(704) 555-0123"

    def test_zip_inside_sentence(self):
        assert parse_direct_answer(spec(FieldType.ZIP), "I'm in the 28202 area") == "28202"

    def test_relative_date_inside_sentence(self):
        assert parse_direct_answer(spec(FieldType.DATE), "it happened 3 days ago", today=TODAY) == "2024-06-12"

    def test_absurd_relative_date_inside_sentence(self):
        assert parse_direct_answer(spec(FieldType.DATE), "it was 999999999 days ago", today=TODAY) is None

    def test_state_prefers_full_name_and_ignores_words(self):
        assert parse_direct_answer(spec(FieldType.STATE), "I live in West Virginia") == "WV"
        assert parse_direct_answer(spec(FieldType.STATE), "I live in NC") == "NC"

    def test_free_text_needs_permission(self):
        s = spec(FieldType.TEXT, name="employer_name")
        assert parse_direct_answer(s, "Acme Logistics") is None
        assert parse_direct_answer(s, " Acme Logistics ", accept_free_text=True) == "Acme Logistics"

    def test_format_hints(self):
        assert "5-digit" in format_hint(spec(FieldType.ZIP))
        assert "Over $50,000" in format_hint(spec(FieldType.ENUM, allowed_values=TestEnumNumberText.DEBT))
        assert format_hint(spec(FieldType.TEXT)) is None
