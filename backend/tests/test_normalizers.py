"""Tests for value normalizers."""

import pytest

from freight_intake.patterns.normalizers import (
    company_from_domain,
    from_meters,
    is_generic_mailbox,
    is_plausible_phone,
    is_valid_vin,
    normalize_company_name,
    normalize_currency,
    normalize_email,
    normalize_person_name,
    normalize_phone,
    parse_number,
    to_kilograms,
    to_meters,
)


class TestParseNumber:
    @pytest.mark.parametrize("raw,expected", [
        ("10,06", 10.06),
        ("18.750", 18750.0),
        ("1.234,5", 1234.5),
        ("1,234.5", 1234.5),
        ("0.500", 0.5),
        ("4950", 4950.0),
        (12, 12.0),
    ])
    def test_locale_formats(self, raw, expected):
        assert parse_number(raw) == expected

    def test_lone_separator_as_decimal(self):
        assert parse_number("1.900", grouped_thousands=False) == 1.9

    def test_garbage(self):
        assert parse_number(None) is None
        assert parse_number("") is None
        assert parse_number("abc") is None


class TestUnits:
    def test_lengths(self):
        assert to_meters(512, "cm") == 5.12
        assert to_meters(4950, "mm") == 4.95
        assert to_meters(5.12, None) == 5.12
        assert to_meters(3, "furlong") is None

    @pytest.mark.parametrize("value,unit", [(512, "cm"), (4950, "mm"), (16.5, "ft"), (96, "in")])
    def test_length_round_trip(self, value, unit):
        assert from_meters(to_meters(value, unit), unit) == pytest.approx(value, abs=0.05)

    def test_weights(self):
        assert to_kilograms(3500, "lbs") == 1587.57
        assert to_kilograms(18.75, "tonnes") == 18750.0


class TestCurrency:
    def test_symbols_and_codes(self):
        assert normalize_currency("€") == "EUR"
        assert normalize_currency("usd") == "USD"
        assert normalize_currency("Euros") == "EUR"

    def test_unknown(self):
        assert normalize_currency("XYZ") is None
        assert normalize_currency(None) is None


class TestEmail:
    def test_normalizes_case_and_brackets(self):
        assert normalize_email("<Jan.Peeters@ACME-Logistics.be>") == "jan.peeters@acme-logistics.be"

    def test_mailto_prefix(self):
        assert normalize_email("mailto:sales@acme-logistics.be") == "sales@acme-logistics.be"

    def test_invalid(self):
        assert normalize_email("not-an-email") is None
        assert normalize_email("") is None

    def test_generic_mailbox(self):
        assert is_generic_mailbox("noreply@acme-logistics.be")
        assert not is_generic_mailbox("jan.peeters@acme-logistics.be")

    def test_company_from_domain(self):
        assert company_from_domain("jan@acme-logistics.be") == "Acme Logistics"
        assert company_from_domain("jan@shipping.co.uk") == "Shipping"
        assert company_from_domain("jan@gmail.com") is None


class TestPhone:
    def test_double_zero_prefix(self):
        assert normalize_phone("0032 3 123 45 67") == "+3231234567"

    def test_plus_kept(self):
        assert normalize_phone("+32 (0)3 123-45-67") == "+32031234567"

    def test_plausibility(self):
        assert is_plausible_phone("+3231234567")
        assert not is_plausible_phone("+1111111")
        assert not is_plausible_phone("12345")
        assert not is_plausible_phone(None)


class TestNames:
    def test_person_name_strips_honorific(self):
        assert normalize_person_name("Mr. jan peeters") == "Jan Peeters"

    def test_person_name_strips_signature(self):
        assert normalize_person_name("Best regards, Jan Peeters") == "Jan Peeters"

    def test_hyphenated(self):
        assert normalize_person_name("marie-claire DUBOIS") == "Marie-Claire Dubois"

    def test_only_noise(self):
        assert normalize_person_name("Kind regards,") is None

    def test_company_name(self):
        assert normalize_company_name("  ACME   Logistics BV, ") == "ACME Logistics BV"


class TestVin:
    def test_valid(self):
        assert is_valid_vin("WBA7E2C51KG123456")
        assert is_valid_vin("wba7e2c51kg123456")

    def test_forbidden_letters(self):
        assert not is_valid_vin("WBA7E2C51KG12345I")

    def test_needs_letters_and_digits(self):
        assert not is_valid_vin("12345678901234567")
        assert not is_valid_vin("ABCDEFGHJKLMNPRST")
