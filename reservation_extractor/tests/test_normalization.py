"""Tests for reservation_extractor.core.normalization module.

Tests value parsing used by both extraction paths:
- Dates in ISO, day-first numeric and Portuguese/English month-name forms
- Monetary amounts with European and US grouping
- Platform names
- Model records to drafts
"""

from datetime import date

import pytest

from reservation_extractor.core.normalization import (
    draft_from_record,
    fold_text,
    infer_platform,
    normalize_platform,
    parse_amount,
    parse_control_date,
    parse_date,
    parse_int,
)


# =============================================================================
# fold_text
# =============================================================================


class TestFoldText:
    def test_strips_accents_and_lowercases(self):
        assert fold_text("Data Saída") == "data saida"

    def test_ordinal_indicator_becomes_o(self):
        assert fold_text("N.º hóspedes") == "n.o hospedes"


# =============================================================================
# parse_date
# =============================================================================


class TestParseDate:
    @pytest.mark.parametrize("value,expected", [
        ("2025-03-21", date(2025, 3, 21)),
        ("2025-03-21T15:00:00", date(2025, 3, 21)),
        ("21/03/2025", date(2025, 3, 21)),
        ("21-03-2025", date(2025, 3, 21)),
        ("21.03.2025", date(2025, 3, 21)),
        ("21/03/25", date(2025, 3, 21)),
        ("21 de março de 2025", date(2025, 3, 21)),
        ("21 March 2025", date(2025, 3, 21)),
        ("March 21, 2025", date(2025, 3, 21)),
        ("1 fev 2025", date(2025, 2, 1)),
    ])
    def test_supported_formats(self, value, expected):
        assert parse_date(value) == expected

    def test_day_first_is_not_month_first(self):
        assert parse_date("03/04/2025") == date(2025, 4, 3)

    def test_impossible_date_returns_none(self):
        assert parse_date("31/02/2025") is None

    def test_garbage_returns_none(self):
        assert parse_date("next tuesday") is None

    def test_empty_returns_none(self):
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_date_passthrough(self):
        assert parse_date(date(2025, 1, 2)) == date(2025, 1, 2)


class TestParseControlDate:
    def test_strict_format(self):
        assert parse_control_date("01/03/2025") == date(2025, 3, 1)

    def test_rejects_other_formats(self):
        assert parse_control_date("2025-03-01") is None
        assert parse_control_date("1 mar 2025") is None


# =============================================================================
# parse_amount
# =============================================================================


class TestParseAmount:
    @pytest.mark.parametrize("value,expected", [
        ("€ 1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("120,50 EUR", 120.5),
        ("1.200", 1200.0),
        ("$450", 450.0),
        (450, 450.0),
        ("1 234,00 €", 1234.0),
    ])
    def test_amount_formats(self, value, expected):
        assert parse_amount(value) == pytest.approx(expected)

    def test_keeps_negative_sign(self):
        assert parse_amount("-50,00") == pytest.approx(-50.0)

    def test_no_digits_returns_none(self):
        assert parse_amount("a combinar") is None

    def test_bool_is_not_an_amount(self):
        assert parse_amount(True) is None


class TestParseInt:
    def test_number_with_unit(self):
        assert parse_int("4 hóspedes") == 4

    def test_fractional_float_rejected(self):
        assert parse_int(2.5) is None

    def test_none(self):
        assert parse_int(None) is None


# =============================================================================
# normalize_platform
# =============================================================================


class TestNormalizePlatform:
    @pytest.mark.parametrize("value,expected", [
        ("Airbnb", "airbnb"),
        ("Booking.com", "booking"),
        ("HomeAway", "vrbo"),
        ("Direto", "direct"),
        ("Particular", "direct"),
        ("Agência local", "other"),
    ])
    def test_platforms(self, value, expected):
        assert normalize_platform(value) == expected

    def test_empty(self):
        assert normalize_platform("  ") is None


# =============================================================================
# draft_from_record
# =============================================================================


class TestDraftFromRecord:
    def test_camel_case_record(self):
        draft, unparseable = draft_from_record({
            "propertyName": "Sete Rios",
            "guestName": "Camila  Souza",
            "checkInDate": "2025-03-01",
            "checkOutDate": "05/03/2025",
            "numGuests": "2",
            "totalAmount": "€ 480,00",
            "platform": "Airbnb",
        })
        assert unparseable == []
        assert draft.guest_name == "Camila Souza"
        assert draft.property_ref.raw_name == "Sete Rios"
        assert draft.check_in_date == date(2025, 3, 1)
        assert draft.check_out_date == date(2025, 3, 5)
        assert draft.num_guests == 2
        assert draft.total_amount == pytest.approx(480.0)
        assert draft.platform == "airbnb"
        assert draft.source == "model"

    def test_snake_case_record(self):
        draft, _ = draft_from_record({"guest_name": "John Smith", "check_in_date": "2025-06-10"})
        assert draft.guest_name == "John Smith"
        assert draft.check_in_date == date(2025, 6, 10)

    def test_unparseable_values_reported_and_left_empty(self):
        draft, unparseable = draft_from_record({"checkInDate": "soon", "totalAmount": "tbd"})
        assert draft.check_in_date is None
        assert draft.total_amount is None
        assert set(unparseable) == {"check_in_date", "total_amount"}

    def test_null_values_are_missing_not_unparseable(self):
        draft, unparseable = draft_from_record({"guestName": None, "checkInDate": ""})
        assert draft.guest_name is None
        assert unparseable == []

    def test_portuguese_keys(self):
        draft, unparseable = draft_from_record({
            "nome": "Ana",
            "entrada": "2025-03-01",
            "saída": "2025-03-05",
            "hospedes": 2,
            "valor": "450",
            "plataforma": "Airbnb",
            "alojamento": "Sete Rios",
            "telemóvel": "+351 912 345 678",
            "limpeza": "35",
        })
        assert unparseable == []
        assert draft.guest_name == "Ana"
        assert draft.check_in_date == date(2025, 3, 1)
        assert draft.check_out_date == date(2025, 3, 5)
        assert draft.num_guests == 2
        assert draft.total_amount == pytest.approx(450.0)
        assert draft.platform == "airbnb"
        assert draft.property_ref.raw_name == "Sete Rios"
        assert draft.guest_phone == "+351 912 345 678"
        assert draft.cleaning_fee == pytest.approx(35.0)

    @pytest.mark.parametrize("record", [
        {"checkin": "2025-03-01", "checkout": "2025-03-05", "pax": "3"},
        {"arrival": "2025-03-01", "departure": "2025-03-05", "numberOfGuests": 3},
        {"startDate": "2025-03-01", "endDate": "2025-03-05", "pessoas": "3 pessoas"},
        {"dataEntrada": "01/03/2025", "dataSaida": "05/03/2025", "CHECK_IN": None, "guests": 3},
    ])
    def test_key_spellings(self, record):
        draft, _ = draft_from_record(record)
        assert draft.check_in_date == date(2025, 3, 1)
        assert draft.check_out_date == date(2025, 3, 5)
        assert draft.num_guests == 3

    def test_empty_duplicate_spelling_does_not_hide_value(self):
        draft, _ = draft_from_record({"checkIn": "", "check_in": "2025-03-01"})
        assert draft.check_in_date == date(2025, 3, 1)


# =============================================================================
# infer_platform
# =============================================================================


class TestInferPlatform:
    @pytest.mark.parametrize("text,expected", [
        ("Reserva confirmada via Airbnb", "airbnb"),
        ("Booking.com confirmation #123", "booking"),
        ("Reserva direta por telefone", None),
        ("", None),
        (None, None),
    ])
    def test_infer(self, text, expected):
        assert infer_platform(text) == expected
