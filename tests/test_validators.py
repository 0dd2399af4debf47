from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from roadside.domain.tickets.service import clean_comments, parse_date_param, parse_eta
from roadside.shared.validators import (
    is_valid_lead_phone,
    normalize_cell_number,
    normalize_state,
    parse_policy_date,
    validate_lead_phone,
)

NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.mark.parametrize(
    "text,minutes",
    [
        ("45 min", 45),
        ("2 hours", 120),
        ("1 hr 30 min", 90),
        ("1 day", 24 * 60),
    ],
)
def test_parse_eta_durations(text, minutes):
    assert parse_eta(text, NOW) == NOW + timedelta(minutes=minutes)


def test_parse_eta_iso_date():
    assert parse_eta("2024-05-02T08:30:00Z", NOW) == datetime(2024, 5, 2, 8, 30)


def test_parse_eta_converts_offsets_to_utc():
    assert parse_eta("2025-01-01T10:00:00+05:00", NOW) == datetime(2025, 1, 1, 5, 0)


def test_parse_date_param_converts_offsets_to_utc():
    assert parse_date_param("2025-01-01T00:30:00-02:00") == datetime(2025, 1, 1, 2, 30)
    assert parse_date_param("2025-01-01") == datetime(2025, 1, 1)
    assert parse_date_param(None) is None

    with pytest.raises(HTTPException) as exc:
        parse_date_param("yesterday")
    assert exc.value.status_code == 400


def test_parse_eta_unrecognised():
    assert parse_eta("soon", NOW) is None
    assert parse_eta("", NOW) is None


def test_clean_comments_trims_and_drops_empty():
    comments = [{"text": "  on the way "}, {"text": "   "}, {"text": None}, "junk"]

    assert clean_comments(comments) == [{"text": "on the way"}]


def test_parse_policy_date_formats():
    assert parse_policy_date("12/31/2030") == datetime(2030, 12, 31)
    assert parse_policy_date("2030-12-31") == datetime(2030, 12, 31)
    assert parse_policy_date("not a date") is None
    assert parse_policy_date(None) is None


def test_normalize_cell_number():
    assert normalize_cell_number(" 555-123-4567 ") == "5551234567"
    assert normalize_cell_number(None) is None


@pytest.mark.parametrize("phone", ["+15551234567", "(555) 123-4567", "5551234567"])
def test_valid_lead_phones(phone):
    assert is_valid_lead_phone(phone)


@pytest.mark.parametrize("phone", ["", "abc", "123"])
def test_invalid_lead_phones(phone):
    assert not is_valid_lead_phone(phone)
    with pytest.raises(ValueError):
        validate_lead_phone(phone)


def test_normalize_state():
    assert normalize_state(" ca ") == "CA"
    with pytest.raises(ValueError):
        normalize_state("  ")
