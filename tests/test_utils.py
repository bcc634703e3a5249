from datetime import date, datetime

import pytest

from errors import ParseError
from utils import (
    add_months,
    compute_expiry,
    derive_status,
    expiry_note,
    format_dmy,
    format_price,
    is_valid_price,
    parse_date,
    parse_dmy,
    parse_plan,
    parse_price,
    validate_member_inputs,
)


@pytest.mark.parametrize(
    "join, months, expected",
    [
        (date(2024, 1, 15), 1, date(2024, 2, 15)),
        (date(2024, 1, 15), 3, date(2024, 4, 15)),
        (date(2024, 1, 15), 6, date(2024, 7, 15)),
        (date(2024, 1, 15), 12, date(2025, 1, 15)),
        (date(2023, 11, 20), 3, date(2024, 2, 20)),
    ],
)
def test_compute_expiry_adds_calendar_months(join, months, expected):
    assert compute_expiry(join, months) == expected


def test_compute_expiry_clamps_to_end_of_month():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 8, 31), 1) == date(2024, 9, 30)


def test_compute_expiry_accepts_iso_and_plan_codes():
    assert compute_expiry("2024-03-10", "6") == date(2024, 9, 10)


def test_compute_expiry_is_deterministic():
    assert compute_expiry(date(2024, 5, 31), 3) == compute_expiry(date(2024, 5, 31), 3)


@pytest.mark.parametrize(
    "expiry, expected",
    [
        ("2023-12-31", "expired"),
        ("2024-01-01", "expiring"),
        ("2024-01-05", "expiring"),
        ("2024-01-08", "expiring"),
        ("2024-01-09", "active"),
    ],
)
def test_derive_status_boundaries(expiry, expected):
    assert derive_status(expiry, date(2024, 1, 1)) == expected


def test_derive_status_rounds_partial_days_up():
    now = datetime(2024, 1, 1, 10, 0)
    assert derive_status("2024-01-08", now) == "expiring"
    assert derive_status("2024-01-09", now) == "active"
    # ten hours past midnight of the expiry day still rounds up to day 0
    assert derive_status("2024-01-01", now) == "expiring"
    assert derive_status("2023-12-31", now) == "expired"


def test_parse_dmy():
    assert parse_dmy("05/02/2024") == date(2024, 2, 5)
    with pytest.raises(ParseError):
        parse_dmy("2024-02-05")
    with pytest.raises(ParseError):
        parse_dmy("31/02/2024")


def test_parse_date_accepts_both_formats():
    assert parse_date("2024-02-05") == date(2024, 2, 5)
    assert parse_date("05/02/2024") == date(2024, 2, 5)
    assert parse_date(datetime(2024, 2, 5, 10, 30)) == date(2024, 2, 5)
    with pytest.raises(ParseError):
        parse_date("not a date")


def test_format_helpers():
    assert format_dmy("2024-02-05") == "05/02/2024"
    assert format_price(1500.0, "₹") == "₹1500"
    assert format_price(99.5, "$") == "$99.5"
    assert parse_price("₹1500", "₹") == 1500.0
    with pytest.raises(ParseError):
        parse_price("free", "₹")


def test_validate_member_inputs_collects_every_problem():
    errors = validate_member_inputs("  ", "", "0", "yesterday", "2")
    assert len(errors) == 5


def test_validate_member_inputs_ok():
    assert validate_member_inputs("Alice", "9876500000", 500, "2024-01-01", "3") == []


@pytest.mark.parametrize("price", [0, -1, "nan", "inf", "-inf", "1e400", float("nan"), None, "abc"])
def test_is_valid_price_rejects_non_positive_and_non_finite(price):
    assert not is_valid_price(price)


def test_is_valid_price_accepts_positive_amounts():
    assert is_valid_price(0.5)
    assert is_valid_price("1500")


@pytest.mark.parametrize("text", ["nan", "inf", "₹1e400"])
def test_parse_price_rejects_non_finite(text):
    with pytest.raises(ParseError):
        parse_price(text, "₹")


@pytest.mark.parametrize("value, months", [(1, 1), ("3", 3), (" 6 ", 6), (12.0, 12)])
def test_parse_plan(value, months):
    assert parse_plan(value) == months


@pytest.mark.parametrize("value", [3.7, "3.7", 2, "12 months", True, None])
def test_parse_plan_rejects_fractional_and_unknown_plans(value):
    with pytest.raises((TypeError, ValueError)):
        parse_plan(value)


def test_expiry_note():
    assert expiry_note("2024-01-05", date(2024, 1, 1)) == "Expires in 4 days"
    assert expiry_note("2023-12-29", date(2024, 1, 1)) == "Expired 3 days ago"
