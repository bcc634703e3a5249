"""
utils.py
Validation, dates, prices.
"""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime, timedelta

from errors import ParseError
from models import ACTIVE, EXPIRED, EXPIRING, EXPIRING_WINDOW_DAYS, PLAN_MONTHS


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def parse_dmy(text: str) -> date:
    """
    Parse a DD/MM/YYYY date (the format staff type and the CSV file uses).
    """
    parts = text.strip().split("/")
    if len(parts) != 3:
        raise ParseError(f"Invalid date {text!r}. Please use DD/MM/YYYY format.")
    try:
        day, month, year = (int(p) for p in parts)
        return date(year, month, day)
    except ValueError:
        raise ParseError(f"Invalid date {text!r}. Please use DD/MM/YYYY format.") from None


def parse_date(value) -> date:
    """Accept a date, an ISO string or a DD/MM/YYYY string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if "/" in text:
        return parse_dmy(text)
    try:
        return parse_iso(text)
    except ValueError:
        raise ParseError(f"Invalid date {text!r}.") from None


def format_dmy(d) -> str:
    return parse_date(d).strftime("%d/%m/%Y")


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    month = start.month - 1 + months
    year = start.year + month // 12
    month = month % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def compute_expiry(join_date, plan_months) -> date:
    return add_months(parse_date(join_date), int(plan_months))


def days_until(expiry_date, now=None) -> int:
    """
    Whole days from now until midnight of expiry_date, rounded up.
    Negative once the expiry day is more than a day in the past.
    """
    if now is None:
        now = datetime.now()
    elif not isinstance(now, datetime):
        now = datetime.combine(now, datetime.min.time())
    expiry = datetime.combine(parse_date(expiry_date), datetime.min.time())
    return math.ceil((expiry - now) / timedelta(days=1))


def derive_status(expiry_date, now=None) -> str:
    days = days_until(expiry_date, now)
    if days < 0:
        return EXPIRED
    if days <= EXPIRING_WINDOW_DAYS:
        return EXPIRING
    return ACTIVE


def expiry_note(expiry_date, now=None) -> str:
    days = days_until(expiry_date, now)
    if days < 0:
        return f"Expired {abs(days)} days ago"
    return f"Expires in {days} days"


def format_price(price: float, currency: str = "") -> str:
    amount = f"{float(price):.2f}".rstrip("0").rstrip(".")
    return f"{currency}{amount}"


def parse_price(text, currency: str = "") -> float:
    raw = str(text).strip()
    if currency:
        raw = raw.replace(currency, "")
    try:
        price = float(raw.strip())
    except ValueError:
        raise ParseError(f"Invalid price {text!r}.") from None
    if not math.isfinite(price):
        raise ParseError(f"Invalid price {text!r}.")
    return price


def is_valid_price(price) -> bool:
    """True for a finite amount above zero ("nan", "inf" and 1e400 are not prices)."""
    try:
        price = float(price)
    except (TypeError, ValueError):
        return False
    return math.isfinite(price) and price > 0


def parse_plan(value) -> int:
    """
    Plan length in whole months, one of PLAN_MONTHS. Raises ValueError otherwise,
    including for fractional values such as 3.7.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid plan {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Invalid plan {value!r}")
        value = int(value)
    months = int(str(value).strip())
    if months not in PLAN_MONTHS:
        raise ValueError(f"Invalid plan {value!r}")
    return months


def validate_member_inputs(name: str, mobile: str, price, join_date, membership_type) -> list[str]:
    errors: list[str] = []
    if not (name or "").strip():
        errors.append("Name is required.")
    if not (mobile or "").strip():
        errors.append("Mobile number is required.")
    if not is_valid_price(price):
        errors.append("Price must be a number greater than 0.")
    try:
        parse_date(join_date)
    except ParseError:
        errors.append("Join date must be a valid date (YYYY-MM-DD or DD/MM/YYYY).")
    try:
        parse_plan(membership_type)
    except (TypeError, ValueError):
        errors.append("Membership type must be one of 1, 3, 6 or 12 months.")
    return errors
