"""
membership.py
Add / renew / delete members. Validates input, derives expiry and status,
then issues exactly one record-store write per operation.

Two staff renewing the same member at once is last-write-wins: there is no
version check on the update.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

import db
from errors import NotFoundError, ParseError, ValidationError
from models import Member
from utils import (
    compute_expiry,
    derive_status,
    is_valid_price,
    parse_date,
    parse_plan,
    validate_member_inputs,
)

logger = logging.getLogger(__name__)


def add_member(name: str, mobile: str, join_date, membership_type, price, now=None) -> int:
    errors = validate_member_inputs(name, mobile, price, join_date, membership_type)
    if errors:
        raise ValidationError(errors)

    join = parse_date(join_date)
    plan_months = parse_plan(membership_type)
    expiry = compute_expiry(join, plan_months)
    member = Member(
        id=None,
        name=name.strip(),
        mobile=mobile.strip(),
        join_date=join.isoformat(),
        membership_type=str(plan_months),
        expiry_date=expiry.isoformat(),
        status=derive_status(expiry, now),
        price=float(price),
    )
    member_id = db.create_member(member.to_record())
    logger.info("Added %s on a %s month plan, expires %s", member.name, member.membership_type, member.expiry_date)
    return member_id


def default_renewal_start(current_expiry, today=None) -> date:
    """
    Renewing early must not shorten paid time: start from the current expiry
    if it is still ahead, otherwise from today.
    """
    if today is None:
        today = date.today()
    elif isinstance(today, datetime):
        today = today.date()
    return max(parse_date(current_expiry), today)


def _require_member(member_id) -> Member:
    member = db.get_member(member_id)
    if member is None:
        raise NotFoundError(f"Member {member_id} not found.")
    return member


def renew_member(member_id, start_date=None, plan_months=1, price=None, now=None) -> Member:
    errors: list[str] = []
    try:
        plan_months = parse_plan(plan_months)
    except (TypeError, ValueError):
        errors.append("Plan must be one of 1, 3, 6 or 12 months.")
    if not is_valid_price(price):
        errors.append("Please enter a valid price.")

    start = None
    if start_date is not None and str(start_date).strip():
        try:
            start = parse_date(start_date)
        except ParseError as e:
            errors.append(str(e))
    if errors:
        raise ValidationError(errors)

    member = _require_member(member_id)
    if start is None:
        start = default_renewal_start(member.expiry_date, now or date.today())

    new_expiry = compute_expiry(start, plan_months)
    fields = {
        "join_date": start.isoformat(),
        "membership_type": str(plan_months),
        "expiry_date": new_expiry.isoformat(),
        "status": derive_status(new_expiry, now),
        "price": float(price),
    }
    db.update_member(member.id, fields)
    logger.info("Renewed member %s from %s to %s", member.id, fields["join_date"], fields["expiry_date"])
    return Member(id=member.id, name=member.name, mobile=member.mobile, **fields)


def delete_member(member_id) -> None:
    """Permanent. Unknown ids raise NotFoundError."""
    db.delete_member(member_id)
