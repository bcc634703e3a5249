"""
renewal.py
Step-by-step renewal form: start date -> plan -> price -> confirm -> submit.
"""

from __future__ import annotations

import enum
from datetime import date

import membership
from config import settings
from errors import GymError, ParseError, ValidationError
from models import Member, membership_label
from utils import format_dmy, format_price, is_valid_price, parse_dmy, parse_plan, parse_price


class RenewalStep(enum.Enum):
    COLLECTING_START_DATE = "collecting-start-date"
    COLLECTING_PLAN = "collecting-plan"
    COLLECTING_PRICE = "collecting-price"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    DONE = "done"
    CANCELLED = "cancelled"


TERMINAL_STEPS = (RenewalStep.DONE, RenewalStep.CANCELLED)


class RenewalForm:
    def __init__(self, member: Member, today: date | None = None):
        self.member = member
        self.today = today or date.today()
        self.step = RenewalStep.COLLECTING_START_DATE
        self.start_date: date | None = None
        self.plan_months: int | None = None
        self.price: float | None = None
        self.result: Member | None = None

    def _expect(self, step: RenewalStep) -> None:
        if self.step is not step:
            raise RuntimeError(f"Renewal is at {self.step.value}, not {step.value}")

    def enter_start_date(self, text: str | None) -> date:
        """Blank keeps the default start (current expiry or today, whichever is later)."""
        self._expect(RenewalStep.COLLECTING_START_DATE)
        if text and text.strip():
            try:
                self.start_date = parse_dmy(text)
            except ParseError as e:
                raise ValidationError(str(e)) from e
        else:
            self.start_date = membership.default_renewal_start(self.member.expiry_date, self.today)
        self.step = RenewalStep.COLLECTING_PLAN
        return self.start_date

    def choose_plan(self, months) -> int:
        self._expect(RenewalStep.COLLECTING_PLAN)
        try:
            months = parse_plan(months)
        except (TypeError, ValueError):
            raise ValidationError("Please choose a plan of 1, 3, 6 or 12 months.") from None
        self.plan_months = months
        self.step = RenewalStep.COLLECTING_PRICE
        return months

    def enter_price(self, text) -> float:
        self._expect(RenewalStep.COLLECTING_PRICE)
        try:
            price = parse_price(text, settings.CURRENCY)
        except ParseError:
            price = 0.0
        if not is_valid_price(price):
            raise ValidationError("Please enter a valid price.")
        self.price = price
        self.step = RenewalStep.CONFIRMING
        return price

    def summary(self) -> str:
        return (
            f"Confirm renewal:\n{self.member.name}\n"
            f"Duration: {membership_label(self.plan_months)}\n"
            f"Start Date: {format_dmy(self.start_date)}\n"
            f"Amount: {format_price(self.price, settings.CURRENCY)}"
        )

    def confirm(self) -> Member:
        self._expect(RenewalStep.CONFIRMING)
        self.step = RenewalStep.SUBMITTING
        try:
            self.result = membership.renew_member(
                self.member.id,
                start_date=self.start_date,
                plan_months=self.plan_months,
                price=self.price,
                now=self.today,
            )
        except GymError:
            self.step = RenewalStep.CONFIRMING
            raise
        self.step = RenewalStep.DONE
        return self.result

    def cancel(self) -> None:
        if self.step not in TERMINAL_STEPS:
            self.step = RenewalStep.CANCELLED

    @property
    def finished(self) -> bool:
        return self.step in TERMINAL_STEPS
