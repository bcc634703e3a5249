"""
models.py
Lightweight domain helpers (plans, statuses, the Member dataclass).
"""

from __future__ import annotations
from dataclasses import asdict, dataclass

# Plan durations in months (used for expiry auto-calculation)
PLAN_MONTHS = (1, 3, 6, 12)

PLAN_LABELS = {
    "1": "1 Month",
    "3": "3 Months",
    "6": "6 Months",
    "12": "1 Year",
}

ACTIVE = "active"
EXPIRING = "expiring"
EXPIRED = "expired"

STATUS_LABELS = {
    ACTIVE: "Active",
    EXPIRING: "Expiring Soon",
    EXPIRED: "Expired",
}

# Days before expiry from which a membership counts as expiring (inclusive)
EXPIRING_WINDOW_DAYS = 7

MEMBER_COLUMNS = ("name", "mobile", "join_date", "membership_type", "expiry_date", "status", "price")


def membership_label(code) -> str:
    return PLAN_LABELS.get(str(code), str(code))


@dataclass(frozen=True)
class Member:
    id: int | None
    name: str
    mobile: str
    join_date: str  # ISO YYYY-MM-DD
    membership_type: str  # "1" / "3" / "6" / "12"
    expiry_date: str  # ISO YYYY-MM-DD
    status: str  # 'active', 'expiring' or 'expired' as of the last write
    price: float

    @classmethod
    def from_row(cls, row) -> "Member":
        return cls(
            id=row["id"],
            name=row["name"],
            mobile=row["mobile"],
            join_date=row["join_date"],
            membership_type=str(row["membership_type"]),
            expiry_date=row["expiry_date"],
            status=row["status"],
            price=float(row["price"]),
        )

    def to_record(self) -> dict:
        """Store fields only; the id belongs to the store."""
        data = asdict(self)
        data.pop("id")
        return data
