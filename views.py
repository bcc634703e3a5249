"""
views.py
One state container for the live member list and the views derived from it
(search results, current page, reminders).
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field

from models import ACTIVE, EXPIRED, EXPIRING, Member
from utils import derive_status, expiry_note

PAGE_SIZE = 10


def filter_members(members: list[Member], query: str) -> list[Member]:
    # Name match ignores case; mobile match is a plain substring
    if not query:
        return list(members)
    q = query.lower()
    return [m for m in members if q in m.name.lower() or query in m.mobile]


def paginate(items: list, page: int, page_size: int = PAGE_SIZE) -> list:
    start = (page - 1) * page_size
    return items[start:start + page_size]


def reminder_members(members: list[Member], now=None) -> list[Member]:
    return [m for m in members if derive_status(m.expiry_date, now) in (EXPIRING, EXPIRED)]


def reminder_rows(members: list[Member], now=None) -> list[tuple[Member, str, str]]:
    """(member, live status, "Expires in N days" / "Expired N days ago") per reminder."""
    return [
        (m, derive_status(m.expiry_date, now), expiry_note(m.expiry_date, now))
        for m in reminder_members(members, now)
    ]


@dataclass
class MemberListState:
    members: list[Member] = field(default_factory=list)
    query: str = ""
    page: int = 1
    page_size: int = PAGE_SIZE
    _pending: list[Member] | None = field(default=None, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def set_members(self, snapshot: list[Member]) -> None:
        self.members = list(snapshot)
        self.page = 1

    def receive(self, snapshot: list[Member]) -> None:
        """
        Store-listener entry point. Writers on other threads only park the
        snapshot here; the owning session applies it with sync().
        """
        with self._lock:
            self._pending = list(snapshot)

    def sync(self) -> bool:
        with self._lock:
            snapshot, self._pending = self._pending, None
        if snapshot is None:
            return False
        self.set_members(snapshot)
        return True

    def set_query(self, query: str) -> None:
        query = query or ""
        if query != self.query:
            self.query = query
            self.page = 1

    @property
    def filtered(self) -> list[Member]:
        return filter_members(self.members, self.query)

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.filtered) / self.page_size)

    @property
    def page_items(self) -> list[Member]:
        return paginate(self.filtered, self.page, self.page_size)

    def go_to(self, page: int) -> bool:
        if page < 1 or page > self.total_pages or page == self.page:
            return False
        self.page = page
        return True

    def next_page(self) -> bool:
        return self.go_to(self.page + 1)

    def prev_page(self) -> bool:
        return self.go_to(self.page - 1)

    def reminders(self, now=None) -> list[Member]:
        return reminder_members(self.members, now)

    def counts(self, now=None) -> dict[str, int]:
        result = {"total": len(self.members), ACTIVE: 0, EXPIRING: 0, EXPIRED: 0}
        for m in self.members:
            result[derive_status(m.expiry_date, now)] += 1
        return result
