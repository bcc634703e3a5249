"""
db.py
SQLite record store for members (create/update/delete + live snapshots),
staff accounts and small app settings.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import types
import weakref
from contextlib import contextmanager
from datetime import datetime
from typing import Callable

from config import settings
from errors import NotFoundError, StoreWriteError
from models import MEMBER_COLUMNS, Member

logger = logging.getLogger(__name__)

DB_FILE = settings.DB_FILE

Snapshot = list[Member]

# Bound methods are held weakly so a listener whose owner is gone drops out
_subscribers: list = []
_subscribers_lock = threading.Lock()


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables() -> None:
    # AUTOINCREMENT keeps deleted ids from being handed out again
    execute(
        """
        CREATE TABLE IF NOT EXISTS members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            mobile TEXT NOT NULL,
            join_date TEXT NOT NULL,
            membership_type TEXT NOT NULL CHECK(membership_type IN ('1','3','6','12')),
            expiry_date TEXT NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('active','expiring','expired')),
            price REAL NOT NULL CHECK(price >= 0)
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS staff_users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    # Small settings table (used to force password change on first login)
    execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(default_admin_hash: str) -> None:
    """
    Initialize the database.
    - Create tables
    - Insert default staff account (admin) if none exists
    - Force password change on first login
    """
    _create_tables()

    admin = fetch_one("SELECT id FROM staff_users LIMIT 1")
    if not admin:
        now = datetime.now().isoformat(timespec="seconds")
        execute(
            "INSERT INTO staff_users(username, password_hash, created_at) VALUES(?,?,?)",
            ("admin", default_admin_hash, now),
        )
        _set_setting("force_password_change", "1")
        logger.info("Created default staff account 'admin' in %s", DB_FILE)
    elif _get_setting("force_password_change") is None:
        _set_setting("force_password_change", "0")


def is_force_password_change() -> bool:
    return _get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")


# ---------- Members ----------

def list_members() -> Snapshot:
    rows = fetch_all("SELECT * FROM members ORDER BY join_date DESC, id DESC")
    return [Member.from_row(r) for r in rows]


def get_member(member_id: int) -> Member | None:
    row = fetch_one("SELECT * FROM members WHERE id = ?", (member_id,))
    return Member.from_row(row) if row else None


def _listener_ref(callback):
    if isinstance(callback, types.MethodType):
        return weakref.WeakMethod(callback)
    return lambda: callback


def _live_listeners() -> list[Callable[[Snapshot], None]]:
    """Resolve listener refs, forgetting the ones whose owner was collected."""
    with _subscribers_lock:
        alive = []
        for ref in list(_subscribers):
            callback = ref()
            if callback is None:
                _subscribers.remove(ref)
            else:
                alive.append(callback)
        return alive


def subscribe(callback: Callable[[Snapshot], None]) -> Callable[[], None]:
    """
    Register a listener for full member-list snapshots (join date, newest first).
    The listener gets the current list right away and again after every write.
    Returns a function that removes the listener.

    A bound method is only held weakly: once its object is garbage collected
    it stops receiving snapshots without an explicit unsubscribe.
    """
    ref = _listener_ref(callback)
    with _subscribers_lock:
        _subscribers.append(ref)
    callback(list_members())

    def unsubscribe() -> None:
        with _subscribers_lock:
            if ref in _subscribers:
                _subscribers.remove(ref)

    return unsubscribe


def subscriber_count() -> int:
    return len(_live_listeners())


def _publish() -> None:
    listeners = _live_listeners()
    if not listeners:
        return
    snapshot = list_members()
    for callback in listeners:
        try:
            callback(list(snapshot))
        except Exception:
            logger.exception("Member snapshot listener %r failed", callback)


def _write(action: str, sql: str, params: tuple) -> tuple[int, int]:
    """Run one member write; returns (lastrowid, rowcount)."""
    try:
        with get_conn() as conn:
            cur = conn.execute(sql, params)
            return cur.lastrowid, cur.rowcount
    except sqlite3.Error as e:
        logger.error("Failed to %s member: %s", action, e)
        raise StoreWriteError(f"There was a problem trying to {action} this member.") from e


def create_member(record: dict) -> int:
    values = tuple(record[c] for c in MEMBER_COLUMNS)
    member_id, _ = _write(
        "add",
        f"INSERT INTO members({', '.join(MEMBER_COLUMNS)}) VALUES({', '.join('?' * len(MEMBER_COLUMNS))})",
        values,
    )
    logger.info("Created member %s (%s)", member_id, record["name"])
    _publish()
    return member_id


def update_member(member_id: int, fields: dict) -> None:
    unknown = set(fields) - set(MEMBER_COLUMNS)
    if unknown:
        raise ValueError(f"Cannot update member fields: {', '.join(sorted(unknown))}")
    if not fields:
        return
    assignments = ", ".join(f"{c}=?" for c in fields)
    _, rowcount = _write(
        "update",
        f"UPDATE members SET {assignments} WHERE id=?",
        (*fields.values(), member_id),
    )
    if rowcount == 0:
        raise NotFoundError(f"Member {member_id} not found.")
    logger.info("Updated member %s: %s", member_id, ", ".join(fields))
    _publish()


def delete_member(member_id: int) -> None:
    _, rowcount = _write("delete", "DELETE FROM members WHERE id = ?", (member_id,))
    if rowcount == 0:
        raise NotFoundError(f"Member {member_id} not found.")
    logger.info("Deleted member %s", member_id)
    _publish()
