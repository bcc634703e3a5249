"""
auth.py
Staff identity: bcrypt hashing, sign in/out, change password.

This avoids passlib's bcrypt backend auto-detection issues on some Python 3.13 Windows setups.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import bcrypt

import db
from errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class User:
    username: str
    display_name: str


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    """
    Returns a bcrypt hash as a UTF-8 string (stored in SQLite).
    """
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    return bcrypt.checkpw(secret, stored)


def get_staff_by_username(username: str):
    return db.fetch_one("SELECT * FROM staff_users WHERE username = ?", (username,))


class IdentityProvider:
    """
    Sign-in state for one UI session. Holds at most one signed-in user.
    """

    def __init__(self):
        self._user: User | None = None

    def sign_in(self, username: str, password: str) -> User:
        username = (username or "").strip()
        staff = get_staff_by_username(username) if username else None
        if not staff or not verify_password(password or "", staff["password_hash"]):
            logger.warning("Failed sign-in for %r", username)
            raise AuthError("Invalid username or password.")
        self._user = User(username=staff["username"], display_name=staff["username"])
        logger.info("Signed in as %s", self._user.username)
        return self._user

    def sign_out(self) -> None:
        if self._user:
            logger.info("Signed out %s", self._user.username)
        self._user = None

    def current_user(self) -> User | None:
        return self._user


def change_password(username: str, new_password: str, confirm: str | None = None) -> None:
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if confirm is not None and new_password != confirm:
        raise ValidationError("Passwords do not match.")
    new_hash = hash_password(new_password)
    db.execute(
        "UPDATE staff_users SET password_hash = ? WHERE username = ?",
        (new_hash, username),
    )
    db.clear_force_password_change()
    logger.info("Password changed for %s", username)
