"""
errors.py
Error kinds surfaced to the UI as notifications.
"""

from __future__ import annotations


class GymError(Exception):
    """Base class for every error the app reports to staff."""


class ValidationError(GymError):
    """Missing or invalid input. Raised before any write is attempted."""

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(" ".join(self.errors))


class NotFoundError(GymError):
    pass


class StoreWriteError(GymError):
    """The record store rejected a create/update/delete."""


class ParseError(GymError):
    pass


class AuthError(GymError):
    pass
