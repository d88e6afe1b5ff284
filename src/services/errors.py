"""Exceptions raised by the recommendation engine."""

from __future__ import annotations


class SarkarMitraError(Exception):
    """Base class for all engine errors."""


class ProfileNotFoundError(SarkarMitraError):
    """No citizen profile exists for the requested user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"Citizen profile not found for user '{user_id}'")
        self.user_id = user_id


class OracleError(SarkarMitraError):
    """The AI scoring oracle returned no usable content."""
