"""Errors raised below the service boundary."""

from __future__ import annotations


class StorageError(Exception):
    """A database operation failed.

    ``rolled_back`` is true when the failure happened inside a write
    transaction that was rolled back, false for failed reads.
    """

    def __init__(self, message: str, *, rolled_back: bool = False) -> None:
        super().__init__(message)
        self.rolled_back = rolled_back


class UnsupportedPasswordError(ValueError):
    """The password cannot be hashed (empty, or longer than bcrypt's 72-byte input)."""
