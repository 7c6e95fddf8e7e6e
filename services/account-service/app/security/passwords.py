"""Salted one-way password hashing backed by bcrypt."""

from __future__ import annotations

import bcrypt

from ..domain.errors import UnsupportedPasswordError

# bcrypt only reads the first 72 bytes of its input; bcrypt>=5 rejects longer ones
MAX_PASSWORD_BYTES = 72


def password_byte_length(password: str) -> int:
    return len(password.encode("utf-8"))


class PasswordHasher:
    """Hash and verify plaintext passwords with a configurable bcrypt cost."""

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """Return a bcrypt hash string for ``password``.

        Raises
        ------
        UnsupportedPasswordError
            When the password is empty or longer than ``MAX_PASSWORD_BYTES`` in UTF-8.
        """
        length = password_byte_length(password)
        if length == 0 or length > MAX_PASSWORD_BYTES:
            raise UnsupportedPasswordError(
                f"password must be 1-{MAX_PASSWORD_BYTES} bytes in UTF-8, got {length}"
            )
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Return ``True`` when ``password`` matches the stored hash.

        A stored value that is not a bcrypt hash never matches, and neither
        does a password that could not have been hashed.
        """
        if not password_hash or password_byte_length(password) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
