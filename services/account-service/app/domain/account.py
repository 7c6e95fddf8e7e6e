from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class Account:
    """A row of the ``users`` table."""

    id: int
    user_name: str
    family_name: str
    first_name: str
    email: str
    password_hash: str
    is_admin: bool = False
    is_deleted: bool = False
    locked_flg: bool = False
    error_count: int = 0

    def to_session(self) -> dict[str, Any]:
        """Return the JSON-safe projection kept under the ``login`` session key."""
        return {
            "id": self.id,
            "user_name": self.user_name,
            "family_name": self.family_name,
            "first_name": self.first_name,
            "email": self.email,
            "is_admin": self.is_admin,
            "is_deleted": self.is_deleted,
            "locked_flg": self.locked_flg,
            "error_count": self.error_count,
        }


@dataclass(slots=True)
class AccountSummary:
    """Partial projection returned by account listings."""

    id: int
    user_name: str
    password_hash: str
    family_name: str
    first_name: str
    is_admin: bool
    is_deleted: bool
