"""Per-caller session state handed to the login and logout workflows."""

from __future__ import annotations

import secrets
from typing import Any

LOGIN_KEY = "login"
ERROR_KEY = "err"
SUCCESS_KEY = "success"
FILL_KEY = "fill"

ACCOUNT_LOCKED = "account_locked"


class SessionContext:
    """Mutable session data scoped to one caller for the span of a request.

    The HTTP layer loads it from a session store at request start and either
    saves it or, once :meth:`invalidate` has been called, destroys it at
    request end.
    """

    def __init__(self, session_id: str | None = None, data: dict[str, Any] | None = None) -> None:
        self.session_id = session_id or new_session_id()
        self.data: dict[str, Any] = dict(data or {})
        self.invalidated = False

    @property
    def login(self) -> dict[str, Any] | None:
        """The logged-in account projection, if any."""
        return self.data.get(LOGIN_KEY)

    def set_login(self, account: dict[str, Any]) -> None:
        self.data[LOGIN_KEY] = account

    def add_error(self, key: str, message: str) -> None:
        self.data.setdefault(ERROR_KEY, {})[key] = message

    def errors(self) -> dict[str, str]:
        return dict(self.data.get(ERROR_KEY) or {})

    def add_success(self, key: str, message: str) -> None:
        self.data.setdefault(SUCCESS_KEY, {})[key] = message

    def rotate_id(self) -> str:
        """Assign a fresh session id and return the previous one."""
        previous, self.session_id = self.session_id, new_session_id()
        return previous

    def unset(self, key: str) -> None:
        self.data.pop(key, None)

    def invalidate(self) -> None:
        """Drop every key and mark the session for destruction."""
        self.data.clear()
        self.invalidated = True


def new_session_id() -> str:
    return secrets.token_urlsafe(32)
