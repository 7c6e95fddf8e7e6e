"""Account service: registration, lockout-aware login, and account lookups."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from .account import Account, AccountSummary
from .contracts import NewAccountRecord, RegisterAccountInput
from .errors import StorageError, UnsupportedPasswordError
from .session import ACCOUNT_LOCKED, ERROR_KEY, FILL_KEY, LOGIN_KEY, SUCCESS_KEY, SessionContext
from ..config import Settings, get_settings
from ..repository import AccountRepository
from ..security.passwords import PasswordHasher

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_account_id(value: Any) -> Optional[int]:
    """Return ``value`` as a positive integer id, or ``None`` when it is malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            number = int(text)
            return number if number > 0 else None
    return None


class AccountService:
    """Account workflows backed by Postgres storage.

    Every public method returns a bool, a possibly-``None`` record, or a list.
    Storage failures and unexpected errors are logged and turned into that
    method's failure value; lockout messages reach the caller through the
    session's error bucket.
    """

    def __init__(
        self,
        repository: AccountRepository,
        *,
        settings: Settings | None = None,
        hasher: PasswordHasher | None = None,
    ) -> None:
        """Store dependencies used to orchestrate persistence and password checks."""
        self._repository = repository
        self._settings = settings or get_settings()
        self._hasher = hasher or PasswordHasher(rounds=self._settings.bcrypt_rounds)

    def _guard(self, operation: str, default: T, func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except StorageError as exc:
            if exc.rolled_back:
                logger.warning("%s failed and its transaction was rolled back: %s", operation, exc)
            else:
                logger.warning("%s failed reading from storage: %s", operation, exc)
            return default
        except Exception:
            logger.exception("unexpected error during %s", operation)
            return default

    def register(self, payload: RegisterAccountInput) -> bool:
        """Create an account unless any row, deleted or not, already uses the email."""
        return self._guard("register", False, self._register, payload)

    def _register(self, payload: RegisterAccountInput) -> bool:
        if self._repository.find_by_email(payload.email) is not None:
            logger.info("registration rejected: email already in use")
            return False
        try:
            password_hash = self._hasher.hash(payload.password)
        except UnsupportedPasswordError as exc:
            logger.info("registration rejected: %s", exc)
            return False
        account = self._repository.create_account(
            NewAccountRecord(
                user_name=payload.user_name,
                family_name=payload.family_name,
                first_name=payload.first_name,
                email=payload.email,
                password_hash=password_hash,
            )
        )
        logger.info("registered account %s", account.id)
        return True

    def find_by_email(self, email: str) -> Account | None:
        return self._guard("find_by_email", None, self._repository.find_by_email, email)

    def authenticate(self, email: str, password: str) -> Account | None:
        """Return the account when the password matches its stored hash."""
        return self._guard("authenticate", None, self._authenticate, email, password)

    def _authenticate(self, email: str, password: str) -> Account | None:
        account = self._repository.find_by_email(email)
        if account is None:
            return None
        if not self._hasher.verify(password, account.password_hash):
            return None
        return account

    def login_with_lockout(self, email: str, password: str, session: SessionContext) -> bool:
        """Log in through the lockout state machine.

        Parameters
        ----------
        email, password:
            Credentials submitted by the caller.
        session:
            Caller's session; receives the ``login`` record on success and an
            ``err["account_locked"]`` message when the account is or becomes locked.

        Returns
        -------
        bool
            ``True`` only when credentials are valid, the account is neither
            locked nor deleted, and the failed-attempt counter was reset.
        """
        return self._guard("login", False, self._login_with_lockout, email, password, session)

    def _login_with_lockout(self, email: str, password: str, session: SessionContext) -> bool:
        account = self._repository.find_by_email(email)
        if account is None:
            return False

        if account.locked_flg:
            session.add_error(ACCOUNT_LOCKED, self._settings.msg_account_locked_error)
            return False

        if not account.is_deleted and self._hasher.verify(password, account.password_hash):
            if account.error_count > 0:
                self._repository.reset_error_count(account.id)
                account.error_count = 0
            session.set_login(account.to_session())
            logger.info("account %s logged in", account.id)
            return True

        error_count = self._repository.increment_error_count(account.id)
        if error_count >= self._settings.lockout_threshold:
            self._repository.lock_account(account.id)
            session.add_error(ACCOUNT_LOCKED, self._settings.msg_make_account_locked)
            logger.warning("account %s locked after %s failed logins", account.id, error_count)
        return False

    def logout(self, session: SessionContext) -> bool:
        """Remove the login and message buckets, then invalidate the whole session."""
        for key in (LOGIN_KEY, FILL_KEY, ERROR_KEY, SUCCESS_KEY):
            session.unset(key)
        session.invalidate()
        return True

    def list_all(self) -> list[AccountSummary]:
        """Return every account ordered by id, soft-deleted accounts included."""
        return self._guard("list_all", [], self._repository.list_accounts)

    def exists(self, account_id: Any) -> bool:
        """Report whether accounts exist for a well-formed id.

        Unless ``Settings.exists_filters_by_id`` is enabled this counts every
        row of the table, so any valid id answers ``True`` once one account
        exists.
        """
        parsed = parse_account_id(account_id)
        if parsed is None:
            return False
        target = parsed if self._settings.exists_filters_by_id else None
        return self._guard("exists", 0, self._repository.count_accounts, target) > 0

    def get_by_id(self, account_id: Any) -> Account | None:
        parsed = parse_account_id(account_id)
        if parsed is None:
            return None
        return self._guard("get_by_id", None, self._repository.get_account, parsed)

    def soft_delete(self, account_id: Any) -> bool:
        """Mark the account deleted; it stays listed but can no longer log in."""
        parsed = parse_account_id(account_id)
        if parsed is None:
            return False
        return self._guard("soft_delete", False, self._soft_delete, parsed)

    def _soft_delete(self, account_id: int) -> bool:
        self._repository.soft_delete(account_id)
        logger.info("soft-deleted account %s", account_id)
        return True
