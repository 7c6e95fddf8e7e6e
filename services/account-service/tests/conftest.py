from __future__ import annotations

from dataclasses import replace

import pytest

from app.config import Settings
from app.domain.account import Account, AccountSummary
from app.domain.contracts import NewAccountRecord
from app.domain.errors import StorageError
from app.domain.service import AccountService
from app.security.passwords import PasswordHasher


WRITE_OPERATIONS = frozenset(
    {"create_account", "soft_delete", "reset_error_count", "increment_error_count", "lock_account"}
)


class FakeRepository:
    """In-memory repository mimicking the Postgres-backed behaviors."""

    def __init__(self) -> None:
        self.accounts: dict[int, Account] = {}
        self.calls: list[str] = []
        self.fail_on: set[str] = set()
        self._seq = 0

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed", rolled_back=operation in WRITE_OPERATIONS)

    def find_by_email(self, email: str) -> Account | None:
        self._record("find_by_email")
        for account_id in sorted(self.accounts):
            if self.accounts[account_id].email == email:
                return replace(self.accounts[account_id])
        return None

    def get_account(self, account_id: int) -> Account | None:
        self._record("get_account")
        account = self.accounts.get(account_id)
        return replace(account) if account else None

    def list_accounts(self) -> list[AccountSummary]:
        self._record("list_accounts")
        return [
            AccountSummary(
                id=account.id,
                user_name=account.user_name,
                password_hash=account.password_hash,
                family_name=account.family_name,
                first_name=account.first_name,
                is_admin=account.is_admin,
                is_deleted=account.is_deleted,
            )
            for _, account in sorted(self.accounts.items())
        ]

    def count_accounts(self, account_id: int | None = None) -> int:
        self._record("count_accounts")
        if account_id is None:
            return len(self.accounts)
        return 1 if account_id in self.accounts else 0

    def create_account(self, record: NewAccountRecord) -> Account:
        self._record("create_account")
        self._seq += 1
        account = Account(
            id=self._seq,
            user_name=record.user_name,
            family_name=record.family_name,
            first_name=record.first_name,
            email=record.email,
            password_hash=record.password_hash,
        )
        self.accounts[account.id] = account
        return replace(account)

    def soft_delete(self, account_id: int) -> None:
        self._record("soft_delete")
        if account_id in self.accounts:
            self.accounts[account_id].is_deleted = True

    def reset_error_count(self, account_id: int) -> None:
        self._record("reset_error_count")
        self.accounts[account_id].error_count = 0

    def increment_error_count(self, account_id: int) -> int:
        self._record("increment_error_count")
        self.accounts[account_id].error_count += 1
        return self.accounts[account_id].error_count

    def lock_account(self, account_id: int) -> None:
        self._record("lock_account")
        self.accounts[account_id].locked_flg = True


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def settings() -> Settings:
    return Settings(lockout_threshold=6, bcrypt_rounds=4)


@pytest.fixture
def service(repository: FakeRepository, settings: Settings) -> AccountService:
    """Service wired to the fake repository with a cheap bcrypt cost."""
    return AccountService(repository, settings=settings, hasher=PasswordHasher(rounds=4))
