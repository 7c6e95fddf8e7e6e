"""Database repository for the ``users`` table."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, AccountSummary
from .domain.contracts import NewAccountRecord
from .domain.errors import StorageError

ACCOUNT_COLUMNS = (
    "id, user_name, family_name, first_name, email, password_hash, "
    "is_admin, is_deleted, locked_flg, error_count"
)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        user_name TEXT NOT NULL,
        family_name TEXT NOT NULL,
        first_name TEXT NOT NULL,
        email TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        is_admin BOOLEAN NOT NULL DEFAULT FALSE,
        is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
        locked_flg BOOLEAN NOT NULL DEFAULT FALSE,
        error_count INTEGER NOT NULL DEFAULT 0 CHECK (error_count >= 0),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    # email is deliberately not UNIQUE; duplicates are rejected by a lookup before insert
    "CREATE INDEX IF NOT EXISTS users_email_idx ON users (email)",
)


class AccountRepository:
    """Postgres-backed account persistence.

    Reads and writes raise :class:`StorageError` when the driver fails. Writes
    run inside :meth:`_transaction`, which commits on success and rolls back on
    any error.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _transaction(self) -> Iterator[psycopg.Cursor[Any]]:
        try:
            with self._pool.connection() as conn:
                try:
                    with conn.cursor(row_factory=tuple_row) as cur:
                        yield cur
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        except psycopg.Error as exc:
            raise StorageError(str(exc), rolled_back=True) from exc

    @contextmanager
    def _cursor(self) -> Iterator[psycopg.Cursor[Any]]:
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    yield cur
        except psycopg.Error as exc:
            raise StorageError(str(exc)) from exc

    def ensure_schema(self) -> None:
        """Create the ``users`` table and its email index when missing."""
        with self._transaction() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)

    def find_by_email(self, email: str) -> Account | None:
        """Return the first row with this email, soft-deleted rows included."""
        with self._cursor() as cur:
            cur.execute(
                f"SELECT {ACCOUNT_COLUMNS} FROM users WHERE email = %(email)s ORDER BY id LIMIT 1",
                {"email": email},
            )
            row = cur.fetchone()
        if not row:
            return None
        return self._map_account(row)

    def get_account(self, account_id: int) -> Account | None:
        """Fetch one account by id, or ``None``."""
        with self._cursor() as cur:
            cur.execute(
                f"SELECT {ACCOUNT_COLUMNS} FROM users WHERE id = %(id)s",
                {"id": account_id},
            )
            row = cur.fetchone()
        if not row:
            return None
        return self._map_account(row)

    def list_accounts(self) -> list[AccountSummary]:
        """Return every account ordered by id, soft-deleted rows included."""
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT id, user_name, password_hash, family_name, first_name, is_admin, is_deleted
                FROM users
                ORDER BY id
                """
            )
            rows = cur.fetchall()
        return [AccountSummary(*row) for row in rows]

    def count_accounts(self, account_id: int | None = None) -> int:
        """Count rows in ``users``, restricted to one id when ``account_id`` is given."""
        with self._cursor() as cur:
            if account_id is None:
                cur.execute("SELECT COUNT(id) FROM users")
            else:
                cur.execute(
                    "SELECT COUNT(id) FROM users WHERE id = %(id)s",
                    {"id": account_id},
                )
            row = cur.fetchone()
        return int(row[0]) if row else 0

    def create_account(self, record: NewAccountRecord) -> Account:
        """Insert a new account row and return it as stored."""
        with self._transaction() as cur:
            cur.execute(
                f"""
                INSERT INTO users (
                    user_name, family_name, first_name, email, password_hash,
                    error_count, locked_flg, is_deleted
                )
                VALUES (
                    %(user_name)s, %(family_name)s, %(first_name)s, %(email)s, %(password_hash)s,
                    0, FALSE, FALSE
                )
                RETURNING {ACCOUNT_COLUMNS}
                """,
                {
                    "user_name": record.user_name,
                    "family_name": record.family_name,
                    "first_name": record.first_name,
                    "email": record.email,
                    "password_hash": record.password_hash,
                },
            )
            row = cur.fetchone()
            if not row:
                raise StorageError("insert into users returned no row", rolled_back=True)
        return self._map_account(row)

    def soft_delete(self, account_id: int) -> None:
        """Flag the account as deleted without removing the row."""
        with self._transaction() as cur:
            cur.execute(
                "UPDATE users SET is_deleted = TRUE WHERE id = %(id)s",
                {"id": account_id},
            )

    def reset_error_count(self, account_id: int) -> None:
        with self._transaction() as cur:
            cur.execute(
                "UPDATE users SET error_count = 0 WHERE id = %(id)s",
                {"id": account_id},
            )

    def increment_error_count(self, account_id: int) -> int:
        """Add one failed attempt and return the stored counter."""
        with self._transaction() as cur:
            cur.execute(
                """
                UPDATE users
                SET error_count = error_count + 1
                WHERE id = %(id)s
                RETURNING error_count
                """,
                {"id": account_id},
            )
            row = cur.fetchone()
            if not row:
                raise StorageError(
                    f"account {account_id} vanished while counting a failed login",
                    rolled_back=True,
                )
        return int(row[0])

    def lock_account(self, account_id: int) -> None:
        with self._transaction() as cur:
            cur.execute(
                "UPDATE users SET locked_flg = TRUE WHERE id = %(id)s",
                {"id": account_id},
            )

    def _map_account(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            id=row[0],
            user_name=row[1],
            family_name=row[2],
            first_name=row[3],
            email=row[4],
            password_hash=row[5],
            is_admin=bool(row[6]),
            is_deleted=bool(row[7]),
            locked_flg=bool(row[8]),
            error_count=int(row[9]),
        )
