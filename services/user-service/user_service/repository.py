"""Database repository for user account data."""

from __future__ import annotations

from contextlib import contextmanager
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, TypeVar

import psycopg
from psycopg import sql
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from user_schemas import Role

from .domain.account import User
from .domain.contracts import FieldViolation, NewUserRecord, StorageError, StorageErrorCode

T = TypeVar("T")

_COLUMNS = "id, name, email, password, role, access_token, created_at, updated_at"
_UPDATABLE_COLUMNS = frozenset({"name", "email", "password", "role", "access_token"})

_SQLSTATE_CODES = {
    "23505": StorageErrorCode.UNIQUE_VIOLATION,
    "23503": StorageErrorCode.FOREIGN_KEY_VIOLATION,
    "23514": StorageErrorCode.CHECK_VIOLATION,
    "23502": StorageErrorCode.NOT_NULL_VIOLATION,
}

# Postgres detail text, e.g. 'Key (email)=(a@example.com) already exists.'
_KEY_DETAIL = re.compile(r"Key \((?P<fields>[^)]*)\)=\((?P<values>.*?)\)(?=[\s.]|$)")


def parse_key_detail(detail: str, reason: str) -> tuple[FieldViolation, ...]:
    """Extract offending field/value pairs from a Postgres constraint detail message."""
    match = _KEY_DETAIL.search(detail)
    if not match:
        return ()
    fields = [name.strip() for name in match["fields"].split(",")]
    values = [value.strip() for value in match["values"].split(",")]
    if len(values) != len(fields):
        values = [match["values"]] * len(fields)
    return tuple(FieldViolation(field=f, value=v, reason=reason) for f, v in zip(fields, values))


def storage_error_from_psycopg(exc: psycopg.Error) -> StorageError:
    """Tag a psycopg failure with a storage code and the fields it complains about."""
    code = _SQLSTATE_CODES.get(exc.sqlstate or "", StorageErrorCode.UNKNOWN)
    violations: tuple[FieldViolation, ...] = ()
    if code is not StorageErrorCode.UNKNOWN:
        diag = exc.diag
        violations = parse_key_detail(diag.message_detail or "", code.value)
        if not violations and (diag.column_name or diag.constraint_name):
            violations = (
                FieldViolation(
                    field=diag.column_name or diag.constraint_name,
                    value=None,
                    reason=code.value,
                ),
            )
    return StorageError(code, str(exc), violations)


class UserRepository:
    """Postgres-backed user persistence.

    Outside a transaction every call borrows its own pooled connection. Inside
    :meth:`run_in_transaction` the callback receives a repository bound to the
    single connection that owns the transaction.
    """

    def __init__(self, pool: ConnectionPool, connection: psycopg.Connection | None = None) -> None:
        """Store the connection pool and, for transaction-bound copies, the connection."""
        self._pool = pool
        self._connection = connection

    @contextmanager
    def _cursor(self) -> Iterator[psycopg.Cursor]:
        try:
            if self._connection is not None:
                with self._connection.cursor(row_factory=tuple_row) as cur:
                    yield cur
                return
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    yield cur
        except psycopg.Error as exc:
            raise storage_error_from_psycopg(exc) from exc

    def run_in_transaction(self, fn: Callable[[UserRepository], T]) -> T:
        """Call ``fn`` with a repository bound to one transaction, committing on success."""
        try:
            if self._connection is not None:
                # nested use becomes a savepoint on the bound connection
                with self._connection.transaction():
                    return fn(self)
            with self._pool.connection() as conn:
                with conn.transaction():
                    return fn(UserRepository(self._pool, connection=conn))
        except psycopg.Error as exc:
            raise storage_error_from_psycopg(exc) from exc

    def find_unique_or_fail(self, user_id: str) -> User:
        """Fetch an account by id or raise ``RECORD_NOT_FOUND``."""
        with self._cursor() as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE id = %s", (user_id,))
            row = cur.fetchone()
        if not row:
            raise StorageError(StorageErrorCode.RECORD_NOT_FOUND, f"no user with id {user_id}")
        return self._map_record(row)

    def find_unique(self, email: str) -> User | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE email = %s", (email,))
            row = cur.fetchone()
        return self._map_record(row) if row else None

    def find_many(self, skip: int, take: int) -> list[User]:
        """Return one page of accounts ordered by creation time."""
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM users
                ORDER BY created_at, id
                LIMIT %s OFFSET %s
                """,
                (take, skip),
            )
            rows = cur.fetchall()
        return [self._map_record(row) for row in rows]

    def create(self, data: NewUserRecord) -> User:
        """Insert an account and return the stored row."""
        user_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO users (id, name, email, password, role, access_token, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (
                    user_id,
                    data.name,
                    data.email,
                    data.password,
                    data.role.value,
                    data.access_token,
                    now,
                    now,
                ),
            )
            row = cur.fetchone()
        return self._map_record(row)

    def update(self, user_id: str, changes: dict[str, Any]) -> User:
        """Write the given columns, bump ``updated_at`` and return the stored row."""
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"cannot update columns: {', '.join(sorted(unknown))}")

        values = {key: value.value if isinstance(value, Role) else value for key, value in changes.items()}
        values["updated_at"] = datetime.now(timezone.utc)
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in values
        )
        query = sql.SQL("UPDATE users SET {} WHERE id = %s RETURNING {}").format(
            assignments, sql.SQL(_COLUMNS)
        )
        with self._cursor() as cur:
            cur.execute(query, (*values.values(), user_id))
            row = cur.fetchone()
        if not row:
            raise StorageError(StorageErrorCode.RECORD_NOT_FOUND, f"no user with id {user_id}")
        return self._map_record(row)

    def delete(self, user_id: str) -> User:
        with self._cursor() as cur:
            cur.execute(f"DELETE FROM users WHERE id = %s RETURNING {_COLUMNS}", (user_id,))
            row = cur.fetchone()
        if not row:
            raise StorageError(StorageErrorCode.RECORD_NOT_FOUND, f"no user with id {user_id}")
        return self._map_record(row)

    def _map_record(self, row: tuple) -> User:
        """Convert a raw database tuple into the domain ``User`` dataclass."""
        return User(
            id=str(row[0]),
            name=row[1],
            email=row[2],
            password=row[3],
            role=Role(row[4]),
            access_token=row[5] or "",
            created_at=row[6],
            updated_at=row[7],
        )
