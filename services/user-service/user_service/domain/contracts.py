"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol, TypeVar

from user_schemas import Role

from .account import User

T = TypeVar("T")


@dataclass(slots=True)
class CreateUserInput:
    """Validated inputs required to create or register an account."""

    name: str
    email: str
    password: str
    role: Role


@dataclass(slots=True)
class UpdateUserInput:
    """Partial update; falsy fields are treated as not supplied."""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None


@dataclass(slots=True)
class NewUserRecord:
    """Row values handed to the store when inserting an account."""

    name: str
    email: str
    password: str
    role: Role
    access_token: str = ""


@dataclass(frozen=True, slots=True)
class FieldViolation:
    """A single field-level complaint: which field, the offending value, and why."""

    field: str
    value: Any
    reason: str


class StorageErrorCode(str, Enum):
    UNIQUE_VIOLATION = "UNIQUE_VIOLATION"
    FOREIGN_KEY_VIOLATION = "FOREIGN_KEY_VIOLATION"
    CHECK_VIOLATION = "CHECK_VIOLATION"
    NOT_NULL_VIOLATION = "NOT_NULL_VIOLATION"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    SEEDING_FAILED = "SEEDING_FAILED"
    UNKNOWN = "UNKNOWN"


CONSTRAINT_CODES = frozenset(
    {
        StorageErrorCode.UNIQUE_VIOLATION,
        StorageErrorCode.FOREIGN_KEY_VIOLATION,
        StorageErrorCode.CHECK_VIOLATION,
        StorageErrorCode.NOT_NULL_VIOLATION,
    }
)


class StorageError(Exception):
    """Failure reported by a storage backend, tagged with a structured code."""

    def __init__(
        self,
        code: StorageErrorCode,
        message: str = "",
        violations: tuple[FieldViolation, ...] = (),
    ) -> None:
        super().__init__(message or code.value)
        self.code = code
        self.message = message or code.value
        self.violations = tuple(violations)


class UserStore(Protocol):
    """Persistence operations the user service relies on."""

    def find_unique_or_fail(self, user_id: str) -> User: ...

    def find_many(self, skip: int, take: int) -> list[User]: ...

    def find_unique(self, email: str) -> User | None: ...

    def create(self, data: NewUserRecord) -> User: ...

    def update(self, user_id: str, changes: dict[str, Any]) -> User: ...

    def delete(self, user_id: str) -> User: ...

    def run_in_transaction(self, fn: Callable[["UserStore"], T]) -> T: ...


__all__ = [
    "CONSTRAINT_CODES",
    "CreateUserInput",
    "FieldViolation",
    "NewUserRecord",
    "StorageError",
    "StorageErrorCode",
    "UpdateUserInput",
    "UserStore",
]
