from __future__ import annotations

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from user_schemas import Role
from user_service.api import routes
from user_service.api.errors import register_error_handlers
from user_service.domain.account import User
from user_service.domain.contracts import FieldViolation, NewUserRecord, StorageError, StorageErrorCode
from user_service.domain.policy import Actor
from user_service.domain.service import UserService
from user_service.security.passwords import hash_password
from user_service.security.tokens import issue_access_token


class FakeRepository:
    """In-memory store mimicking the Postgres-backed repository's behaviours."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.calls: list[str] = []
        self.fail_with: dict[str, Exception] = {}
        self._clock = datetime(2024, 8, 8, 17, 27, 7, tzinfo=timezone.utc)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        error = self.fail_with.get(name)
        if error is not None:
            raise error

    def _now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _email_taken(self, email: str, exclude: str | None = None) -> bool:
        return any(u.email == email and u.id != exclude for u in self.users.values())

    def _not_found(self, user_id: str) -> StorageError:
        return StorageError(StorageErrorCode.RECORD_NOT_FOUND, f"no user with id {user_id}")

    def _unique_violation(self, email: str) -> StorageError:
        return StorageError(
            StorageErrorCode.UNIQUE_VIOLATION,
            'duplicate key value violates unique constraint "users_email_key"',
            (FieldViolation(field="email", value=email, reason="UNIQUE_VIOLATION"),),
        )

    def add(self, name: str, email: str, role: Role, password: str = "secret-pass") -> User:
        """Insert an account directly, bypassing the service."""
        now = self._now()
        user = User(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            password=hash_password(password),
            role=role,
            access_token="stored-token",
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return replace(user)

    def find_unique_or_fail(self, user_id: str) -> User:
        self._record("find_unique_or_fail")
        if user_id not in self.users:
            raise self._not_found(user_id)
        return replace(self.users[user_id])

    def find_many(self, skip: int, take: int) -> list[User]:
        self._record("find_many")
        ordered = sorted(self.users.values(), key=lambda u: (u.created_at, u.id))
        return [replace(user) for user in ordered[skip : skip + take]]

    def find_unique(self, email: str) -> User | None:
        self._record("find_unique")
        for user in self.users.values():
            if user.email == email:
                return replace(user)
        return None

    def create(self, data: NewUserRecord) -> User:
        self._record("create")
        if self._email_taken(data.email):
            raise self._unique_violation(data.email)
        now = self._now()
        user = User(
            id=str(uuid.uuid4()),
            name=data.name,
            email=data.email,
            password=data.password,
            role=data.role,
            access_token=data.access_token,
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return replace(user)

    def update(self, user_id: str, changes: dict[str, Any]) -> User:
        self._record("update")
        if user_id not in self.users:
            raise self._not_found(user_id)
        if "email" in changes and self._email_taken(changes["email"], exclude=user_id):
            raise self._unique_violation(changes["email"])
        user = replace(self.users[user_id], **changes)
        user.updated_at = self._now()
        self.users[user_id] = user
        return replace(user)

    def delete(self, user_id: str) -> User:
        self._record("delete")
        if user_id not in self.users:
            raise self._not_found(user_id)
        return self.users.pop(user_id)

    def run_in_transaction(self, fn: Callable[["FakeRepository"], Any]) -> Any:
        self.calls.append("run_in_transaction")
        snapshot = {key: replace(user) for key, user in self.users.items()}
        try:
            return fn(self)
        except Exception:
            self.users = snapshot
            raise


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, role=user.role)


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build an Authorization header carrying a valid token for the given account."""

    def _headers(user: User) -> dict[str, str]:
        token, _ = issue_access_token(user.public().claims())
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def as_actor() -> Callable[[User], Actor]:
    return actor_for


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository: FakeRepository) -> UserService:
    return UserService(repository)


@pytest.fixture
def admin(repository: FakeRepository) -> User:
    return repository.add("The Boss", "theboss@example.com", Role.ADMIN)


@pytest.fixture
def jon(repository: FakeRepository) -> User:
    return repository.add("Jon Doe", "jondoe@example.com", Role.USER)


@pytest.fixture
def peter(repository: FakeRepository) -> User:
    return repository.add("Peter Parker", "peterparker@example.com", Role.USER)


@pytest.fixture
def api_app(repository: FakeRepository) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(routes.router)
    app.state.user_repository = repository
    return app


@pytest.fixture
def api_client(api_app: FastAPI):
    """Provide a FastAPI test client with isolated state."""
    with TestClient(api_app, raise_server_exceptions=False) as client:
        yield client
