"""User account service orchestrating authorization, persistence, and token issuance."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Iterator

from user_schemas import Role

from .account import RegisteredUser, UserView
from .contracts import CreateUserInput, NewUserRecord, UpdateUserInput, UserStore
from .errors import AuthorizationError, PayloadError, translate_error
from .policy import Actor, check_role
from ..security.passwords import hash_password
from ..security.tokens import issue_access_token

logger = logging.getLogger(__name__)

ANY_ROLE = (Role.ADMIN, Role.USER)
ADMIN_ONLY = (Role.ADMIN,)


class UserService:
    """User account workflows backed by an injected store.

    When ``tx`` is supplied every storage call of every use case goes through it,
    which lets a caller run several use cases (or one multi-step use case such as
    :meth:`register`) inside a single transaction it owns.
    """

    context = "User"

    def __init__(self, repository: UserStore, tx: UserStore | None = None) -> None:
        """Store the repository and the optional transaction-bound store."""
        self._repository = repository
        self._tx = tx

    @property
    def _store(self) -> UserStore:
        return self._tx if self._tx is not None else self._repository

    @contextmanager
    def _use_case(self, name: str) -> Iterator[None]:
        """Funnel any failure raised by a use case through the error translator."""
        try:
            yield
        except Exception as exc:
            error = translate_error(
                exc,
                f"{self.context}.{name}() error",
                context=f"{self.context}.{name}",
            )
            if error is exc:
                raise
            raise error from exc

    def _forbid(self, name: str, reason: str) -> AuthorizationError:
        return AuthorizationError(
            f"{self.context}.{name}() error: {reason}",
            context=f"{self.context}.{name}",
        )

    def get_one(self, user_id: str, actor: Actor) -> UserView:
        """Fetch a single account; USER callers may only fetch themselves."""
        with self._use_case("get_one"):
            check_role(actor, ANY_ROLE)
            if actor.role == Role.USER and actor.id != user_id:
                raise self._forbid("get_one", "Only ADMIN users can see other user details")
            return self._store.find_unique_or_fail(user_id).public()

    def get_all(self, limit: int, offset: int, actor: Actor) -> list[UserView]:
        """Return one page of accounts. ADMIN only."""
        with self._use_case("get_all"):
            check_role(actor, ADMIN_ONLY)
            return [user.public() for user in self._store.find_many(skip=offset, take=limit)]

    def create(self, payload: CreateUserInput) -> UserView:
        """Persist a new account with a hashed password and an empty access token."""
        with self._use_case("create"):
            user = self._store.create(
                NewUserRecord(
                    name=payload.name,
                    email=payload.email,
                    password=hash_password(payload.password),
                    role=payload.role,
                    access_token="",
                )
            )
            logger.info("created user %s with role %s", user.id, user.role.value)
            return user.public()

    def update(self, user_id: str, actor: Actor, changes: UpdateUserInput) -> UserView:
        """Apply a partial update.

        Only truthy fields are written; an empty string counts as "not supplied".
        USER callers may only update their own record and may never change a role.
        """
        with self._use_case("update"):
            check_role(actor, ANY_ROLE)
            if actor.role == Role.USER:
                if actor.id != user_id:
                    raise self._forbid("update", "Only ADMIN users can update other user details")
                if changes.role:
                    raise self._forbid("update", "Only ADMIN users can update roles")

            values: dict[str, Any] = {}
            if changes.name:
                values["name"] = changes.name
            if changes.email:
                values["email"] = changes.email
            if changes.password:
                values["password"] = hash_password(changes.password)
            if changes.role:
                values["role"] = changes.role

            user = self._store.update(user_id, values)
            logger.info("user %s updated fields %s", user.id, sorted(values))
            return user.public()

    def delete(self, user_id: str, actor: Actor) -> UserView:
        """Permanently remove an account. ADMIN only, and never the caller itself."""
        with self._use_case("delete"):
            check_role(actor, ADMIN_ONLY)
            if actor.id == user_id:
                raise self._forbid("delete", "A user cannot delete itself.")
            user = self._store.delete(user_id)
            logger.info("user %s deleted by %s", user.id, actor.id)
            return user.public()

    def register(self, payload: CreateUserInput) -> RegisteredUser:
        """Create an account for a new email and issue its access token.

        Run it with a transaction-bound store so that the existence check, the
        insert and the token write commit or roll back together.
        """
        with self._use_case("register"):
            if self._store.find_unique(payload.email) is not None:
                raise PayloadError(
                    f"{self.context}.register() error: This email is already registered.",
                    context=f"{self.context}.register",
                )

            created = self.create(payload)
            access_token, _ = issue_access_token(created.claims())
            user = self._store.update(created.id, {"access_token": access_token})
            logger.info("registered user %s", user.id)
            return user.registered()
