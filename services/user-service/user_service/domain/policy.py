"""Role-based authorization checks for user account use cases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from user_schemas import Role

from .errors import AuthorizationError


@dataclass(frozen=True, slots=True)
class Actor:
    """The authenticated caller of a use case."""

    id: str
    role: Role


def check_role(actor: Actor, allowed_roles: Iterable[Role]) -> None:
    """Raise ``AuthorizationError`` unless the actor's role is one of ``allowed_roles``."""
    if actor.role not in frozenset(allowed_roles):
        raise AuthorizationError(
            "check_role() error: You do not have permission to execute this operation"
        )
