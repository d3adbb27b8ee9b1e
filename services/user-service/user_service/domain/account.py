from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from user_schemas import Role


@dataclass(slots=True)
class UserView:
    """Read-facing projection of a user account without secret fields."""

    id: str
    name: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime

    def claims(self) -> dict[str, str]:
        """Public fields in a JSON-friendly shape, embedded in access tokens."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class RegisteredUser(UserView):
    """Projection returned by registration, carrying the issued access token."""

    access_token: str


@dataclass(slots=True)
class User:
    """Aggregate root for a stored user account, secrets included."""

    id: str
    name: str
    email: str
    password: str
    role: Role
    access_token: str
    created_at: datetime
    updated_at: datetime

    def public(self) -> UserView:
        """Return the projection of this account that is safe to hand to callers."""
        return UserView(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def registered(self) -> RegisteredUser:
        return RegisteredUser(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            created_at=self.created_at,
            updated_at=self.updated_at,
            access_token=self.access_token,
        )
