"""Account-related DTOs shared across services."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, EmailStr


class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class UserAccount(BaseModel):
    """Public projection of a user account; never carries secrets."""

    id: str
    name: str
    email: EmailStr
    role: Role
    created_at: datetime
    updated_at: datetime


class RegisteredUser(UserAccount):
    """Account returned once by registration, with its freshly issued token."""

    access_token: str
