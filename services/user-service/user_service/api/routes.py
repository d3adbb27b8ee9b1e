"""HTTP route definitions for the user service."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, EmailStr, Field

from user_schemas import RegisteredUser as RegisteredUserSchema
from user_schemas import Role, UserAccount

from ..domain.account import UserView
from ..domain.contracts import CreateUserInput, StorageError, UpdateUserInput, UserStore
from ..domain.errors import translate_error
from ..domain.policy import Actor
from ..domain.service import UserService
from ..security.auth import get_current_actor

router = APIRouter(prefix="/api")


class RegisterRequest(BaseModel):
    """Payload accepted when registering an account."""

    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    role: Role


class UpdateUserRequest(BaseModel):
    """Partial update body; omitted or empty fields are left untouched."""

    name: str | None = None
    email: EmailStr | Literal[""] | None = None
    password: str | None = None
    role: Role | None = None


class UserEnvelope(BaseModel):
    message: str
    user: UserAccount


class UsersEnvelope(BaseModel):
    message: str
    users: list[UserAccount]


class RegisterEnvelope(BaseModel):
    message: str
    user: RegisteredUserSchema


def get_repository(request: Request) -> UserStore:
    """Resolve the user store stored on the FastAPI application state."""
    repository: UserStore = request.app.state.user_repository
    return repository


def get_service(repository: UserStore = Depends(get_repository)) -> UserService:
    return UserService(repository)


def _account(view: UserView) -> UserAccount:
    return UserAccount.model_validate(view, from_attributes=True)


@router.post("/register", response_model=RegisterEnvelope)
def register(
    payload: RegisterRequest,
    repository: UserStore = Depends(get_repository),
) -> RegisterEnvelope:
    """Register a new account and return it with its access token."""
    data = CreateUserInput(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    try:
        user = repository.run_in_transaction(lambda tx: UserService(repository, tx).register(data))
    except StorageError as exc:
        # commit failures happen after the use case has returned
        raise translate_error(exc, "User.register() error", context="User.register") from exc
    return RegisterEnvelope(
        message="User registered successfully.",
        user=RegisteredUserSchema.model_validate(user, from_attributes=True),
    )


@router.get("/user", response_model=UserEnvelope)
def get_user(
    id: str = Query(..., min_length=1),
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_service),
) -> UserEnvelope:
    user = service.get_one(id, actor)
    return UserEnvelope(message="User fetched successfully.", user=_account(user))


@router.get("/user/list", response_model=UsersEnvelope)
def list_users(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_service),
) -> UsersEnvelope:
    """Return a page of accounts. ADMIN only."""
    users = service.get_all(limit=limit, offset=offset, actor=actor)
    return UsersEnvelope(message="Users fetched successfully.", users=[_account(user) for user in users])


@router.patch("/user", response_model=UserEnvelope)
def update_user(
    payload: UpdateUserRequest,
    id: str = Query(..., min_length=1),
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_service),
) -> UserEnvelope:
    changes = UpdateUserInput(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    user = service.update(id, actor, changes)
    return UserEnvelope(message="User updated successfully.", user=_account(user))


@router.delete("/user", response_model=UserEnvelope)
def delete_user(
    id: str = Query(..., min_length=1),
    actor: Actor = Depends(get_current_actor),
    service: UserService = Depends(get_service),
) -> UserEnvelope:
    user = service.delete(id, actor)
    return UserEnvelope(message="User deleted successfully.", user=_account(user))
