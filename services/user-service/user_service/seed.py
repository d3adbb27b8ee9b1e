"""Create the initial ADMIN account.

Usage::

    python -m user_service.seed --email admin@example.com
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys

from psycopg_pool import ConnectionPool
from pydantic import EmailStr, TypeAdapter, ValidationError

from user_schemas import Role

from .config import get_settings
from .domain.account import UserView
from .domain.contracts import CreateUserInput, FieldViolation, StorageError, StorageErrorCode, UserStore
from .domain.errors import PayloadError, ServiceError, translate_error
from .domain.service import UserService
from .repository import UserRepository


SEED_CONTEXT = "Seed"

_EMAIL_ADDRESS = TypeAdapter(EmailStr)


def validate_email(email: str) -> str:
    """Normalize ``email`` with the rule the HTTP models apply, or raise ``PayloadError``."""
    try:
        return _EMAIL_ADDRESS.validate_python(email)
    except ValidationError as exc:
        raise PayloadError(
            f"{SEED_CONTEXT}.seed_admin() error: {email} is not a valid email address",
            metadata=(FieldViolation(field="email", value=email, reason="INVALID_FIELD"),),
            context=SEED_CONTEXT,
        ) from exc


def seed_admin(repository: UserStore, name: str, email: str, password: str) -> UserView | None:
    """Create an ADMIN account unless ``email`` is already registered.

    Returns the created account, or ``None`` when the email already exists.
    An invalid email is raised as ``PayloadError`` before storage is touched;
    storage failures are raised as ``DatabaseError``.
    """
    email = validate_email(email)

    def _seed(tx: UserStore) -> UserView | None:
        if tx.find_unique(email) is not None:
            return None
        return UserService(repository, tx).create(
            CreateUserInput(name=name, email=email, password=password, role=Role.ADMIN)
        )

    try:
        return repository.run_in_transaction(_seed)
    except (StorageError, ServiceError) as exc:
        seeding = StorageError(StorageErrorCode.SEEDING_FAILED, str(exc))
        raise translate_error(
            seeding, f"{SEED_CONTEXT}.seed_admin() error", context=SEED_CONTEXT
        ) from exc


def _email_argument(value: str) -> str:
    try:
        return validate_email(value.strip().lower())
    except PayloadError as exc:
        raise argparse.ArgumentTypeError(f"invalid email address: {value}") from exc


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create the initial ADMIN user")
    parser.add_argument("--name", default=settings.seed_admin_name, help="Display name for the admin")
    parser.add_argument(
        "--email",
        type=_email_argument,
        default=settings.seed_admin_email,
        help="Unique email address for login",
    )
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Postgres connection string (defaults to POSTGRES_URL)",
    )
    return parser.parse_args(argv)


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password cannot be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=get_settings().log_level)
    args = parse_args(argv)
    password = prompt_for_password()

    with ConnectionPool(args.database_url) as pool:
        try:
            user = seed_admin(UserRepository(pool), args.name.strip(), args.email, password)
        except ServiceError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            return 1

    if user is None:
        print(f"Admin {args.email} already exists; nothing to do.")
    else:
        print(f"Created admin {user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
