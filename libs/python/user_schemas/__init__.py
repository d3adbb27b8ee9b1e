"""Shared schema exports."""

from .account import RegisteredUser, Role, UserAccount
from .errors import ErrorMetadataEntry, ErrorResponse

__all__ = [
    "ErrorMetadataEntry",
    "ErrorResponse",
    "RegisteredUser",
    "Role",
    "UserAccount",
]
