"""Normalized error taxonomy and the translator that maps raw failures onto it.

Every failure that leaves a use case is a :class:`ServiceError`. Callers can
branch on :attr:`ServiceError.kind` (rendered as ``name`` on the wire) without
parsing message text.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, ClassVar, Iterable, Mapping

from pydantic import ValidationError

from .contracts import CONSTRAINT_CODES, FieldViolation, StorageError, StorageErrorCode

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    DATABASE_ERROR = "DATABASE_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    DB_CONSTRAINT_ERROR = "ERR_DB_CONSTRAINT_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    PAYLOAD_ERROR = "PAYLOAD_ERROR"
    SERVER_ERROR = "SERVER_ERROR"


class ServiceError(Exception):
    """Base class for normalized errors; immutable once constructed."""

    kind: ClassVar[ErrorKind] = ErrorKind.SERVER_ERROR
    default_http_code: ClassVar[int] = 500
    default_message: ClassVar[str] = "Server Error"

    def __init__(
        self,
        message: str | None = None,
        *,
        http_code: int | None = None,
        metadata: Iterable[FieldViolation] = (),
        context: str | None = None,
    ) -> None:
        resolved = message or self.default_message
        super().__init__(resolved)
        self._message = resolved
        self._http_code = http_code or self.default_http_code
        self._metadata = tuple(metadata)
        self._context = context

    @property
    def message(self) -> str:
        return self._message

    @property
    def http_code(self) -> int:
        return self._http_code

    @property
    def metadata(self) -> tuple[FieldViolation, ...]:
        return self._metadata

    @property
    def context(self) -> str | None:
        return self._context

    def _key(self) -> tuple[Any, ...]:
        return (self.kind, self._http_code, self._message, self._metadata, self._context)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ServiceError):
            return NotImplemented
        return type(self) is type(other) and self._key() == other._key()

    def __hash__(self) -> int:
        try:
            return hash(self._key())
        except TypeError:
            # metadata values may be unhashable (lists from validation input)
            return hash((self.kind, self._http_code, self._message, self._context))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self._message!r}, http_code={self._http_code}, "
            f"metadata={list(self._metadata)!r}, context={self._context!r})"
        )


class DatabaseError(ServiceError):
    kind = ErrorKind.DATABASE_ERROR
    default_http_code = 400
    default_message = "Database Error"


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND_ERROR
    default_http_code = 404
    default_message = "Not found"


class DbConstraintError(ServiceError):
    kind = ErrorKind.DB_CONSTRAINT_ERROR
    default_http_code = 400
    default_message = "Database Constraint"


class AuthorizationError(ServiceError):
    kind = ErrorKind.AUTHORIZATION_ERROR
    default_http_code = 403
    default_message = "Not authorized"


class PayloadError(ServiceError):
    kind = ErrorKind.PAYLOAD_ERROR
    default_http_code = 400
    default_message = "Invalid Payload"


class ServerError(ServiceError):
    kind = ErrorKind.SERVER_ERROR
    default_http_code = 500
    default_message = "Server Error"


# pydantic error types mapped onto the reason codes clients already understand
_VALIDATION_REASONS: dict[str, str] = {
    "missing": "FIELD_IS_REQUIRED",
    "string_type": "MUST_BE_STRING",
    "string_too_short": "EMPTY_FIELD",
    "int_type": "MUST_BE_NUMBER",
    "int_parsing": "MUST_BE_NUMBER",
    "float_type": "MUST_BE_NUMBER",
    "float_parsing": "MUST_BE_NUMBER",
    "list_type": "MUST_BE_ARRAY",
    "dict_type": "MUST_BE_OBJECT",
    "model_type": "MUST_BE_OBJECT",
    "model_attributes_type": "MUST_BE_OBJECT",
    "enum": "MUST_CHOSE_OPTION",
    "literal_error": "MUST_CHOSE_OPTION",
}

_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header", "cookie"})
_REDACTED_FIELDS = frozenset({"password", "access_token"})


def violations_from_validation(errors: Iterable[Mapping[str, Any]]) -> tuple[FieldViolation, ...]:
    """Convert pydantic/FastAPI error dicts into field-level violations."""
    violations: list[FieldViolation] = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        field_name = ".".join(loc) or "payload"
        error_type = str(error.get("type", ""))
        value = None if error_type == "missing" else error.get("input")
        if field_name in _REDACTED_FIELDS and value is not None:
            value = "[REDACTED]"
        violations.append(
            FieldViolation(
                field=field_name,
                value=value,
                reason=_VALIDATION_REASONS.get(error_type, "INVALID_FIELD"),
            )
        )
    return tuple(violations)


def translate_error(exc: BaseException, message: str, context: str | None = None) -> ServiceError:
    """Map any raw failure onto the normalized taxonomy.

    Parameters
    ----------
    exc:
        The failure caught by a use case. Already-normalized errors are returned unchanged.
    message:
        Fixed, use-case-specific message carried by the produced error in place of
        whatever text the underlying failure had.
    context:
        Optional label naming the originating use case.
    """

    if isinstance(exc, ServiceError):
        return exc

    if isinstance(exc, StorageError):
        if exc.code is StorageErrorCode.SEEDING_FAILED:
            logger.warning("%s: seeding failed (%s)", message, exc.message)
            return DatabaseError(message, context=context)
        if exc.code in CONSTRAINT_CODES:
            return DbConstraintError(message, metadata=exc.violations, context=context)
        if exc.code is StorageErrorCode.RECORD_NOT_FOUND:
            return NotFoundError(message, context=context)
        logger.warning("%s: storage failure %s (%s)", message, exc.code.value, exc.message)
        return DatabaseError(message, context=context)

    if isinstance(exc, ValidationError):
        return PayloadError(message, metadata=violations_from_validation(exc.errors()), context=context)

    logger.warning("%s: unexpected %s", message, type(exc).__name__, exc_info=exc)
    return ServerError(message, context=context)


__all__ = [
    "AuthorizationError",
    "DatabaseError",
    "DbConstraintError",
    "ErrorKind",
    "FieldViolation",
    "NotFoundError",
    "PayloadError",
    "ServerError",
    "ServiceError",
    "translate_error",
    "violations_from_validation",
]
