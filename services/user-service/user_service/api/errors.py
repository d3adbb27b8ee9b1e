"""Exception handlers rendering normalized errors as the public error envelope."""

from __future__ import annotations

import logging
import re

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import Counter

from user_schemas import ErrorMetadataEntry, ErrorResponse

from ..domain.errors import ErrorKind, PayloadError, ServiceError, violations_from_validation

logger = logging.getLogger(__name__)

ERRORS_RENDERED = Counter(
    "user_service_errors_total",
    "Error responses rendered, by normalized error name.",
    ["name"],
)

_ANSI_CODES = re.compile(r"\x1b?\[[0-9;]*m")
_NEWLINES = re.compile(r"\n+")


def clean_message(message: str) -> str:
    """Strip terminal colour codes, newlines, tildes, backslashes and double quotes."""
    message = _ANSI_CODES.sub("", message)
    message = _NEWLINES.sub("", message)
    for noise in ("~", "\\", '"'):
        message = message.replace(noise, "")
    return message


def render_error(error: ServiceError) -> JSONResponse:
    """Build the ``{name, httpCode, message, metadata}`` response for ``error``."""
    body = ErrorResponse(
        name=error.kind.value,
        http_code=error.http_code,
        message=clean_message(error.message),
        metadata=[
            ErrorMetadataEntry(field=item.field, value=item.value, reason=item.reason)
            for item in error.metadata
        ],
    )
    ERRORS_RENDERED.labels(name=error.kind.value).inc()
    return JSONResponse(
        status_code=error.http_code,
        content=jsonable_encoder(body.model_dump(by_alias=True)),
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return render_error(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = PayloadError(
        "Invalid Payload",
        metadata=violations_from_validation(exc.errors()),
        context=f"{request.method} {request.url.path}",
    )
    return render_error(error)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    ERRORS_RENDERED.labels(name=ErrorKind.SERVER_ERROR.value).inc()
    return JSONResponse(
        status_code=500,
        content={
            "name": ErrorKind.SERVER_ERROR.value,
            "httpCode": 500,
            "message": "Unhandled Error: 500",
            "metadata": [],
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the error envelope handlers to ``app``."""
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
