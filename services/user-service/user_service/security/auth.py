"""Bearer token authentication for the user routes."""

from __future__ import annotations

import logging

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from user_schemas import Role

from ..domain.errors import AuthorizationError
from ..domain.policy import Actor
from .tokens import decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def actor_from_claims(claims: dict) -> Actor:
    """Build the request actor from verified token claims."""
    try:
        return Actor(id=str(claims["id"]), role=Role(claims["role"]))
    except (KeyError, ValueError) as exc:
        raise AuthorizationError("Invalid token.", http_code=403) from exc


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor:
    """Resolve the authenticated actor from the ``Authorization: Bearer`` header."""
    if credentials is None or not credentials.credentials:
        raise AuthorizationError("Access denied.", http_code=401)
    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        logger.info("rejected bearer token: %s", exc)
        raise AuthorizationError("Invalid token.", http_code=403) from exc
    return actor_from_claims(claims)
