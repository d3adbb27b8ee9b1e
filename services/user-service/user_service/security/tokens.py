"""Utilities for issuing and validating application JWTs."""

from __future__ import annotations

import time
from typing import Any, Mapping

import jwt

from ..config import get_settings


def issue_access_token(claims: Mapping[str, Any]) -> tuple[str, int]:
    """Create a signed JWT embedding an account's public fields.

    Parameters
    ----------
    claims:
        Public account fields to embed; must be JSON serialisable and never
        include the password hash.

    Returns
    -------
    tuple[str, int]
        A tuple containing the encoded JWT string and its TTL (in seconds).
    """

    settings = get_settings()
    now = int(time.time())
    expires_in = settings.jwt_ttl_seconds
    payload: dict[str, Any] = {
        **claims,
        "iss": settings.jwt_issuer,
        "iat": now,
        "exp": now + expires_in,
    }

    token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
    return token, expires_in


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT returning its payload.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, or signed by another issuer.
    """

    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "iat", "iss"]},
    )
