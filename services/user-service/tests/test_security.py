from __future__ import annotations

import bcrypt
import jwt
import pytest

from user_schemas import Role
from user_service.config import get_settings
from user_service.domain.errors import AuthorizationError
from user_service.security.auth import actor_from_claims
from user_service.security.passwords import hash_password
from user_service.security.tokens import decode_access_token, issue_access_token


def test_password_hashes_are_salted_per_call():
    first = hash_password("correct horse")
    second = hash_password("correct horse")

    assert first != second
    assert bcrypt.checkpw(b"correct horse", first.encode())
    assert bcrypt.checkpw(b"correct horse", second.encode())
    assert not bcrypt.checkpw(b"wrong horse", first.encode())


def test_hash_password_honours_explicit_rounds():
    assert hash_password("correct horse", rounds=5).startswith("$2b$05$")


def test_access_token_round_trip(jon):
    token, expires_in = issue_access_token(jon.public().claims())
    claims = decode_access_token(token)

    assert expires_in == get_settings().jwt_ttl_seconds
    assert claims["id"] == jon.id
    assert claims["role"] == "USER"
    assert claims["iss"] == get_settings().jwt_issuer
    assert "password" not in claims
    assert "access_token" not in claims


def test_tampered_token_is_rejected(jon):
    token, _ = issue_access_token(jon.public().claims())
    forged = jwt.encode(
        {**decode_access_token(token), "role": "ADMIN"}, "not-the-secret", algorithm="HS256"
    )
    with pytest.raises(jwt.PyJWTError):
        decode_access_token(forged)


def test_actor_from_claims():
    actor = actor_from_claims({"id": "u1", "role": "ADMIN"})
    assert actor.id == "u1"
    assert actor.role is Role.ADMIN


@pytest.mark.parametrize("claims", [{"id": "u1", "role": "ROOT"}, {"role": "USER"}])
def test_actor_from_unusable_claims(claims):
    with pytest.raises(AuthorizationError) as excinfo:
        actor_from_claims(claims)
    assert excinfo.value.http_code == 403
