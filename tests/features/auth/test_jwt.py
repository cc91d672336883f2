"""Tests for access token creation and verification."""

from datetime import UTC, datetime, timedelta

import jwt

from src.config.settings import settings
from src.features.auth.jwt_utils import create_access_token, decode_token, verify_access_token
from src.features.auth.principal import Ok, Principal, Reject
from src.shared.errors.exceptions import ErrorKind


def encode(claims: dict, secret: str | None = None) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": "1",
        "email": "a@x.com",
        "role": "User",
        "jti": "abc",
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "type": "access",
        **claims,
    }
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, secret or settings.secret_key, algorithm=settings.jwt_algorithm)


class TestCreateAccessToken:
    def test_contains_identity_and_standard_claims(self):
        token = create_access_token(42, "a@x.com", "Admin")
        payload = decode_token(token)

        assert payload["sub"] == "42"
        assert payload["email"] == "a@x.com"
        assert payload["role"] == "Admin"
        assert payload["iss"] == settings.jwt_issuer
        assert payload["aud"] == settings.jwt_audience
        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == settings.access_token_expire_seconds

    def test_each_token_has_unique_jti(self):
        first = decode_token(create_access_token(1, "a@x.com", "User"))
        second = decode_token(create_access_token(1, "a@x.com", "User"))
        assert first["jti"] != second["jti"]


class TestVerifyAccessToken:
    def test_valid_token_returns_principal(self):
        result = verify_access_token(create_access_token(7, "u@x.com", "User"))

        assert isinstance(result, Ok)
        assert isinstance(result.principal, Principal)
        assert result.principal.user_id == 7
        assert result.principal.email == "u@x.com"
        assert result.principal.role == "User"

    def test_expired_token_is_rejected_as_expired(self):
        token = create_access_token(7, "u@x.com", "User", expires_delta=timedelta(minutes=-1))
        assert verify_access_token(token) == Reject(ErrorKind.EXPIRED)

    def test_expiry_within_clock_skew_is_accepted(self):
        token = create_access_token(7, "u@x.com", "User", expires_delta=timedelta(seconds=-2))
        assert isinstance(verify_access_token(token), Ok)

    def test_wrong_signature_is_invalid(self):
        token = encode({}, secret="another-secret-that-is-also-32-bytes-long")
        assert verify_access_token(token) == Reject(ErrorKind.INVALID_CREDENTIAL)

    def test_tampered_payload_is_invalid(self):
        header, payload, signature = create_access_token(7, "u@x.com", "User").split(".")
        forged = encode({"role": "Admin"}).split(".")[1]
        assert verify_access_token(f"{header}.{forged}.{signature}") == Reject(ErrorKind.INVALID_CREDENTIAL)

    def test_wrong_audience_is_invalid(self):
        assert verify_access_token(encode({"aud": "someone-else"})) == Reject(ErrorKind.INVALID_CREDENTIAL)

    def test_wrong_issuer_is_invalid(self):
        assert verify_access_token(encode({"iss": "someone-else"})) == Reject(ErrorKind.INVALID_CREDENTIAL)

    def test_missing_jti_is_invalid(self):
        assert verify_access_token(encode({"jti": None})) == Reject(ErrorKind.INVALID_CREDENTIAL)

    def test_non_access_token_type_is_invalid(self):
        assert verify_access_token(encode({"type": "refresh"})) == Reject(ErrorKind.INVALID_CREDENTIAL)

    def test_non_numeric_subject_is_invalid(self):
        assert verify_access_token(encode({"sub": "admin"})) == Reject(ErrorKind.INVALID_CREDENTIAL)

    def test_garbage_is_invalid(self):
        result = verify_access_token("not.a.jwt")
        assert isinstance(result, Reject)
        assert result.reason == ErrorKind.INVALID_CREDENTIAL
        assert result.detail
