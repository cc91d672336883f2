"""Tests for the auth feature.
Covers: AuthService, refresh token rotation and revocation, auth endpoints.
"""

import asyncio
from datetime import date, timedelta

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from src.database.base import utcnow
from src.features.auth.exceptions import (
    CredentialExpiredError,
    CredentialRevokedError,
    InvalidCredentialsError,
    LoginFailedError,
)
from src.features.auth.jwt_utils import verify_access_token
from src.features.auth.models import RefreshToken
from src.features.auth.principal import Ok
from src.features.auth.refresh_tokens import RefreshTokenStore
from src.features.auth.schemas import RegisterRequest
from src.features.auth.service import AuthService
from src.features.user.exceptions import EmailAlreadyExists
from src.features.user.models import User, UserRole
from src.main import app
from src.shared.errors.exceptions import ErrorKind


STRONG_PASSWORD = "Str0ng!pw"


def register_payload(email="a@x.com", password=STRONG_PASSWORD, full_name="Name", birth_date="1990-01-01"):
    return {"email": email, "password": password, "full_name": full_name, "birth_date": birth_date}


def register_request(email: str, full_name: str = "Name") -> RegisterRequest:
    return RegisterRequest(email=email, password=STRONG_PASSWORD, full_name=full_name, birth_date=date(1990, 1, 1))


def error_shape(response):
    """Response body without the per-request fields."""
    body = response.json()
    return response.status_code, {k: v for k, v in body.items() if k not in ("trace_id", "timestamp")}


async def stored_token(session, token: str) -> RefreshToken:
    result = await session.execute(
        select(RefreshToken).where(RefreshToken.token == token).execution_options(populate_existing=True)
    )
    return result.scalar_one()


def fail_first_insert(monkeypatch):
    """Make the next refresh token insert fail once, then behave normally."""
    original = RefreshTokenStore.issue_and_persist
    calls = []

    async def flaky(session, user_id, ip_address=None):
        calls.append(user_id)
        if len(calls) == 1:
            raise OperationalError("INSERT INTO refresh_tokens", {}, Exception("disk I/O error"))
        return await original(session, user_id, ip_address)

    monkeypatch.setattr(RefreshTokenStore, "issue_and_persist", staticmethod(flaky))
    return calls


# AuthService.register


class TestRegister:
    """Unit tests for AuthService.register."""

    async def test_creates_user_with_default_role(self, session):
        data = register_request("New@Example.com", "New")
        tokens = await AuthService.register(session, data, ip_address="127.0.0.1")
        await session.commit()

        user = await AuthService.get_user_by_email(session, "new@example.com")
        assert user is not None
        assert user.email == "new@example.com"
        assert user.role == UserRole.USER
        assert user.hashed_password != STRONG_PASSWORD
        assert tokens.token_type == "bearer"
        assert tokens.expires_in == 900

    async def test_stores_refresh_token_with_ip(self, session):
        data = register_request("ip@example.com", "Ip")
        tokens = await AuthService.register(session, data, ip_address="10.0.0.1")

        stored = await stored_token(session, tokens.refresh_token)
        assert stored.created_by_ip == "10.0.0.1"
        assert stored.revoked_at is None

    async def test_duplicate_email_is_case_insensitive(self, session, make_user):
        await make_user(email="dup@example.com")
        data = register_request("DUP@example.com", "Dup")

        with pytest.raises(EmailAlreadyExists) as exc_info:
            await AuthService.register(session, data)

        assert exc_info.value.status_code == status.HTTP_409_CONFLICT
        assert exc_info.value.public_message == "User with email 'dup@example.com' already exists"

    async def test_unique_constraint_reports_duplicate(self, session, make_user, monkeypatch):
        """A registration racing past the pre-check still ends as Duplicate."""
        await make_user(email="race@example.com")

        async def no_precheck(session, email):
            return None

        monkeypatch.setattr(AuthService, "get_user_by_email", staticmethod(no_precheck))
        data = register_request("race@example.com", "Race")

        with pytest.raises(EmailAlreadyExists):
            await AuthService.register(session, data)

        count = await session.scalar(select(func.count()).select_from(User))
        assert count == 1


# AuthService.login


class TestLogin:
    """Unit tests for AuthService.login."""

    async def test_success_returns_tokens_and_sets_last_login(self, session, make_user):
        user = await make_user(email="login@example.com", password=STRONG_PASSWORD)
        assert user.last_login_at is None

        tokens = await AuthService.login(session, "login@example.com", STRONG_PASSWORD)
        await session.commit()
        await session.refresh(user)

        assert tokens.access_token
        assert tokens.refresh_token
        assert user.last_login_at is not None

    async def test_email_lookup_is_case_insensitive(self, session, make_user):
        await make_user(email="mixed@example.com", password=STRONG_PASSWORD)
        tokens = await AuthService.login(session, "  MIXED@example.COM ", STRONG_PASSWORD)
        assert tokens.access_token

    async def test_unknown_email_and_wrong_password_raise_same_error(self, session, make_user):
        await make_user(email="known@example.com", password=STRONG_PASSWORD)

        with pytest.raises(LoginFailedError) as unknown:
            await AuthService.login(session, "ghost@example.com", STRONG_PASSWORD)
        with pytest.raises(LoginFailedError) as wrong:
            await AuthService.login(session, "known@example.com", "Wr0ng!pass")

        assert unknown.value.status_code == wrong.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert unknown.value.public_message == wrong.value.public_message == "Invalid email or password"

    async def test_authenticate_user_returns_none_for_wrong_password(self, session, make_user):
        await make_user(email="wp@example.com", password=STRONG_PASSWORD)
        assert await AuthService.authenticate_user(session, "wp@example.com", "Wr0ng!pass") is None


# RefreshTokenStore


class TestRefreshTokenStore:
    """Unit tests for refresh token generation, rotation and revocation."""

    def test_generate_returns_random_base64_tokens(self):
        first = RefreshTokenStore.generate("127.0.0.1")
        second = RefreshTokenStore.generate()

        assert first.token != second.token
        assert len(first.token) == 88  # base64 of 64 bytes
        assert first.created_by_ip == "127.0.0.1"
        assert timedelta(days=6, hours=23) < first.expires_at - utcnow() <= timedelta(days=7)

    async def test_rotate_revokes_old_and_issues_new(self, session, make_user):
        user = await make_user()
        stored = await RefreshTokenStore.issue_and_persist(session, user.id)
        await session.commit()

        tokens = await RefreshTokenStore.rotate(session, stored.token, ip_address="127.0.0.1")
        await session.commit()

        old = await stored_token(session, stored.token)
        new = await stored_token(session, tokens.refresh_token)
        assert old.revoked_at is not None
        assert new.revoked_at is None
        assert new.is_active()
        assert tokens.refresh_token != stored.token

    async def test_rotate_twice_fails_second_time(self, session, make_user):
        user = await make_user()
        stored = await RefreshTokenStore.issue_and_persist(session, user.id)
        await session.commit()

        await RefreshTokenStore.rotate(session, stored.token)
        await session.commit()

        with pytest.raises(CredentialRevokedError):
            await RefreshTokenStore.rotate(session, stored.token)

    async def test_expired_token_never_rotates(self, session, make_user):
        user = await make_user()
        token = "expired-token-" + "x" * 40
        session.add(RefreshToken(token=token, user_id=user.id, expires_at=utcnow() - timedelta(seconds=1)))
        await session.commit()

        with pytest.raises(CredentialExpiredError):
            await RefreshTokenStore.rotate(session, token)

    async def test_unknown_token_is_rejected(self, session):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await RefreshTokenStore.rotate(session, "no-such-token-" + "x" * 40)

        assert exc_info.value.kind is ErrorKind.INVALID_CREDENTIAL

    async def test_rotated_access_token_carries_current_role(self, session, make_user):
        user = await make_user(role=UserRole.USER)
        stored = await RefreshTokenStore.issue_and_persist(session, user.id)
        user.role = UserRole.ADMIN.value
        await session.commit()

        tokens = await RefreshTokenStore.rotate(session, stored.token)

        result = verify_access_token(tokens.access_token)
        assert isinstance(result, Ok)
        assert result.principal.role == UserRole.ADMIN

    async def test_concurrent_rotation_has_single_winner(self, session, session_factory, make_user):
        user = await make_user()
        stored = await RefreshTokenStore.issue_and_persist(session, user.id)
        await session.commit()

        async def attempt():
            async with session_factory() as own_session:
                try:
                    tokens = await RefreshTokenStore.rotate(own_session, stored.token)
                    await own_session.commit()
                    return tokens
                except InvalidCredentialsError:
                    await own_session.rollback()
                    return None

        results = await asyncio.gather(attempt(), attempt())

        assert sum(result is not None for result in results) == 1
        with pytest.raises(InvalidCredentialsError):
            await RefreshTokenStore.rotate(session, stored.token)

        count = await session.scalar(select(func.count()).select_from(RefreshToken))
        assert count == 2

    async def test_failed_rotation_rolls_back_the_claim(self, session, make_user, monkeypatch):
        user = await make_user()
        stored = await RefreshTokenStore.issue_and_persist(session, user.id)
        await session.commit()
        fail_first_insert(monkeypatch)

        with pytest.raises(OperationalError):
            await RefreshTokenStore.rotate(session, stored.token)
        await session.rollback()

        assert (await stored_token(session, stored.token)).revoked_at is None
        assert await session.scalar(select(func.count()).select_from(RefreshToken)) == 1

        tokens = await RefreshTokenStore.rotate(session, stored.token)
        await session.commit()

        assert (await stored_token(session, stored.token)).revoked_at is not None
        assert (await stored_token(session, tokens.refresh_token)).is_active()

    async def test_revoke_is_idempotent(self, session, make_user):
        user = await make_user()
        stored = await RefreshTokenStore.issue_and_persist(session, user.id)
        await session.commit()

        assert await RefreshTokenStore.revoke(session, stored.token) is True
        await session.commit()
        assert await RefreshTokenStore.revoke(session, stored.token) is False

        with pytest.raises(InvalidCredentialsError):
            await RefreshTokenStore.rotate(session, stored.token)

    async def test_logout_unknown_token_is_silent(self, session):
        await AuthService.logout(session, "never-issued")


# Auth endpoints


class TestAuthEndpoints:
    """HTTP tests for /api/auth."""

    async def test_register_then_login(self, client):
        register = await client.post("/api/auth/register", json=register_payload())
        assert register.status_code == status.HTTP_201_CREATED

        login = await client.post("/api/auth/login", json={"email": "a@x.com", "password": STRONG_PASSWORD})
        assert login.status_code == status.HTTP_200_OK

        registered, logged_in = register.json(), login.json()
        assert logged_in["token_type"] == "bearer"
        assert logged_in["expires_in"] == 900
        assert logged_in["access_token"] != registered["access_token"]
        assert logged_in["refresh_token"] != registered["refresh_token"]

    async def test_register_duplicate_returns_409(self, client, make_user):
        await make_user(email="a@x.com")
        response = await client.post("/api/auth/register", json=register_payload(email="A@x.com"))

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body["error"] == "User with email 'a@x.com' already exists"
        assert body["status_code"] == 409
        assert body["trace_id"] == response.headers["X-Request-ID"]

    @pytest.mark.parametrize(
        "field, value",
        [
            ("password", "alllowercase1!"),
            ("password", "NoSpecial123"),
            ("password", "Sh0rt!"),
            ("full_name", "A"),
            ("email", "not-an-email"),
            ("birth_date", "2999-01-01"),
            ("birth_date", "1850-01-01"),
        ],
    )
    async def test_register_validation_returns_400_per_field(self, client, field, value):
        response = await client.post("/api/auth/register", json={**register_payload(), field: value})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error"] == "Validation failed"
        assert field in body["errors"]

    async def test_login_does_not_reveal_which_part_failed(self, client, make_user):
        await make_user(email="known@x.com", password=STRONG_PASSWORD)

        unknown = await client.post("/api/auth/login", json={"email": "ghost@x.com", "password": STRONG_PASSWORD})
        wrong = await client.post("/api/auth/login", json={"email": "known@x.com", "password": "Wr0ng!pass"})

        assert unknown.status_code == status.HTTP_401_UNAUTHORIZED
        assert error_shape(unknown) == error_shape(wrong)
        assert unknown.json()["error"] == "Invalid email or password"
        assert unknown.headers["WWW-Authenticate"] == "Bearer"

    async def test_refresh_token_is_single_use(self, client, make_user):
        await make_user(email="b@x.com", password=STRONG_PASSWORD)
        login = await client.post("/api/auth/login", json={"email": "b@x.com", "password": STRONG_PASSWORD})
        token1 = login.json()["refresh_token"]

        first = await client.post("/api/auth/refresh", json={"refresh_token": token1})
        assert first.status_code == status.HTTP_200_OK
        assert first.json()["refresh_token"] != token1

        second = await client.post("/api/auth/refresh", json={"refresh_token": token1})
        assert second.status_code == status.HTTP_401_UNAUTHORIZED
        assert second.json()["error"] == "Invalid or expired credentials"

    async def test_refresh_failing_mid_rotation_keeps_token_usable(self, client, session, make_user, monkeypatch):
        await make_user(email="d@x.com", password=STRONG_PASSWORD)
        login = await client.post("/api/auth/login", json={"email": "d@x.com", "password": STRONG_PASSWORD})
        token = login.json()["refresh_token"]
        fail_first_insert(monkeypatch)

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as failing_client:
            failed = await failing_client.post("/api/auth/refresh", json={"refresh_token": token})

        assert failed.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert (await stored_token(session, token)).revoked_at is None

        retried = await client.post("/api/auth/refresh", json={"refresh_token": token})
        assert retried.status_code == status.HTTP_200_OK

    async def test_reused_refresh_token_is_logged_as_revoked(self, client, make_user, caplog):
        await make_user(email="e@x.com", password=STRONG_PASSWORD)
        login = await client.post("/api/auth/login", json={"email": "e@x.com", "password": STRONG_PASSWORD})
        token = login.json()["refresh_token"]
        await client.post("/api/auth/refresh", json={"refresh_token": token})

        with caplog.at_level("WARNING"):
            reused = await client.post("/api/auth/refresh", json={"refresh_token": token})

        assert reused.status_code == status.HTTP_401_UNAUTHORIZED
        assert reused.json()["error"] == "Invalid or expired credentials"
        assert "Authentication rejected (revoked)" in caplog.text

    async def test_refresh_rejects_malformed_token_shape(self, client):
        response = await client.post("/api/auth/refresh", json={"refresh_token": "short"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "refresh_token" in response.json()["errors"]

    async def test_logout_twice_returns_same_success(self, client, make_user):
        await make_user(email="c@x.com", password=STRONG_PASSWORD)
        login = await client.post("/api/auth/login", json={"email": "c@x.com", "password": STRONG_PASSWORD})
        token = login.json()["refresh_token"]

        first = await client.post("/api/auth/logout", json={"refresh_token": token})
        second = await client.post("/api/auth/logout", json={"refresh_token": token})
        unknown = await client.post("/api/auth/logout", json={"refresh_token": "never-issued"})

        assert first.status_code == second.status_code == unknown.status_code == status.HTTP_200_OK
        assert first.json() == second.json() == unknown.json() == {"message": "Logged out successfully"}

        refresh = await client.post("/api/auth/refresh", json={"refresh_token": token})
        assert refresh.status_code == status.HTTP_401_UNAUTHORIZED
