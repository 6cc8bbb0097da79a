"""Profile service tests — the authorization-gated flows.

Learn: Tests cover:
1. Local checks (mismatched / empty passwords, empty username)
2. Fail-fast when nobody is signed in
3. Password change: verify old password → change → token refreshed
4. Username change → session display name updated
5. 401 from the backend drops the session
"""

import json

import httpx
import pytest

from conftest import auth_payload, error_payload
from gatekeeper.identity.errors import NotAuthenticatedError
from gatekeeper.identity.models import ExchangeSuccess
from gatekeeper.services.profile_service import (
    PASSWORDS_DONT_MATCH,
    PASSWORDS_REQUIRED,
    PROFILE_UPDATE_FAILED,
    PROFILE_UPDATED,
    SESSION_EXPIRED,
    USERNAME_EMPTY,
    USERNAME_UPDATE_FAILED,
    USERNAME_UPDATED,
    ProfileService,
)


@pytest.fixture()
def service(exchange_client, authority):
    return ProfileService(exchange_client, authority)


@pytest.fixture()
def signed_in(authority):
    authority.establish(
        ExchangeSuccess(identity_id=1, display_name="a", email="a@b.com", bearer_token="t1")
    )
    return authority


# ═══════════════════════════════════════════════════════════
# Password change
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_password_mismatch_makes_no_call(service, backend, signed_in):
    result = await service.change_password("old", "new", "other")
    assert not result.ok
    assert result.message == PASSWORDS_DONT_MATCH
    assert backend.calls == []


@pytest.mark.asyncio
async def test_password_required(service, backend, signed_in):
    result = await service.change_password("", "new", "new")
    assert result.message == PASSWORDS_REQUIRED
    assert backend.calls == []


@pytest.mark.asyncio
async def test_password_change_requires_session(service, backend):
    with pytest.raises(NotAuthenticatedError):
        await service.change_password("old", "new", "new")
    assert backend.calls == []


@pytest.mark.asyncio
async def test_password_change_refreshes_token(service, backend, signed_in):
    backend.on("POST", "/api/auth/local", json=auth_payload("t-verify"))
    backend.on("POST", "/api/auth/change-password", json={"jwt": "t2"})

    result = await service.change_password("old", "new", "new")

    assert result.ok
    assert result.message == PROFILE_UPDATED
    assert signed_in.current().bearer_token == "t2"
    assert signed_in.current().identity_id == 1

    verify, change = backend.calls
    # The old password is verified first, against the session's email
    assert verify.url.path == "/api/auth/local"
    assert json.loads(verify.content) == {"identifier": "a@b.com", "password": "old"}
    # The change is authorized with the session's token, not the verify token
    assert change.headers["Authorization"] == "Bearer t1"


@pytest.mark.asyncio
async def test_wrong_current_password_stops_before_change(service, backend, signed_in):
    backend.on(
        "POST",
        "/api/auth/local",
        status=400,
        json=error_payload("Invalid identifier or password"),
    )

    result = await service.change_password("bad", "new", "new")

    assert not result.ok
    assert result.message == "Invalid identifier or password"
    assert backend.calls_to("/api/auth/change-password") == []
    assert signed_in.current().bearer_token == "t1"


@pytest.mark.asyncio
async def test_password_change_backend_message(service, backend, signed_in):
    backend.on("POST", "/api/auth/local", json=auth_payload())
    backend.on(
        "POST",
        "/api/auth/change-password",
        status=400,
        json=error_payload("Your new password must be different than your current password"),
    )

    result = await service.change_password("old", "old2", "old2")

    assert result.message == "Your new password must be different than your current password"
    assert signed_in.current().bearer_token == "t1"


@pytest.mark.asyncio
async def test_password_change_fallback_message(service, backend, signed_in):
    backend.on("POST", "/api/auth/local", json=auth_payload())
    backend.on("POST", "/api/auth/change-password", json={"ok": True})

    result = await service.change_password("old", "new", "new")

    assert result.message == PROFILE_UPDATE_FAILED
    assert signed_in.current().bearer_token == "t1"


@pytest.mark.asyncio
async def test_password_change_expired_token_signs_out(service, backend, signed_in):
    backend.on("POST", "/api/auth/local", json=auth_payload())
    backend.on(
        "POST",
        "/api/auth/change-password",
        status=401,
        json=error_payload("Missing or invalid credentials", 401),
    )

    result = await service.change_password("old", "new", "new")

    assert result.message == SESSION_EXPIRED
    assert result.signed_out
    assert signed_in.current() is None


@pytest.mark.asyncio
async def test_sign_out_during_change_skips_refresh(service, backend, signed_in):
    def change(request):
        signed_in.invalidate()
        return httpx.Response(200, json={"jwt": "t2"})

    backend.on("POST", "/api/auth/local", json=auth_payload())
    backend.on("POST", "/api/auth/change-password", handler=change)

    result = await service.change_password("old", "new", "new")

    assert result.ok
    assert signed_in.current() is None


@pytest.mark.asyncio
async def test_rejected_old_token_keeps_newer_session(service, backend, signed_in):
    """A 401 for a token that was replaced mid-call does not sign out the new session."""

    def rejected_after_new_sign_in(request):
        signed_in.establish(
            ExchangeSuccess(identity_id=2, display_name="b", email="b@b.com", bearer_token="t2")
        )
        return httpx.Response(401, json=error_payload("Unauthorized", 401))

    backend.on("POST", "/api/auth/local", json=auth_payload())
    backend.on("POST", "/api/auth/change-password", handler=rejected_after_new_sign_in)

    result = await service.change_password("old", "new", "new")

    assert not result.ok
    assert not result.signed_out
    assert result.message == PROFILE_UPDATE_FAILED
    assert signed_in.current().identity_id == 2
    assert signed_in.current().bearer_token == "t2"


# ═══════════════════════════════════════════════════════════
# Username change
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize("username", ["", "   "])
async def test_username_empty(service, backend, signed_in, username):
    result = await service.update_username(username)
    assert result.message == USERNAME_EMPTY
    assert backend.calls == []


@pytest.mark.asyncio
async def test_username_requires_session(service):
    with pytest.raises(NotAuthenticatedError):
        await service.update_username("bob")


@pytest.mark.asyncio
async def test_username_updated(service, backend, signed_in):
    backend.on("PUT", "/api/users/1", json={"id": 1, "username": "bob"})

    result = await service.update_username("bob")

    assert result.ok
    assert result.message == USERNAME_UPDATED
    assert signed_in.current().display_name == "bob"
    assert signed_in.current().bearer_token == "t1"
    (request,) = backend.calls
    assert request.headers["Authorization"] == "Bearer t1"


@pytest.mark.asyncio
async def test_username_backend_message(service, backend, signed_in):
    backend.on(
        "PUT",
        "/api/users/1",
        status=400,
        json=error_payload("Username already taken"),
    )
    result = await service.update_username("bob")
    assert result.message == "Username already taken"
    assert signed_in.current().display_name == "a"


@pytest.mark.asyncio
async def test_username_unreachable_fallback(service, backend, signed_in):
    def refuse(request):
        raise httpx.ConnectError("down", request=request)

    backend.on("PUT", "/api/users/1", handler=refuse)
    result = await service.update_username("bob")
    assert result.message == USERNAME_UPDATE_FAILED
    assert signed_in.is_authenticated


@pytest.mark.asyncio
async def test_username_expired_token_signs_out(service, backend, signed_in):
    backend.on("PUT", "/api/users/1", status=401, content=b"")
    result = await service.update_username("bob")
    assert result.signed_out
    assert signed_in.current() is None


@pytest.mark.asyncio
async def test_username_rejected_old_token_keeps_newer_session(service, backend, signed_in):
    def rejected_after_new_sign_in(request):
        signed_in.establish(
            ExchangeSuccess(identity_id=2, display_name="b", email="b@b.com", bearer_token="t2")
        )
        return httpx.Response(401, content=b"")

    backend.on("PUT", "/api/users/1", handler=rejected_after_new_sign_in)

    result = await service.update_username("bob")

    assert result.message == USERNAME_UPDATE_FAILED
    assert not result.signed_out
    assert signed_in.current().identity_id == 2
    assert signed_in.current().display_name == "b"
