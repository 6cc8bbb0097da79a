"""Test fixtures — a fake identity backend and an in-process API client.

Learn: The identity backend is simulated with httpx.MockTransport, so no
Strapi instance is needed. FakeIdentityBackend records every request it
receives (tests assert on call counts to prove validation happens before
any network call) and answers from per-route handlers.

The API client drives the FastAPI app over ASGITransport. We override
get_identity_client to point at the fake backend, and give each test a
fresh SessionRegistry. The AsyncClient keeps cookies between requests,
so one client == one browser context.
"""

import inspect
from typing import Any, Callable, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gatekeeper.auth.dependencies import get_identity_client
from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.main import app
from gatekeeper.session.authority import SessionAuthority
from gatekeeper.session.registry import SessionRegistry

IDENTITY_URL = "http://identity.test"


def auth_payload(
    jwt: str = "t1",
    *,
    id: Any = 1,
    email: str = "a@b.com",
    username: str = "a",
) -> dict:
    """Body of a successful /api/auth/local or /api/auth/local/register."""
    return {"jwt": jwt, "user": {"id": id, "email": email, "username": username}}


def error_payload(message: str, status: int = 400) -> dict:
    return {
        "data": None,
        "error": {"status": status, "name": "ValidationError", "message": message},
    }


class FakeIdentityBackend:
    """Routes (method, path) to canned responses or handler callables."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable] = {}
        self.calls: list[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        status: int = 200,
        json: Optional[Any] = None,
        *,
        content: Optional[bytes] = None,
        handler: Optional[Callable] = None,
    ) -> None:
        if handler is None:
            def handler(request, _status=status, _json=json, _content=content):
                if _content is not None:
                    return httpx.Response(_status, content=_content)
                return httpx.Response(_status, json=_json)
        self.routes[(method, path)] = handler

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.path == path]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json=error_payload("Not Found", 404))
        response = handler(request)
        if inspect.isawaitable(response):
            response = await response
        return response


@pytest.fixture()
def backend():
    return FakeIdentityBackend()


@pytest_asyncio.fixture()
async def exchange_client(backend):
    http = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    client = CredentialExchangeClient(IDENTITY_URL, client=http)
    yield client
    await http.aclose()


@pytest.fixture()
def authority():
    return SessionAuthority()


@pytest_asyncio.fixture()
async def client(exchange_client):
    """HTTP client for the app, wired to the fake identity backend."""
    app.dependency_overrides[get_identity_client] = lambda: exchange_client
    app.state.registry = SessionRegistry()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def signed_in_client(client, backend):
    """API client whose browser context is already signed in as a@b.com."""
    backend.on("POST", "/api/auth/local", json=auth_payload("t1"))
    r = await client.post(
        "/api/auth/signin", json={"email": "a@b.com", "password": "pw"}
    )
    assert r.status_code == 200
    backend.calls.clear()
    return client
