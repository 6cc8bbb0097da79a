"""Credential Exchange Client — the only code that talks to the identity backend.

Learn: Two kinds of call go through here.

1. Exchanges (authenticate, register): every failure is caught and
   returned as an ExchangeFailure with a readable reason. Callers branch
   on result.ok and never need a try/except.
2. Authorized calls (change_password, update_username): these raise the
   taxonomy errors from identity.errors so ProfileService can tell an
   expired token (401) apart from other failures.

Both share one normalization boundary, _request(), which is the only place
that knows the backend's {error: {message}} error shape.
"""

from typing import Any, Optional, Union

import httpx
import structlog

from gatekeeper.identity.errors import (
    BackendRejection,
    BackendUnavailable,
    IdentityError,
    ProtocolMismatch,
    ValidationError,
)
from gatekeeper.identity.models import (
    CredentialInput,
    ExchangeFailure,
    ExchangeResult,
    ExchangeSuccess,
)

logger = structlog.get_logger()

# ─── Endpoints ───────────────────────────────────────────

LOGIN_PATH = "/api/auth/local"
REGISTER_PATH = "/api/auth/local/register"
CHANGE_PASSWORD_PATH = "/api/auth/change-password"
USER_PATH = "/api/users/{identity_id}"

# ─── Messages ────────────────────────────────────────────

MISSING_CREDENTIALS = "Email and password are required"
INVALID_CREDENTIALS = "Invalid credentials"
SIGN_IN_FAILED = "Sign in failed"
REGISTRATION_FAILED = "Registration failed"
NETWORK_ERROR = "Unable to reach the identity service"


def extract_error_message(response: httpx.Response) -> Optional[str]:
    """Pull error.message out of a backend error body, if it has one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    if isinstance(message, str) and message.strip():
        return message
    return None


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class CredentialExchangeClient:
    """Async client for the identity backend.

    Pass an existing httpx.AsyncClient to share a connection pool (or to
    inject a MockTransport in tests); otherwise one is created and owned.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def ping(self) -> bool:
        """True if the backend answers HTTP at all (any status)."""
        try:
            await self._client.get(f"{self.base_url}/_health", timeout=2.0)
        except httpx.HTTPError:
            return False
        return True

    # ─── Exchanges ─────────────────────────────────────────

    async def authenticate(self, identifier: str, secret: str) -> ExchangeResult:
        """Sign in with email + password."""
        try:
            credentials = _require_credentials(CredentialInput(identifier, secret))
            body = await self._request(
                "POST",
                LOGIN_PATH,
                json={"identifier": credentials.identifier, "password": credentials.secret},
            )
            return _success_from(body)
        except IdentityError as e:
            return self._failure(
                e,
                operation="authenticate",
                rejected_fallback=INVALID_CREDENTIALS,
                protocol_fallback=SIGN_IN_FAILED,
            )

    async def register(
        self,
        identifier: str,
        secret: str,
        display_name: Optional[str] = None,
    ) -> ExchangeResult:
        """Create an account. display_name defaults to the email."""
        try:
            credentials = _require_credentials(
                CredentialInput(identifier, secret, display_name)
            )
            body = await self._request(
                "POST",
                REGISTER_PATH,
                json={
                    "username": credentials.display_name or credentials.identifier,
                    "email": credentials.identifier,
                    "password": credentials.secret,
                },
            )
            return _success_from(body)
        except IdentityError as e:
            return self._failure(
                e,
                operation="register",
                rejected_fallback=REGISTRATION_FAILED,
                protocol_fallback=REGISTRATION_FAILED,
            )

    # ─── Authorized calls ──────────────────────────────────

    async def change_password(
        self,
        token: str,
        current_password: str,
        new_password: str,
        confirmation: str,
    ) -> str:
        """Change the password; returns the rotated bearer token.

        Raises BackendRejection / BackendUnavailable / ProtocolMismatch.
        """
        body = await self._request(
            "POST",
            CHANGE_PASSWORD_PATH,
            json={
                "currentPassword": current_password,
                "password": new_password,
                "passwordConfirmation": confirmation,
            },
            headers=bearer(token),
        )
        new_token = body.get("jwt")
        if not isinstance(new_token, str) or not new_token:
            raise ProtocolMismatch("change-password response has no jwt")
        return new_token

    async def update_username(
        self,
        token: str,
        identity_id: Union[int, str],
        username: str,
    ) -> dict[str, Any]:
        """Rename the user; returns the backend's updated user object."""
        return await self._request(
            "PUT",
            USER_PATH.format(identity_id=identity_id),
            json={"username": username},
            headers=bearer(token),
        )

    # ─── Internals ─────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any],
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON object body.

        This is the normalization boundary: transport errors become
        BackendUnavailable, non-2xx becomes BackendRejection, and a 2xx
        without a JSON object becomes ProtocolMismatch.
        """
        try:
            response = await self._client.request(
                method, f"{self.base_url}{path}", json=json, headers=headers
            )
        except httpx.TimeoutException as e:
            raise BackendUnavailable(f"timeout: {e.__class__.__name__}") from e
        except httpx.TransportError as e:
            raise BackendUnavailable(f"transport: {e.__class__.__name__}") from e
        except httpx.RequestError as e:
            # Undecodable body, redirect loop
            raise BackendUnavailable(f"request: {e.__class__.__name__}") from e

        if not response.is_success:
            raise BackendRejection(
                response.status_code, extract_error_message(response)
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProtocolMismatch("response body is not JSON") from e
        if not isinstance(body, dict):
            raise ProtocolMismatch("response body is not an object")
        return body

    def _failure(
        self,
        error: IdentityError,
        *,
        operation: str,
        rejected_fallback: str,
        protocol_fallback: str,
    ) -> ExchangeFailure:
        if isinstance(error, ValidationError):
            reason = error.message or MISSING_CREDENTIALS
        elif isinstance(error, BackendRejection):
            reason = error.message or rejected_fallback
        elif isinstance(error, BackendUnavailable):
            reason = NETWORK_ERROR
        else:
            reason = protocol_fallback

        logger.info(
            f"exchange.{operation}.failed",
            kind=error.kind,
            status=getattr(error, "status_code", None),
            reason=reason,
        )
        return ExchangeFailure(reason=reason, kind=error.kind)


def _require_credentials(credentials: CredentialInput) -> CredentialInput:
    if not credentials.identifier or not credentials.secret:
        raise ValidationError(MISSING_CREDENTIALS)
    return credentials


def _success_from(body: dict[str, Any]) -> ExchangeSuccess:
    """Build a Success from {jwt, user:{id, email, username}}."""
    token = body.get("jwt")
    user = body.get("user")
    if not isinstance(token, str) or not token or not isinstance(user, dict):
        raise ProtocolMismatch("response is missing jwt or user")
    if user.get("id") is None:
        raise ProtocolMismatch("user has no id")

    email = user.get("email") or ""
    return ExchangeSuccess(
        identity_id=user["id"],
        display_name=user.get("username") or email,
        email=email,
        bearer_token=token,
    )
