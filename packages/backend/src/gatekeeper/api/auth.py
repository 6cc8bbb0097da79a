"""Auth API — sign-in, sign-up, sign-out, current session.

Learn: Routes for the browser's credential flow:
- POST /auth/signin → email/password → session for this browser context
- POST /auth/signup → create an account (sign in separately afterwards)
- POST /auth/signout → drop the session (idempotent)
- GET /auth/session → who is signed in, without the bearer token

Failures come back as {"detail": "<human-readable reason>"} so the form
can show them inline next to the fields.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from gatekeeper.auth.dependencies import bind_context, get_authority, get_identity_client
from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.identity.models import ExchangeFailure, Session
from gatekeeper.schemas.auth import (
    MessageResponse,
    SessionRead,
    SessionUser,
    SignInRequest,
    SignUpRequest,
)
from gatekeeper.services.auth_service import REGISTERED_MESSAGE, AuthService
from gatekeeper.session.authority import SessionAuthority

router = APIRouter(prefix="/auth")

# ExchangeFailure.kind → HTTP status
_FAILURE_STATUS = {
    "validation": 400,
    "unavailable": 502,
    "protocol": 502,
}


def failure_status(failure: ExchangeFailure, rejected_status: int) -> int:
    return _FAILURE_STATUS.get(failure.kind, rejected_status)


def session_view(session: Optional[Session]) -> SessionRead:
    if session is None:
        return SessionRead(authenticated=False)
    return SessionRead(
        authenticated=True,
        user=SessionUser(
            id=session.identity_id,
            name=session.display_name,
            email=session.email,
        ),
        issued_at=session.issued_at,
    )


def get_auth_service(
    client: CredentialExchangeClient = Depends(get_identity_client),
    authority: SessionAuthority = Depends(get_authority),
) -> AuthService:
    return AuthService(client, authority)


# ─── Sign in ─────────────────────────────────────────────


@router.post("/signin", response_model=SessionRead)
async def sign_in(
    body: SignInRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    """Sign in with email and password."""
    result = await service.sign_in(body.email, body.password)
    if isinstance(result, ExchangeFailure):
        raise HTTPException(
            status_code=failure_status(result, rejected_status=401),
            detail=result.reason,
        )
    bind_context(request, response, service.authority)
    # A newer sign-in may have superseded this one; report what actually holds.
    return session_view(service.authority.current())


# ─── Sign up ─────────────────────────────────────────────


@router.post("/signup", response_model=MessageResponse, status_code=201)
async def sign_up(body: SignUpRequest, service: AuthService = Depends(get_auth_service)):
    """Create an account with the identity backend."""
    result = await service.sign_up(body.email, body.password, body.username or None)
    if isinstance(result, ExchangeFailure):
        raise HTTPException(
            status_code=failure_status(result, rejected_status=400),
            detail=result.reason,
        )
    return MessageResponse(message=REGISTERED_MESSAGE)


# ─── Sign out ────────────────────────────────────────────


@router.post("/signout")
async def sign_out(service: AuthService = Depends(get_auth_service)):
    """Drop this browser's session. Safe to call when signed out."""
    service.sign_out()
    return {"signed_out": True}


# ─── Current session ─────────────────────────────────────


@router.get("/session", response_model=SessionRead)
async def get_session(authority: SessionAuthority = Depends(get_authority)):
    """Who is signed in on this browser context."""
    return session_view(authority.current())
