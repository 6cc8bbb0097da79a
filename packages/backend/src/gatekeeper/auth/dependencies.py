"""FastAPI dependencies that resolve a request to its session state.

Learn: These are used as Depends() in route handlers.

- get_authority: cookie → context id → that browser's SessionAuthority.
  A missing, expired or forged cookie gets an unregistered authority;
  bind_context() registers it and sets the cookie after a sign-in.
- get_current_session: the "hard" variant — 401 unless the context is
  signed in.
"""

from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request, Response

from gatekeeper.auth.jwt import TokenError, create_context_token, verify_context_token
from gatekeeper.config import settings
from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.identity.models import Session
from gatekeeper.session.authority import SessionAuthority
from gatekeeper.session.registry import SessionRegistry

logger = structlog.get_logger()


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_identity_client(request: Request) -> CredentialExchangeClient:
    """The shared exchange client, created in the app lifespan."""
    return request.app.state.identity_client


def _context_id_from(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.context_cookie_name)
    if not token:
        return None
    try:
        return verify_context_token(token)
    except TokenError as e:
        logger.info("auth.context_cookie_rejected", error=str(e))
        return None


async def get_authority(
    request: Request,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionAuthority:
    """This browser's SessionAuthority.

    A browser without a live context gets a throwaway authority that is
    not registered; bind_context() registers it if a sign-in succeeds.
    """
    context_id = _context_id_from(request)
    authority = registry.get(context_id) if context_id else None
    if authority is None:
        request.state.context_id = None
        return SessionAuthority()

    request.state.context_id = context_id
    structlog.contextvars.bind_contextvars(context_id=context_id[:8])
    return authority


def bind_context(
    request: Request,
    response: Response,
    authority: SessionAuthority,
) -> None:
    """Register a newly signed-in authority and set its context cookie."""
    if request.state.context_id is not None or not authority.is_authenticated:
        return

    context_id = get_registry(request).register(authority)
    request.state.context_id = context_id
    response.set_cookie(
        settings.context_cookie_name,
        create_context_token(context_id),
        max_age=settings.context_max_age_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
    )
    structlog.contextvars.bind_contextvars(context_id=context_id[:8])
    logger.info("auth.context_created")


async def get_current_session(
    authority: SessionAuthority = Depends(get_authority),
) -> Session:
    """The active Session (401 if this context is not signed in)."""
    session = authority.current()
    if session is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return session
