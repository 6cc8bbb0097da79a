"""Signed browser-context tokens.

Learn: The context cookie only says "this browser is context X". It does
not carry the identity backend's bearer token — that stays server-side in
the context's SessionAuthority. Signing the cookie stops a client from
guessing or forging someone else's context id.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from gatekeeper.config import settings


class TokenError(Exception):
    """Raised when a context token cannot be verified."""


def create_context_token(
    context_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Sign a context id into a short JWT for the context cookie."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": context_id,
        "type": "context",
        "iat": now,
        "exp": now + timedelta(
            minutes=expires_minutes or settings.context_max_age_minutes
        ),
    }
    return jwt.encode(
        payload, settings.session_secret, algorithm=settings.session_algorithm
    )


def verify_context_token(token: str) -> str:
    """Return the context id inside a context token.

    Raises TokenError when the token is expired, tampered with, or not a
    context token.
    """
    try:
        payload = jwt.decode(
            token, settings.session_secret, algorithms=[settings.session_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Context token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid context token: {e}")

    if payload.get("type") != "context" or not payload.get("sub"):
        raise TokenError("Not a context token")
    return payload["sub"]
