"""Session Authority — owns the one active Session of a browser context.

Learn: Two states, Unauthenticated (self._session is None) and
Authenticated. Every transition assigns a brand-new frozen Session (or
None) to a single attribute, so a concurrent current() on the same event
loop sees either the old session or the new one — no locks needed.

Stale exchanges: a caller takes a ticket with begin_exchange() before it
starts a network round-trip and passes it back to establish(). Only the
most recently issued ticket may mutate state; a slower, older sign-in
that resolves last is discarded instead of overwriting the newer one.
"""

import dataclasses
import itertools
from datetime import datetime, timezone
from typing import Optional

import structlog

from gatekeeper.identity.errors import NotAuthenticatedError, SessionStateError
from gatekeeper.identity.models import ExchangeResult, ExchangeSuccess, Session

logger = structlog.get_logger()


class SessionAuthority:
    """Holds and guards the active Session."""

    def __init__(self):
        self._session: Optional[Session] = None
        self._tickets = itertools.count(1)
        self._latest_ticket = 0

    # ─── Reads ─────────────────────────────────────────────

    def current(self) -> Optional[Session]:
        """The active Session, or None when unauthenticated."""
        return self._session

    def require(self) -> Session:
        """The active Session, or NotAuthenticatedError."""
        session = self._session
        if session is None:
            raise NotAuthenticatedError()
        return session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    # ─── Exchange tickets ──────────────────────────────────

    def begin_exchange(self) -> int:
        """Issue a ticket that supersedes every earlier in-flight exchange."""
        self._latest_ticket = next(self._tickets)
        return self._latest_ticket

    def is_latest(self, ticket: int) -> bool:
        return ticket == self._latest_ticket

    # ─── Transitions ───────────────────────────────────────

    def establish(self, result: ExchangeResult, ticket: Optional[int] = None) -> bool:
        """Start a new Session from a successful exchange.

        Returns False (and changes nothing) when ticket belongs to a
        superseded exchange. Passing a failure is a caller bug.
        """
        if not isinstance(result, ExchangeSuccess):
            raise SessionStateError(
                "establish() requires a successful exchange result"
            )
        if ticket is not None and not self.is_latest(ticket):
            logger.info(
                "session.stale_result_discarded",
                ticket=ticket,
                latest=self._latest_ticket,
            )
            return False

        self._session = Session.from_exchange(result)
        logger.info("session.established", identity_id=result.identity_id)
        return True

    def refresh_token(self, new_token: str) -> Session:
        """Swap in a token the backend rotated. Identity fields stay as-is."""
        session = self._session
        if session is None:
            raise SessionStateError("cannot refresh token without a session")
        if not new_token:
            raise SessionStateError("refreshed token must not be empty")

        self._session = dataclasses.replace(
            session,
            bearer_token=new_token,
            issued_at=datetime.now(timezone.utc),
        )
        logger.info("session.token_refreshed", identity_id=session.identity_id)
        return self._session

    def rename(self, display_name: str) -> Session:
        """Record a display name the backend accepted."""
        session = self._session
        if session is None:
            raise SessionStateError("cannot rename without a session")

        self._session = dataclasses.replace(session, display_name=display_name)
        return self._session

    def invalidate(self) -> None:
        """Drop the session. Safe to call when already unauthenticated."""
        if self._session is None:
            return
        identity_id = self._session.identity_id
        self._session = None
        logger.info("session.invalidated", identity_id=identity_id)
