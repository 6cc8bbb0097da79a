"""Profile service — password and username changes behind the session.

Learn: Every method follows the authorization-gated pattern:

1. Read the session from the authority (fail fast if there is none)
2. Attach its bearer token to the outbound call
3. If the backend rotates the token, hand it back to the authority

Password changes also re-verify the old password with an
authenticate-shaped call first, so a stolen session alone can't lock the
real owner out. A 401 from any authorized call means the bearer token is
dead; the session is dropped and the user is asked to sign in again.
"""

from dataclasses import dataclass

import structlog

from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.identity.errors import BackendRejection, IdentityError
from gatekeeper.identity.models import ExchangeFailure, Session
from gatekeeper.session.authority import SessionAuthority

logger = structlog.get_logger()

PASSWORDS_DONT_MATCH = "Passwords don't match!"
PASSWORDS_REQUIRED = "Current and new password are required"
USERNAME_EMPTY = "Username cannot be empty!"
PROFILE_UPDATED = "Profile updated successfully!"
PROFILE_UPDATE_FAILED = "Failed to update profile"
USERNAME_UPDATED = "Username updated successfully!"
USERNAME_UPDATE_FAILED = "Failed to update username"
SESSION_EXPIRED = "Your session has expired. Please sign in again."


@dataclass(frozen=True)
class ProfileResult:
    ok: bool
    message: str
    # True when the failure dropped the session (expired/invalid token).
    signed_out: bool = False


class ProfileService:
    def __init__(self, client: CredentialExchangeClient, authority: SessionAuthority):
        self.client = client
        self.authority = authority

    async def change_password(
        self,
        current_password: str,
        new_password: str,
        confirmation: str,
    ) -> ProfileResult:
        if new_password != confirmation:
            return ProfileResult(False, PASSWORDS_DONT_MATCH)
        if not current_password or not new_password:
            return ProfileResult(False, PASSWORDS_REQUIRED)

        session = self.authority.require()

        verified = await self.client.authenticate(session.email, current_password)
        if isinstance(verified, ExchangeFailure):
            logger.info(
                "profile.password.verify_failed",
                identity_id=session.identity_id,
                kind=verified.kind,
            )
            return ProfileResult(False, verified.reason)

        try:
            new_token = await self.client.change_password(
                session.bearer_token, current_password, new_password, confirmation
            )
        except IdentityError as e:
            return self._failed(e, session, "password", PROFILE_UPDATE_FAILED)

        # Signed out (or someone else signed in) while the call was in flight.
        if self._still_signed_in(session):
            self.authority.refresh_token(new_token)
        return ProfileResult(True, PROFILE_UPDATED)

    async def update_username(self, username: str) -> ProfileResult:
        username = username.strip() if username else ""
        if not username:
            return ProfileResult(False, USERNAME_EMPTY)

        session = self.authority.require()

        try:
            await self.client.update_username(
                session.bearer_token, session.identity_id, username
            )
        except IdentityError as e:
            return self._failed(e, session, "username", USERNAME_UPDATE_FAILED)

        if self._still_signed_in(session):
            self.authority.rename(username)
        return ProfileResult(True, USERNAME_UPDATED)

    def _still_signed_in(self, session: Session) -> bool:
        current = self.authority.current()
        return current is not None and current.identity_id == session.identity_id

    def _failed(
        self,
        error: IdentityError,
        session: Session,
        operation: str,
        fallback: str,
    ) -> ProfileResult:
        if isinstance(error, BackendRejection) and error.status_code == 401:
            current = self.authority.current()
            if current is None or current.bearer_token == session.bearer_token:
                self.authority.invalidate()
                logger.info(f"profile.{operation}.token_rejected")
                return ProfileResult(False, SESSION_EXPIRED, signed_out=True)
            # The rejected token was already replaced; the newer session stays.
            logger.info(f"profile.{operation}.stale_token_rejected")
            return ProfileResult(False, fallback)

        message = fallback
        if isinstance(error, BackendRejection) and error.message:
            message = error.message
        logger.info(
            f"profile.{operation}.failed",
            kind=error.kind,
            status=getattr(error, "status_code", None),
        )
        return ProfileResult(False, message)
