"""Auth service — sign-in, sign-up and sign-out for one browser context.

Learn: This is where the exchange client and the session authority meet.
The client never touches session state; the authority never makes network
calls. AuthService takes an exchange ticket before awaiting the backend so
that, if the user fires a second submit while the first is still in
flight, whichever was started last wins.
"""

from typing import Optional

import structlog

from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.identity.models import ExchangeResult, ExchangeSuccess
from gatekeeper.session.authority import SessionAuthority

logger = structlog.get_logger()

REGISTERED_MESSAGE = "User registered successfully! Please sign in."


class AuthService:
    def __init__(self, client: CredentialExchangeClient, authority: SessionAuthority):
        self.client = client
        self.authority = authority

    async def sign_in(self, identifier: str, secret: str) -> ExchangeResult:
        """Authenticate and, if this is still the newest attempt, apply it.

        A successful result establishes the session; a failed one clears
        any previous session. Results of superseded attempts are returned
        to their caller but never touch session state.
        """
        ticket = self.authority.begin_exchange()
        result = await self.client.authenticate(identifier, secret)

        if not self.authority.is_latest(ticket):
            logger.info("auth.sign_in.superseded", ticket=ticket, ok=result.ok)
            return result

        if isinstance(result, ExchangeSuccess):
            self.authority.establish(result, ticket=ticket)
        else:
            self.authority.invalidate()
        return result

    async def sign_up(
        self,
        identifier: str,
        secret: str,
        display_name: Optional[str] = None,
    ) -> ExchangeResult:
        """Register an account. The user signs in separately afterwards."""
        # Supersedes any sign-in still in flight from the same form.
        self.authority.begin_exchange()
        result = await self.client.register(identifier, secret, display_name)
        if result.ok:
            logger.info("auth.sign_up.registered", identity_id=result.identity_id)
        return result

    def sign_out(self) -> None:
        self.authority.invalidate()
