"""Core data model: credential input, exchange results, sessions.

Learn: These are frozen dataclasses, not Pydantic models. They never
cross the HTTP boundary directly (api/ has its own schemas), and
immutability is what keeps Session reads consistent: every change builds
a new Session and swaps the reference, so a reader holds either the old
object or the new one, never a half-updated mix.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CredentialInput:
    """What the user typed. Lives for one exchange call only."""

    identifier: str
    secret: str = field(repr=False)
    display_name: Optional[str] = None


@dataclass(frozen=True)
class ExchangeSuccess:
    identity_id: Union[int, str]
    display_name: str
    email: str
    bearer_token: str = field(repr=False)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ExchangeFailure:
    """A failed exchange.

    reason is always a short human-readable message, never a raw backend
    payload. kind names the error class that produced it.
    """

    reason: str
    kind: str = "rejected"

    @property
    def ok(self) -> bool:
        return False


ExchangeResult = Union[ExchangeSuccess, ExchangeFailure]


@dataclass(frozen=True)
class Session:
    identity_id: Union[int, str]
    display_name: str
    email: str
    bearer_token: str = field(repr=False)
    issued_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_exchange(cls, result: ExchangeSuccess) -> "Session":
        return cls(
            identity_id=result.identity_id,
            display_name=result.display_name,
            email=result.email,
            bearer_token=result.bearer_token,
        )
