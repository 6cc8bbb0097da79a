"""Session state.

SessionAuthority owns one browser context's Session; SessionRegistry
hands out one authority per context for the HTTP surface.
"""

from gatekeeper.session.authority import SessionAuthority
from gatekeeper.session.registry import SessionRegistry

__all__ = ["SessionAuthority", "SessionRegistry"]
