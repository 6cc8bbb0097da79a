"""Per-browser-context Session Authorities.

Learn: The HTTP server is shared, but each browser gets its own
SessionAuthority, keyed by the context id carried in its cookie. Contexts
that go quiet for longer than max_idle are dropped on the next access,
which also drops their bearer tokens from memory.

A context is only registered once its browser has signed in. Until then
the request works against a throwaway SessionAuthority, so anonymous
traffic never adds entries.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import structlog

from gatekeeper.session.authority import SessionAuthority

logger = structlog.get_logger()


@dataclass
class _Entry:
    authority: SessionAuthority
    last_seen: float = field(default_factory=time.monotonic)


class SessionRegistry:
    """In-memory map of context id → SessionAuthority."""

    def __init__(self, max_idle_seconds: float = 24 * 3600):
        self.max_idle_seconds = max_idle_seconds
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def register(self, authority: SessionAuthority) -> str:
        """Start tracking authority under a new context id and return the id."""
        self.prune()
        context_id = uuid.uuid4().hex
        self._entries[context_id] = _Entry(authority)
        return context_id

    def get(self, context_id: str) -> Optional[SessionAuthority]:
        """Authority for context_id, or None if unknown or idle too long."""
        self.prune()
        entry = self._entries.get(context_id)
        if entry is None:
            return None
        entry.last_seen = time.monotonic()
        return entry.authority

    def prune(self) -> int:
        """Drop idle contexts. Returns how many were removed."""
        cutoff = time.monotonic() - self.max_idle_seconds
        stale = [cid for cid, e in self._entries.items() if e.last_seen < cutoff]
        for cid in stale:
            self._entries[cid].authority.invalidate()
            del self._entries[cid]
        if stale:
            logger.info("session_registry.pruned", count=len(stale))
        return len(stale)
