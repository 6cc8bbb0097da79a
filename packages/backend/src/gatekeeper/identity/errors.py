"""Error taxonomy for the identity layer.

Learn: The exchange client raises these internally and converts them to
an ExchangeFailure before returning, so callers of authenticate()/register()
never see them. The profile flows let them through to ProfileService,
which turns them into a message. SessionStateError is different: it marks
a caller bug (wrong state for the operation), not a runtime condition.
"""

from typing import Optional


class IdentityError(Exception):
    """Base for everything the identity layer can raise."""

    kind = "error"

    def __init__(self, message: Optional[str] = None):
        self.message = message
        super().__init__(message or self.__class__.__name__)


class ValidationError(IdentityError):
    """Required local input is missing. Raised before any network call."""

    kind = "validation"


class BackendRejection(IdentityError):
    """The backend answered with a non-success status.

    message is the backend's own human-readable text, or None when the
    body had no {error: {message}} shape.
    """

    kind = "rejected"

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message)


class BackendUnavailable(IdentityError):
    """Transport failure or timeout; nothing structured came back."""

    kind = "unavailable"


class ProtocolMismatch(IdentityError):
    """Success status, but the body lacks the fields we need."""

    kind = "protocol"


class SessionStateError(IdentityError):
    """Operation is not valid in the current authentication state."""

    kind = "session_state"


class NotAuthenticatedError(SessionStateError):
    """An authorized call was attempted with no active session."""

    kind = "unauthenticated"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
