"""Identity backend access.

Learn: Everything that knows the backend's wire format lives here:
request/response shapes in client.py, the error taxonomy in errors.py,
and the normalized results in models.py.
"""

from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.identity.models import (
    CredentialInput,
    ExchangeFailure,
    ExchangeResult,
    ExchangeSuccess,
    Session,
)

__all__ = [
    "CredentialExchangeClient",
    "CredentialInput",
    "ExchangeFailure",
    "ExchangeResult",
    "ExchangeSuccess",
    "Session",
]
