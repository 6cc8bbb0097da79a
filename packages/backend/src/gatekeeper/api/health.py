"""Health check endpoint.

Learn: Reports the server itself plus whether the identity backend
answers at all. Any HTTP response counts as reachable — a 404 from the
backend still proves the network path works.
"""

from fastapi import APIRouter, Depends

from gatekeeper import __version__
from gatekeeper.auth.dependencies import get_identity_client
from gatekeeper.identity.client import CredentialExchangeClient

router = APIRouter()


@router.get("/health")
async def health_check(identity: CredentialExchangeClient = Depends(get_identity_client)):
    """Check server health and identity backend reachability."""
    checks = {"server": "ok", "version": __version__}

    checks["identity"] = "ok" if await identity.ping() else "unreachable"

    # Redis only backs rate limiting; reported, but never degrades health
    try:
        from gatekeeper.cache import get_redis

        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"unavailable: {e.__class__.__name__}"

    status = "healthy" if checks["identity"] == "ok" else "degraded"
    return {"status": status, **checks}
