"""FastAPI application factory.

Learn: create_app() returns a configured FastAPI instance. The lifespan
owns the two long-lived resources: the shared identity exchange client
(one httpx connection pool for every browser context) and the optional
Redis connection used for rate limiting. Per-context session state lives
in app.state.registry.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gatekeeper import __version__
from gatekeeper.api import api_router
from gatekeeper.config import settings
from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.session.registry import SessionRegistry

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    """
    logger.info(
        "gatekeeper.starting",
        version=__version__,
        environment=settings.environment,
        identity_url=settings.identity_base_url,
    )

    app.state.identity_client = CredentialExchangeClient(
        settings.identity_base_url,
        timeout=settings.request_timeout_seconds,
    )

    from gatekeeper.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("gatekeeper.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("gatekeeper.redis_unavailable", error=str(e))
        # Redis is optional — only rate limiting depends on it

    yield

    logger.info("gatekeeper.shutdown", contexts=len(app.state.registry))
    await close_redis()
    await app.state.identity_client.aclose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Gatekeeper",
        description="Credential exchange and session layer for the identity backend",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.registry = SessionRegistry(
        max_idle_seconds=settings.context_max_age_minutes * 60,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from gatekeeper.middleware.rate_limit import RateLimitMiddleware
    from gatekeeper.middleware.request_id import RequestIdMiddleware
    from gatekeeper.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: gatekeeper.main:app)
app = create_app()
