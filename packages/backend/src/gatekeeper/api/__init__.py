"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: The session gate is applied at the include_router level using
FastAPI's dependencies parameter, exactly like a per-route Depends but
without touching each handler. Health and auth routes are open; profile
routes need a signed-in browser context.
"""

from fastapi import APIRouter, Depends

from gatekeeper.api.auth import router as auth_router
from gatekeeper.api.health import router as health_router
from gatekeeper.api.profile import router as profile_router
from gatekeeper.auth.dependencies import get_current_session

# Protected routers require a signed-in context
_session = [Depends(get_current_session)]

api_router = APIRouter(prefix="/api")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes
api_router.include_router(profile_router, tags=["profile"], dependencies=_session)
