"""Security headers middleware.

Learn: Two groups of headers.

1. HARDENING_HEADERS go on every response. The sign-in form must never be
   framed by another site (clickjacking a password field), and JSON
   responses must not be sniffed into something executable.
2. SESSION_HEADERS go on /api/auth and /api/profile only. Those responses
   say who is signed in on this browser. After sign-out, the back button
   or a shared proxy must not replay them.

HSTS is added only when the request itself came over HTTPS; sending it
over plain HTTP on localhost would pin the dev host to HTTPS.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HARDENING_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

SESSION_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}

SESSION_PATH_PREFIXES = ("/api/auth", "/api/profile")

HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers everywhere, no-store on session-bearing routes."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)

        response.headers.update(HARDENING_HEADERS)
        if request.url.path.startswith(SESSION_PATH_PREFIXES):
            response.headers.update(SESSION_HEADERS)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response
