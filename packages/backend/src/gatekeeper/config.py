"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with GATEKEEPER_ prefix.
No config files — the identity backend URL and the context-cookie secret
are the only values that normally need setting.

Learn: pydantic-settings validates types on load, so a typo like
GATEKEEPER_REQUEST_TIMEOUT_SECONDS=ten fails at startup, not mid-request.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via GATEKEEPER_* env vars."""

    # Identity backend (Strapi-style /api/auth/* endpoints)
    identity_url: str = "http://localhost:1337"
    request_timeout_seconds: float = 10.0

    # Browser-context cookie
    session_secret: str = "change-me-in-production"
    session_algorithm: str = "HS256"
    context_cookie_name: str = "gatekeeper_context"
    context_max_age_minutes: int = 60 * 24

    # Redis (rate limiting only; optional)
    redis_url: str = "redis://localhost:6379/0"

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
    ]

    # Rate limiting
    rate_limit_rpm: int = 100  # requests per minute per IP
    rate_limit_auth_rpm: int = 10  # sign-in / sign-up / password change

    model_config = {"env_prefix": "GATEKEEPER_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Refuse the default cookie secret outside development."""
        if (
            self.environment != "development"
            and self.session_secret == "change-me-in-production"
        ):
            raise ValueError(
                "GATEKEEPER_SESSION_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self

    @property
    def identity_base_url(self) -> str:
        return self.identity_url.rstrip("/")


# Singleton — import this everywhere
settings = Settings()
