"""Gatekeeper CLI — exercise the identity backend from a terminal.

Usage:
    gatekeeper signin --email a@b.com            # Prompts for the password
    gatekeeper signup --email a@b.com -u alice   # Create an account
    gatekeeper change-password --email a@b.com  # Sign in, verify, rotate token
    gatekeeper rename --email a@b.com bob        # Sign in, change username
    gatekeeper serve                             # Run the HTTP API

Every command goes through the same AuthService/ProfileService the HTTP
API uses, with one in-process SessionAuthority standing in for the
browser context. Nothing is written to disk.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Optional

import click

from gatekeeper import __version__
from gatekeeper.config import settings
from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.identity.models import ExchangeFailure
from gatekeeper.services.auth_service import REGISTERED_MESSAGE, AuthService
from gatekeeper.services.profile_service import ProfileResult, ProfileService
from gatekeeper.session.authority import SessionAuthority

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def _client(identity_url: Optional[str]) -> CredentialExchangeClient:
    return CredentialExchangeClient(
        identity_url or settings.identity_base_url,
        timeout=settings.request_timeout_seconds,
    )


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _report(result: ProfileResult) -> None:
    if not result.ok:
        _fail(result.message)
    click.secho(result.message, fg="green")


async def _signed_in(
    client: CredentialExchangeClient, email: str, password: str
) -> SessionAuthority:
    """Sign in and return the authority holding the session (or exit)."""
    authority = SessionAuthority()
    result = await AuthService(client, authority).sign_in(email, password)
    if isinstance(result, ExchangeFailure):
        _fail(result.reason)
    return authority


identity_url_option = click.option(
    "--identity-url",
    envvar="GATEKEEPER_IDENTITY_URL",
    help="Identity backend base URL (default from GATEKEEPER_IDENTITY_URL)",
)
email_option = click.option("--email", "-e", prompt=True, help="Account email")
password_option = click.option(
    "--password", "-p", prompt=True, hide_input=True, help="Account password"
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="gatekeeper")
def main():
    """Gatekeeper — sign in, sign up and manage profiles against the identity backend."""


@main.command()
@email_option
@password_option
@identity_url_option
def signin(email: str, password: str, identity_url: Optional[str]):
    """Sign in and show who the backend says you are."""

    async def _go():
        client = _client(identity_url)
        try:
            authority = await _signed_in(client, email, password)
            session = authority.require()
            click.secho(f"Signed in as {session.display_name}", fg="green")
            click.echo(f"  id:    {session.identity_id}")
            click.echo(f"  email: {session.email}")
        finally:
            await client.aclose()

    _run(_go())


@main.command()
@email_option
@password_option
@click.option("--username", "-u", default=None, help="Display name (defaults to email)")
@identity_url_option
def signup(email: str, password: str, username: Optional[str], identity_url: Optional[str]):
    """Create an account."""

    async def _go():
        client = _client(identity_url)
        try:
            result = await AuthService(client, SessionAuthority()).sign_up(
                email, password, username
            )
        finally:
            await client.aclose()
        if isinstance(result, ExchangeFailure):
            _fail(result.reason)
        click.secho(REGISTERED_MESSAGE, fg="green")

    _run(_go())


@main.command("change-password")
@email_option
@click.option(
    "--current-password", prompt=True, hide_input=True, help="Current password"
)
@click.option(
    "--new-password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="New password",
)
@identity_url_option
def change_password(
    email: str, current_password: str, new_password: str, identity_url: Optional[str]
):
    """Change your password (the current one is verified first)."""

    async def _go():
        client = _client(identity_url)
        try:
            authority = await _signed_in(client, email, current_password)
            return await ProfileService(client, authority).change_password(
                current_password, new_password, new_password
            )
        finally:
            await client.aclose()

    _report(_run(_go()))


@main.command()
@click.argument("username")
@email_option
@password_option
@identity_url_option
def rename(username: str, email: str, password: str, identity_url: Optional[str]):
    """Change your username."""

    async def _go():
        client = _client(identity_url)
        try:
            authority = await _signed_in(client, email, password)
            return await ProfileService(client, authority).update_username(username)
        finally:
            await client.aclose()

    _report(_run(_go()))


@main.command()
@click.option("--host", default=None, help=f"Bind address (default {settings.host})")
@click.option("--port", default=None, type=int, help=f"Port (default {settings.port})")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "gatekeeper.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
