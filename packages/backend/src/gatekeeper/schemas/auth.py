"""Pydantic schemas for the auth and profile routes.

Learn: Request bodies are deliberately lenient (plain str, empty allowed)
so that missing-field handling stays in one place — the exchange client —
and the user sees the same "Email and password are required" message
whether they came in over HTTP or the CLI.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel


# ─── Requests ─────────────────────────────────────────────


class SignInRequest(BaseModel):
    email: str = ""
    password: str = ""


class SignUpRequest(BaseModel):
    email: str = ""
    password: str = ""
    username: Optional[str] = None


class PasswordChangeRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


class UsernameChangeRequest(BaseModel):
    username: str = ""


# ─── Responses ────────────────────────────────────────────


class SessionUser(BaseModel):
    """What the browser may know about the signed-in user.

    No bearer token: that stays with the server-side SessionAuthority.
    """

    id: Union[int, str]
    name: str
    email: str


class SessionRead(BaseModel):
    authenticated: bool
    user: Optional[SessionUser] = None
    issued_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str
