"""Profile API — password and username changes for the signed-in user.

Learn: Mounted behind get_current_session in api/__init__.py, so every
handler here can assume the context is signed in when it starts. The
session can still disappear mid-request (the backend rejects the token),
in which case the response is 401 and the browser should show the
sign-in form again.
"""

from fastapi import APIRouter, Depends, HTTPException

from gatekeeper.auth.dependencies import get_authority, get_identity_client
from gatekeeper.identity.client import CredentialExchangeClient
from gatekeeper.schemas.auth import (
    MessageResponse,
    PasswordChangeRequest,
    UsernameChangeRequest,
)
from gatekeeper.services.profile_service import ProfileResult, ProfileService
from gatekeeper.session.authority import SessionAuthority

router = APIRouter(prefix="/profile")


def get_profile_service(
    client: CredentialExchangeClient = Depends(get_identity_client),
    authority: SessionAuthority = Depends(get_authority),
) -> ProfileService:
    return ProfileService(client, authority)


def _respond(result: ProfileResult) -> MessageResponse:
    if not result.ok:
        raise HTTPException(
            status_code=401 if result.signed_out else 400,
            detail=result.message,
        )
    return MessageResponse(message=result.message)


@router.post("/password", response_model=MessageResponse)
async def change_password(
    body: PasswordChangeRequest,
    service: ProfileService = Depends(get_profile_service),
):
    """Verify the current password, then set a new one."""
    result = await service.change_password(
        body.current_password, body.new_password, body.confirm_password
    )
    return _respond(result)


@router.put("/username", response_model=MessageResponse)
async def update_username(
    body: UsernameChangeRequest,
    service: ProfileService = Depends(get_profile_service),
):
    """Change the display name shown for this account."""
    result = await service.update_username(body.username)
    return _respond(result)
