"""Authentication API endpoints for the client status view."""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from portal.config import settings
from portal.dependencies import get_credential_service
from portal.schemas.auth import (
    EmailLoginRequest,
    EmailLoginResponse,
    GrantResponse,
    MagicLinkRequest,
    MagicLinkResponse,
    MagicSessionRequest,
    MessageResponse,
    ResetConfirmRequest,
    ResetRequest,
    VerifyPasswordRequest,
)
from portal.services.credentials import CredentialService
from portal.services.project_store import normalize_project_id
from portal.utils.exceptions import AuthenticationError, ExpiredError

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Same answer whether or not the project/e-mail pair exists
RESET_REQUESTED_MESSAGE = "If this project exists, you will receive an e-mail with instructions."


@router.post("/verify", response_model=GrantResponse)
async def verify_password(
    request: VerifyPasswordRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> GrantResponse:
    """
    Check a project password.

    Returns ``granted: false`` for a wrong password and for an unknown
    project alike.
    """
    granted = await credentials.verify_password(request.projectId, request.password)
    return GrantResponse(granted=granted, projectId=normalize_project_id(request.projectId))


@router.post("/login", response_model=EmailLoginResponse)
async def login_by_email(
    request: EmailLoginRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> EmailLoginResponse:
    """Find every project of an e-mail address that accepts the password."""
    project_ids = await credentials.login_by_email(request.email, request.password)
    return EmailLoginResponse(granted=bool(project_ids), projectIds=project_ids)


@router.post("/reset", response_model=MessageResponse)
async def request_reset(
    request: ResetRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    """
    Request a password reset e-mail.

    Always answers with the same generic success so the endpoint cannot be
    used to discover which projects or e-mail addresses exist.
    """
    await credentials.issue_reset_token(request.projectId, request.email)
    return MessageResponse(success=True, message=RESET_REQUESTED_MESSAGE)


@router.post("/reset/confirm", response_model=MessageResponse)
async def confirm_reset(
    request: ResetConfirmRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    """Set a new password with a reset token (expired/invalid tokens are rejected)."""
    await credentials.confirm_reset(request.token, request.newPassword)
    return MessageResponse(success=True, message="Password changed successfully")


@router.post("/magic-link", response_model=MagicLinkResponse)
async def create_magic_link(
    request: MagicLinkRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> MagicLinkResponse:
    """Issue a magic link for a project (404 if the project does not exist)."""
    url = await credentials.issue_magic_link(request.projectId)
    return MagicLinkResponse(url=url)


@router.get("/magic-link/verify")
async def verify_magic_link(
    token: str = Query("", description="Magic link token"),
    projectId: str = Query("", description="Project ID"),
    credentials: CredentialService = Depends(get_credential_service),
) -> RedirectResponse:
    """
    Verify a magic link and redirect to the project page.

    On success the redirect carries a short-lived, single-use
    ``magic_session`` token instead of the long-lived magic token.
    """
    if not token or not projectId:
        return RedirectResponse(f"{settings.site_url}/status?error=invalid_link", status_code=302)

    project_id = normalize_project_id(projectId)
    project_url = f"{settings.site_url}/project/{project_id}"
    try:
        session_token = await credentials.verify_magic_link(projectId, token)
    except ExpiredError:
        return RedirectResponse(f"{project_url}?magic=expired", status_code=302)
    except AuthenticationError:
        return RedirectResponse(f"{project_url}?magic=invalid", status_code=302)

    return RedirectResponse(f"{project_url}?magic_session={session_token}", status_code=302)


@router.post("/magic-session/verify", response_model=GrantResponse)
async def verify_magic_session(
    request: MagicSessionRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> GrantResponse:
    """Consume a magic session token. Only the first call for a token succeeds."""
    await credentials.verify_magic_session(request.projectId, request.sessionToken)
    return GrantResponse(granted=True, projectId=normalize_project_id(request.projectId))
