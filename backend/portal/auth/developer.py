"""Bearer-token authentication for developer routes."""
from typing import Optional
from fastapi import Depends, Header

from portal.dependencies import get_credential_service
from portal.services.credentials import CredentialService
from portal.utils.exceptions import authentication_error


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", maxsplit=1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


async def require_developer(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    credentials: CredentialService = Depends(get_credential_service),
) -> str:
    """
    Resolve the developer session from the Authorization header.

    Returns:
        The bearer token of the session

    Raises:
        HTTPException: 401 if the token is missing, unknown or expired
    """
    token = _bearer_token(authorization)
    if token is None:
        raise authentication_error("Not logged in")

    if not await credentials.verify_developer_session(token):
        raise authentication_error("Session expired, log in again")

    return token
