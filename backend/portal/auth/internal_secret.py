"""Shared-secret authentication for internal callers (payment webhook relay)."""
from typing import Optional
from fastapi import Header

from portal.config import settings
from portal.utils.exceptions import AuthenticationError
from portal.utils.hashing import digests_match
from portal.utils.logger import logger


def verify_internal_secret(
    internal_secret: Optional[str] = Header(
        None, alias="X-Internal-Secret", description="Shared secret for internal calls"
    ),
) -> None:
    """
    Reject the request unless it carries the internal shared secret.

    Raises:
        AuthenticationError: If the header is missing or wrong
    """
    if not internal_secret or not digests_match(internal_secret, settings.internal_api_secret):
        logger.error("[Internal API] Unauthorized request")
        raise AuthenticationError("Unauthorized")
