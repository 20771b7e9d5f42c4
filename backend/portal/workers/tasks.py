"""ARQ background tasks for notification delivery."""
from typing import Any, Dict

import httpx

from portal.config import settings
from portal.services.email_templates import render
from portal.utils.logger import logger, mask_email


async def send_notification(
    ctx: Dict[str, Any],
    event: str,
    recipient: str,
    context: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Render a notification and hand it to the e-mail provider.

    Args:
        ctx: ARQ context (may hold a shared ``http_client``)
        event: Notification event name
        recipient: E-mail address
        context: Template variables

    Returns:
        Dict with success status and details
    """
    try:
        email = render(event, context)
    except ValueError as e:
        logger.error(f"Cannot render notification: {e}")
        return {"success": False, "error": str(e)}

    if not settings.email_api_key:
        logger.info(f"E-mail provider not configured, would send '{email.subject}' to {mask_email(recipient)}")
        return {"success": True, "delivered": False}

    client: httpx.AsyncClient = ctx.get("http_client") or httpx.AsyncClient(timeout=10.0)
    try:
        response = await client.post(
            settings.email_api_url,
            headers={"Authorization": f"Bearer {settings.email_api_key}"},
            json={
                "from": settings.email_from,
                "to": recipient,
                "subject": email.subject,
                "html": email.html,
            },
        )
    except httpx.HTTPError as e:
        logger.error(f"Sending {event} to {mask_email(recipient)} failed: {e}", exc_info=True)
        raise
    finally:
        if "http_client" not in ctx:
            await client.aclose()

    if response.status_code >= 400:
        logger.error(f"E-mail provider rejected {event} for {mask_email(recipient)}: {response.status_code} {response.text}")
        return {"success": False, "status_code": response.status_code}

    logger.info(f"Sent {event} to {mask_email(recipient)}")
    return {"success": True, "delivered": True}
