"""Notification dispatch.

State changes hand templated events to the dispatcher after they have been
committed. Dispatch only enqueues a job for the ARQ worker, which performs
the actual delivery. Any failure here is logged and swallowed: a committed
state change is never rolled back because a follow-up e-mail failed.
"""
from typing import Any, Dict, Optional

from arq import create_pool

from portal.utils.logger import logger, mask_email
from portal.workers.redis_config import redis_settings

SEND_NOTIFICATION_JOB = "send_notification"


class NotificationDispatcher:
    """Fire-and-forget dispatcher backed by the ARQ queue."""

    async def dispatch(
        self,
        event: str,
        recipient: Optional[str],
        context: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Queue a notification for delivery.

        Args:
            event: Template name (see ``NotificationEvent``)
            recipient: E-mail address; nothing is sent when missing
            context: Template variables

        Returns:
            True if the job was queued, False otherwise
        """
        if not recipient:
            logger.warning(f"No recipient for notification {event}, skipping")
            return False

        try:
            await self._enqueue(event, recipient, context or {})
            logger.info(f"Queued notification {event} for {mask_email(recipient)}")
            return True
        except Exception as e:
            logger.error(f"Failed to queue notification {event} for {mask_email(recipient)}: {e}", exc_info=True)
            return False

    async def _enqueue(self, event: str, recipient: str, context: Dict[str, Any]) -> None:
        redis = await create_pool(redis_settings)
        try:
            await redis.enqueue_job(SEND_NOTIFICATION_JOB, event, recipient, context)
        finally:
            await redis.close()


_dispatcher = NotificationDispatcher()


def get_dispatcher() -> NotificationDispatcher:
    """Dependency returning the notification dispatcher."""
    return _dispatcher
