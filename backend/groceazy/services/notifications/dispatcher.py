"""
Notification dispatcher: the order core's only door to outbound email.

``notify`` enqueues a Celery task and returns. Enqueueing talks to the broker
synchronously, so it runs in a worker thread to keep the event loop free.
"""

import asyncio
from typing import Any, Iterable, Optional

from groceazy.core.config import get_settings
from groceazy.core.logging import get_logger

logger = get_logger(__name__)


class NotificationDispatcher:
    """Enqueue emails for background delivery."""

    def __init__(self, task: Any = None, enabled: Optional[bool] = None):
        """
        Initialize dispatcher.

        Args:
            task: Celery task with ``apply_async``, the SES email task by default
            enabled: Override for the notifications_enabled setting
        """
        if task is None:
            from groceazy.services.notifications.tasks import send_email_task
            from groceazy.worker import celery_app

            task = celery_app.tasks[send_email_task.name]
        self._task = task
        self.enabled = get_settings().notifications_enabled if enabled is None else enabled

    async def notify(self, recipients: Iterable[str], subject: str, body: str) -> None:
        """
        Queue one email for the given recipients.

        Duplicate and empty addresses are dropped. Broker errors propagate to
        the caller, which decides whether they matter.
        """
        unique_recipients = list(dict.fromkeys(r for r in recipients if r))

        if not self.enabled:
            logger.debug("Notifications disabled, email dropped", subject=subject)
            return
        if not unique_recipients:
            logger.debug("Email has no recipients", subject=subject)
            return

        await asyncio.to_thread(
            self._task.apply_async,
            kwargs={"recipients": unique_recipients, "subject": subject, "body": body},
        )
        logger.info(
            "Email queued",
            subject=subject,
            recipient_count=len(unique_recipients),
        )
