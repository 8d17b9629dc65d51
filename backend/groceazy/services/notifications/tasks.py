"""
Celery tasks for background notification processing.

The API process only enqueues; the worker renders nothing and simply hands
the prepared email to SES, retrying transient SES failures with backoff.
"""

from typing import Any, Optional

from celery import Task, shared_task

from groceazy.core.logging import get_logger
from groceazy.services.notifications.aws_clients import SESClient, SESClientError

logger = get_logger(__name__)

_ses_client: Optional[SESClient] = None


def get_ses_client() -> SESClient:
    """Get the worker's SES client, created on first use."""
    global _ses_client
    if _ses_client is None:
        _ses_client = SESClient()
    return _ses_client


class NotificationTask(Task):
    """
    Base task class for notification tasks with retry logic.

    Provides failure, retry and success hooks that log with task context.
    """

    max_retries = 3
    retry_backoff_max = 600

    def on_failure(
        self,
        exc: Exception,
        task_id: str,
        args: tuple,
        kwargs: dict,
        einfo: Any,
    ) -> None:
        logger.error(
            "Notification task failed",
            task_id=task_id,
            task_name=self.name,
            exception=str(exc),
            error_type=type(exc).__name__,
        )

    def on_retry(
        self,
        exc: Exception,
        task_id: str,
        args: tuple,
        kwargs: dict,
        einfo: Any,
    ) -> None:
        logger.warning(
            "Notification task retrying",
            task_id=task_id,
            exception=str(exc),
            retry_count=self.request.retries,
            max_retries=self.max_retries,
        )

    def on_success(
        self,
        retval: Any,
        task_id: str,
        args: tuple,
        kwargs: dict,
    ) -> None:
        logger.info(
            "Notification task completed successfully",
            task_id=task_id,
            result=retval,
        )


@shared_task(
    bind=True,
    base=NotificationTask,
    name="notifications.send_email",
    time_limit=120,
    soft_time_limit=90,
)
def send_email_task(
    self: Task,
    recipients: list[str],
    subject: str,
    body: str,
) -> dict[str, Any]:
    """
    Send one plain text email to a list of recipients.

    Args:
        recipients: Destination addresses
        subject: Email subject
        body: Plain text body

    Returns:
        SES delivery result, or a skipped marker for an empty recipient list
    """
    if not recipients:
        logger.info("Email skipped, no recipients", subject=subject)
        return {"status": "skipped"}

    try:
        return get_ses_client().send_email(recipients, subject, body)
    except SESClientError as e:
        if not e.retryable:
            raise
        countdown = min(30 * (2**self.request.retries), self.retry_backoff_max)
        raise self.retry(exc=e, countdown=countdown)
