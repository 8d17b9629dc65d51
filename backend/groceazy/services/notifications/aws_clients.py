"""
AWS SES client wrapper with error handling.

This module provides the SES email client used by the notification worker,
with retry logic for throttling and connection errors.
"""

import time
from typing import Any, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    EndpointConnectionError,
)

from groceazy.core.config import get_settings
from groceazy.core.logging import get_logger

logger = get_logger(__name__)

NON_RETRYABLE_SES_ERRORS = frozenset(
    {
        "MessageRejected",
        "MailFromDomainNotVerified",
        "ConfigurationSetDoesNotExist",
    }
)


class SESClientError(Exception):
    """Exception for SES-specific errors."""

    def __init__(self, message: str, retryable: bool = True, **context: Any) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.context = context


class SESClient:
    """
    AWS SES client wrapper with error handling and retry logic.

    Credentials fall back to the standard boto3 chain when not configured.
    """

    def __init__(
        self,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region_name: Optional[str] = None,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        client: Any = None,
    ) -> None:
        """
        Initialize SES client.

        Args:
            aws_access_key_id: AWS access key ID (defaults to settings)
            aws_secret_access_key: AWS secret access key (defaults to settings)
            region_name: AWS region name (defaults to settings)
            max_retries: Maximum number of send attempts
            retry_backoff: Initial backoff time in seconds for retries
            client: Preconfigured boto3 SES client
        """
        settings = get_settings()
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.default_source = f"{settings.ses_from_name} <{settings.ses_from_email}>"

        self._client = client or boto3.client(
            "ses",
            aws_access_key_id=aws_access_key_id or settings.aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key or settings.aws_secret_access_key,
            region_name=region_name or settings.aws_region,
        )

    def send_email(
        self,
        to_addresses: list[str],
        subject: str,
        body_text: str,
        from_address: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Send a plain text email via AWS SES with retry logic.

        Args:
            to_addresses: Recipient email addresses
            subject: Email subject
            body_text: Plain text email body
            from_address: Sender, defaults to the configured GrocEazy sender

        Returns:
            Dictionary containing message ID and delivery status

        Raises:
            SESClientError: If email sending fails after retries
        """
        if not to_addresses:
            raise SESClientError(
                "At least one recipient email address is required",
                retryable=False,
            )

        send_params: dict[str, Any] = {
            "Source": from_address or self.default_source,
            "Destination": {"ToAddresses": to_addresses},
            "Message": {
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Text": {"Data": body_text, "Charset": "UTF-8"}},
            },
        }

        last_exception: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                response = self._client.send_email(**send_params)
                message_id = response["MessageId"]
                logger.info(
                    "Email sent via SES",
                    message_id=message_id,
                    recipient_count=len(to_addresses),
                    subject=subject,
                )
                return {"message_id": message_id, "status": "sent"}

            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                error_message = e.response.get("Error", {}).get("Message", str(e))
                logger.warning(
                    "SES client error",
                    attempt=attempt + 1,
                    error_code=error_code,
                    error_message=error_message,
                )
                last_exception = e

                if error_code in NON_RETRYABLE_SES_ERRORS:
                    raise SESClientError(
                        f"SES error: {error_message}",
                        retryable=False,
                        error_code=error_code,
                    ) from e

            except (BotoConnectionError, EndpointConnectionError, BotoCoreError) as e:
                logger.warning("SES connection error", attempt=attempt + 1, error=str(e))
                last_exception = e

            if attempt < self.max_retries - 1:
                time.sleep(self.retry_backoff * (2**attempt))

        raise SESClientError(
            f"Failed to send email after {self.max_retries} attempts",
            last_error=str(last_exception),
        ) from last_exception
