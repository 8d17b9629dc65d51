"""
Tests for the SES client wrapper and the email delivery task.

The boto3 client is replaced by a mock, so no request leaves the process.
"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from groceazy.services.notifications import tasks
from groceazy.services.notifications.aws_clients import SESClient, SESClientError
from groceazy.services.notifications.tasks import send_email_task


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def boto_client():
    client = MagicMock()
    client.send_email.return_value = {"MessageId": "msg-123"}
    return client


@pytest.fixture
def ses(boto_client):
    return SESClient(client=boto_client, retry_backoff=0)


def client_error(code: str, message: str = "boom") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, "SendEmail")


# ============================================================================
# SES Client Tests
# ============================================================================


class TestSESClient:
    def test_send_email(self, ses, boto_client):
        result = ses.send_email(["a@example.com"], "Hello", "Body")

        assert result == {"message_id": "msg-123", "status": "sent"}
        params = boto_client.send_email.call_args.kwargs
        assert params["Destination"] == {"ToAddresses": ["a@example.com"]}
        assert params["Message"]["Subject"]["Data"] == "Hello"
        assert params["Message"]["Body"]["Text"]["Data"] == "Body"
        assert params["Source"] == ses.default_source

    def test_explicit_sender(self, ses, boto_client):
        ses.send_email(["a@example.com"], "Hello", "Body", from_address="ops@groceazy.com")

        assert boto_client.send_email.call_args.kwargs["Source"] == "ops@groceazy.com"

    def test_requires_recipient(self, ses, boto_client):
        with pytest.raises(SESClientError) as exc_info:
            ses.send_email([], "Hello", "Body")

        assert exc_info.value.retryable is False
        boto_client.send_email.assert_not_called()

    def test_retries_throttling_then_succeeds(self, ses, boto_client):
        boto_client.send_email.side_effect = [
            client_error("Throttling"),
            {"MessageId": "msg-456"},
        ]

        result = ses.send_email(["a@example.com"], "Hello", "Body")

        assert result["message_id"] == "msg-456"
        assert boto_client.send_email.call_count == 2

    def test_rejected_message_is_not_retried(self, ses, boto_client):
        boto_client.send_email.side_effect = client_error("MessageRejected", "bad address")

        with pytest.raises(SESClientError, match="bad address") as exc_info:
            ses.send_email(["a@example.com"], "Hello", "Body")

        assert exc_info.value.retryable is False
        assert exc_info.value.context == {"error_code": "MessageRejected"}
        assert boto_client.send_email.call_count == 1

    def test_connection_errors_exhaust_retries(self, ses, boto_client):
        boto_client.send_email.side_effect = EndpointConnectionError(
            endpoint_url="https://email.ap-south-1.amazonaws.com"
        )

        with pytest.raises(SESClientError, match="after 3 attempts") as exc_info:
            ses.send_email(["a@example.com"], "Hello", "Body")

        assert exc_info.value.retryable is True
        assert boto_client.send_email.call_count == 3


# ============================================================================
# Email Task Tests
# ============================================================================


class TestSendEmailTask:
    @pytest.fixture
    def ses_client(self):
        client = MagicMock()
        client.send_email.return_value = {"message_id": "msg-1", "status": "sent"}
        with patch.object(tasks, "get_ses_client", return_value=client):
            yield client

    def test_sends(self, ses_client):
        result = send_email_task(recipients=["a@example.com"], subject="Hi", body="Body")

        assert result == {"message_id": "msg-1", "status": "sent"}
        ses_client.send_email.assert_called_once_with(["a@example.com"], "Hi", "Body")

    def test_skips_empty_recipients(self, ses_client):
        result = send_email_task(recipients=[], subject="Hi", body="Body")

        assert result == {"status": "skipped"}
        ses_client.send_email.assert_not_called()

    def test_non_retryable_error_propagates(self, ses_client):
        ses_client.send_email.side_effect = SESClientError("rejected", retryable=False)

        with pytest.raises(SESClientError, match="rejected"):
            send_email_task(recipients=["a@example.com"], subject="Hi", body="Body")
