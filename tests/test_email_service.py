import os
import unittest
from unittest.mock import Mock, patch

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")
os.environ.setdefault("S3_BUCKET", "test")

from app.core.config import settings
from app.services.email_service import EmailDeliveryError, send_email_message, sender_display_name


class EmailServiceTests(unittest.TestCase):
    def setUp(self):
        self._backup = {
            "EMAIL_PROVIDER": settings.EMAIL_PROVIDER,
            "EMAIL_SERVICE_URL": settings.EMAIL_SERVICE_URL,
            "INTERNAL_SERVICE_TOKEN": settings.INTERNAL_SERVICE_TOKEN,
            "SMTP_HOST": settings.SMTP_HOST,
            "SMTP_FROM": settings.SMTP_FROM,
        }

    def tearDown(self):
        for key, value in self._backup.items():
            setattr(settings, key, value)

    def test_dummy_provider_mocks_delivery(self):
        settings.EMAIL_PROVIDER = "dummy"
        payload = send_email_message(email=" User@Example.com ", subject="Hi", body="Body")
        self.assertEqual(payload.get("provider"), "mock_email")
        self.assertTrue(payload.get("mocked"))
        self.assertTrue(str(payload.get("message_id")).startswith("<mock-"))

    def test_service_provider_calls_internal_email_service(self):
        settings.EMAIL_PROVIDER = "service"
        settings.EMAIL_SERVICE_URL = "http://email-service:8010/"
        settings.INTERNAL_SERVICE_TOKEN = "token"

        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.content = b'{"message_id":"<abc@mail>"}'
        mock_response.json.return_value = {"message_id": "<abc@mail>"}

        mock_client = Mock()
        mock_client.__enter__ = Mock(return_value=mock_client)
        mock_client.__exit__ = Mock(return_value=False)
        mock_client.post.return_value = mock_response

        with patch("app.services.email_service.httpx.Client", return_value=mock_client):
            payload = send_email_message(
                email="buyer@example.com",
                subject="New listings",
                body="Hello",
                sender_name="GRWO - Skyline",
            )
        self.assertEqual(payload.get("provider"), "email-service")
        self.assertEqual(payload.get("message_id"), "<abc@mail>")
        url = mock_client.post.call_args.args[0]
        self.assertEqual(url, "http://email-service:8010/internal/send-email")
        sent = mock_client.post.call_args.kwargs["json"]
        self.assertEqual(sent["sender_name"], "GRWO - Skyline")
        self.assertEqual(mock_client.post.call_args.kwargs["headers"]["X-Internal-Token"], "token")

    def test_service_error_status_raises(self):
        settings.EMAIL_PROVIDER = "service"
        settings.INTERNAL_SERVICE_TOKEN = "token"

        mock_response = Mock()
        mock_response.status_code = 503
        mock_response.content = b'{"detail":"smtp down"}'
        mock_response.json.return_value = {"detail": "smtp down"}

        mock_client = Mock()
        mock_client.__enter__ = Mock(return_value=mock_client)
        mock_client.__exit__ = Mock(return_value=False)
        mock_client.post.return_value = mock_response

        with patch("app.services.email_service.httpx.Client", return_value=mock_client):
            with self.assertRaises(EmailDeliveryError) as ctx:
                send_email_message(email="buyer@example.com", subject="s", body="b")
        self.assertIn("smtp down", str(ctx.exception))

    def test_smtp_requires_configuration(self):
        settings.EMAIL_PROVIDER = "smtp"
        settings.SMTP_HOST = ""
        with self.assertRaises(EmailDeliveryError):
            send_email_message(email="buyer@example.com", subject="s", body="b")

    def test_unknown_provider_and_blank_recipient_raise(self):
        settings.EMAIL_PROVIDER = "unknown"
        with self.assertRaises(EmailDeliveryError):
            send_email_message(email="user@example.com", subject="s", body="b")
        settings.EMAIL_PROVIDER = "dummy"
        with self.assertRaises(EmailDeliveryError):
            send_email_message(email="  ", subject="s", body="b")

    def test_sender_display_name(self):
        self.assertEqual(sender_display_name("Skyline Realty"), "GRWO - Skyline Realty")
        self.assertEqual(sender_display_name("  "), "GRWO")
        self.assertEqual(sender_display_name(None), "GRWO")


if __name__ == "__main__":
    unittest.main()
