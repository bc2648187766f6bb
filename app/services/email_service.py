from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Any
from uuid import uuid4

import httpx

from app.core.config import settings


class EmailDeliveryError(Exception):
    pass


logger = logging.getLogger("uvicorn.error")


def _normalize_email(value: str | None) -> str:
    return str(value or "").strip().lower()


def sender_display_name(firm_name: str | None) -> str:
    base = str(settings.MAIL_SENDER_NAME or "").strip() or "GRWO"
    firm = str(firm_name or "").strip()
    return f"{base} - {firm}" if firm else base


def _mock_send(*, email: str, subject: str, body: str) -> dict[str, Any]:
    logger.warning("[EMAIL MOCK] to=%s subject=%s chars=%s", email, subject, len(body))
    return {
        "provider": "mock_email",
        "status": "accepted",
        "sent": False,
        "mocked": True,
        "message_id": f"<mock-{uuid4().hex}@grwo.local>",
    }


def _send_smtp(*, email: str, subject: str, body: str, sender_name: str) -> dict[str, Any]:
    host = str(settings.SMTP_HOST or "").strip()
    port = int(settings.SMTP_PORT or 0)
    username = str(settings.SMTP_USER or "").strip()
    password = str(settings.SMTP_PASSWORD or "").strip()
    sender = str(settings.SMTP_FROM or "").strip()
    use_tls = bool(settings.SMTP_USE_TLS)
    use_ssl = bool(settings.SMTP_USE_SSL)

    if not host or not port or not sender:
        raise EmailDeliveryError("Email service not configured (SMTP_HOST/SMTP_PORT/SMTP_FROM missing)")
    if use_tls and use_ssl:
        raise EmailDeliveryError("SMTP_USE_TLS and SMTP_USE_SSL cannot both be enabled")

    message_id = make_msgid(domain=sender.split("@")[-1] or None)
    msg = EmailMessage()
    msg["From"] = formataddr((sender_name, sender))
    msg["To"] = email
    msg["Subject"] = subject
    msg["Message-ID"] = message_id
    msg.set_content(body)

    try:
        if use_ssl:
            smtp = smtplib.SMTP_SSL(host=host, port=port, timeout=15)
        else:
            smtp = smtplib.SMTP(host=host, port=port, timeout=15)
        with smtp as client:
            client.ehlo()
            if use_tls:
                client.starttls()
                client.ehlo()
            if username:
                client.login(username, password)
            client.send_message(msg)
    except Exception as exc:
        raise EmailDeliveryError(f"SMTP delivery failed: {exc}") from exc

    return {"provider": "smtp", "status": "accepted", "sent": True, "message_id": message_id}


def _send_via_email_service(*, email: str, subject: str, body: str, sender_name: str) -> dict[str, Any]:
    base_url = str(settings.EMAIL_SERVICE_URL or "").strip().rstrip("/")
    token = str(settings.INTERNAL_SERVICE_TOKEN or "").strip()
    if not base_url:
        raise EmailDeliveryError("EMAIL_SERVICE_URL is not configured")
    if not token:
        raise EmailDeliveryError("INTERNAL_SERVICE_TOKEN is not configured")
    try:
        with httpx.Client(timeout=15.0) as client:
            response = client.post(
                f"{base_url}/internal/send-email",
                headers={"X-Internal-Token": token, "Content-Type": "application/json"},
                json={"email": email, "subject": subject, "body": body, "sender_name": sender_name},
            )
    except Exception as exc:
        raise EmailDeliveryError(f"email-service request failed: {exc}") from exc
    payload: dict[str, Any] = {}
    try:
        payload = response.json() if response.content else {}
    except ValueError:
        payload = {}
    if response.status_code >= 400:
        detail = str(payload.get("detail") or payload.get("error") or response.text or response.status_code)
        raise EmailDeliveryError(f"email-service error: {detail}")
    return {
        "provider": "email-service",
        "status": "accepted",
        "sent": True,
        "message_id": payload.get("message_id"),
    }


def send_email_message(*, email: str, subject: str, body: str, sender_name: str | None = None) -> dict[str, Any]:
    normalized_email = _normalize_email(email)
    if not normalized_email:
        raise EmailDeliveryError("Invalid recipient email")
    display_name = sender_name or sender_display_name(None)

    provider = str(settings.EMAIL_PROVIDER or "dummy").strip().lower()
    if provider in {"", "dummy", "mock", "console"}:
        return _mock_send(email=normalized_email, subject=subject, body=body)
    if provider in {"service", "email_service"}:
        return _send_via_email_service(email=normalized_email, subject=subject, body=body, sender_name=display_name)
    if provider == "smtp":
        return _send_smtp(email=normalized_email, subject=subject, body=body, sender_name=display_name)

    raise EmailDeliveryError(f"Unknown EMAIL_PROVIDER: {provider}")
