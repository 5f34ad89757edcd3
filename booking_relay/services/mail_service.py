"""Transactional email through the SendGrid v3 HTTP API."""

from typing import Optional

import httpx

from booking_relay.config import Settings
from booking_relay.logging_config import get_logger

logger = get_logger("mail_service")

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridMailer:
    def __init__(self, api_key: str, sender: str, timeout_seconds: float = 10.0):
        self.api_key = api_key
        self.sender = sender
        self.timeout_seconds = timeout_seconds

    def send(self, to: str, subject: str, html_body: str) -> bool:
        """Send one HTML email.

        Args:
            to: Recipient address, or several separated by commas
            subject: Subject line
            html_body: HTML content

        Returns:
            True if SendGrid accepted the message. Never raises.
        """
        recipients = [{"email": address.strip()} for address in to.split(",") if address.strip()]
        if not recipients:
            logger.error("Email not sent: no recipient")
            return False

        payload = {
            "personalizations": [{"to": recipients}],
            "from": {"email": self.sender},
            "subject": subject,
            "content": [{"type": "text/html", "value": html_body}],
        }

        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.post(
                    SENDGRID_SEND_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
        except Exception as e:
            logger.error(f"Failed to send email: {e}")
            return False

        if response.status_code not in (200, 202):
            logger.error(
                "SendGrid rejected email",
                extra={"context": {"status": response.status_code, "body": response.text[:500]}},
            )
            return False

        logger.info("Email sent", extra={"context": {"subject": subject, "recipients": len(recipients)}})
        return True


def build_mailer(settings: Settings) -> Optional[SendGridMailer]:
    """Return a mailer, or None when mail credentials are incomplete."""
    if not settings.mail_configured:
        missing = [
            name
            for name, value in (
                ("SENDGRID_API_KEY", settings.sendgrid_api_key),
                ("MAIL_FROM", settings.mail_from),
                ("ADMIN_EMAIL", settings.admin_email),
            )
            if not value
        ]
        logger.error(
            "Mail not configured, notifications disabled",
            extra={"context": {"missing": missing}},
        )
        return None

    return SendGridMailer(
        api_key=settings.sendgrid_api_key,
        sender=settings.mail_from,
        timeout_seconds=settings.mail_timeout_seconds,
    )
