"""Email delivery service wrapper.

Thin wrapper around the Resend HTTP API for transactional email
(contact-form notifications).
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

import requests

from marquee.config import get_settings
from marquee.services.metrics import track_operation

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
REQUEST_TIMEOUT_SECONDS = 10


def validate_email_address(address: str) -> bool:
    """Loose shape check; the request schemas do the strict validation."""
    return bool(re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", address or ""))


class EmailService:
    """
    Sends email through Resend.

    Reads configuration from settings:
      - RESEND_API_KEY
      - EMAIL_FROM

    Without an API key, operates in dry-run mode
    (logs messages but doesn't send).
    """

    def __init__(self, api_key: str = "", sender: str = "", http: Optional[requests.Session] = None):
        settings = get_settings()
        self.api_key = api_key or settings.resend_api_key
        self.sender = sender or settings.email_from
        self.http = http or requests.Session()
        self.dry_run = not self.api_key

        if self.dry_run:
            logger.warning("RESEND_API_KEY not configured. Email service running in dry-run mode.")

    def send(self, to: str, subject: str, text: str, reply_to: Optional[str] = None) -> dict:
        """
        Send one plain-text email.

        Returns:
            dict with keys: id, status, error
        """
        if not validate_email_address(to):
            return {"id": None, "status": "failed", "error": f"Invalid recipient: {to}"}

        if self.dry_run:
            logger.info(f"[DRY RUN] Email to {to}: {subject[:80]}")
            return {
                "id": f"DRY_RUN_{datetime.now(timezone.utc).isoformat()}",
                "status": "dry_run",
                "error": None,
            }

        payload = {"from": self.sender, "to": [to], "subject": subject, "text": text}
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            with track_operation("email.send"):
                response = self.http.post(
                    RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    timeout=REQUEST_TIMEOUT_SECONDS,
                )
                response.raise_for_status()
            message_id = response.json().get("id")
            logger.info(f"Email sent to {to}: id={message_id}")
            return {"id": message_id, "status": "sent", "error": None}
        except requests.RequestException as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return {"id": None, "status": "failed", "error": str(e)}

    @property
    def is_configured(self) -> bool:
        return not self.dry_run


# Singleton instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create the singleton EmailService instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
