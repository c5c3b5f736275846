"""
Contact API Routes
Public contact form; messages are forwarded to CONTACT_EMAIL.
"""

import logging
import uuid

from fastapi import APIRouter, Depends

from marquee.api.responses import success
from marquee.api.schemas import ContactRequest
from marquee.config import Settings, get_settings
from marquee.security.rate_limit import limit_by_ip
from marquee.security.sanitize import sanitize_input
from marquee.services.email_service import get_email_service
from marquee.utils.clock import to_iso, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/contact", status_code=201, dependencies=[Depends(limit_by_ip("AUTH"))])
def submit_contact(body: ContactRequest, settings: Settings = Depends(get_settings)):
    name = sanitize_input(body.name, "name")
    email = sanitize_input(body.email, "email")
    subject = sanitize_input(body.subject, "text")
    message = sanitize_input(body.message, "text")

    received_at = utcnow()
    logger.info(f"Contact message from {email}: {subject[:80]}")

    if settings.contact_email:
        result = get_email_service().send(
            to=settings.contact_email,
            subject=f"[Contact] {subject}",
            text=f"Name: {name}\nEmail: {email}\nSubject: {subject}\n\nMessage:\n{message}",
            reply_to=email,
        )
        if result["status"] == "failed":
            logger.error(f"Contact message from {email} not delivered: {result['error']}")
    else:
        logger.warning("CONTACT_EMAIL not configured; contact message only logged")

    return success({"id": str(uuid.uuid4()), "receivedAt": to_iso(received_at)}, "api.contact.success")
