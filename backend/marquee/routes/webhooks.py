"""
Payment Webhook Routes
Receives payment-gateway events and applies subscription changes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header
from sqlmodel import Session

from marquee.api.responses import not_found, server_misconfigured, unauthorized
from marquee.api.schemas import PaymentWebhookPayload
from marquee.auth import secrets_match
from marquee.config import Settings, get_settings
from marquee.database import get_session
from marquee.services.payments import UnknownPlan, UnknownUser, apply_payment_event, relay_event

logger = logging.getLogger(__name__)

router = APIRouter()


def verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    X-Webhook-Secret check. Required in production and whenever a secret is
    configured; development without a secret accepts unauthenticated events.
    """
    secret = settings.payment_webhook_secret
    if not secret:
        if settings.is_production:
            logger.error("PAYMENT_WEBHOOK_SECRET not configured in production")
            raise server_misconfigured()
        logger.warning("Payment webhook running without authentication (development)")
        return

    if not x_webhook_secret:
        logger.error("Webhook rejected: missing X-Webhook-Secret header")
        raise unauthorized()
    if not secrets_match(x_webhook_secret, secret):
        logger.error("Webhook rejected: invalid webhook secret")
        raise unauthorized()


@router.post("/webhooks/payment", dependencies=[Depends(verify_webhook_secret)])
def payment_webhook(
    body: PaymentWebhookPayload,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Apply one gateway event. Redeliveries of an already processed
    (transactionId, type) pair are acknowledged without side effects.
    """
    logger.info(f"Payment webhook received: {body.type} user={body.user_id} plan={body.plan_id}")

    try:
        applied = apply_payment_event(session, body)
    except UnknownUser:
        raise not_found("api.payment.userNotFound")
    except UnknownPlan:
        raise not_found("api.payment.planNotFound")

    if not applied:
        return {"message": "api.payment.eventAlreadyProcessed"}

    if settings.payment_webhook_relay_url:
        background_tasks.add_task(
            relay_event,
            settings.payment_webhook_relay_url,
            body.model_dump(by_alias=True, exclude_none=True),
            settings.payment_api_token,
        )

    return {"message": "api.payment.webhookSuccess"}
