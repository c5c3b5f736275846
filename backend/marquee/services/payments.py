"""
Payment gateway events.

Only `payment.succeeded` changes state: the user gets the plan, any trial ends,
and a family they own is resized to the plan's screen count (newest members
are dropped first on a downgrade). Every event is recorded once in
payment_event so gateway retries are no-ops.
"""

import logging
from typing import Any, Dict, Optional

import requests
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from marquee.api.schemas import PaymentWebhookPayload
from marquee.models.family import Family
from marquee.models.family_member import FamilyMember
from marquee.models.payment_event import PaymentEvent
from marquee.models.plan import Plan
from marquee.models.user import User
from marquee.services.family import calculate_available_slots, get_owned_family, revoke_pending_invites
from marquee.services.metrics import track_operation

logger = logging.getLogger(__name__)

RELAY_TIMEOUT_SECONDS = 10


class PaymentError(Exception):
    pass


class UnknownUser(PaymentError):
    pass


class UnknownPlan(PaymentError):
    pass


def event_key(payload: PaymentWebhookPayload) -> str:
    return f"{payload.transaction_id}_{payload.type}"


def is_processed(session: Session, key: str) -> bool:
    return session.exec(select(PaymentEvent).where(PaymentEvent.event_key == key)).first() is not None


def resize_family(session: Session, family: Family, max_members: int) -> int:
    """
    Fit `family` into `max_members` (owner included). Does not commit.

    Returns the number of members removed.
    """
    members = session.exec(
        select(FamilyMember)
        .where(FamilyMember.family_id == family.id)
        .order_by(FamilyMember.joined_at.desc())
    ).all()

    removed = 0
    overflow = len(members) + 1 - max_members
    if overflow > 0:
        for member in members[:overflow]:
            session.delete(member)
        removed = overflow
        logger.info(f"Family {family.id} downgraded: removed {removed} member(s)")

    remaining = len(members) - removed
    if calculate_available_slots(max_members, remaining) <= 0:
        revoked = revoke_pending_invites(session, family.id)
        if revoked:
            logger.info(f"Family {family.id}: revoked {revoked} pending invite(s), no slots left")

    logger.info(f"Family {family.id}: max_members {family.max_members} -> {max_members}")
    family.max_members = max_members
    session.add(family)
    return removed


def apply_payment_event(session: Session, payload: PaymentWebhookPayload) -> bool:
    """
    Apply one gateway event in a single transaction.

    Returns False when the event was already processed.
    Raises UnknownUser / UnknownPlan.
    """
    key = event_key(payload)
    if is_processed(session, key):
        logger.info(f"Duplicate payment event ignored: {key}")
        return False

    user = session.get(User, payload.user_id)
    if user is None:
        raise UnknownUser(payload.user_id)
    plan = session.get(Plan, payload.plan_id)
    if plan is None:
        raise UnknownPlan(payload.plan_id)

    if payload.type == "payment.succeeded":
        old_plan_id = user.plan_id
        user.plan_id = plan.id
        user.max_screens = plan.screens
        user.trial_ends_at = None
        session.add(user)

        family = get_owned_family(session, user.id)
        if family is not None:
            resize_family(session, family, plan.screens)

        logger.info(f"Subscription updated for user {user.id}: {old_plan_id} -> {plan.id} ({plan.screens} screens)")
    else:
        logger.info(f"Payment event {payload.type} recorded for user {user.id}")

    session.add(
        PaymentEvent(
            event_key=key,
            event_type=payload.type,
            user_id=user.id,
            plan_id=plan.id,
            amount=payload.amount,
            currency=payload.currency,
        )
    )
    try:
        session.commit()
    except IntegrityError:
        # Concurrent delivery of the same event won the insert
        session.rollback()
        logger.info(f"Duplicate payment event ignored: {key}")
        return False
    return True


def relay_event(url: str, body: Dict[str, Any], token: Optional[str] = None) -> bool:
    """Forward the raw event to a downstream listener. Failures are logged, never raised."""
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        with track_operation("payment.relay"):
            response = requests.post(url, json=body, headers=headers, timeout=RELAY_TIMEOUT_SECONDS)
            response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Payment webhook relay failed: {e}")
        return False
    logger.info("Payment webhook relayed")
    return True
