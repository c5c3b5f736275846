"""
Free-trial management.

New accounts get TRIAL_DURATION_DAYS of the Duo plan, once per account
(`trial_used`). While `trial_ends_at` is set the plan is a trial and access
ends at that instant; the expire-trials cron job then drops the plan.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from marquee.models.plan import Plan
from marquee.models.user import User
from marquee.services.family import dissolve_family, get_owned_family
from marquee.utils.clock import utcnow

logger = logging.getLogger(__name__)

TRIAL_DURATION_DAYS = 7
TRIAL_PLAN_NAME = "Duo"


def is_trial_active(trial_ends_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if trial_ends_at is None:
        return False
    return (now or utcnow()) < trial_ends_at


def trial_days_remaining(trial_ends_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole days left, rounded up; 0 when expired or not on a trial."""
    if trial_ends_at is None:
        return 0
    remaining = (trial_ends_at - (now or utcnow())).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining / 86400)


def has_active_access(user: User, plan: Optional[Plan], now: Optional[datetime] = None) -> bool:
    """Own plan is active and, for trials, not yet expired."""
    if not user.plan_id or plan is None or not plan.active:
        return False
    if user.trial_ends_at is not None:
        return is_trial_active(user.trial_ends_at, now)
    return True


def assign_trial(session: Session, user: User) -> bool:
    """Start the Duo trial for `user` (once per account). Commits."""
    if user.trial_used:
        logger.info(f"Trial already used by user {user.id}")
        return False

    plan = session.exec(select(Plan).where(Plan.name == TRIAL_PLAN_NAME, Plan.active == True)).first()  # noqa: E712
    if plan is None:
        logger.error(f"Trial plan '{TRIAL_PLAN_NAME}' not found")
        return False

    user.plan_id = plan.id
    user.max_screens = plan.screens
    user.trial_ends_at = utcnow() + timedelta(days=TRIAL_DURATION_DAYS)
    user.trial_used = True
    session.add(user)
    session.commit()
    logger.info(f"Trial assigned to user {user.id}, ends {user.trial_ends_at.isoformat()}")
    return True


def expire_trials(session: Session) -> int:
    """
    Drop the plan of every user whose trial has ended and dissolve the family
    they own. Each user is processed in its own transaction; a failure is
    logged and the remaining users are still processed.

    Returns the number of users whose trial was expired.
    """
    now = utcnow()
    user_ids = session.exec(
        select(User.id).where(User.trial_ends_at <= now, User.plan_id.is_not(None))
    ).all()

    expired = 0
    for user_id in user_ids:
        try:
            user = session.get(User, user_id)
            family = get_owned_family(session, user_id)
            if family is not None:
                dissolve_family(session, family)

            user.plan_id = None
            user.max_screens = 1
            user.trial_ends_at = None
            session.add(user)
            session.commit()
            expired += 1
        except SQLAlchemyError:
            session.rollback()
            logger.exception(f"Failed to expire trial for user {user_id}")

    if expired:
        logger.info(f"Expired {expired} trial(s)")
    return expired
