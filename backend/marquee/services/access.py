"""
Streaming entitlement.

A user may stream with their own live plan, or as a family member while the
family owner's plan is live. Trials count as live until `trial_ends_at`.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlmodel import Session

from marquee.models.plan import Plan
from marquee.models.user import User
from marquee.services.family import get_membership
from marquee.services.trial import has_active_access


@dataclass
class PlanInfo:
    plan_id: str
    plan_name: str
    max_screens: int
    is_owner: bool
    is_trial: bool
    trial_ends_at: Optional[datetime]


def _plan_of(session: Session, user: User) -> Optional[Plan]:
    return session.get(Plan, user.plan_id) if user.plan_id else None


def _family_owner(session: Session, user_id: str) -> Optional[User]:
    membership = get_membership(session, user_id)
    if membership is None:
        return None
    return membership.family.owner


def has_streaming_access(session: Session, user_id: str) -> bool:
    user = session.get(User, user_id)
    if user is None:
        return False

    if user.plan_id and has_active_access(user, _plan_of(session, user)):
        return True

    owner = _family_owner(session, user_id)
    if owner is None:
        return False
    return has_active_access(owner, _plan_of(session, owner))


def get_user_plan_info(session: Session, user_id: str) -> Optional[PlanInfo]:
    """The plan the user streams under (own first, then the family owner's)."""
    user = session.get(User, user_id)
    if user is None:
        return None

    plan = _plan_of(session, user)
    if plan is not None:
        return PlanInfo(
            plan_id=plan.id,
            plan_name=plan.name,
            max_screens=plan.screens,
            is_owner=True,
            is_trial=user.trial_ends_at is not None,
            trial_ends_at=user.trial_ends_at,
        )

    owner = _family_owner(session, user_id)
    if owner is None:
        return None
    owner_plan = _plan_of(session, owner)
    if owner_plan is None:
        return None
    return PlanInfo(
        plan_id=owner_plan.id,
        plan_name=owner_plan.name,
        max_screens=owner_plan.screens,
        is_owner=False,
        is_trial=owner.trial_ends_at is not None,
        trial_ends_at=owner.trial_ends_at,
    )
