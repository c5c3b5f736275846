"""
Family sharing helpers.

A family has one owner (whose plan is shared) and up to `max_members - 1`
members. `max_members` always counts the owner.
"""

import logging
from typing import Optional

from sqlmodel import Session, func, select

from marquee.models.family import Family
from marquee.models.family_invite import INVITE_EXPIRED, INVITE_PENDING, INVITE_REVOKED, FamilyInvite
from marquee.models.family_member import FamilyMember
from marquee.utils.clock import utcnow

logger = logging.getLogger(__name__)

INVITE_TTL_DAYS = 7
MAX_PENDING_INVITES = 5


def calculate_available_slots(max_members: int, current_members: int) -> int:
    """Free member slots; the owner occupies one of `max_members`."""
    return max_members - 1 - current_members


def has_available_slots(max_members: int, current_members: int, pending_invites: int) -> bool:
    return calculate_available_slots(max_members, current_members) > pending_invites


def total_members_count(current_members: int) -> int:
    """Members plus the owner."""
    return current_members + 1


def get_owned_family(session: Session, user_id: str) -> Optional[Family]:
    return session.exec(select(Family).where(Family.owner_id == user_id)).first()


def get_membership(session: Session, user_id: str) -> Optional[FamilyMember]:
    return session.exec(select(FamilyMember).where(FamilyMember.user_id == user_id)).first()


def count_members(session: Session, family_id: str) -> int:
    return session.exec(
        select(func.count()).select_from(FamilyMember).where(FamilyMember.family_id == family_id)
    ).one()


def count_pending_invites(session: Session, family_id: str) -> int:
    """Pending invites that have not passed their expiry."""
    return session.exec(
        select(func.count())
        .select_from(FamilyInvite)
        .where(
            FamilyInvite.family_id == family_id,
            FamilyInvite.status == INVITE_PENDING,
            FamilyInvite.expires_at > utcnow(),
        )
    ).one()


def expire_family_invites(session: Session) -> int:
    """Mark pending invites past `expires_at` as expired. Commits; returns the count."""
    invites = session.exec(
        select(FamilyInvite).where(FamilyInvite.status == INVITE_PENDING, FamilyInvite.expires_at <= utcnow())
    ).all()
    for invite in invites:
        invite.status = INVITE_EXPIRED
        session.add(invite)
    session.commit()
    if invites:
        logger.info(f"Expired {len(invites)} family invite(s)")
    return len(invites)


def revoke_pending_invites(session: Session, family_id: str) -> int:
    """Does not commit."""
    invites = session.exec(
        select(FamilyInvite).where(FamilyInvite.family_id == family_id, FamilyInvite.status == INVITE_PENDING)
    ).all()
    for invite in invites:
        invite.status = INVITE_REVOKED
        session.add(invite)
    return len(invites)


def dissolve_family(session: Session, family: Family) -> None:
    """
    Remove every member, every invite and the family itself. Does not commit,
    so callers can bundle it with the plan change in one transaction.
    """
    members = session.exec(select(FamilyMember).where(FamilyMember.family_id == family.id)).all()
    for member in members:
        session.delete(member)
    invites = session.exec(select(FamilyInvite).where(FamilyInvite.family_id == family.id)).all()
    for invite in invites:
        session.delete(invite)
    session.flush()
    # Reload the (now empty) collections so the delete does not touch removed rows
    session.expire(family, ["members", "invites"])
    session.delete(family)
