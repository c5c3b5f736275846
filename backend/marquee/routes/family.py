"""
Family API Routes
Owners share their plan with up to max_members - 1 members through invite links.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from marquee.api.responses import bad_request, conflict, forbidden, not_found
from marquee.api.schemas import (
    AcceptFamilyInviteRequest,
    CreateFamilyInviteRequest,
    ManageFamilyMemberRequest,
    RevokeFamilyInviteRequest,
)
from marquee.auth import AuthContext
from marquee.database import get_session
from marquee.models.family import Family
from marquee.models.family_invite import INVITE_ACCEPTED, INVITE_EXPIRED, INVITE_PENDING, INVITE_REVOKED, FamilyInvite
from marquee.models.family_member import FamilyMember
from marquee.models.user import User
from marquee.security.rate_limit import limit_by_user
from marquee.services.family import (
    INVITE_TTL_DAYS,
    MAX_PENDING_INVITES,
    calculate_available_slots,
    count_members,
    count_pending_invites,
    get_membership,
    get_owned_family,
    total_members_count,
)
from marquee.services.trial import is_trial_active
from marquee.utils.clock import to_iso, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

HOUR = 3600


# ============================================================================
# Serialization
# ============================================================================


def _public_user(user: User) -> Dict[str, Any]:
    """What other family members may see of a user (never the email)."""
    return {"name": user.name, "avatarIcon": user.avatar_icon, "avatarColor": user.avatar_color}


def _member(member: FamilyMember) -> Dict[str, Any]:
    return {"id": member.id, "joinedAt": to_iso(member.joined_at), "user": _public_user(member.user)}


def _owned_family(session: Session, family: Family) -> Dict[str, Any]:
    members = session.exec(
        select(FamilyMember).where(FamilyMember.family_id == family.id).order_by(FamilyMember.joined_at.asc())
    ).all()
    invites = session.exec(
        select(FamilyInvite)
        .where(
            FamilyInvite.family_id == family.id,
            FamilyInvite.status == INVITE_PENDING,
            FamilyInvite.expires_at > utcnow(),
        )
        .order_by(FamilyInvite.created_at.desc())
    ).all()
    return {
        "id": family.id,
        "name": family.name,
        "maxMembers": family.max_members,
        "members": [_member(m) for m in members],
        "invites": [
            {"id": i.id, "token": i.token, "email": i.email, "expiresAt": to_iso(i.expires_at)} for i in invites
        ],
    }


def _membership(session: Session, membership: FamilyMember) -> Dict[str, Any]:
    family = membership.family
    members = session.exec(
        select(FamilyMember).where(FamilyMember.family_id == family.id).order_by(FamilyMember.joined_at.asc())
    ).all()
    return {
        "joinedAt": to_iso(membership.joined_at),
        "family": {
            "name": family.name,
            "owner": _public_user(family.owner),
            "members": [_member(m) for m in members],
        },
    }


def _family_payload(family: Family) -> Dict[str, Any]:
    return {
        "id": family.id,
        "ownerId": family.owner_id,
        "name": family.name,
        "maxMembers": family.max_members,
        "createdAt": to_iso(family.created_at),
    }


def _new_family(session: Session, user: User) -> Family:
    """Does not commit."""
    family = Family(owner_id=user.id, name=f"{user.name or 'User'}'s family", max_members=user.max_screens or 1)
    session.add(family)
    session.flush()
    return family


# ============================================================================
# Family
# ============================================================================


@router.get("/family")
def get_family(
    auth: AuthContext = Depends(limit_by_user("family:get", limit=30, interval=60)),
    session: Session = Depends(get_session),
):
    """The family the user owns (with live invites) and the one they belong to, either may be null."""
    owned = get_owned_family(session, auth.user.id)
    membership = get_membership(session, auth.user.id)
    return {
        "ownedFamily": _owned_family(session, owned) if owned else None,
        "membership": _membership(session, membership) if membership else None,
    }


@router.post("/family", status_code=201)
def create_family(
    auth: AuthContext = Depends(limit_by_user("family:create", limit=5, interval=HOUR)),
    session: Session = Depends(get_session),
):
    user = auth.user
    if (user.max_screens or 1) < 2:
        raise forbidden("api.family.planNoFamily")
    if get_owned_family(session, user.id):
        raise conflict("api.family.alreadyOwner")
    if get_membership(session, user.id):
        raise conflict("api.family.alreadyMember")

    family = _new_family(session, user)
    session.commit()
    session.refresh(family)
    logger.info(f"Family {family.id} created by user {user.id} (max {family.max_members})")
    return {"family": _family_payload(family), "message": "api.family.createSuccess"}


# ============================================================================
# Invites
# ============================================================================


@router.post("/family/invite", status_code=204)
def create_invite(
    body: CreateFamilyInviteRequest,
    auth: AuthContext = Depends(limit_by_user("family:invite", limit=10, interval=HOUR)),
    session: Session = Depends(get_session),
):
    """
    Create a 7-day invite, creating the family on first use.

    Limits:
    - at least one free slot
    - pending invites below the free slots
    - at most MAX_PENDING_INVITES pending invites
    """
    user = auth.user
    family = get_owned_family(session, user.id)
    if family is None:
        if (user.max_screens or 1) < 2:
            raise forbidden("api.family.planNoFamilyShort")
        family = _new_family(session, user)

    available = calculate_available_slots(family.max_members, count_members(session, family.id))
    pending = count_pending_invites(session, family.id)

    if available <= 0:
        raise bad_request("api.family.familyLimitReached")
    if pending >= available:
        raise bad_request("api.family.pendingInvitesLimit")
    if pending >= MAX_PENDING_INVITES:
        raise bad_request("api.family.maxPendingInvites")

    session.add(
        FamilyInvite(
            family_id=family.id,
            email=body.email,
            expires_at=utcnow() + timedelta(days=INVITE_TTL_DAYS),
        )
    )
    session.commit()
    logger.info(f"Invite created for family {family.id}")
    return None


@router.delete("/family/invite", status_code=204)
def revoke_invite(
    body: RevokeFamilyInviteRequest,
    auth: AuthContext = Depends(limit_by_user("family:revoke", limit=10, interval=60)),
    session: Session = Depends(get_session),
):
    invite = session.get(FamilyInvite, body.invite_id)
    # Someone else's invite is reported as missing
    if invite is None or invite.family.owner_id != auth.user.id:
        raise not_found("api.family.inviteNotFound")

    invite.status = INVITE_REVOKED
    session.add(invite)
    session.commit()
    return None


@router.post("/family/accept", status_code=204)
def accept_invite(
    body: AcceptFamilyInviteRequest,
    auth: AuthContext = Depends(limit_by_user("family:accept", limit=10, interval=HOUR)),
    session: Session = Depends(get_session),
):
    """
    Join a family through an invite token.

    The invitee gives up their own plan: membership, invite status and the
    plan reset are committed together.
    """
    user = auth.user
    invite = session.exec(select(FamilyInvite).where(FamilyInvite.token == body.token)).first()
    if invite is None:
        raise not_found("api.family.inviteNotFound")
    if invite.status != INVITE_PENDING:
        raise bad_request("api.family.inviteUsed")
    if utcnow() > invite.expires_at:
        invite.status = INVITE_EXPIRED
        session.add(invite)
        session.commit()
        raise bad_request("api.family.inviteExpired")
    if invite.email and (user.email or "").lower() != invite.email.lower():
        raise forbidden("api.family.inviteWrongEmail")

    # Lock the family row so concurrent accepts cannot overfill it
    family: Optional[Family] = session.exec(
        select(Family).where(Family.id == invite.family_id).with_for_update()
    ).first()
    if family is None:
        raise not_found("api.family.inviteNotFound")

    if family.owner_id == user.id:
        raise bad_request("api.family.cannotAcceptOwn")

    membership = get_membership(session, user.id)
    if membership is not None and membership.family_id == family.id:
        raise conflict("api.family.alreadyFamilyMember")
    if membership is not None:
        raise conflict("api.family.memberOfOther")
    if get_owned_family(session, user.id):
        raise conflict("api.family.ownerOfOther")
    if user.plan_id is not None or is_trial_active(user.trial_ends_at):
        raise conflict("api.family.activePlan")
    if total_members_count(count_members(session, family.id)) >= family.max_members:
        raise bad_request("api.family.familyFull")

    session.add(FamilyMember(family_id=family.id, user_id=user.id))
    invite.status = INVITE_ACCEPTED
    invite.used_by = user.id
    invite.used_at = utcnow()
    session.add(invite)
    user.plan_id = None
    user.max_screens = 1
    user.trial_ends_at = None
    session.add(user)
    session.commit()

    logger.info(f"User {user.id} joined family {family.id}")
    return None


# ============================================================================
# Members
# ============================================================================


@router.delete("/family/members", status_code=204)
def remove_member(
    body: ManageFamilyMemberRequest,
    auth: AuthContext = Depends(limit_by_user("family:members", limit=10, interval=60)),
    session: Session = Depends(get_session),
):
    """`leave: true` leaves the caller's family; `memberId` lets an owner remove a member."""
    if body.leave:
        membership = get_membership(session, auth.user.id)
        if membership is None:
            raise not_found("api.family.notMember")
        family_id = membership.family_id
        session.delete(membership)
        session.commit()
        logger.info(f"User {auth.user.id} left family {family_id}")
        return None

    family = get_owned_family(session, auth.user.id)
    if family is None:
        raise forbidden("api.family.notOwner")

    member = session.get(FamilyMember, body.member_id)
    if member is None or member.family_id != family.id:
        raise not_found("api.family.memberNotFound")

    session.delete(member)
    session.commit()
    logger.info(f"Member {body.member_id} removed from family {family.id}")
    return None
