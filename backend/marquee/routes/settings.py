"""
Settings API Routes
Profile, playback/notification preferences, login sessions, subscription
cancellation and account deletion.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from sqlmodel import Session, select

from marquee.api.responses import bad_request, forbidden, not_found
from marquee.api.schemas import (
    DeleteAccountRequest,
    DeleteSessionRequest,
    PreferencesUpdate,
    UpdateAvatarRequest,
    UpdateNameRequest,
)
from marquee.auth import AuthContext, secrets_match
from marquee.config import Settings, get_settings
from marquee.database import get_session
from marquee.i18n.language import parse_accept_language
from marquee.models.family_invite import FamilyInvite
from marquee.models.family_member import FamilyMember
from marquee.models.user import User
from marquee.models.user_preferences import UserPreferences
from marquee.models.user_session import UserSession
from marquee.models.verification import Verification
from marquee.models.watch_history import WatchHistory
from marquee.models.watchlist import Watchlist
from marquee.security.rate_limit import limit_by_user
from marquee.services.family import dissolve_family, get_membership, get_owned_family, revoke_pending_invites
from marquee.services.preferences import default_preferences, get_preferences, preferences_to_dict, upsert_preferences
from marquee.utils.clock import to_iso, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

HOUR = 3600


def delete_otp_identifier(email: str) -> str:
    """Verification identifier under which the auth provider stores the account-deletion code."""
    return f"forget-password-otp-{email.lower()}"


# ============================================================================
# Profile
# ============================================================================


@router.put("/settings/name", status_code=204)
def update_name(
    body: UpdateNameRequest,
    auth: AuthContext = Depends(limit_by_user("settings:name", limit=10, interval=60)),
    session: Session = Depends(get_session),
):
    auth.user.name = body.name
    session.add(auth.user)
    session.commit()
    return None


@router.put("/settings/avatar", status_code=204)
def update_avatar(
    body: UpdateAvatarRequest,
    auth: AuthContext = Depends(limit_by_user("settings:avatar", limit=10, interval=60)),
    session: Session = Depends(get_session),
):
    auth.user.avatar_icon = body.avatar_icon
    auth.user.avatar_color = body.avatar_color
    session.add(auth.user)
    session.commit()
    return None


# ============================================================================
# Preferences
# ============================================================================


@router.get("/settings/preferences")
def get_user_preferences(
    request: Request,
    auth: AuthContext = Depends(limit_by_user("prefs:get", limit=30, interval=60)),
    session: Session = Depends(get_session),
):
    """Stored preferences, or the defaults (language from Accept-Language) when none were saved."""
    prefs = get_preferences(session, auth.user.id)
    if prefs is not None:
        return {"preferences": preferences_to_dict(prefs)}
    return {"preferences": default_preferences(parse_accept_language(request.headers.get("accept-language")))}


@router.put("/settings/preferences", status_code=204)
def update_preferences(
    body: PreferencesUpdate,
    request: Request,
    auth: AuthContext = Depends(limit_by_user("preferences:put", limit=30, interval=60)),
    session: Session = Depends(get_session),
):
    changes = body.changes()
    if not changes:
        raise bad_request("api.settings.noValidFields")

    upsert_preferences(
        session,
        auth.user.id,
        changes,
        default_language=parse_accept_language(request.headers.get("accept-language")),
    )
    return None


# ============================================================================
# Sessions
# ============================================================================


def _session_payload(user_session: UserSession) -> Dict[str, Any]:
    # The token is a credential and never leaves the server
    return {
        "id": user_session.id,
        "ipAddress": user_session.ip_address,
        "userAgent": user_session.user_agent,
        "createdAt": to_iso(user_session.created_at),
        "updatedAt": to_iso(user_session.updated_at),
        "expiresAt": to_iso(user_session.expires_at),
    }


@router.get("/settings/sessions")
def list_sessions(
    auth: AuthContext = Depends(limit_by_user("sessions:get", limit=20, interval=60)),
    session: Session = Depends(get_session),
):
    rows = session.exec(
        select(UserSession).where(UserSession.user_id == auth.user.id).order_by(UserSession.created_at.desc())
    ).all()
    return {"sessions": [_session_payload(s) for s in rows], "currentSessionId": auth.session.id}


@router.delete("/settings/sessions", status_code=204)
def end_session(
    body: DeleteSessionRequest,
    auth: AuthContext = Depends(limit_by_user("sessions:delete", limit=10, interval=60)),
    session: Session = Depends(get_session),
):
    """`all: true` signs out every other device; `sessionId` ends one of them."""
    if body.all:
        others = session.exec(
            select(UserSession).where(UserSession.user_id == auth.user.id, UserSession.id != auth.session.id)
        ).all()
        for other in others:
            session.delete(other)
        session.commit()
        logger.info(f"User {auth.user.id} ended {len(others)} other session(s)")
        return None

    if body.session_id == auth.session.id:
        raise bad_request("api.sessions.cannotEndCurrent")

    target = session.get(UserSession, body.session_id)
    if target is None or target.user_id != auth.user.id:
        raise not_found("api.sessions.notFound")

    session.delete(target)
    session.commit()
    return None


# ============================================================================
# Subscription
# ============================================================================


@router.post("/settings/subscription/cancel", status_code=204)
def cancel_subscription(
    auth: AuthContext = Depends(limit_by_user("subscription:cancel", limit=5, interval=HOUR)),
    session: Session = Depends(get_session),
):
    """Drop the plan; a family the user owns is dissolved in the same transaction."""
    user = auth.user
    if get_membership(session, user.id) is not None:
        raise forbidden("api.family.familyMemberCancelError")
    if not user.plan_id:
        raise bad_request("api.subscription.noActiveSubscription")

    family = get_owned_family(session, user.id)
    if family is not None:
        revoked = revoke_pending_invites(session, family.id)
        dissolve_family(session, family)
        logger.info(f"Family {family.id} dissolved on cancel ({revoked} pending invite(s) revoked)")

    user.plan_id = None
    user.max_screens = 1
    user.trial_ends_at = None
    session.add(user)
    session.commit()
    logger.info(f"Subscription cancelled for user {user.id}")
    return None


# ============================================================================
# Account deletion
# ============================================================================


def _consume_delete_otp(session: Session, email: str, otp: str) -> bool:
    """True when `otp` matches a live code for `email`; the code is deleted on success (no commit)."""
    codes = session.exec(
        select(Verification).where(
            Verification.identifier == delete_otp_identifier(email),
            Verification.expires_at > utcnow(),
        )
    ).all()
    for code in codes:
        # Stored as "<otp>" or "<otp>:<attempts>"
        if secrets_match(code.value.split(":")[0], otp):
            session.delete(code)
            return True
    return False


@router.post("/settings/delete-account", status_code=204)
def delete_account(
    body: DeleteAccountRequest,
    response: Response,
    auth: AuthContext = Depends(limit_by_user("delete-account", limit=5, interval=HOUR)),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Remove every row that belongs to the user and sign them out."""
    user_id = auth.user.id
    if not _consume_delete_otp(session, auth.user.email, body.otp):
        raise bad_request("api.settings.deleteOtpInvalid")

    family = get_owned_family(session, user_id)
    if family is not None:
        dissolve_family(session, family)

    for model in (UserPreferences, FamilyMember, Watchlist, WatchHistory, UserSession):
        for row in session.exec(select(model).where(model.user_id == user_id)).all():
            session.delete(row)
    for invite in session.exec(select(FamilyInvite).where(FamilyInvite.used_by == user_id)).all():
        invite.used_by = None
        session.add(invite)
    session.flush()
    session.delete(auth.user)
    session.commit()

    response.delete_cookie(settings.session_cookie_name)
    logger.info(f"Account {user_id} deleted")
    return None
