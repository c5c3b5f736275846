"""
Request authentication.

User endpoints: session cookie -> session row -> user. Sessions are created by the
external auth provider; this service only reads them (and deletes them on sign-out
of other devices or account deletion).

Admin and cron endpoints: `Authorization: Bearer <secret>`.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlmodel import Session, select

from marquee.api.responses import server_misconfigured, unauthorized
from marquee.config import Settings, get_settings
from marquee.database import get_session
from marquee.models.user import User
from marquee.models.user_session import UserSession
from marquee.utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    user: User
    session: UserSession


def _session_token(request: Request, settings: Settings) -> Optional[str]:
    raw = request.cookies.get(settings.session_cookie_name) or request.cookies.get(
        f"__Secure-{settings.session_cookie_name}"
    )
    if not raw:
        return None
    # Signed cookies carry "<token>.<signature>"
    return raw.split(".")[0] or None


def find_auth(request: Request, session: Session, settings: Settings) -> Optional[AuthContext]:
    token = _session_token(request, settings)
    if not token:
        return None

    user_session = session.exec(select(UserSession).where(UserSession.token == token)).first()
    if user_session is None or user_session.expires_at <= utcnow():
        return None

    user = session.get(User, user_session.user_id)
    if user is None:
        return None
    return AuthContext(user=user, session=user_session)


def resolve_auth(
    request: Request,
    session: Session,
    settings: Settings,
    message: str = "api.errors.authRequired",
) -> AuthContext:
    auth = find_auth(request, session, settings)
    if auth is None:
        raise unauthorized(message)
    return auth


def get_auth_context(
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    """Dependency: the signed-in user, or 401."""
    return resolve_auth(request, session, settings)


def get_optional_auth(
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> Optional[AuthContext]:
    return find_auth(request, session, settings)


def secrets_match(provided: str, expected: str) -> bool:
    """Constant-time comparison that accepts any header text, including non-ASCII."""
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def _bearer_matches(authorization: Optional[str], secret: str) -> bool:
    if not authorization:
        return False
    return secrets_match(authorization, f"Bearer {secret}")


def require_admin(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Bearer ADMIN_SECRET (or CRON_SECRET). Never open, even in development."""
    secret = settings.admin_secret
    if not secret:
        if settings.is_production:
            logger.error("ADMIN_SECRET/CRON_SECRET not configured in production")
            raise server_misconfigured()
        raise unauthorized()
    if not _bearer_matches(authorization, secret):
        raise unauthorized()


def require_cron(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Bearer CRON_SECRET. Without a secret every call is rejected."""
    secret = settings.cron_secret
    if not secret:
        if settings.is_production:
            logger.error("CRON_SECRET not configured in production")
            raise server_misconfigured()
        logger.warning("CRON_SECRET not set; rejecting cron call")
        raise unauthorized()
    if not _bearer_matches(authorization, secret):
        raise unauthorized()
