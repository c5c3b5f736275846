"""
i18n API Routes
UI message catalog for the caller's locale.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from marquee.auth import AuthContext, get_optional_auth
from marquee.database import get_session
from marquee.i18n.catalog import LOCALE_COOKIE, load_messages, resolve_locale
from marquee.i18n.language import locale_to_dir
from marquee.security.rate_limit import limit_by_ip
from marquee.services.preferences import get_saved_language

router = APIRouter()


@router.get("/i18n/messages", dependencies=[Depends(limit_by_ip("PUBLIC_READ"))])
def get_messages(
    request: Request,
    auth: Optional[AuthContext] = Depends(get_optional_auth),
    session: Session = Depends(get_session),
):
    """Locale from cookie, then the signed-in user's saved language, then Accept-Language."""
    saved_language = get_saved_language(session, auth.user.id) if auth else None
    locale = resolve_locale(
        cookie_locale=request.cookies.get(LOCALE_COOKIE),
        user_language=saved_language,
        accept_language=request.headers.get("accept-language"),
    )
    return {"locale": locale, "dir": locale_to_dir(locale), "messages": load_messages(locale)}
