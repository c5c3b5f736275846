"""
Watchlist API Routes
Per-user list of titles saved for later, paginated in fixed pages of 18.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from marquee.api.responses import bad_request, not_found
from marquee.api.schemas import MEDIA_TYPES, WatchlistItemRequest
from marquee.auth import AuthContext, get_auth_context
from marquee.database import get_session
from marquee.i18n.catalog import LOCALE_COOKIE, get_user_language
from marquee.models.watchlist import Watchlist
from marquee.security.rate_limit import limit_by_ip, limit_by_user
from marquee.services.preferences import get_saved_language
from marquee.utils.clock import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

PAGE_SIZE = 18


# ============================================================================
# Response Models
# ============================================================================


class WatchlistItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    tmdb_id: int
    media_type: str
    added_at: datetime


class WatchlistPageResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[WatchlistItemResponse]
    total: int
    movie_count: int
    tv_count: int
    offset: int
    limit: int
    has_more: bool
    language: str


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/watchlist", response_model=WatchlistPageResponse)
def get_watchlist(
    request: Request,
    offset: str = Query("0"),
    media_type: Optional[str] = Query(None, alias="mediaType"),
    auth: AuthContext = Depends(limit_by_user("watchlist:get", limit=60, interval=60)),
    session: Session = Depends(get_session),
):
    """
    One page of the user's watchlist, newest first.

    `total` counts the filtered list; movieCount/tvCount always cover the whole list.
    """
    try:
        page_offset = int(offset)
    except ValueError:
        raise bad_request("api.watchlist.invalidOffset")
    if page_offset < 0:
        raise bad_request("api.watchlist.invalidOffset")
    if media_type and media_type not in MEDIA_TYPES:
        raise bad_request("api.watchlist.invalidMediaType")

    user_id = auth.user.id
    query = select(Watchlist).where(Watchlist.user_id == user_id)
    if media_type:
        query = query.where(Watchlist.media_type == media_type)
    items = session.exec(
        query.order_by(Watchlist.added_at.desc()).offset(page_offset).limit(PAGE_SIZE)
    ).all()

    counts = dict(
        session.exec(
            select(Watchlist.media_type, func.count())
            .where(Watchlist.user_id == user_id)
            .group_by(Watchlist.media_type)
        ).all()
    )
    movie_count = counts.get("movie", 0)
    tv_count = counts.get("tv", 0)
    total = counts.get(media_type, 0) if media_type else movie_count + tv_count

    language = get_user_language(
        get_saved_language(session, user_id),
        request.cookies.get(LOCALE_COOKIE),
        request.headers.get("accept-language"),
    )

    return WatchlistPageResponse(
        items=[WatchlistItemResponse.model_validate(item) for item in items],
        total=total,
        movie_count=movie_count,
        tv_count=tv_count,
        offset=page_offset,
        limit=PAGE_SIZE,
        has_more=len(items) == PAGE_SIZE,
        language=language,
    )


@router.post("/watchlist/add", status_code=204, dependencies=[Depends(limit_by_ip("WRITE"))])
def add_to_watchlist(
    body: WatchlistItemRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_session),
):
    """
    Add a title. Adding a title that is already listed moves it to the top
    (added_at is refreshed).
    """
    existing = session.exec(
        select(Watchlist).where(
            Watchlist.user_id == auth.user.id,
            Watchlist.tmdb_id == body.tmdb_id,
            Watchlist.media_type == body.media_type,
        )
    ).first()

    if existing:
        existing.added_at = utcnow()
        session.add(existing)
    else:
        session.add(Watchlist(user_id=auth.user.id, tmdb_id=body.tmdb_id, media_type=body.media_type))

    try:
        session.commit()
    except IntegrityError:
        # Lost a race with a concurrent add of the same title; the row exists
        session.rollback()
        logger.info(f"Concurrent watchlist add for user {auth.user.id}: {body.media_type}/{body.tmdb_id}")
    return None


@router.post("/watchlist/remove", status_code=204, dependencies=[Depends(limit_by_ip("WRITE"))])
def remove_from_watchlist(
    body: WatchlistItemRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_session),
):
    item = session.exec(
        select(Watchlist).where(
            Watchlist.user_id == auth.user.id,
            Watchlist.tmdb_id == body.tmdb_id,
            Watchlist.media_type == body.media_type,
        )
    ).first()
    if item is None:
        raise not_found("api.watchlist.itemNotFound")

    session.delete(item)
    session.commit()
    return None
