"""
Watch History API Routes
Playback progress per title (and per episode for TV).
"""

import logging
from datetime import datetime
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import Session, select

from marquee.api.responses import bad_request, not_found
from marquee.api.schemas import MEDIA_TYPES, WatchHistoryRequest
from marquee.auth import AuthContext
from marquee.database import get_session
from marquee.models.watch_history import WatchHistory
from marquee.security.rate_limit import limit_by_user
from marquee.services.watch_history import get_continue_watching, record_progress

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


class WatchHistoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    tmdb_id: int
    media_type: str
    season_number: int
    episode_number: int
    progress: int
    last_watched_at: datetime
    created_at: datetime


class WatchHistoryListResponse(BaseModel):
    history: List[WatchHistoryItemResponse]
    count: int


class ContinueWatchingItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    tmdb_id: int
    media_type: str
    season_number: int
    episode_number: int
    progress: int
    last_watched_at: datetime


class ContinueWatchingResponse(BaseModel):
    items: List[ContinueWatchingItemResponse]
    count: int


def _parse_int(value: Optional[str], message: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise bad_request(message)


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/watch-history", response_model=Union[WatchHistoryListResponse, ContinueWatchingResponse])
def get_watch_history(
    limit: Optional[str] = Query(None),
    continue_watching: Optional[str] = Query(None, alias="continueWatching"),
    tmdb_id: Optional[str] = Query(None, alias="tmdbId"),
    media_type: Optional[str] = Query(None, alias="mediaType"),
    auth: AuthContext = Depends(limit_by_user("watch-history:get", limit=60, interval=60)),
    session: Session = Depends(get_session),
):
    """
    Most recently watched first; `limit` is clamped to 1..100 (default 50).
    `?continueWatching=true` returns the continue-watching row instead.
    """
    if continue_watching == "true":
        rows = get_continue_watching(session, auth.user.id)
        items = [ContinueWatchingItemResponse.model_validate(row) for row in rows]
        return ContinueWatchingResponse(items=items, count=len(items))

    try:
        page_size = min(max(int(limit), 1), MAX_LIMIT) if limit else DEFAULT_LIMIT
    except ValueError:
        page_size = DEFAULT_LIMIT

    query = select(WatchHistory).where(WatchHistory.user_id == auth.user.id)

    title_id = _parse_int(tmdb_id, "api.watchHistory.invalidTmdbId")
    if title_id is not None:
        if title_id <= 0:
            raise bad_request("api.watchHistory.invalidTmdbId")
        query = query.where(WatchHistory.tmdb_id == title_id)

    if media_type:
        if media_type not in MEDIA_TYPES:
            raise bad_request("api.validation.mediaTypeMovieOrTv")
        query = query.where(WatchHistory.media_type == media_type)

    rows = session.exec(query.order_by(WatchHistory.last_watched_at.desc()).limit(page_size)).all()
    history = [WatchHistoryItemResponse.model_validate(row) for row in rows]
    return WatchHistoryListResponse(history=history, count=len(history))


@router.post("/watch-history", status_code=204)
def save_watch_history(
    body: WatchHistoryRequest,
    auth: AuthContext = Depends(limit_by_user("watch-history:post", limit=30, interval=60)),
    session: Session = Depends(get_session),
):
    """Movies are stored as season 0 / episode 0."""
    if body.media_type == "movie":
        season_number, episode_number = 0, 0
    else:
        season_number, episode_number = body.season_number, body.episode_number

    record_progress(
        session,
        auth.user.id,
        body.tmdb_id,
        body.media_type,
        season_number,
        episode_number,
        progress=round(min(max(body.progress, 0), 100)),
    )
    return None


@router.delete("/watch-history", status_code=204)
def delete_watch_history(
    tmdb_id: Optional[str] = Query(None, alias="tmdbId"),
    media_type: Optional[str] = Query(None, alias="mediaType"),
    season_number: Optional[str] = Query(None, alias="seasonNumber"),
    episode_number: Optional[str] = Query(None, alias="episodeNumber"),
    auth: AuthContext = Depends(limit_by_user("watch-history:delete", limit=10, interval=60)),
    session: Session = Depends(get_session),
):
    """
    Remove one entry (a movie, or an episode when both numbers are given) or,
    for a TV show without both numbers, every entry of that show.
    """
    if not tmdb_id:
        raise bad_request("api.watchHistory.tmdbIdMissing")
    title_id = _parse_int(tmdb_id, "api.watchHistory.tmdbIdRequired")
    if title_id <= 0:
        raise bad_request("api.watchHistory.tmdbIdRequired")
    if media_type not in MEDIA_TYPES:
        raise bad_request("api.validation.mediaTypeMovieOrTv")

    season = _parse_int(season_number, "api.watchHistory.seasonRange")
    if season is not None and season < 0:
        raise bad_request("api.watchHistory.seasonRange")
    episode = _parse_int(episode_number, "api.watchHistory.episodeRange")
    if episode is not None and episode < 0:
        raise bad_request("api.watchHistory.episodeRange")

    query = select(WatchHistory).where(
        WatchHistory.user_id == auth.user.id,
        WatchHistory.tmdb_id == title_id,
        WatchHistory.media_type == media_type,
    )

    if media_type == "tv" and (season is None or episode is None):
        entries = session.exec(query).all()
        for entry in entries:
            session.delete(entry)
        session.commit()
        logger.info(f"Removed {len(entries)} history entries for tv/{title_id} (user {auth.user.id})")
        return None

    if media_type == "movie":
        season, episode = 0, 0

    entry = session.exec(
        query.where(WatchHistory.season_number == season, WatchHistory.episode_number == episode)
    ).first()
    if entry is None:
        raise not_found("api.watchHistory.notFoundInHistory")

    session.delete(entry)
    session.commit()
    return None
