"""
Watch-history upsert shared by the history routes and the streaming proxy,
plus the "continue watching" row built from a user's history.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from marquee.models.watch_history import WatchHistory
from marquee.utils.clock import utcnow

# Below this a play is treated as an accidental tap
MINIMUM_PROGRESS_THRESHOLD = 10
# At or above this a title counts as watched (credits)
COMPLETION_THRESHOLD = 90

CONTINUE_WATCHING_SCAN = 100
CONTINUE_WATCHING_LIMIT = 10
MAX_RESUME_STEPS = 200


def _find_entry(
    session: Session, user_id: str, tmdb_id: int, media_type: str, season_number: int, episode_number: int
) -> Optional[WatchHistory]:
    return session.exec(
        select(WatchHistory).where(
            WatchHistory.user_id == user_id,
            WatchHistory.tmdb_id == tmdb_id,
            WatchHistory.media_type == media_type,
            WatchHistory.season_number == season_number,
            WatchHistory.episode_number == episode_number,
        )
    ).first()


def _touch(entry: WatchHistory, progress: Optional[int]) -> None:
    if progress is not None:
        entry.progress = progress
    entry.last_watched_at = utcnow()


def record_progress(
    session: Session,
    user_id: str,
    tmdb_id: int,
    media_type: str,
    season_number: int,
    episode_number: int,
    progress: Optional[int] = None,
) -> WatchHistory:
    """
    Upsert one history row and bump last_watched_at. `progress=None` keeps the
    stored progress (used when playback starts). Commits.
    """
    entry = _find_entry(session, user_id, tmdb_id, media_type, season_number, episode_number)
    if entry is None:
        entry = WatchHistory(
            user_id=user_id,
            tmdb_id=tmdb_id,
            media_type=media_type,
            season_number=season_number,
            episode_number=episode_number,
        )
    _touch(entry, progress)
    session.add(entry)

    try:
        session.commit()
    except IntegrityError:
        # A concurrent request inserted the same entry first
        session.rollback()
        entry = _find_entry(session, user_id, tmdb_id, media_type, season_number, episode_number)
        _touch(entry, progress)
        session.add(entry)
        session.commit()
    return entry


# ============================================================================
# Continue watching
# ============================================================================


@dataclass(frozen=True)
class ResumePoint:
    season: int
    episode: int
    progress: int  # 0 = not started


@dataclass
class ContinueWatchingItem:
    id: str
    tmdb_id: int
    media_type: str
    season_number: int
    episode_number: int
    progress: int
    last_watched_at: datetime


FIRST_EPISODE = ResumePoint(season=1, episode=1, progress=0)


def _in_progress(entry: WatchHistory) -> bool:
    return MINIMUM_PROGRESS_THRESHOLD <= entry.progress < COMPLETION_THRESHOLD


def resolve_resume_episode(
    episodes: Sequence[WatchHistory], seasons: Optional[Dict[int, int]] = None
) -> ResumePoint:
    """
    Where a viewer should pick a series back up.

    The most recently watched in-progress episode wins. Otherwise it is the
    episode after the furthest completed one. `seasons` maps season number to
    episode count; without it the next episode number is returned as-is,
    with it season boundaries are followed and a finished series starts over
    at S1E1.
    """
    if not episodes:
        return FIRST_EPISODE

    in_progress = sorted((e for e in episodes if _in_progress(e)), key=lambda e: e.last_watched_at, reverse=True)
    if in_progress:
        current = in_progress[0]
        return ResumePoint(season=current.season_number, episode=current.episode_number, progress=current.progress)

    completed = [e for e in episodes if e.progress >= COMPLETION_THRESHOLD]
    if not completed:
        return FIRST_EPISODE
    furthest = max(completed, key=lambda e: (e.season_number, e.episode_number))

    if not seasons:
        return ResumePoint(season=furthest.season_number, episode=furthest.episode_number + 1, progress=0)

    watched = {(e.season_number, e.episode_number): e.progress for e in episodes}
    season, episode = furthest.season_number, furthest.episode_number + 1
    for _ in range(MAX_RESUME_STEPS):
        if season not in seasons:
            return FIRST_EPISODE
        if episode > seasons[season]:
            if seasons.get(season + 1, 0) > 0:
                season, episode = season + 1, 1
                continue
            return FIRST_EPISODE

        progress = watched.get((season, episode))
        if progress is None or progress < COMPLETION_THRESHOLD:
            return ResumePoint(season=season, episode=episode, progress=progress or 0)
        episode += 1

    return FIRST_EPISODE


def get_continue_watching(
    session: Session, user_id: str, limit: int = CONTINUE_WATCHING_LIMIT
) -> List[ContinueWatchingItem]:
    """
    Movies between the minimum and completion thresholds, plus one entry per
    series that has at least one episode past the minimum, pointing at its
    resume episode. Newest first, scanning the latest 100 history rows.
    """
    history = session.exec(
        select(WatchHistory)
        .where(WatchHistory.user_id == user_id)
        .order_by(WatchHistory.last_watched_at.desc())
        .limit(CONTINUE_WATCHING_SCAN)
    ).all()

    items: List[ContinueWatchingItem] = []
    series: Dict[int, List[WatchHistory]] = {}
    for entry in history:
        if entry.media_type == "tv":
            series.setdefault(entry.tmdb_id, []).append(entry)
        elif _in_progress(entry):
            items.append(
                ContinueWatchingItem(
                    id=entry.id,
                    tmdb_id=entry.tmdb_id,
                    media_type="movie",
                    season_number=0,
                    episode_number=0,
                    progress=entry.progress,
                    last_watched_at=entry.last_watched_at,
                )
            )

    for tmdb_id, episodes in series.items():
        if not any(e.progress >= MINIMUM_PROGRESS_THRESHOLD for e in episodes):
            continue
        resume = resolve_resume_episode(episodes)
        latest = episodes[0]  # history is newest first
        items.append(
            ContinueWatchingItem(
                id=latest.id,
                tmdb_id=tmdb_id,
                media_type="tv",
                season_number=resume.season,
                episode_number=resume.episode,
                progress=resume.progress,
                last_watched_at=latest.last_watched_at,
            )
        )

    items.sort(key=lambda item: item.last_watched_at, reverse=True)
    return items[:limit]
