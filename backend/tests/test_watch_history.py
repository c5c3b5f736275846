"""Tests for the watch-history endpoints and the shared upsert"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from marquee.models.watch_history import WatchHistory
from marquee.services.watch_history import (
    COMPLETION_THRESHOLD,
    MINIMUM_PROGRESS_THRESHOLD,
    ResumePoint,
    get_continue_watching,
    record_progress,
    resolve_resume_episode,
)
from marquee.utils.clock import utcnow
from tests.conftest import create_user, error_message, sign_in


@pytest.fixture(name="viewer")
def viewer_fixture(client: TestClient, session: Session):
    user = create_user(session, "viewer@example.com")
    sign_in(client, session, user)
    return user


def _entries(session: Session, user_id: str):
    session.expire_all()
    return session.exec(select(WatchHistory).where(WatchHistory.user_id == user_id)).all()


# ---------------------------------------------------------------------------
# record_progress
# ---------------------------------------------------------------------------


def test_record_progress_upserts(session: Session):
    user = create_user(session, "upsert@example.com")

    first = record_progress(session, user.id, 550, "movie", 0, 0, progress=10)
    first_seen = first.last_watched_at
    second = record_progress(session, user.id, 550, "movie", 0, 0, progress=80)

    assert second.id == first.id
    assert second.progress == 80
    assert second.last_watched_at >= first_seen
    assert len(_entries(session, user.id)) == 1


def test_record_progress_without_progress_keeps_value(session: Session):
    user = create_user(session, "keep@example.com")
    record_progress(session, user.id, 1399, "tv", 1, 2, progress=45)

    entry = record_progress(session, user.id, 1399, "tv", 1, 2)

    assert entry.progress == 45


# ---------------------------------------------------------------------------
# POST /watch-history
# ---------------------------------------------------------------------------


def test_save_movie_progress(client: TestClient, session: Session, viewer):
    response = client.post("/api/watch-history", json={"tmdbId": 550, "mediaType": "movie", "progress": 42.6})

    assert response.status_code == 204
    [entry] = _entries(session, viewer.id)
    assert (entry.season_number, entry.episode_number) == (0, 0)
    assert entry.progress == 43


def test_save_episode_progress(client: TestClient, session: Session, viewer):
    body = {"tmdbId": 1399, "mediaType": "tv", "seasonNumber": 2, "episodeNumber": 5, "progress": 100}

    assert client.post("/api/watch-history", json=body).status_code == 204
    assert client.post("/api/watch-history", json={**body, "episodeNumber": 6}).status_code == 204

    entries = _entries(session, viewer.id)
    assert sorted(e.episode_number for e in entries) == [5, 6]


def test_integral_float_tmdb_id_is_accepted(client: TestClient, session: Session, viewer):
    response = client.post("/api/watch-history", json={"tmdbId": 550.0, "mediaType": "movie", "progress": 0})

    assert response.status_code == 204
    [entry] = _entries(session, viewer.id)
    assert entry.tmdb_id == 550
    assert entry.progress == 0


@pytest.mark.parametrize(
    "body, message",
    [
        ({"tmdbId": 550, "mediaType": "movie", "progress": 5, "seasonNumber": 1}, "api.watchHistory.movieNoEpisode"),
        ({"tmdbId": 1399, "mediaType": "tv", "progress": 5, "episodeNumber": 1}, "api.watchHistory.seasonRequired"),
        ({"tmdbId": 1399, "mediaType": "tv", "progress": 5, "seasonNumber": 1}, "api.watchHistory.episodeRequired"),
        ({"tmdbId": 550, "mediaType": "movie"}, "api.watchHistory.progressRequired"),
        ({"tmdbId": 550, "mediaType": "movie", "progress": None}, "api.watchHistory.progressRequired"),
        ({"tmdbId": 550, "mediaType": "movie", "progress": "50"}, "api.watchHistory.progressRequired"),
        ({"tmdbId": 550, "mediaType": "movie", "progress": 150}, "api.watchHistory.progressRange"),
        ({"tmdbId": 550, "mediaType": "movie", "progress": -1}, "api.watchHistory.progressRange"),
        ({"tmdbId": 0, "mediaType": "movie", "progress": 5}, "api.validation.mediaIdPositive"),
        ({"tmdbId": 550.5, "mediaType": "movie", "progress": 5}, "api.validation.mediaIdPositive"),
    ],
)
def test_save_validation(client: TestClient, viewer, body, message):
    response = client.post("/api/watch-history", json=body)

    assert response.status_code == 400
    assert error_message(response) == message


# ---------------------------------------------------------------------------
# GET /watch-history
# ---------------------------------------------------------------------------


def test_list_newest_first_with_filters(client: TestClient, session: Session, viewer):
    now = utcnow()
    session.add(WatchHistory(user_id=viewer.id, tmdb_id=550, media_type="movie", last_watched_at=now - timedelta(hours=2)))
    session.add(
        WatchHistory(
            user_id=viewer.id,
            tmdb_id=1399,
            media_type="tv",
            season_number=1,
            episode_number=1,
            progress=30,
            last_watched_at=now,
        )
    )
    session.commit()

    data = client.get("/api/watch-history").json()
    assert data["count"] == 2
    assert [item["tmdbId"] for item in data["history"]] == [1399, 550]
    assert data["history"][0]["seasonNumber"] == 1
    assert data["history"][0]["progress"] == 30

    data = client.get("/api/watch-history", params={"mediaType": "movie"}).json()
    assert [item["tmdbId"] for item in data["history"]] == [550]

    data = client.get("/api/watch-history", params={"tmdbId": "1399"}).json()
    assert [item["mediaType"] for item in data["history"]] == ["tv"]


def test_list_limit_is_clamped(client: TestClient, session: Session, viewer):
    for i in range(3):
        session.add(WatchHistory(user_id=viewer.id, tmdb_id=10 + i, media_type="movie"))
    session.commit()

    assert client.get("/api/watch-history", params={"limit": "0"}).json()["count"] == 1
    assert client.get("/api/watch-history", params={"limit": "2"}).json()["count"] == 2
    assert client.get("/api/watch-history", params={"limit": "junk"}).json()["count"] == 3


def test_list_rejects_bad_filters(client: TestClient, viewer):
    response = client.get("/api/watch-history", params={"tmdbId": "abc"})
    assert response.status_code == 400
    assert error_message(response) == "api.watchHistory.invalidTmdbId"

    response = client.get("/api/watch-history", params={"mediaType": "anime"})
    assert error_message(response) == "api.validation.mediaTypeMovieOrTv"


# ---------------------------------------------------------------------------
# Continue watching
# ---------------------------------------------------------------------------


def _watched(
    session: Session,
    user_id: str,
    tmdb_id: int,
    media_type: str,
    season: int,
    episode: int,
    progress: int,
    minutes_ago: int,
) -> WatchHistory:
    entry = WatchHistory(
        user_id=user_id,
        tmdb_id=tmdb_id,
        media_type=media_type,
        season_number=season,
        episode_number=episode,
        progress=progress,
        last_watched_at=utcnow() - timedelta(minutes=minutes_ago),
    )
    session.add(entry)
    session.commit()
    return entry


def _episode(season: int, episode: int, progress: int, minutes_ago: int = 0) -> WatchHistory:
    return WatchHistory(
        user_id="u",
        tmdb_id=1399,
        media_type="tv",
        season_number=season,
        episode_number=episode,
        progress=progress,
        last_watched_at=utcnow() - timedelta(minutes=minutes_ago),
    )


def test_continue_watching_row(client: TestClient, session: Session, viewer):
    _watched(session, viewer.id, 550, "movie", 0, 0, 50, minutes_ago=5)
    _watched(session, viewer.id, 551, "movie", 0, 0, 95, minutes_ago=2)
    _watched(session, viewer.id, 552, "movie", 0, 0, 5, minutes_ago=3)
    _watched(session, viewer.id, 1399, "tv", 1, 1, 100, minutes_ago=30)
    _watched(session, viewer.id, 1399, "tv", 1, 2, 40, minutes_ago=20)
    latest = _watched(session, viewer.id, 1400, "tv", 2, 3, 100, minutes_ago=1)
    _watched(session, viewer.id, 1400, "tv", 1, 1, 100, minutes_ago=60)
    _watched(session, viewer.id, 1401, "tv", 1, 1, 5, minutes_ago=4)

    response = client.get("/api/watch-history", params={"continueWatching": "true"})

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 3
    assert [(i["tmdbId"], i["seasonNumber"], i["episodeNumber"], i["progress"]) for i in data["items"]] == [
        (1400, 2, 4, 0),
        (550, 0, 0, 50),
        (1399, 1, 2, 40),
    ]
    assert data["items"][0]["id"] == latest.id
    assert data["items"][0]["mediaType"] == "tv"
    assert "lastWatchedAt" in data["items"][0]


def test_continue_watching_is_capped(client: TestClient, session: Session, viewer):
    for i in range(12):
        _watched(session, viewer.id, 600 + i, "movie", 0, 0, 50, minutes_ago=i)

    data = client.get("/api/watch-history", params={"continueWatching": "true"}).json()

    assert data["count"] == 10
    assert data["items"][0]["tmdbId"] == 600


def test_continue_watching_empty(client: TestClient, viewer):
    assert client.get("/api/watch-history", params={"continueWatching": "true"}).json() == {"items": [], "count": 0}


def test_continue_watching_is_per_user(client: TestClient, session: Session, viewer):
    other = create_user(session, "other@example.com")
    _watched(session, other.id, 550, "movie", 0, 0, 50, minutes_ago=1)

    assert get_continue_watching(session, viewer.id) == []
    assert len(get_continue_watching(session, other.id)) == 1


class TestResolveResumeEpisode:
    def test_no_history_starts_at_beginning(self):
        assert resolve_resume_episode([]) == ResumePoint(1, 1, 0)

    def test_latest_in_progress_episode_wins(self):
        episodes = [_episode(1, 1, 30, minutes_ago=10), _episode(1, 4, 60, minutes_ago=1), _episode(1, 5, 100)]

        assert resolve_resume_episode(episodes) == ResumePoint(1, 4, 60)

    def test_only_accidental_plays(self):
        assert resolve_resume_episode([_episode(1, 3, MINIMUM_PROGRESS_THRESHOLD - 1)]) == ResumePoint(1, 1, 0)

    def test_next_after_furthest_completed(self):
        episodes = [_episode(2, 1, COMPLETION_THRESHOLD), _episode(1, 8, 100)]

        assert resolve_resume_episode(episodes) == ResumePoint(2, 2, 0)

    def test_crosses_season_boundary(self):
        assert resolve_resume_episode([_episode(1, 3, 100)], seasons={1: 3, 2: 2}) == ResumePoint(2, 1, 0)

    def test_keeps_progress_of_barely_started_next_episode(self):
        episodes = [_episode(1, 3, 100), _episode(2, 1, 5)]

        assert resolve_resume_episode(episodes, seasons={1: 3, 2: 2}) == ResumePoint(2, 1, 5)

    def test_finished_series_starts_over(self):
        assert resolve_resume_episode([_episode(1, 3, 100)], seasons={1: 3}) == ResumePoint(1, 1, 0)

    def test_unknown_season_starts_over(self):
        assert resolve_resume_episode([_episode(4, 1, 100)], seasons={1: 3}) == ResumePoint(1, 1, 0)


# ---------------------------------------------------------------------------
# DELETE /watch-history
# ---------------------------------------------------------------------------


def test_delete_movie(client: TestClient, session: Session, viewer):
    record_progress(session, viewer.id, 550, "movie", 0, 0, progress=50)

    response = client.delete("/api/watch-history", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 204
    assert _entries(session, viewer.id) == []


def test_delete_single_episode(client: TestClient, session: Session, viewer):
    record_progress(session, viewer.id, 1399, "tv", 1, 1)
    record_progress(session, viewer.id, 1399, "tv", 1, 2)

    response = client.delete(
        "/api/watch-history",
        params={"tmdbId": "1399", "mediaType": "tv", "seasonNumber": "1", "episodeNumber": "2"},
    )

    assert response.status_code == 204
    assert [e.episode_number for e in _entries(session, viewer.id)] == [1]


def test_delete_whole_show(client: TestClient, session: Session, viewer):
    record_progress(session, viewer.id, 1399, "tv", 1, 1)
    record_progress(session, viewer.id, 1399, "tv", 2, 3)
    record_progress(session, viewer.id, 550, "movie", 0, 0)

    response = client.delete("/api/watch-history", params={"tmdbId": "1399", "mediaType": "tv"})

    assert response.status_code == 204
    assert [e.tmdb_id for e in _entries(session, viewer.id)] == [550]


def test_delete_missing_entry(client: TestClient, viewer):
    response = client.delete("/api/watch-history", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 404
    assert error_message(response) == "api.watchHistory.notFoundInHistory"


@pytest.mark.parametrize(
    "params, message",
    [
        ({"mediaType": "movie"}, "api.watchHistory.tmdbIdMissing"),
        ({"tmdbId": "x", "mediaType": "movie"}, "api.watchHistory.tmdbIdRequired"),
        ({"tmdbId": "-3", "mediaType": "movie"}, "api.watchHistory.tmdbIdRequired"),
        ({"tmdbId": "550"}, "api.validation.mediaTypeMovieOrTv"),
        ({"tmdbId": "1399", "mediaType": "tv", "seasonNumber": "-1", "episodeNumber": "1"}, "api.watchHistory.seasonRange"),
        ({"tmdbId": "1399", "mediaType": "tv", "seasonNumber": "1", "episodeNumber": "e"}, "api.watchHistory.episodeRange"),
    ],
)
def test_delete_validation(client: TestClient, viewer, params, message):
    response = client.delete("/api/watch-history", params=params)

    assert response.status_code == 400
    assert error_message(response) == message


def test_delete_rate_limited(client: TestClient, session: Session, viewer):
    for _ in range(10):
        client.delete("/api/watch-history", params={"tmdbId": "550", "mediaType": "movie"})

    response = client.delete("/api/watch-history", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 429
    assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert "Retry-After" in response.headers
