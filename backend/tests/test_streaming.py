"""
Tests for the streaming proxy (/api/streaming/get-url) and the example backend.

The external backend is replaced by patching requests.Session.post.
"""

from datetime import timedelta
from typing import Any, Dict, List

import pytest
import requests
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from marquee.config import Settings
from marquee.models.family import Family
from marquee.models.family_member import FamilyMember
from marquee.models.watch_history import WatchHistory
from marquee.routes.streaming import EXAMPLE_VIDEOS, streaming_backend_url
from marquee.services.metrics import get_metrics_store
from marquee.utils.clock import utcnow
from tests.conftest import STREAMING_URL, create_user, error_message, sign_in


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self._body = body
        self.text = str(body)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


@pytest.fixture(name="backend")
def backend_fixture(monkeypatch):
    """Records outbound calls; set `answer` to a FakeResponse or an exception."""
    state: Dict[str, Any] = {
        "calls": [],
        "answer": FakeResponse(200, {"url": "https://cdn.test/video.m3u8", "defaultQuality": "720p", "ignored": 1}),
    }

    def fake_post(self, url, json=None, headers=None, timeout=None):
        state["calls"].append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if isinstance(state["answer"], Exception):
            raise state["answer"]
        return state["answer"]

    monkeypatch.setattr(requests.Session, "post", fake_post)
    return state


@pytest.fixture(name="subscriber")
def subscriber_fixture(client: TestClient, session: Session, plans):
    user = create_user(session, "viewer@example.com", name="Vera", plan=plans["duo"])
    sign_in(client, session, user)
    return user


def _history(session: Session, user_id: str) -> List[WatchHistory]:
    session.expire_all()
    return session.exec(select(WatchHistory).where(WatchHistory.user_id == user_id)).all()


# ---------------------------------------------------------------------------
# Proxy
# ---------------------------------------------------------------------------


def test_resolves_movie_url(client: TestClient, session: Session, subscriber, backend):
    response = client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "url": "https://cdn.test/video.m3u8", "defaultQuality": "720p"}
    assert response.headers["X-RateLimit-Limit"] == "30"

    [call] = backend["calls"]
    assert call["url"] == STREAMING_URL
    assert call["headers"]["Authorization"] == "Bearer streaming-token"
    assert call["json"] == {
        "tmdbId": 550,
        "mediaType": "movie",
        "userId": subscriber.id,
        "userEmail": "viewer@example.com",
        "userName": "Vera",
        "userPlan": "Duo",
        "maxScreens": 2,
    }

    [entry] = _history(session, subscriber.id)
    assert (entry.tmdb_id, entry.season_number, entry.episode_number) == (550, 0, 0)
    assert [m.operation for m in get_metrics_store().get_metrics()] == ["streaming.resolve"]


def test_resolves_episode_and_tracks_it(client: TestClient, session: Session, subscriber, backend):
    response = client.get(
        "/api/streaming/get-url", params={"tmdbId": "1399", "mediaType": "tv", "season": "2", "episode": "3"}
    )

    assert response.status_code == 200
    assert backend["calls"][0]["json"]["season"] == 2
    assert backend["calls"][0]["json"]["episode"] == 3
    [entry] = _history(session, subscriber.id)
    assert (entry.season_number, entry.episode_number) == (2, 3)


def test_tv_without_episode_tracks_first_episode(client: TestClient, session: Session, subscriber, backend):
    client.get("/api/streaming/get-url", params={"tmdbId": "1399", "mediaType": "tv"})

    assert "season" not in backend["calls"][0]["json"]
    [entry] = _history(session, subscriber.id)
    assert (entry.season_number, entry.episode_number) == (1, 1)


def test_family_member_streams_on_owner_plan(client: TestClient, session: Session, plans, backend):
    owner = create_user(session, "owner@example.com", plan=plans["familia"])
    family = Family(owner_id=owner.id, name="Family", max_members=4)
    session.add(family)
    session.commit()
    member = create_user(session, "member@example.com")
    session.add(FamilyMember(family_id=family.id, user_id=member.id))
    session.commit()
    sign_in(client, session, member)

    response = client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 200
    assert backend["calls"][0]["json"]["userPlan"] == "Família"
    assert backend["calls"][0]["json"]["maxScreens"] == 4


def test_requires_session(client: TestClient, backend):
    response = client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 401
    assert error_message(response) == "api.streaming.authRequired"


@pytest.mark.parametrize(
    "params, message",
    [
        ({"mediaType": "movie"}, "api.validation.required"),
        ({"tmdbId": "abc", "mediaType": "movie"}, "api.validation.mediaIdPositive"),
        ({"tmdbId": "550", "mediaType": "book"}, "api.validation.mediaTypeInvalid"),
        ({"tmdbId": "550", "mediaType": "movie", "season": "1"}, "api.validation.movieNoSeasonEpisode"),
        ({"tmdbId": "1399", "mediaType": "tv", "season": "0"}, "api.validation.episodeInvalid"),
    ],
)
def test_query_is_validated_before_auth(client: TestClient, backend, params, message):
    response = client.get("/api/streaming/get-url", params=params)

    assert response.status_code == 400
    assert error_message(response) == message
    assert backend["calls"] == []


def test_requires_subscription(client: TestClient, session: Session, backend):
    user = create_user(session, "free@example.com")
    sign_in(client, session, user)

    response = client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 403
    assert error_message(response) == "api.streaming.subscriptionRequired"
    assert backend["calls"] == []


def test_expired_trial_has_no_access(client: TestClient, session: Session, plans, backend):
    user = create_user(session, "trial@example.com", plan=plans["duo"], trial_days=-1)
    sign_in(client, session, user)

    response = client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 403


def test_backend_not_configured(client: TestClient, settings: Settings, subscriber, backend):
    settings.streaming_api_url = ""

    response = client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 500
    assert error_message(response) == "api.streaming.serverNotConfigured"


@pytest.mark.parametrize(
    "answer, status, message",
    [
        (requests.Timeout("slow"), 504, "api.streaming.timeout"),
        (requests.ConnectionError("refused"), 503, "api.streaming.serverUnavailable"),
        (FakeResponse(500, {"error": "boom"}), 502, "api.streaming.upstreamError"),
        (FakeResponse(200, {"qualities": []}), 502, "api.streaming.urlNotAvailable"),
        (FakeResponse(200, ValueError("not json")), 502, "api.streaming.urlNotAvailable"),
    ],
)
def test_backend_failures(client: TestClient, session: Session, subscriber, backend, answer, status, message):
    backend["answer"] = answer

    response = client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == status
    assert error_message(response) == message
    assert _history(session, subscriber.id) == []
    [metric] = get_metrics_store().get_metrics()
    assert metric.success is False


def test_rate_limit_per_user(client: TestClient, subscriber, backend):
    for _ in range(30):
        client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    response = client.get("/api/streaming/get-url", params={"tmdbId": "550", "mediaType": "movie"})

    assert response.status_code == 429
    assert len(backend["calls"]) == 30


# ---------------------------------------------------------------------------
# Backend URL selection
# ---------------------------------------------------------------------------


def test_development_falls_back_to_example_backend():
    settings = Settings(app_env="development", app_url="http://localhost:3000")
    assert streaming_backend_url(settings) == "http://localhost:3000/api/streaming/example"


def test_production_has_no_fallback():
    assert streaming_backend_url(Settings(app_env="production")) is None
    assert streaming_backend_url(Settings(app_env="production", streaming_api_url=" http://x/ ")) == "http://x/"


# ---------------------------------------------------------------------------
# Example backend
# ---------------------------------------------------------------------------


def test_example_backend_answers_with_sample(client: TestClient):
    response = client.post(
        "/api/streaming/example",
        json={"tmdbId": 603, "mediaType": "movie", "userId": "u1", "userPlan": "Duo"},
        headers={"Authorization": "Bearer streaming-token"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["url"] == EXAMPLE_VIDEOS[603]
    assert data["defaultQuality"] == "1080p"
    assert {s["language"] for s in data["subtitles"]} == {"pt-BR", "en", "es"}
    assert data["expiresAt"].endswith("Z")


def test_example_backend_unknown_title_gets_default(client: TestClient):
    response = client.post(
        "/api/streaming/example",
        json={"tmdbId": 42, "mediaType": "tv"},
        headers={"Authorization": "Bearer streaming-token"},
    )

    assert response.json()["url"] == EXAMPLE_VIDEOS[550]


def test_example_backend_checks_token(client: TestClient):
    response = client.post("/api/streaming/example", json={"tmdbId": 550, "mediaType": "movie"})

    assert response.status_code == 401
    assert error_message(response) == "api.validation.invalidToken"


def test_example_backend_rejects_non_ascii_token(client: TestClient):
    response = client.post(
        "/api/streaming/example",
        json={"tmdbId": 550, "mediaType": "movie"},
        headers={"Authorization": b"Bearer caf\xe9"},
    )

    assert response.status_code == 401


def test_example_backend_requires_params(client: TestClient):
    response = client.post(
        "/api/streaming/example", json={"mediaType": "movie"}, headers={"Authorization": "Bearer streaming-token"}
    )

    assert response.status_code == 400
    assert error_message(response) == "api.validation.missingParams"


def test_example_backend_descriptor(client: TestClient):
    response = client.get("/api/streaming/example")

    assert response.status_code == 200
    assert response.json()["endpoints"]["resolve"]["path"] == "/api/streaming/example"


def test_trial_expiry_helpers():
    from marquee.services.trial import is_trial_active, trial_days_remaining

    now = utcnow()
    assert is_trial_active(now + timedelta(hours=1), now) is True
    assert is_trial_active(now - timedelta(seconds=1), now) is False
    assert trial_days_remaining(now + timedelta(days=2, hours=1), now) == 3
    assert trial_days_remaining(None) == 0
