"""
Streaming API Routes
Resolves a playable URL for a title through the external streaming backend,
plus a reference backend implementation for development.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Request, Response
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from marquee.api.responses import (
    bad_gateway,
    forbidden,
    gateway_timeout,
    internal_error,
    service_unavailable,
    unauthorized,
    validation_error,
    validation_failure,
)
from marquee.api.schemas import MEDIA_TYPES, StreamingQuery
from marquee.auth import resolve_auth, secrets_match
from marquee.config import Settings, get_settings
from marquee.database import get_session
from marquee.security.rate_limit import enforce, get_rate_limiter
from marquee.services.access import get_user_plan_info, has_streaming_access
from marquee.services.streaming_client import (
    StreamingBadResponse,
    StreamingClient,
    StreamingTimeout,
    StreamingUnavailable,
    StreamingUpstreamError,
)
from marquee.services.watch_history import record_progress
from marquee.utils.clock import to_iso, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

# Optional fields relayed from the backend answer when present
RELAYED_FIELDS = ("qualities", "defaultQuality", "subtitles", "audioTracks", "expiresAt", "quality")

EXAMPLE_VIDEOS = {
    550: "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4",
    603: "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ElephantsDream.mp4",
    27205: "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ForBiggerBlazes.mp4",
    1396: "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/Sintel.mp4",
    1399: "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/TearsOfSteel.mp4",
}
EXAMPLE_SUBTITLES = [
    {"label": "Português (BR)", "language": "pt-BR", "src": "/subtitles/pt-BR.vtt"},
    {"label": "English", "language": "en", "src": "/subtitles/en.vtt"},
    {"label": "Español", "language": "es", "src": "/subtitles/es.vtt"},
]


def streaming_backend_url(settings: Settings) -> Optional[str]:
    """Configured backend URL; development falls back to the bundled example backend."""
    url = settings.streaming_api_url.strip()
    if url:
        return url
    if settings.is_development:
        logger.warning("STREAMING_API_URL not configured - using the example backend")
        return f"{settings.app_url}/api/streaming/example"
    return None


def _track_playback(session: Session, user_id: str, query: StreamingQuery) -> None:
    """Bump last_watched_at for the title being opened. Failures are only logged."""
    if query.media_type == "tv":
        season, episode = query.season or 1, query.episode or 1
    else:
        season, episode = 0, 0
    try:
        record_progress(session, user_id, query.tmdb_id, query.media_type, season, episode)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to track watch history for user {user_id}: {e}")


# ============================================================================
# Proxy
# ============================================================================


@router.get("/streaming/get-url")
def get_stream_url(
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Resolve a playable URL.

    Order of checks: query validation, session, rate limit (30/min per user),
    entitlement, backend configuration, then the backend call.
    """
    try:
        query = StreamingQuery.model_validate(dict(request.query_params))
    except ValidationError as e:
        raise validation_failure(e)

    auth = resolve_auth(request, session, settings, "api.streaming.authRequired")
    user = auth.user
    enforce(get_rate_limiter().hit(f"streaming:url:{user.id}", 30, 60), response)

    if not has_streaming_access(session, user.id):
        raise forbidden("api.streaming.subscriptionRequired")
    plan_info = get_user_plan_info(session, user.id)
    if plan_info is None:
        raise internal_error("api.streaming.planNotFound")

    backend_url = streaming_backend_url(settings)
    if backend_url is None:
        logger.error("STREAMING_API_URL not configured in production")
        raise internal_error("api.streaming.serverNotConfigured")

    payload: Dict[str, Any] = {
        "tmdbId": query.tmdb_id,
        "mediaType": query.media_type,
        "userId": user.id,
        "userEmail": user.email or "anonymous",
        "userName": user.name or "User",
        "userPlan": plan_info.plan_name,
        "maxScreens": plan_info.max_screens,
    }
    if query.season:
        payload["season"] = query.season
    if query.episode:
        payload["episode"] = query.episode

    client = StreamingClient(backend_url, settings.streaming_api_token, settings.streaming_timeout_seconds)
    try:
        data = client.resolve(payload)
    except StreamingTimeout:
        logger.error(f"Streaming backend timed out for {query.media_type}/{query.tmdb_id}")
        raise gateway_timeout("api.streaming.timeout")
    except StreamingUnavailable:
        logger.error(f"Streaming backend unreachable at {backend_url}")
        raise service_unavailable("api.streaming.serverUnavailable")
    except StreamingUpstreamError as e:
        logger.error(f"Streaming backend answered HTTP {e.status_code}")
        raise bad_gateway("api.streaming.upstreamError")
    except StreamingBadResponse as e:
        logger.error(f"Streaming backend response unusable: {e}")
        raise bad_gateway("api.streaming.urlNotAvailable")

    _track_playback(session, user.id, query)

    result: Dict[str, Any] = {"success": True, "url": data["url"]}
    for key in RELAYED_FIELDS:
        if data.get(key):
            result[key] = data[key]
    return result


# ============================================================================
# Example backend
# ============================================================================


@router.post("/streaming/example")
def example_backend(
    body: Dict[str, Any] = Body(...),
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
):
    """Reference streaming backend: answers every title with a public sample video."""
    expected = settings.streaming_api_token
    if expected and not secrets_match(authorization or "", f"Bearer {expected}"):
        raise unauthorized("api.validation.invalidToken")

    tmdb_id = body.get("tmdbId")
    if not tmdb_id or body.get("mediaType") not in MEDIA_TYPES:
        raise validation_error("api.validation.missingParams")

    try:
        video_url = EXAMPLE_VIDEOS.get(int(tmdb_id), EXAMPLE_VIDEOS[550])
    except (TypeError, ValueError):
        video_url = EXAMPLE_VIDEOS[550]

    return {
        "url": video_url,
        "qualities": [{"label": "1080p", "url": video_url, "bitrate": 5000}],
        "defaultQuality": "1080p",
        "subtitles": EXAMPLE_SUBTITLES,
        "expiresAt": to_iso(utcnow() + timedelta(hours=1)),
    }


@router.get("/streaming/example")
def example_backend_info():
    return {
        "name": "Example Streaming Backend",
        "version": "1.0.0",
        "description": "Reference implementation of the streaming backend contract",
        "endpoints": {
            "resolve": {
                "method": "POST",
                "path": "/api/streaming/example",
                "body": {
                    "tmdbId": "number (required)",
                    "mediaType": '"movie" | "tv" (required)',
                    "userId": "string (required)",
                    "userPlan": "string (required)",
                    "season": "number (optional, for TV shows)",
                    "episode": "number (optional, for TV shows)",
                },
                "response": {
                    "url": "string (required)",
                    "qualities": "array (optional)",
                    "defaultQuality": "string (optional)",
                    "subtitles": "array (optional)",
                    "audioTracks": "array (optional)",
                    "expiresAt": "string (optional)",
                },
            }
        },
    }
