"""
Client for the external streaming backend.

The backend receives the title plus the viewer's identity and plan, and answers
with a playable URL (and optionally qualities, subtitles and audio tracks).
"""

import logging
from typing import Any, Dict, Optional

import requests

from marquee.services.metrics import track_operation

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class StreamingError(Exception):
    """Base class for streaming backend failures."""


class StreamingTimeout(StreamingError):
    pass


class StreamingUnavailable(StreamingError):
    """Connection refused / DNS failure / reset."""


class StreamingUpstreamError(StreamingError):
    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message or f"Streaming backend returned HTTP {status_code}")
        self.status_code = status_code


class StreamingBadResponse(StreamingError):
    """2xx answer without a usable JSON body or url."""


class StreamingClient:
    def __init__(
        self,
        url: str,
        token: str = "",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http: Optional[requests.Session] = None,
    ):
        self.url = url
        self.token = token
        self.timeout = timeout
        self.http = http or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def resolve(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST `payload` and return the decoded JSON body.

        Raises:
            StreamingTimeout: no answer within `timeout`
            StreamingUnavailable: the backend could not be reached
            StreamingUpstreamError: non-2xx status
            StreamingBadResponse: body is not JSON or has no `url`
        """
        with track_operation("streaming.resolve", media_type=payload.get("mediaType")) as extra:
            try:
                response = self.http.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)
            except requests.Timeout as e:
                raise StreamingTimeout(f"Streaming backend timed out after {self.timeout}s") from e
            except requests.ConnectionError as e:
                raise StreamingUnavailable("Streaming backend unreachable") from e

            extra["status_code"] = response.status_code
            if not response.ok:
                logger.error(f"Streaming backend error {response.status_code}: {response.text[:200]}")
                raise StreamingUpstreamError(response.status_code)

            try:
                data = response.json()
            except ValueError as e:
                raise StreamingBadResponse("Streaming backend returned invalid JSON") from e

            if not isinstance(data, dict) or not data.get("url"):
                raise StreamingBadResponse("Streaming backend response has no url")
            return data
