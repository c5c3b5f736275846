"""
Request schemas shared by the routes.

Wire format is camelCase; attributes are snake_case. Validators raise
ValueError(<i18n key>) so the first violation surfaces as the error message.
"""

import math
import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from marquee.avatars import is_valid_avatar_color, is_valid_avatar_icon
from marquee.i18n.language import is_supported_language

MEDIA_TYPES = ("movie", "tv")

NAME_RE = re.compile(r"^[a-zA-ZÀ-ÿ0-9\s\-_.]+$")
HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
OTP_RE = re.compile(r"^[0-9]{6}$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


def _check_media_type(value: Any) -> Any:
    if value not in MEDIA_TYPES:
        raise ValueError("api.validation.mediaTypeInvalid")
    return value


def _check_tmdb_id(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError("api.validation.mediaIdPositive")
    return value


def _check_cuid(value: Optional[str], message: str) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not 20 <= len(value) <= 30:
        raise ValueError(message)
    return value


# ---------------------------------------------------------------------------
# Contact
# ---------------------------------------------------------------------------


class ContactRequest(CamelModel):
    name: str = Field(min_length=3, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=5, max_length=200)
    message: str = Field(min_length=20, max_length=5000)

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


# ---------------------------------------------------------------------------
# Watchlist / watch history
# ---------------------------------------------------------------------------


class TitleRequest(CamelModel):
    """A catalog title: positive tmdbId plus mediaType."""

    tmdb_id: int
    media_type: str

    @field_validator("tmdb_id", mode="before")
    @classmethod
    def check_tmdb_id(cls, value: Any) -> Any:
        return _check_tmdb_id(value)

    @field_validator("media_type", mode="before")
    @classmethod
    def check_media_type(cls, value: Any) -> Any:
        return _check_media_type(value)


class WatchlistItemRequest(TitleRequest):
    pass


class WatchHistoryRequest(TitleRequest):
    progress: Optional[float] = Field(default=None, validate_default=True)
    season_number: Optional[int] = None
    episode_number: Optional[int] = None

    @field_validator("progress", mode="before")
    @classmethod
    def check_progress(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            raise ValueError("api.watchHistory.progressRequired")
        if not 0 <= value <= 100:
            raise ValueError("api.watchHistory.progressRange")
        return value

    @model_validator(mode="after")
    def check_episode(self) -> "WatchHistoryRequest":
        if self.media_type == "movie":
            if self.season_number is not None or self.episode_number is not None:
                raise ValueError("api.watchHistory.movieNoEpisode")
        else:
            if self.season_number is None or self.season_number < 1:
                raise ValueError("api.watchHistory.seasonRequired")
            if self.episode_number is None or self.episode_number < 1:
                raise ValueError("api.watchHistory.episodeRequired")
        return self


class StreamingQuery(CamelModel):
    """Query string for /streaming/get-url; values arrive as strings and are coerced."""

    tmdb_id: int
    media_type: str
    season: Optional[int] = None
    episode: Optional[int] = None

    @field_validator("media_type", mode="before")
    @classmethod
    def check_media_type(cls, value: Any) -> Any:
        return _check_media_type(value)

    @field_validator("tmdb_id", mode="before")
    @classmethod
    def coerce_tmdb_id(cls, value: Any) -> Any:
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValueError("api.validation.mediaIdPositive")
        return _check_tmdb_id(number)

    @field_validator("season", "episode", mode="before")
    @classmethod
    def coerce_positive(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValueError("api.validation.episodeInvalid")
        if number < 1:
            raise ValueError("api.validation.episodeInvalid")
        return number

    @model_validator(mode="after")
    def movie_has_no_episode(self) -> "StreamingQuery":
        if self.media_type == "movie" and (self.season is not None or self.episode is not None):
            raise ValueError("api.validation.movieNoSeasonEpisode")
        return self


# ---------------------------------------------------------------------------
# Family
# ---------------------------------------------------------------------------


class CreateFamilyInviteRequest(CamelModel):
    email: Optional[EmailStr] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if len(value) > 254:
                raise ValueError("api.validation.emailTooLong")
        return value


class AcceptFamilyInviteRequest(CamelModel):
    token: str

    @field_validator("token")
    @classmethod
    def check_token(cls, value: str) -> str:
        return _check_cuid(value, "api.validation.inviteTokenInvalid")


class RevokeFamilyInviteRequest(CamelModel):
    invite_id: str

    @field_validator("invite_id")
    @classmethod
    def check_invite_id(cls, value: str) -> str:
        return _check_cuid(value, "api.validation.inviteIdInvalid")


class ManageFamilyMemberRequest(CamelModel):
    """Either memberId (owner removes a member) or leave=true (member leaves)."""

    member_id: Optional[str] = None
    leave: Optional[bool] = None

    @field_validator("member_id")
    @classmethod
    def check_member_id(cls, value: Optional[str]) -> Optional[str]:
        return _check_cuid(value, "api.validation.memberIdInvalid")

    @model_validator(mode="after")
    def exactly_one_action(self) -> "ManageFamilyMemberRequest":
        removing = bool(self.member_id) and not self.leave
        leaving = not self.member_id and self.leave is True
        if not (removing or leaving):
            raise ValueError("api.validation.memberIdOrLeave")
        return self


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class UpdateNameRequest(CamelModel):
    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if len(value) < 2:
            raise ValueError("api.settings.nameTooShort")
        if len(value) > 100:
            raise ValueError("api.settings.nameTooLong")
        if not NAME_RE.match(value):
            raise ValueError("api.settings.nameInvalid")
        return value


class UpdateAvatarRequest(CamelModel):
    avatar_icon: str
    avatar_color: str

    @field_validator("avatar_icon")
    @classmethod
    def check_icon(cls, value: str) -> str:
        if not is_valid_avatar_icon(value):
            raise ValueError("api.settings.avatarInvalidIcon")
        return value

    @field_validator("avatar_color")
    @classmethod
    def check_color(cls, value: str) -> str:
        if not is_valid_avatar_color(value):
            raise ValueError("api.settings.avatarInvalidColor")
        return value


class PreferencesUpdate(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True, extra="forbid"
    )

    language: Optional[str] = None
    autoplay_next: Optional[bool] = None
    autoplay_trailer: Optional[bool] = None
    subtitle_enabled: Optional[bool] = None
    subtitle_lang: Optional[str] = Field(default=None, min_length=2, max_length=10)
    subtitle_size: Optional[Literal["small", "medium", "large", "xlarge"]] = None
    subtitle_color: Optional[str] = None
    subtitle_bg: Optional[str] = Field(default=None, max_length=50)
    subtitle_font: Optional[Literal["default", "serif", "mono", "casual"]] = None
    email_new_releases: Optional[bool] = None
    email_recommendations: Optional[bool] = None
    email_account_alerts: Optional[bool] = None
    email_marketing: Optional[bool] = None
    push_new_releases: Optional[bool] = None
    push_recommendations: Optional[bool] = None
    push_account_alerts: Optional[bool] = None

    @field_validator("language")
    @classmethod
    def check_language(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_supported_language(value):
            raise ValueError("api.settings.invalidLanguage")
        return value

    @field_validator("subtitle_color")
    @classmethod
    def check_color(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not HEX_COLOR_RE.match(value):
            raise ValueError("api.settings.invalidColor")
        return value

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class DeleteSessionRequest(CamelModel):
    session_id: Optional[str] = None
    all: bool = False

    @model_validator(mode="after")
    def session_or_all(self) -> "DeleteSessionRequest":
        if not self.all and not self.session_id:
            raise ValueError("api.sessions.sessionIdRequired")
        return self


class DeleteAccountRequest(CamelModel):
    otp: str

    @field_validator("otp")
    @classmethod
    def check_otp(cls, value: str) -> str:
        if not OTP_RE.match(value):
            raise ValueError("api.settings.deleteOtpInvalid")
        return value


# ---------------------------------------------------------------------------
# Payment webhook
# ---------------------------------------------------------------------------


PAYMENT_EVENT_TYPES = ("payment.succeeded", "payment.failed", "payment.refunded")


class PaymentWebhookPayload(CamelModel):
    type: str
    user_id: str
    plan_id: str
    transaction_id: str
    amount: Optional[float] = Field(default=None, gt=0)
    currency: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("type")
    @classmethod
    def check_type(cls, value: str) -> str:
        if value not in PAYMENT_EVENT_TYPES:
            raise ValueError("api.payment.invalidEventType")
        return value

    @field_validator("user_id")
    @classmethod
    def check_user_id(cls, value: str) -> str:
        if not value:
            raise ValueError("api.payment.userIdRequired")
        return value

    @field_validator("plan_id")
    @classmethod
    def check_plan_id(cls, value: str) -> str:
        if not value:
            raise ValueError("api.payment.planIdRequired")
        return value

    @field_validator("transaction_id")
    @classmethod
    def check_transaction_id(cls, value: str) -> str:
        if not value:
            raise ValueError("api.payment.transactionIdRequired")
        return value
