from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id


class UserPreferences(SQLModel, table=True):
    __tablename__ = "user_preferences"

    id: str = Field(default_factory=generate_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True)

    language: str = Field(default="en-US")  # Content language code, e.g. pt-BR

    # Playback
    autoplay_next: bool = Field(default=True)
    autoplay_trailer: bool = Field(default=True)

    # Subtitles
    subtitle_enabled: bool = Field(default=False)
    subtitle_lang: Optional[str] = Field(default=None)
    subtitle_size: str = Field(default="medium")  # small|medium|large|xlarge
    subtitle_color: str = Field(default="#FFFFFF")
    subtitle_bg: str = Field(default="transparent")
    subtitle_font: str = Field(default="default")  # default|serif|mono|casual

    # Notifications
    email_new_releases: bool = Field(default=True)
    email_recommendations: bool = Field(default=True)
    email_account_alerts: bool = Field(default=True)
    email_marketing: bool = Field(default=False)
    push_new_releases: bool = Field(default=True)
    push_recommendations: bool = Field(default=False)
    push_account_alerts: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}, sa_type=UTCDateTime)
