from datetime import datetime

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id


class WatchHistory(SQLModel, table=True):
    __tablename__ = "watch_history"
    __table_args__ = (
        SAUniqueConstraint(
            "user_id",
            "tmdb_id",
            "media_type",
            "season_number",
            "episode_number",
            name="uq_watch_history_entry",
        ),
    )

    id: str = Field(default_factory=generate_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    tmdb_id: int = Field(index=True)
    media_type: str  # movie|tv
    season_number: int = Field(default=0)  # 0 for movies
    episode_number: int = Field(default=0)  # 0 for movies
    progress: int = Field(default=0)  # Percent watched, 0-100
    last_watched_at: datetime = Field(default_factory=utcnow, index=True, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
