from datetime import datetime

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id


class Watchlist(SQLModel, table=True):
    __table_args__ = (
        # A title appears at most once in a user's list
        SAUniqueConstraint("user_id", "tmdb_id", "media_type", name="uq_watchlist_user_title"),
    )

    id: str = Field(default_factory=generate_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    tmdb_id: int
    media_type: str  # movie|tv
    added_at: datetime = Field(default_factory=utcnow, index=True, sa_type=UTCDateTime)
