from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id

if TYPE_CHECKING:
    from marquee.models.plan import Plan


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=generate_id, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)  # Stored lowercased
    email_verified: bool = Field(default=False)
    avatar_icon: Optional[str] = Field(default=None)  # AVATAR_ICONS id
    avatar_color: Optional[str] = Field(default=None)  # AVATAR_COLORS id

    # Subscription
    plan_id: Optional[str] = Field(default=None, foreign_key="plan.id", index=True)
    max_screens: int = Field(default=1)
    trial_ends_at: Optional[datetime] = Field(default=None, index=True, sa_type=UTCDateTime)
    trial_used: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}, sa_type=UTCDateTime)

    plan: Optional["Plan"] = Relationship()
