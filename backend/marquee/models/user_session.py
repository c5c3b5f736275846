"""Login sessions issued by the auth provider, looked up by cookie token."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id, generate_token

if TYPE_CHECKING:
    from marquee.models.user import User


class UserSession(SQLModel, table=True):
    __tablename__ = "session"

    id: str = Field(default_factory=generate_id, primary_key=True)
    token: str = Field(default_factory=generate_token, index=True, unique=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    expires_at: datetime = Field(sa_type=UTCDateTime)
    ip_address: Optional[str] = Field(default=None)
    user_agent: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}, sa_type=UTCDateTime)

    user: "User" = Relationship()
