from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id, generate_token

if TYPE_CHECKING:
    from marquee.models.family import Family

INVITE_PENDING = "pending"
INVITE_ACCEPTED = "accepted"
INVITE_EXPIRED = "expired"
INVITE_REVOKED = "revoked"


class FamilyInvite(SQLModel, table=True):
    __tablename__ = "family_invite"

    id: str = Field(default_factory=generate_id, primary_key=True)
    family_id: str = Field(foreign_key="family.id", index=True)
    token: str = Field(default_factory=generate_token, index=True, unique=True)
    email: Optional[str] = Field(default=None)  # When set, only this address may accept
    status: str = Field(default=INVITE_PENDING, index=True)  # pending|accepted|expired|revoked
    expires_at: datetime = Field(index=True, sa_type=UTCDateTime)
    used_by: Optional[str] = Field(default=None, foreign_key="users.id")
    used_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    family: "Family" = Relationship(back_populates="invites")
