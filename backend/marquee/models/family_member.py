from datetime import datetime
from typing import TYPE_CHECKING

from sqlmodel import Field, Relationship, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id

if TYPE_CHECKING:
    from marquee.models.family import Family
    from marquee.models.user import User


class FamilyMember(SQLModel, table=True):
    __tablename__ = "family_member"

    id: str = Field(default_factory=generate_id, primary_key=True)
    family_id: str = Field(foreign_key="family.id", index=True)
    user_id: str = Field(foreign_key="users.id", unique=True)  # One membership per user
    joined_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    # Relationships
    family: "Family" = Relationship(back_populates="members")
    user: "User" = Relationship()
