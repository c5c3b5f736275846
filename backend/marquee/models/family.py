from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlmodel import Field, Relationship, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id

if TYPE_CHECKING:
    from marquee.models.family_invite import FamilyInvite
    from marquee.models.family_member import FamilyMember
    from marquee.models.user import User


class Family(SQLModel, table=True):
    id: str = Field(default_factory=generate_id, primary_key=True)
    owner_id: str = Field(foreign_key="users.id", unique=True)  # One family per owner
    name: str
    max_members: int = Field(default=1)  # Includes the owner
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    # Relationships
    owner: "User" = Relationship()
    members: List["FamilyMember"] = Relationship(back_populates="family")
    invites: List["FamilyInvite"] = Relationship(back_populates="family")
