from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow


class Plan(SQLModel, table=True):
    id: str = Field(primary_key=True)  # plan_individual | plan_duo | plan_familia
    name: str
    screens: int = Field(default=1)  # Concurrent screens; family size including the owner
    price_monthly: Optional[float] = Field(default=None)
    price_yearly: Optional[float] = Field(default=None)
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
