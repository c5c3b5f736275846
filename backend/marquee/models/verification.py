from datetime import datetime

from sqlmodel import Field, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id


class Verification(SQLModel, table=True):
    """One-time codes issued by the auth provider (e.g. account deletion OTP)."""

    id: str = Field(default_factory=generate_id, primary_key=True)
    identifier: str = Field(index=True)  # e.g. "forget-password-otp-<email>"
    value: str  # "<otp>" or "<otp>:<attempts>"
    expires_at: datetime = Field(sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
