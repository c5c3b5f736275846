"""Processed payment-gateway events, used to make the webhook idempotent."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from marquee.models.types import UTCDateTime
from marquee.utils.clock import utcnow
from marquee.utils.ids import generate_id


class PaymentEvent(SQLModel, table=True):
    __tablename__ = "payment_event"

    id: str = Field(default_factory=generate_id, primary_key=True)
    event_key: str = Field(unique=True)  # "<transactionId>_<type>"
    event_type: str  # payment.succeeded|payment.failed|payment.refunded
    user_id: str = Field(index=True)
    plan_id: Optional[str] = Field(default=None)
    amount: Optional[float] = Field(default=None)
    currency: Optional[str] = Field(default=None)
    processed_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
