"""Tests for UTC timestamps and their storage"""

from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from marquee.models.types import UTCDateTime
from marquee.models.user import User
from marquee.utils.clock import to_iso, utcnow
from tests.conftest import create_user


def test_utcnow_is_aware():
    assert utcnow().tzinfo is not None
    assert utcnow().utcoffset() == timedelta(0)


def test_to_iso():
    value = datetime(2026, 3, 1, 12, 30, 5, 123456, tzinfo=timezone.utc)

    assert to_iso(value) == "2026-03-01T12:30:05.123Z"
    assert to_iso(None) is None


def test_to_iso_converts_offsets_to_utc():
    value = datetime(2026, 3, 1, 9, 0, tzinfo=timezone(timedelta(hours=-3)))

    assert to_iso(value) == "2026-03-01T12:00:00.000Z"


def test_timestamps_read_back_aware(session: Session):
    user = create_user(session, "aware@example.com", trial_days=3)
    user_id = user.id
    session.expire_all()

    stored = session.get(User, user_id)

    assert stored.created_at.tzinfo is not None
    assert stored.trial_ends_at.utcoffset() == timedelta(0)
    assert stored.trial_ends_at > utcnow()


def test_offset_values_are_stored_as_utc(session: Session):
    user = create_user(session, "offset@example.com")
    user.trial_ends_at = datetime(2026, 5, 1, 21, 0, tzinfo=timezone(timedelta(hours=-3)))
    session.add(user)
    session.commit()
    session.expire_all()

    stored = session.get(User, user.id)

    assert stored.trial_ends_at == datetime(2026, 5, 2, 0, 0, tzinfo=timezone.utc)


def test_naive_bind_values_are_treated_as_utc():
    column_type = UTCDateTime()

    bound = column_type.process_bind_param(datetime(2026, 1, 1, 8, 0), None)

    assert bound == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)
    assert column_type.process_bind_param(None, None) is None
