"""Tests for the scheduled maintenance endpoints"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from marquee.config import Settings
from marquee.models.family import Family
from marquee.models.family_invite import INVITE_ACCEPTED, INVITE_EXPIRED, INVITE_PENDING, FamilyInvite
from marquee.models.family_member import FamilyMember
from marquee.models.user import User
from marquee.utils.clock import utcnow
from tests.conftest import CRON_SECRET, create_user

HEADERS = {"Authorization": f"Bearer {CRON_SECRET}"}


@pytest.mark.parametrize("path", ["/api/cron/expire-invites", "/api/cron/expire-trials"])
@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer nope"}, {"Authorization": CRON_SECRET}])
def test_cron_requires_bearer_secret(client: TestClient, path, headers):
    response = client.post(path, headers=headers)

    assert response.status_code == 401


def test_cron_without_secret(client: TestClient, settings: Settings):
    settings.cron_secret = ""
    assert client.post("/api/cron/expire-invites", headers=HEADERS).status_code == 401

    settings.app_env = "production"
    response = client.post("/api/cron/expire-invites", headers=HEADERS)
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "SERVER_MISCONFIGURED"


def test_expire_invites(client: TestClient, session: Session):
    owner = create_user(session, "owner@example.com")
    family = Family(owner_id=owner.id, name="Family", max_members=4)
    session.add(family)
    session.commit()
    now = utcnow()
    stale = FamilyInvite(family_id=family.id, expires_at=now - timedelta(minutes=1))
    fresh = FamilyInvite(family_id=family.id, expires_at=now + timedelta(days=1))
    used = FamilyInvite(family_id=family.id, status=INVITE_ACCEPTED, expires_at=now - timedelta(days=1))
    session.add_all([stale, fresh, used])
    session.commit()
    ids = {"stale": stale.id, "fresh": fresh.id, "used": used.id}

    response = client.post("/api/cron/expire-invites", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["expiredCount"] == 1
    assert data["timestamp"].endswith("Z")
    session.expire_all()
    assert session.get(FamilyInvite, ids["stale"]).status == INVITE_EXPIRED
    assert session.get(FamilyInvite, ids["fresh"]).status == INVITE_PENDING
    assert session.get(FamilyInvite, ids["used"]).status == INVITE_ACCEPTED


def test_expire_trials_drops_plan_and_family(client: TestClient, session: Session, plans):
    lapsed = create_user(session, "lapsed@example.com", plan=plans["duo"], trial_days=-1)
    running = create_user(session, "running@example.com", plan=plans["duo"], trial_days=3)
    paying = create_user(session, "paying@example.com", plan=plans["familia"])
    family = Family(owner_id=lapsed.id, name="Family", max_members=2)
    session.add(family)
    session.commit()
    family_id = family.id
    member = create_user(session, "member@example.com")
    session.add(FamilyMember(family_id=family_id, user_id=member.id))
    session.add(FamilyInvite(family_id=family_id, expires_at=utcnow() + timedelta(days=1)))
    session.commit()

    response = client.post("/api/cron/expire-trials", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["expiredCount"] == 1
    session.expire_all()
    refreshed = session.get(User, lapsed.id)
    assert refreshed.plan_id is None
    assert refreshed.max_screens == 1
    assert refreshed.trial_ends_at is None
    assert refreshed.trial_used is True
    assert session.get(Family, family_id) is None
    assert session.exec(select(FamilyMember)).all() == []
    assert session.exec(select(FamilyInvite)).all() == []
    assert session.get(User, running.id).plan_id == "plan_duo"
    assert session.get(User, paying.id).plan_id == "plan_familia"


def test_expire_trials_with_nothing_to_do(client: TestClient, session: Session):
    response = client.post("/api/cron/expire-trials", headers=HEADERS)

    assert response.json()["expiredCount"] == 0
