from datetime import timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from marquee.config import Settings, get_settings
from marquee.database import build_engine, get_session, register_models
from marquee.main import app
from marquee.models.plan import Plan
from marquee.models.user import User
from marquee.models.user_session import UserSession
from marquee.security.rate_limit import get_rate_limiter
from marquee.services.metrics import get_metrics_store
from marquee.utils.clock import utcnow

TEST_DATABASE_URL = "sqlite:///:memory:"
SESSION_COOKIE = "marquee.session_token"
CRON_SECRET = "cron-test-secret"
ADMIN_SECRET = "admin-test-secret"
WEBHOOK_SECRET = "webhook-test-secret"
STREAMING_URL = "http://streaming.test/resolve"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. build_engine sets check_same_thread=False for TestClient/threaded access
# 3. Tables are dropped and recreated for every test
# 4. App dependencies (session, settings) overridden in client_fixture
test_engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session")
def session_fixture():
    """Fresh schema per test; the yielded session shares the DB with the app."""
    register_models()
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    """Settings the app sees during a test; mutate attributes to change behavior."""
    return Settings(
        app_env="test",
        cron_secret=CRON_SECRET,
        admin_secret_value=ADMIN_SECRET,
        payment_webhook_secret=WEBHOOK_SECRET,
        streaming_api_url=STREAMING_URL,
        streaming_api_token="streaming-token",
    )


@pytest.fixture(name="client")
def client_fixture(session: Session, settings: Settings):
    """Test client with the session and settings dependencies overridden."""
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_settings] = lambda: settings
    get_rate_limiter().clear()
    get_metrics_store().clear()

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    get_rate_limiter().clear()
    get_metrics_store().clear()


# ============================================================================
# Data helpers
# ============================================================================


@pytest.fixture(name="plans")
def plans_fixture(session: Session):
    plans = {
        "individual": Plan(id="plan_individual", name="Individual", screens=1, price_monthly=19.90),
        "duo": Plan(id="plan_duo", name="Duo", screens=2, price_monthly=29.90),
        "familia": Plan(id="plan_familia", name="Família", screens=4, price_monthly=39.90),
    }
    for plan in plans.values():
        session.add(plan)
    session.commit()
    return plans


def create_user(
    session: Session,
    email: str,
    name: str = "Test User",
    plan: Optional[Plan] = None,
    trial_days: Optional[int] = None,
) -> User:
    user = User(name=name, email=email)
    if plan is not None:
        user.plan_id = plan.id
        user.max_screens = plan.screens
    if trial_days is not None:
        user.trial_ends_at = utcnow() + timedelta(days=trial_days)
        user.trial_used = True
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def create_login(session: Session, user: User, user_agent: str = "pytest") -> UserSession:
    login = UserSession(user_id=user.id, expires_at=utcnow() + timedelta(days=7), user_agent=user_agent)
    session.add(login)
    session.commit()
    session.refresh(login)
    return login


def sign_in(client: TestClient, session: Session, user: User) -> UserSession:
    """Create a login session for `user` and make it the client's cookie."""
    login = create_login(session, user)
    client.cookies.set(SESSION_COOKIE, login.token)
    return login


def error_message(response) -> str:
    return response.json()["error"]["message"]
