import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SQUARE_ACCESS_TOKEN", "test-token")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from square_billing.db.base import Base
from square_billing.models.subscription import Subscription

NOW = datetime(2024, 12, 25, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    """Fixed clock for engines that accept a `now` callable."""
    return lambda: NOW


@pytest.fixture
def plans_path(tmp_path):
    return tmp_path / "priv" / "test_plans.json"


@pytest.fixture
def db():
    """
    Function-scoped in-memory SQLite session with all tables created.
    StaticPool keeps one connection so FastAPI's worker threads see the same data.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    yield session
    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def make_subscription(db):
    def _make(**fields):
        data = {
            "owner_id": 1,
            "plan_id": "premium_monthly",
            "status": "ACTIVE",
            "square_subscription_id": None,
        }
        data.update(fields)
        subscription = Subscription(**data)
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription
    return _make


def days_from_now(days, hours=0):
    return NOW + timedelta(days=days, hours=hours)
