"""Test configuration and fixtures"""
from decimal import Decimal

import pytest
from unittest.mock import Mock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from redis import Redis
from redlock import Redlock

import kindplate.models  # noqa: F401
from kindplate.db.base import Base
from kindplate.models.business import Business
from kindplate.services.cart_persistence import InMemoryCartPersistence
from helpers import make_offer


@pytest.fixture
def db_engine():
    """In-memory SQLite shared by every connection (TestClient runs in another thread)"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(db_engine):
    SessionLocal = sessionmaker(bind=db_engine, expire_on_commit=False)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def mock_redis():
    """Mock Redis client with an empty cache"""
    redis_mock = Mock(spec=Redis)
    redis_mock.get.return_value = None
    redis_mock.setex.return_value = True
    redis_mock.delete.return_value = 1
    return redis_mock


@pytest.fixture
def mock_redlock():
    """Mock Redlock that always acquires"""
    redlock_mock = Mock(spec=Redlock)
    lock_mock = Mock()
    redlock_mock.lock.return_value = lock_mock
    redlock_mock.unlock.return_value = True
    return redlock_mock


@pytest.fixture
def persistence():
    return InMemoryCartPersistence()


# ---------- seeded rows ----------

@pytest.fixture
def business(db_session):
    row = Business(name="Bakery", address="Lenina 1")
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def other_business(db_session):
    row = Business(name="Cafe", address="Mira 5")
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture
def offer(db_session, business):
    return make_offer(db_session, business)


@pytest.fixture
def second_offer(db_session, business):
    return make_offer(
        db_session, business,
        title="Bread bag",
        original_price=Decimal("150.00"),
        discounted_price=Decimal("50.00"),
        pickup_time_start="17:00",
        pickup_time_end="21:30",
    )


@pytest.fixture
def foreign_offer(db_session, other_business):
    return make_offer(
        db_session, other_business,
        title="Salad",
        original_price=Decimal("300.00"),
        discounted_price=Decimal("120.00"),
    )
