"""Dependency injection tests"""
import pytest
from unittest.mock import Mock, patch
from fastapi import HTTPException
from sqlalchemy.orm import Session
from redis import Redis
from redlock import Redlock

from kindplate.core.config import settings
from kindplate.core.dependencies import (
    get_cart_persistence,
    get_cart_service,
    get_current_business_id,
    get_current_user_id,
    get_db,
    get_order_service,
    get_payment_service,
    get_redis,
    get_redlock,
)
from kindplate.core.redis import lock_servers
from kindplate.db.session import build_engine
from kindplate.services.cart_persistence import RedisCartPersistence, SqlCartPersistence
from kindplate.services.cart_service import CartService
from kindplate.services.order_service import OrderService
from kindplate.services.payment_service import PaymentService


class TestDependencies:

    def test_get_db(self):
        with patch('kindplate.core.dependencies.SessionLocal') as mock_session_local:
            db_mock = Mock(spec=Session)
            mock_session_local.return_value = db_mock

            gen = get_db()
            db = next(gen)

            assert db == db_mock
            mock_session_local.assert_called_once()

            gen.close()
            db_mock.close.assert_called_once()

    def test_get_redis_success(self):
        with patch('kindplate.core.dependencies.redis_client') as mock_redis_client:
            mock_redis_client.ping.return_value = True

            assert get_redis() == mock_redis_client
            mock_redis_client.ping.assert_called_once()

    def test_get_redis_failure(self):
        with patch('kindplate.core.dependencies.redis_client') as mock_redis_client:
            mock_redis_client.ping.side_effect = Exception("connection refused")

            assert get_redis() is None

    def test_get_redlock_success(self):
        with patch('kindplate.core.dependencies.redlock') as mock_redlock:
            mock_redlock.servers = [Mock()]

            assert get_redlock() == mock_redlock

    def test_get_redlock_without_servers(self):
        with patch('kindplate.core.dependencies.redlock') as mock_redlock:
            mock_redlock.servers = []

            assert get_redlock() is None

    def test_identity_headers(self):
        assert get_current_user_id(5) == 5
        assert get_current_business_id(7) == 7

        with pytest.raises(HTTPException) as exc_info:
            get_current_user_id(None)
        assert exc_info.value.status_code == 401

        with pytest.raises(HTTPException) as exc_info:
            get_current_business_id(None)
        assert exc_info.value.status_code == 403

    def test_cart_persistence_prefers_redis(self):
        persistence = get_cart_persistence(db=Mock(spec=Session), redis=Mock(spec=Redis))

        assert isinstance(persistence, RedisCartPersistence)

    def test_cart_persistence_falls_back_to_database(self):
        db_mock = Mock(spec=Session)

        persistence = get_cart_persistence(db=db_mock, redis=None)

        assert isinstance(persistence, SqlCartPersistence)
        assert persistence.db == db_mock

    def test_cart_persistence_database_backend(self):
        with patch('kindplate.core.dependencies.settings') as mock_settings:
            mock_settings.CART_BACKEND = "database"

            persistence = get_cart_persistence(db=Mock(spec=Session), redis=Mock(spec=Redis))

        assert isinstance(persistence, SqlCartPersistence)

    def test_service_factories(self):
        db_mock = Mock(spec=Session)
        redis_mock = Mock(spec=Redis)
        redlock_mock = Mock(spec=Redlock)

        cart_service = get_cart_service(db=db_mock, redis=redis_mock, persistence=Mock())
        order_service = get_order_service(db=db_mock, redis=redis_mock, cart_service=cart_service)
        payment_service = get_payment_service(db=db_mock, redis=None, rlock=redlock_mock)

        assert isinstance(cart_service, CartService)
        assert isinstance(order_service, OrderService)
        assert order_service.cart_service is cart_service
        assert isinstance(payment_service, PaymentService)
        assert payment_service.redis is None
        assert payment_service.rlock == redlock_mock


class TestInfrastructure:

    def test_lock_servers_from_host_list(self):
        servers = lock_servers("redis-a, redis-b,")

        assert [s["host"] for s in servers] == ["redis-a", "redis-b"]
        assert all(s["port"] == settings.REDIS_PORT for s in servers)

    def test_lock_servers_default_host(self):
        with patch('kindplate.core.redis.settings') as mock_settings:
            mock_settings.REDIS_HOSTS = ""
            mock_settings.REDIS_HOST = "cache"
            mock_settings.REDIS_PORT = 6380
            mock_settings.REDIS_DB = 3

            assert lock_servers() == [{"host": "cache", "port": 6380, "db": 3}]

    def test_sqlite_engine(self):
        engine = build_engine("sqlite://")

        assert engine.dialect.name == "sqlite"
        engine.dispose()
