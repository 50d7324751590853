"""Celery task tests"""
import pytest
from unittest.mock import Mock, patch

from kindplate.jobs import manual_cleanup
from tasks.order_tasks import cancel_stale_orders, purge_idempotency_keys


class TestOrderTasks:

    def test_cancel_stale_orders_success(self):
        service_mock = Mock()
        service_mock.cancel_stale_orders.return_value = 3
        db_mock = Mock()

        with patch('tasks.order_tasks.SessionLocal') as mock_session_local, \
             patch('tasks.order_tasks.OrderService') as mock_order_service, \
             patch('tasks.order_tasks.redis_client'):

            mock_session_local.return_value = db_mock
            mock_order_service.return_value = service_mock

            result = cancel_stale_orders(ttl_minutes=30, batch_size=100)

            assert result == "Cancelled 3 stale orders"
            service_mock.cancel_stale_orders.assert_called_once_with(30, 100)
            db_mock.close.assert_called_once()

    def test_cancel_stale_orders_exception(self):
        db_mock = Mock()

        with patch('tasks.order_tasks.SessionLocal') as mock_session_local, \
             patch('tasks.order_tasks.OrderService') as mock_order_service:

            mock_session_local.return_value = db_mock
            mock_order_service.side_effect = Exception("database is down")

            with pytest.raises(Exception) as exc_info:
                cancel_stale_orders()

            assert "database is down" in str(exc_info.value)
            db_mock.rollback.assert_called_once()
            db_mock.close.assert_called_once()

    def test_purge_idempotency_keys(self):
        service_mock = Mock()
        service_mock.purge_expired_idempotency_keys.return_value = 4
        db_mock = Mock()

        with patch('tasks.order_tasks.SessionLocal') as mock_session_local, \
             patch('tasks.order_tasks.PaymentService') as mock_payment_service, \
             patch('tasks.order_tasks.redis_client'), \
             patch('tasks.order_tasks.redlock'):

            mock_session_local.return_value = db_mock
            mock_payment_service.return_value = service_mock

            assert purge_idempotency_keys() == "Purged 4 idempotency keys"
            db_mock.close.assert_called_once()

    def test_task_names(self):
        assert cancel_stale_orders.name == "tasks.orders.cancel_stale_orders"
        assert purge_idempotency_keys.name == "tasks.payments.purge_idempotency_keys"


class TestManualCleanup:

    def test_dry_run_only_counts(self):
        db_mock = Mock()

        with patch('kindplate.jobs.manual_cleanup.count_stale_orders', return_value=2) as mock_count, \
             patch('kindplate.jobs.manual_cleanup.OrderService') as mock_order_service:

            result = manual_cleanup.run_cleanup(
                ttl_minutes=15, dry_run=True, session_factory=lambda: db_mock
            )

            assert result == 2
            mock_count.assert_called_once_with(db_mock, 15)
            mock_order_service.assert_not_called()
            db_mock.close.assert_called_once()

    def test_main_runs_cleanup(self):
        with patch.object(manual_cleanup, 'run_cleanup', return_value=5) as mock_run:
            assert manual_cleanup.main(['--batch-size', '50']) == 0

        mock_run.assert_called_once_with(50, None, False)

    def test_main_reports_failure(self):
        with patch.object(manual_cleanup, 'run_cleanup', side_effect=Exception("boom")):
            assert manual_cleanup.main([]) == 1
