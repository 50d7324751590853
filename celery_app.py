"""Celery configuration"""

import os
from celery import Celery

app = Celery('kindplate_worker', include=['tasks.order_tasks'])

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = os.getenv("REDIS_PORT", "6379")

# db 1 = broker, db 2 = results; db 0 belongs to the cache and carts
app.conf.broker_url = f"redis://{REDIS_HOST}:{REDIS_PORT}/1"
app.conf.result_backend = f"redis://{REDIS_HOST}:{REDIS_PORT}/2"

app.conf.task_serializer = 'json'
app.conf.result_serializer = 'json'
app.conf.accept_content = ['json']

app.conf.timezone = 'Europe/Moscow'
app.conf.enable_utc = True

app.conf.task_routes = {
    'tasks.orders.*': {'queue': 'orders'},
    'tasks.payments.*': {'queue': 'payments'},
}

app.conf.beat_schedule = {
    'cancel-stale-orders': {
        'task': 'tasks.orders.cancel_stale_orders',
        'schedule': 300.0,
    },
    'purge-idempotency-keys': {
        'task': 'tasks.payments.purge_idempotency_keys',
        'schedule': 3600.0,
    },
}

app.conf.worker_prefetch_multiplier = 1
app.conf.task_acks_late = True

__all__ = ['app']
