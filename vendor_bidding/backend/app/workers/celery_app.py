# backend/app/workers/celery_app.py
from __future__ import annotations

from celery import Celery

from ..config import settings

BROKER = settings.celery_broker_url or "redis://localhost:6379/0"
BACKEND = settings.celery_result_backend or "redis://localhost:6379/1"

celery_app = Celery(
    "bidding",
    broker=BROKER,
    backend=BACKEND,
    include=["app.workers.notification_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_ignore_result=True,
    timezone="UTC",
)

# live pushes get their own queue so a backlog never delays other work
celery_app.conf.task_routes = {
    "app.workers.notification_tasks.*": {"queue": "realtime"},
}
