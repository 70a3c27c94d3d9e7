"""Celery application for background index builds."""

import os

from celery import Celery
from celery.signals import worker_init

from catalog.config import get_settings

settings = get_settings()

app = Celery(
    "catalog",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["worker.tasks.indexing"],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # A full rebuild of a large library can take a while
    task_time_limit=3600,
    task_soft_time_limit=3300,

    # One rebuild at a time per worker process
    worker_prefetch_multiplier=1,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    task_routes={
        "worker.tasks.indexing.rebuild_index": {"queue": "indexing"},
        "worker.tasks.indexing.reindex_entities": {"queue": "default"},
    },

    result_expires=3600,
)


@worker_init.connect
def on_worker_init(**kwargs):
    """Configure structured logging once per worker process."""
    import structlog

    from catalog.middleware.observability import configure_logging

    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    structlog.get_logger().info("worker_init", pid=os.getpid(), broker=settings.CELERY_BROKER_URL)
