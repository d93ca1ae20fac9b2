"""
Celery application configuration for async task processing.

Redis serves as broker and result backend. Tasks are defined in
analysis_tasks.py; the catalog refresh runs on the beat schedule.
"""

from celery import Celery

from objection_analyzer.config import settings

celery_app = Celery(
    "objection_analyzer",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    # Task execution
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,  # Hard limit (kills task)
    task_soft_time_limit=settings.CELERY_TASK_TIME_LIMIT - 30,  # Soft limit (raises exception)

    # Worker settings
    worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,
    worker_prefetch_multiplier=1,  # Transcripts are long-running, fetch one at a time
    worker_max_tasks_per_child=100,

    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    timezone="UTC",
    enable_utc=True,

    # Result backend
    result_expires=3600,
    result_extended=True,

    # Task tracking
    task_track_started=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    task_default_retry_delay=60,
    task_max_retries=3,

    # Periodic catalog refresh; a single beat process keeps runs from overlapping
    beat_schedule={
        "refresh-catalog": {
            "task": "refresh_catalog",
            "schedule": float(settings.CATALOG_REFRESH_INTERVAL_SECONDS),
        },
    },
)

celery_app.autodiscover_tasks(["objection_analyzer.tasks"], related_name="analysis_tasks")
