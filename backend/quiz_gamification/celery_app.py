"""Celery application: background worker for outbox replay."""

from celery import Celery

from quiz_gamification.config import settings

celery_app = Celery(
    "quiz_gamification",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["quiz_gamification.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Run tasks synchronously in-process when True (dev default, no Redis needed).
    # Set CELERY_TASK_ALWAYS_EAGER=false in .env when running a real worker.
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
    beat_schedule={
        "replay-outbox": {
            "task": "replay_outbox",
            "schedule": float(settings.OUTBOX_SWEEP_SECONDS),
        },
    },
)
