"""Celery application configuration"""

from celery import Celery
from labflow.config import settings

# Create Celery app
celery_app = Celery(
    "labflow",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "labflow.jobs.tasks",
    ],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=120,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Beat schedule for periodic tasks
    beat_schedule={
        "send-home-visit-reminders": {
            "task": "send_home_visit_reminders",
            "schedule": 3600.0,  # Every hour
        },
    },
)
