from celery import Celery
from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "societypro",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.modules.maintenance.tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes
    task_soft_time_limit=540,
    result_expires=86400,  # 24 hours
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    broker_connection_retry_on_startup=True,
)

# Celery beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "mark-overdue-maintenance-bills": {
        "task": "app.modules.maintenance.tasks.mark_overdue_bills_task",
        "schedule": float(settings.OVERDUE_SWEEP_INTERVAL_SECONDS),
    },
}
