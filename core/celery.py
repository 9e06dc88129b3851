from celery import Celery
from core.config import settings

EMAIL_QUEUE = "emails"

celery_app = Celery(
    "farm_market",
    broker=settings.REDIS_URL,
    include=["tasks.email_tasks"]
)

# Notifications are fire-and-forget: nothing reads task results
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
    task_acks_late=True,
    task_time_limit=2 * 60,
    task_soft_time_limit=90,
    task_routes={"tasks.email_tasks.*": {"queue": EMAIL_QUEUE}},
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)
