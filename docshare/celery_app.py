from celery import Celery

from docshare.config import settings

celery_app = Celery(
    "docshare",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["docshare.tasks.events", "docshare.tasks.notifications"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_ignore_result=True,
)
