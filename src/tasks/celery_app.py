"""Celery application for background video processing."""

from celery import Celery
from celery.signals import worker_process_init
from ..config import settings
from ..utils.logger import configure_logging

celery_app = Celery(
    "convert_video",
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=["src.tasks.video_processing"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Jobs are acknowledged after they finish so a crashed worker's job is redelivered
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_default_queue=settings.video_queue_name,
)


@worker_process_init.connect
def init_worker(**kwargs):
    configure_logging()
