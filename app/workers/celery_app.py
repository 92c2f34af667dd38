from celery import Celery
from celery.signals import worker_process_init

from app.core.config import get_settings
from app.core.logging import configure_logging

settings = get_settings()

CONVERSIONS_TASKS_MODULE = "app.workers.tasks.conversions"

celery_app = Celery(
    "affiliate_ledger",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[CONVERSIONS_TASKS_MODULE],
)

celery_app.conf.update(
    task_default_queue="q_normal",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_routes={f"{CONVERSIONS_TASKS_MODULE}.run_fraud_scan": {"queue": "q_fraud"}},
)


@worker_process_init.connect
def _configure_worker_logging(**_: object) -> None:
    configure_logging(settings.log_level)
