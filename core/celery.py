"""
Celery application for GEO Analyzer
One queue, one task: run the analysis pipeline for a queued job
"""

import logging

from celery import Celery
from celery.signals import (
    after_setup_logger,
    task_failure,
    task_postrun,
    task_prerun,
    worker_ready,
)
from kombu import Queue

from config import settings

logger = logging.getLogger(__name__)

ANALYSIS_QUEUE = "default"

celery_app = Celery(
    "geo_analyzer",
    broker=settings.celery_broker,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["tasks.analysis"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Acked on receipt: a job whose worker dies is never delivered twice.
    # It stays in its PROCESSING_* status until a client re-submits its job_id.
    task_acks_late=False,
    task_reject_on_worker_lost=False,
    task_track_started=True,
    # The hard limit must cover every scrape retry plus all stage calls
    task_time_limit=settings.TASK_TIME_LIMIT,
    task_soft_time_limit=settings.TASK_SOFT_TIME_LIMIT,
    result_expires=settings.CELERY_RESULT_EXPIRES,
    # One long-running job per worker process at a time
    worker_prefetch_multiplier=settings.WORKER_PREFETCH_MULTIPLIER,
    worker_max_tasks_per_child=settings.WORKER_MAX_TASKS_PER_CHILD,
    task_default_queue=ANALYSIS_QUEUE,
    task_queues=(Queue(ANALYSIS_QUEUE, routing_key="analysis.run"),),
    task_routes={"tasks.run_analysis": {"queue": ANALYSIS_QUEUE}},
    broker_connection_retry_on_startup=True,
)


def _job_id(args) -> str:
    return args[0] if args else "?"


@after_setup_logger.connect
def setup_worker_logging(logger=None, **kwargs):
    """Apply LOG_LEVEL to the worker's root logger"""
    if logger is not None:
        logger.setLevel(settings.LOG_LEVEL)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    logger.info(f"🚀 Analysis worker ready on queue '{ANALYSIS_QUEUE}'")


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, **kwargs):
    logger.info(f"⏳ {task.name} picked up job {_job_id(args)} [task {task_id}]")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, state=None, **kwargs):
    logger.info(f"📦 {task.name} finished job {_job_id(args)} [task {task_id}] [state {state}]")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, args=None, **kwargs):
    # The orchestrator has already marked the job FAILED
    logger.error(f"❌ Job {_job_id(args)} aborted [task {task_id}]: {str(exception)}")
