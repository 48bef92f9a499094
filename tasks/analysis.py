"""
Celery background tasks for GEO Analyzer
Runs the analysis pipeline for a queued job in a worker process
"""

import asyncio
import logging

from celery import Task

from analyzer.aggregator import get_default_aggregator
from analyzer.errors import AnalysisOrchestrationError
from analyzer.orchestrator import AnalysisOrchestrator
from analyzer.scraper import PageScraper
from config import settings
from core.browser import close_browser_manager
from core.cache import RedisClient
from core.celery import celery_app
from core.store import JobStore
from utils.clients.anthropic import close_anthropic_client
from utils.clients.openai import close_openai_client
from utils.clients.pagespeed import PageSpeedClient
from utils.clients.perplexity import AssistantResponder

logger = logging.getLogger(__name__)


class CallbackTask(Task):
    """
    Custom Celery task class with callbacks.
    """

    def on_success(self, retval, task_id, args, kwargs):
        """Called when task succeeds"""
        logger.info(f"✅ Task {task_id} completed successfully")

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """Called when task fails"""
        logger.error(f"❌ Task {task_id} failed: {str(exc)}")


def build_orchestrator(store: JobStore, responder: AssistantResponder) -> AnalysisOrchestrator:
    """Wire the orchestrator with the configured providers"""
    return AnalysisOrchestrator(
        store=store,
        aggregator=get_default_aggregator(),
        scraper=PageScraper(),
        performance_client=PageSpeedClient(),
        responder=responder,
        heartbeat_interval=settings.HEARTBEAT_INTERVAL,
    )


async def _run_analysis_async(job_id: str) -> dict:
    """
    Load the job and orchestrate it on this task's event loop.

    Each task runs on a fresh loop, so Redis, the browser and the AI
    clients are opened and closed here rather than shared with other tasks.
    """
    redis_client = RedisClient()
    responder = AssistantResponder()
    try:
        store = JobStore(redis_client.client)
        job = await store.get_job(job_id)
        if job is None:
            raise AnalysisOrchestrationError(f"Job {job_id} not found", job_id=job_id)

        result = await build_orchestrator(store, responder).orchestrate(job)
        return {
            "job_id": result.id,
            "status": result.status.value,
            "final_geo_score": result.final_geo_score,
        }
    finally:
        await close_browser_manager()
        await close_anthropic_client()
        await close_openai_client()
        await responder.close()
        await redis_client.close()


@celery_app.task(
    bind=True,
    base=CallbackTask,
    name="tasks.run_analysis",
    autoretry_for=(),  # The orchestrator absorbs stage failures; never re-run a job
    max_retries=0,
    acks_late=False,
)
def run_analysis(self, job_id: str) -> dict:
    """
    Celery task that runs the full GEO analysis for a queued job.

    Args:
        job_id: Id of a job previously created by the intake service

    Returns:
        Dictionary with job_id, terminal status and final_geo_score

    Raises:
        AnalysisOrchestrationError: The job was aborted and marked FAILED
    """
    logger.info(f"🚀 Starting analysis task {self.request.id} for job {job_id}")
    return asyncio.run(_run_analysis_async(job_id))
