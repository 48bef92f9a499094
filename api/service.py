"""
Analysis intake service for GEO Analyzer

Creates or reuses jobs, hands them to the Celery worker and answers status
and report lookups. HTTP concerns stay in api/routes.py.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from analyzer.errors import JobNotFoundError, JobValidationError
from analyzer.models import AnalysisJob, EventStatus, JobStatus
from api.models import JobStatusResponse, StartAnalysisRequest, StartAnalysisResponse
from config import settings
from core.store import JobStore
from utils.urls import extract_hostname, normalize_url

logger = logging.getLogger(__name__)


def _dispatch_with_celery(job_id: str) -> None:
    from tasks.analysis import run_analysis

    run_analysis.delay(job_id)


class AnalysisService:
    """
    Args:
        store: Job store
        dispatch: Callable that queues a job id for processing
        dedup_window_hours: How long a job for the same host is reused
    """

    def __init__(
        self,
        store: JobStore,
        dispatch: Optional[Callable[[str], None]] = None,
        dedup_window_hours: Optional[int] = None,
    ):
        self.store = store
        self.dispatch = dispatch or _dispatch_with_celery
        self.dedup_window_hours = dedup_window_hours or settings.DEDUP_WINDOW_HOURS

    def _window_start(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(hours=self.dedup_window_hours)

    async def start_analysis(self, request: StartAnalysisRequest) -> StartAnalysisResponse:
        """
        Start an analysis, or point the caller at one already running.

        A non-FAILED job for the same host created within the dedup window is
        reused: 200 when it is COMPLETED, 202 otherwise. Two simultaneous
        requests for a new host can both miss the lookup and create two jobs.

        Raises:
            JobValidationError: No url or domain in the request
            JobNotFoundError: request.job_id does not exist
        """
        raw_url = request.url or request.domain
        if not raw_url or not raw_url.strip():
            raise JobValidationError("URL is required and must be a string")

        url = normalize_url(raw_url)
        url_host = extract_hostname(raw_url)
        logger.info(f"📥 Analysis requested for {url} (host={url_host}, locale={request.locale})")

        if request.job_id:
            existing = await self.store.get_job(request.job_id)
            if existing is None:
                raise JobNotFoundError(f"Job not found: {request.job_id}")

            await self.store.upsert_job_fields(
                existing.id, {"status": JobStatus.QUEUED, "error": None}
            )
            logger.info(f"♻️ Re-running existing job {existing.id}")
            await self._dispatch(existing.id, existing.query_id)
            return StartAnalysisResponse(job_id=existing.id, status=JobStatus.QUEUED)

        recent = await self.store.find_recent_job(url_host, self._window_start())
        if recent is not None and recent.status != JobStatus.FAILED:
            logger.info(f"💾 Reusing job {recent.id} for {url_host} (status={recent.status.value})")
            return StartAnalysisResponse(
                job_id=recent.id,
                status=recent.status,
                status_code=200 if recent.status == JobStatus.COMPLETED else 202,
            )

        job = AnalysisJob(
            id=str(uuid.uuid4()),
            status=JobStatus.QUEUED,
            url=url,
            url_host=url_host,
            locale=request.locale,
            user_id=request.user_id,
            query_id=request.query_id,
            top_queries=request.top_queries,
        )
        await self.store.create_job(job)
        await self.store.upsert_query_status(job.query_id, JobStatus.QUEUED.value)

        await self._dispatch(job.id, job.query_id)
        return StartAnalysisResponse(job_id=job.id, status=JobStatus.QUEUED)

    async def _dispatch(self, job_id: str, query_id: Optional[str]) -> None:
        """Queue the job; a failed hand-off marks it FAILED and re-raises"""
        try:
            self.dispatch(job_id)
            logger.info(f"📤 Job {job_id} queued for analysis")
        except Exception as e:
            logger.error(f"❌ Failed to queue job {job_id}: {str(e)}")
            await self.store.upsert_job_fields(
                job_id,
                {"status": JobStatus.FAILED, "error": f"Failed to queue analysis: {str(e)}"},
            )
            await self.store.append_event(job_id, "JOB", EventStatus.FAILED, str(e))
            await self.store.upsert_query_status(query_id, JobStatus.FAILED.value)
            raise

    async def get_job_status(self, job_id: str) -> JobStatusResponse:
        """
        Raises:
            JobNotFoundError: No job with this id
        """
        job = await self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}")

        if job.status == JobStatus.COMPLETED:
            return JobStatusResponse(status=job.status, job_id=job.id, job=job)
        if job.status == JobStatus.FAILED:
            return JobStatusResponse(
                status=job.status, job_id=job.id, error=job.error or "Analysis failed"
            )
        return JobStatusResponse(status=job.status, job_id=job.id, error=job.error)

    async def get_report_by_domain(self, domain: str) -> JobStatusResponse:
        """
        Newest job for the domain within the dedup window.

        Raises:
            JobValidationError: Empty domain
            JobNotFoundError: No job for the domain in the window
        """
        if not domain or not domain.strip():
            raise JobValidationError("Domain is required")

        url_host = extract_hostname(domain)
        job = await self.store.find_recent_job(url_host, self._window_start())
        if job is None:
            raise JobNotFoundError(f"No recent report for {url_host}")

        if job.status != JobStatus.COMPLETED:
            return JobStatusResponse(status=job.status, job_id=job.id)
        return JobStatusResponse(status=job.status, job_id=job.id, job=job)
