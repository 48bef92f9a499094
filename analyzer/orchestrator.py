"""
Analysis orchestrator for GEO Analyzer

Drives one job through the pipeline:

    SCRAPE -> (PSI || ARKHE) -> (PROMETHEUS || GEN_PERF, if ARKHE ok)
           -> LIR (if PROMETHEUS ok) -> COMPLETED

Stage failures are recorded on the job as StageFailure payloads and never
stop the pipeline. Only store failures and invalid jobs abort it, which
marks the job FAILED and raises AnalysisOrchestrationError.
"""

import asyncio
import logging
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from analyzer.aggregator import AIAggregator
from analyzer.errors import AnalysisOrchestrationError, JobValidationError
from analyzer.models import (
    AnalysisJob,
    EventStatus,
    JobStatus,
    PerformanceReport,
    ProfileReport,
    ScrapeResult,
    StageFailure,
    TrustReport,
    VisibilityReport,
)
from analyzer.stages.agenda import run_agenda_analysis
from analyzer.stages.performance import run_performance_analysis
from analyzer.stages.profile import run_profile_analysis
from analyzer.stages.trust import run_trust_analysis
from analyzer.stages.visibility import run_visibility_analysis
from config import settings
from core.store import JobStore
from utils.concurrency import Outcome, gather_settled
from utils.urls import extract_hostname

logger = logging.getLogger(__name__)

# Fields cleared at the start of every run so no stage result is left over
# from a previous run of the same job
RESULT_FIELDS = (
    "scraped_content",
    "scraped_html",
    "scrape_error",
    "arkhe_report",
    "performance_report",
    "prometheus_report",
    "generative_performance_report",
    "delfi_agenda",
    "final_geo_score",
    "error",
)


@dataclass
class PipelineContext:
    """Typed stage outputs accumulated during one run"""

    job: AnalysisJob
    scrape: Optional[ScrapeResult] = None
    profile: Optional[ProfileReport] = None
    performance: Optional[PerformanceReport] = None
    trust: Optional[TrustReport] = None
    visibility: Optional[VisibilityReport] = None
    agenda: Optional[Dict[str, Any]] = None

    @property
    def job_id(self) -> str:
        return self.job.id

    @property
    def url_host(self) -> str:
        return self.job.url_host or extract_hostname(self.job.url)


def _failure_fields(field: str) -> Callable[[Exception], Dict[str, Any]]:
    def build(error: Exception) -> Dict[str, Any]:
        return {field: StageFailure(error=str(error))}

    return build


class AnalysisOrchestrator:
    """
    Runs the analysis pipeline for one job at a time.

    Args:
        store: Job store; every write goes through it
        aggregator: Dual-provider AI aggregator shared by the stages
        scraper: Object with `async scrape(url) -> ScrapeResult`
        performance_client: PageSpeedClient (or compatible)
        responder: AssistantResponder (or compatible)
        heartbeat_interval: Seconds between progress log lines
    """

    def __init__(
        self,
        store: JobStore,
        aggregator: AIAggregator,
        scraper,
        performance_client,
        responder,
        heartbeat_interval: Optional[float] = None,
    ):
        self.store = store
        self.aggregator = aggregator
        self.scraper = scraper
        self.performance_client = performance_client
        self.responder = responder
        self.heartbeat_interval = heartbeat_interval or settings.HEARTBEAT_INTERVAL

    async def orchestrate(self, job: AnalysisJob) -> AnalysisJob:
        """
        Run every stage for a job and return the persisted COMPLETED job.

        Raises:
            AnalysisOrchestrationError: The job was aborted and marked FAILED
        """
        started = time.monotonic()
        heartbeat = asyncio.create_task(
            self._heartbeat(job.id, started), name=f"heartbeat:{job.id}"
        )

        try:
            if not job.id or not job.url:
                raise JobValidationError("Job is missing its id or url")

            logger.info(f"🚀 Orchestrating job {job.id} for {job.url}")
            ctx = PipelineContext(job=job)

            await self.store.upsert_job_fields(job.id, {name: None for name in RESULT_FIELDS})
            await self._emit(job.id, "INIT", EventStatus.COMPLETED)

            await self._run_scrape(ctx)

            psi_branch, arkhe_branch = await gather_settled(
                self._run_stage(
                    ctx, "PSI", JobStatus.PROCESSING_PSI,
                    self._performance_stage(ctx),
                    on_success=self._store_performance(ctx),
                    on_failure=_failure_fields("performance_report"),
                ),
                self._run_stage(
                    ctx, "ARKHE", JobStatus.PROCESSING_ARKHE,
                    self._profile_stage(ctx),
                    on_success=self._store_profile(ctx),
                    on_failure=_failure_fields("arkhe_report"),
                ),
            )
            self._settle(psi_branch)
            arkhe = self._settle(arkhe_branch)

            if not arkhe.ok:
                logger.warning(f"⚠️ Job {job.id}: ARKHE failed, skipping PROMETHEUS, GEN_PERF and LIR")
            else:
                trust_branch, visibility_branch = await gather_settled(
                    self._run_stage(
                        ctx, "PROMETHEUS", JobStatus.PROCESSING_PROMETHEUS,
                        self._trust_stage(ctx),
                        on_success=self._store_trust(ctx),
                        on_failure=_failure_fields("prometheus_report"),
                    ),
                    self._run_stage(
                        ctx, "GEN_PERF", JobStatus.PROCESSING_GENERATIVE_PERFORMANCE,
                        self._visibility_stage(ctx),
                        on_success=self._store_visibility(ctx),
                        on_failure=_failure_fields("generative_performance_report"),
                    ),
                )
                trust = self._settle(trust_branch)
                self._settle(visibility_branch)

                if not trust.ok:
                    logger.warning(f"⚠️ Job {job.id}: PROMETHEUS failed, skipping LIR")
                else:
                    await self.store.upsert_job_fields(
                        job.id, {"final_geo_score": ctx.trust.overall_geo_score}
                    )
                    await self._run_stage(
                        ctx, "LIR", JobStatus.PROCESSING_LIR,
                        self._agenda_stage(ctx),
                        on_success=self._store_agenda(ctx),
                        on_failure=_failure_fields("delfi_agenda"),
                    )

            return await self._complete(ctx, started)

        except Exception as e:
            await self._fail(job, e)
            raise AnalysisOrchestrationError(
                f"Analysis failed for job {job.id}: {str(e)}", job_id=job.id
            ) from e

        finally:
            heartbeat.cancel()
            with suppress(asyncio.CancelledError):
                await heartbeat

    # ======================
    # Stage plumbing
    # ======================

    async def _run_stage(
        self,
        ctx: PipelineContext,
        step: str,
        status: JobStatus,
        stage: Callable[[], Awaitable[Any]],
        on_success: Callable[[Any], Dict[str, Any]],
        on_failure: Callable[[Exception], Dict[str, Any]],
    ) -> Outcome:
        """
        Run one stage between its status/STARTED write and its result write.

        The stage's own exception is captured in the returned Outcome.
        Store exceptions propagate.
        """
        await self.store.upsert_job_fields(ctx.job_id, {"status": status})
        await self._emit(ctx.job_id, step, EventStatus.STARTED)

        stage_started = time.monotonic()
        try:
            result = await stage()
        except Exception as e:
            elapsed = time.monotonic() - stage_started
            logger.warning(f"⚠️ Job {ctx.job_id}: {step} failed after {elapsed:.1f}s: {str(e)}")
            await self.store.upsert_job_fields(ctx.job_id, on_failure(e))
            await self._emit(ctx.job_id, step, EventStatus.FAILED, str(e))
            return Outcome(error=e)

        elapsed = time.monotonic() - stage_started
        logger.info(f"✅ Job {ctx.job_id}: {step} completed in {elapsed:.1f}s")
        await self.store.upsert_job_fields(ctx.job_id, on_success(result))
        await self._emit(ctx.job_id, step, EventStatus.COMPLETED)
        return Outcome(value=result)

    @staticmethod
    def _settle(branch: Outcome) -> Outcome:
        """Unwrap a fan-out branch: re-raise store errors, return the stage outcome"""
        if not branch.ok:
            raise branch.error
        return branch.value

    async def _emit(
        self, job_id: str, step: str, status: EventStatus, detail: Optional[str] = None
    ) -> None:
        try:
            await self.store.append_event(job_id, step, status, detail)
        except Exception as e:
            logger.warning(f"⚠️ Failed to append {step}/{status.value} event for job {job_id}: {str(e)}")

    async def _heartbeat(self, job_id: str, started: float) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            logger.info(f"💓 Job {job_id} still running ({time.monotonic() - started:.0f}s)")

    # ======================
    # Stages
    # ======================

    async def _run_scrape(self, ctx: PipelineContext) -> Outcome:
        def on_success(scrape: ScrapeResult) -> Dict[str, Any]:
            ctx.scrape = scrape
            return {
                "scraped_content": scrape.content,
                "scraped_html": scrape.html,
                "scrape_error": None,
            }

        def on_failure(error: Exception) -> Dict[str, Any]:
            return {"scraped_content": "", "scraped_html": "", "scrape_error": str(error)}

        return await self._run_stage(
            ctx, "SCRAPE", JobStatus.PROCESSING_SCRAPE,
            lambda: self.scraper.scrape(ctx.job.url),
            on_success=on_success,
            on_failure=on_failure,
        )

    def _performance_stage(self, ctx: PipelineContext):
        return lambda: run_performance_analysis(self.performance_client, ctx.job.url)

    def _store_performance(self, ctx: PipelineContext):
        def store(report: PerformanceReport) -> Dict[str, Any]:
            ctx.performance = report
            return {"performance_report": report}

        return store

    def _profile_stage(self, ctx: PipelineContext):
        content = ctx.scrape.content if ctx.scrape else ""
        return lambda: run_profile_analysis(self.aggregator, content, ctx.job.url, ctx.job.locale)

    def _store_profile(self, ctx: PipelineContext):
        def store(report: ProfileReport) -> Dict[str, Any]:
            ctx.profile = report
            return {"arkhe_report": report}

        return store

    def _trust_stage(self, ctx: PipelineContext):
        scrape = ctx.scrape
        return lambda: run_trust_analysis(
            self.aggregator,
            ctx.profile,
            scrape.content if scrape else None,
            scrape.html if scrape else None,
            performance=ctx.performance,
            locale=ctx.job.locale,
        )

    def _store_trust(self, ctx: PipelineContext):
        def store(report: TrustReport) -> Dict[str, Any]:
            ctx.trust = report
            return {"prometheus_report": report}

        return store

    def _visibility_stage(self, ctx: PipelineContext):
        target_brand = (ctx.profile.brand_name if ctx.profile else None) or ctx.url_host
        return lambda: run_visibility_analysis(
            self.aggregator,
            self.responder,
            ctx.profile,
            ctx.scrape.content if ctx.scrape else None,
            target_brand=target_brand,
            target_domain=ctx.url_host,
            top_queries=ctx.job.top_queries,
        )

    def _store_visibility(self, ctx: PipelineContext):
        def store(report: VisibilityReport) -> Dict[str, Any]:
            ctx.visibility = report
            return {"generative_performance_report": report}

        return store

    def _agenda_stage(self, ctx: PipelineContext):
        return lambda: run_agenda_analysis(self.aggregator, ctx.trust, ctx.job.locale)

    def _store_agenda(self, ctx: PipelineContext):
        def store(agenda: Dict[str, Any]) -> Dict[str, Any]:
            ctx.agenda = agenda
            return {"delfi_agenda": agenda}

        return store

    # ======================
    # Terminal states
    # ======================

    async def _complete(self, ctx: PipelineContext, started: float) -> AnalysisJob:
        job_id = ctx.job_id
        job = await self._load(job_id)

        # Snapshot and query status go first; COMPLETED is the last write
        snapshot = job.model_dump(mode="json")
        snapshot["status"] = JobStatus.COMPLETED.value
        await self.store.upsert_report(job_id, snapshot)
        await self.store.upsert_query_status(job.query_id, JobStatus.COMPLETED.value)

        await self.store.upsert_job_fields(job_id, {"status": JobStatus.COMPLETED})
        await self._emit(job_id, "JOB", EventStatus.COMPLETED)
        job = await self._load(job_id)

        logger.info(f"🏁 Job {job_id} completed in {time.monotonic() - started:.1f}s")
        return job

    async def _load(self, job_id: str) -> AnalysisJob:
        job = await self.store.get_job(job_id)
        if job is None:
            raise JobValidationError(f"Job {job_id} disappeared from the store")
        return job

    async def _fail(self, job: AnalysisJob, error: Exception) -> None:
        logger.error(f"❌ Job {job.id} failed: {str(error)}")
        if not job.id:
            return
        try:
            await self.store.upsert_job_fields(
                job.id, {"status": JobStatus.FAILED, "error": str(error)}
            )
            await self._emit(job.id, "JOB", EventStatus.FAILED, str(error))
            await self.store.upsert_query_status(job.query_id, JobStatus.FAILED.value)
        except Exception as persist_error:
            logger.error(f"❌ Could not persist FAILED state for job {job.id}: {str(persist_error)}")
