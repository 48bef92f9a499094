import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from analyzer.errors import JobNotFoundError, JobValidationError
from api.models import JobStatusResponse, StartAnalysisRequest, StartAnalysisResponse
from api.service import AnalysisService
from config import settings
from core.cache import get_redis_client
from core.store import JobStore

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


def get_job_store() -> JobStore:
    return JobStore(get_redis_client().client)


def get_analysis_service(store: JobStore = Depends(get_job_store)) -> AnalysisService:
    return AnalysisService(store)


@router.get("/")
async def root():
    return {
        "service": "GEO Analyzer",
        "status": "running",
        "endpoints": {
            "analyze": "/analyze (POST)",
            "status": "/analyze/status/{job_id} (GET)",
            "reports": "/reports/{domain} (GET)",
        },
    }


@router.post("/analyze", response_model=StartAnalysisResponse)
async def start_analysis(
    request: StartAnalysisRequest,
    service: AnalysisService = Depends(get_analysis_service),
):
    """
    Start a GEO analysis for a URL (or domain).

    Returns 202 with the job id for a new or in-progress job, and 200 when a
    completed job for the same host from the last 24 hours is reused.
    Poll /analyze/status/{job_id} for progress.
    """
    try:
        result = await service.start_analysis(request)
    except JobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Failed to start analysis for {request.url or request.domain}: {str(e)}")
        raise HTTPException(
            status_code=500, detail=f"Failed to submit analysis task: {str(e)}"
        )

    return JSONResponse(
        status_code=result.status_code, content=result.model_dump(mode="json")
    )


@router.get(
    "/analyze/status/{job_id}",
    response_model=JobStatusResponse,
    response_model_exclude_none=True,
)
async def get_job_status(
    job_id: str, service: AnalysisService = Depends(get_analysis_service)
):
    """
    Check the status of an analysis job.

    Returns:
        - Any PROCESSING_* status or QUEUED: job_id (and error, if any)
        - COMPLETED: the full job with every stage report
        - FAILED: the error message
    """
    try:
        return await service.get_job_status(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get job status: {str(e)}")


@router.get(
    "/reports/{domain:path}",
    response_model=JobStatusResponse,
    response_model_exclude_none=True,
)
async def get_report_by_domain(
    domain: str, service: AnalysisService = Depends(get_analysis_service)
):
    """
    Newest analysis for a domain within the last 24 hours.
    Only the status is returned until the job completes.
    """
    try:
        return await service.get_report_by_domain(domain)
    except JobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get report: {str(e)}")


@router.get("/health")
async def health_check():
    return {"status": "healthy"}


@router.get("/status/detailed")
async def detailed_status_check():
    """
    Enhanced status check with Redis, Celery, browser and provider health.

    Returns comprehensive system health information for monitoring.
    """
    status_info = {
        "api": "healthy",
        "redis": "unknown",
        "celery": "unknown",
        "browser": "unknown",
        "anthropic_api": "configured" if settings.ANTHROPIC_API_KEY else "missing",
        "openai_api": "configured" if settings.OPENAI_API_KEY else "missing",
        "perplexity_api": "configured" if settings.PERPLEXITY_API_KEY else "missing",
        "pagespeed_api": "configured" if settings.PAGESPEED_API_KEY else "missing",
    }

    # Check Redis connection
    try:
        redis_client = get_redis_client()
        if await redis_client.ping():
            status_info["redis"] = "connected"
            status_info["redis_stats"] = await redis_client.get_stats()
        else:
            status_info["redis"] = "disconnected"
    except Exception as e:
        status_info["redis"] = f"error: {str(e)}"

    # Check Celery workers
    try:
        from core.celery import celery_app

        inspect = celery_app.control.inspect()
        active_workers = inspect.active()

        if active_workers:
            status_info["celery"] = "workers_active"
            status_info["celery_workers"] = list(active_workers.keys())
        else:
            status_info["celery"] = "no_workers"
    except Exception as e:
        status_info["celery"] = f"error: {str(e)}"

    # Browser only lives in this process if something launched it here
    try:
        from core import browser

        manager = browser._browser_manager
        if manager is not None and manager._is_usable():
            status_info["browser"] = {"connected": True, "launch_count": manager.launch_count}
        else:
            status_info["browser"] = "not_initialized"
    except Exception as e:
        status_info["browser"] = f"error: {str(e)}"

    # At least one AI provider must be configured
    ai_status = (
        "configured"
        if settings.ANTHROPIC_API_KEY or settings.OPENAI_API_KEY
        else "missing"
    )
    critical_components = [status_info["redis"], ai_status]

    if any(
        "error" in str(c) or "missing" in str(c) or "disconnected" in str(c)
        for c in critical_components
    ):
        status_info["overall_status"] = "degraded"
    else:
        status_info["overall_status"] = "healthy"

    return status_info
