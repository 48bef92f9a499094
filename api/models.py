from typing import List, Optional
from pydantic import BaseModel, Field

from analyzer.models import AnalysisJob, JobStatus, TopQuery


# Requests
class StartAnalysisRequest(BaseModel):
    url: Optional[str] = None
    domain: Optional[str] = None  # Alias for url, accepted from domain lookups
    locale: str = "en"
    job_id: Optional[str] = None  # Re-run an existing job instead of creating one
    user_id: str = "public"
    query_id: Optional[str] = None
    top_queries: Optional[List[TopQuery]] = None


# Responses
class StartAnalysisResponse(BaseModel):
    job_id: str
    status: JobStatus
    status_code: int = Field(default=202, exclude=True)  # 200 when a completed job is reused


class JobStatusResponse(BaseModel):
    status: JobStatus
    job_id: Optional[str] = None
    job: Optional[AnalysisJob] = None
    error: Optional[str] = None
