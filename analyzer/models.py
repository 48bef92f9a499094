"""
Typed records for analysis jobs and the reports each stage produces.

Stage outputs are validated pydantic models; they are stored on the job as
plain JSON dicts so a stage field can equally hold a StageFailure.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string"""
    return datetime.now(timezone.utc).isoformat()


class JobStatus(str, Enum):
    QUEUED = "QUEUED"
    PROCESSING_SCRAPE = "PROCESSING_SCRAPE"
    PROCESSING_PSI = "PROCESSING_PSI"
    PROCESSING_ARKHE = "PROCESSING_ARKHE"
    PROCESSING_PROMETHEUS = "PROCESSING_PROMETHEUS"
    PROCESSING_GENERATIVE_PERFORMANCE = "PROCESSING_GENERATIVE_PERFORMANCE"
    PROCESSING_LIR = "PROCESSING_LIR"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class EventStatus(str, Enum):
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class JobEvent(BaseModel):
    step: str
    status: EventStatus
    timestamp: str = Field(default_factory=utc_now_iso)
    detail: Optional[str] = None


class StageFailure(BaseModel):
    """Error-shaped value written into a stage field when the stage fails"""

    error: str
    failed: bool = True


def is_failure(value: Any) -> bool:
    """True when a stage field holds a StageFailure payload"""
    return isinstance(value, dict) and value.get("failed") is True


class TopQuery(BaseModel):
    query: str
    volume: Optional[int] = None
    position: Optional[float] = None


class AnalysisJob(BaseModel):
    """
    One analysis run. Every stage field is optional and set independently,
    either to that stage's report or to a StageFailure dict.
    """

    id: str
    status: JobStatus = JobStatus.QUEUED
    url: str
    url_host: Optional[str] = None
    locale: str = "en"
    user_id: str = "public"
    query_id: Optional[str] = None
    top_queries: Optional[List[TopQuery]] = None

    scraped_content: Optional[str] = None
    scraped_html: Optional[str] = None
    scrape_error: Optional[str] = None
    arkhe_report: Optional[Dict[str, Any]] = None
    performance_report: Optional[Dict[str, Any]] = None
    prometheus_report: Optional[Dict[str, Any]] = None
    generative_performance_report: Optional[Dict[str, Any]] = None
    delfi_agenda: Optional[Dict[str, Any]] = None
    final_geo_score: Optional[int] = None

    events: List[JobEvent] = Field(default_factory=list)
    error: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


# ======================
# Stage reports
# ======================


class ScrapeResult(BaseModel):
    url: str
    final_url: Optional[str] = None
    status_code: Optional[int] = None
    title: str = ""
    meta_description: str = ""
    content: str
    html: str
    robots_txt: Optional[str] = None
    llms_txt: Optional[str] = None
    performance_metrics: Optional[Dict[str, Any]] = None


class ProfileReport(BaseModel):
    """Business model, audience and competitor profile (ARKHE)"""

    business_model: Dict[str, Any]
    target_audience: Dict[str, Any]
    competitors: Dict[str, Any]

    @property
    def brand_name(self) -> Optional[str]:
        name = self.business_model.get("brandName")
        return name.strip() if isinstance(name, str) and name.strip() else None

    def competitor_names(self) -> List[str]:
        entries = self.competitors.get("businessCompetitors") or []
        names = []
        for entry in entries:
            if isinstance(entry, dict):
                name = entry.get("name")
            else:
                name = entry
            if isinstance(name, str) and name.strip():
                names.append(name.strip())
        return names


class LabMetrics(BaseModel):
    """Lighthouse lab timings (ms, CLS unitless)"""

    lcp_ms: Optional[float] = None
    fcp_ms: Optional[float] = None
    cls: Optional[float] = None
    tbt_ms: Optional[float] = None
    speed_index_ms: Optional[float] = None


class FieldMetrics(BaseModel):
    """CrUX 75th-percentile field values (ms, CLS unitless)"""

    lcp_p75: Optional[float] = None
    fcp_p75: Optional[float] = None
    cls_p75: Optional[float] = None
    fid_p75: Optional[float] = None
    inp_p75: Optional[float] = None


class PerformanceReport(BaseModel):
    """Normalized web-vitals report (PSI)"""

    url: str
    fetched_at: str = Field(default_factory=utc_now_iso)
    lab: LabMetrics = Field(default_factory=LabMetrics)
    field: FieldMetrics = Field(default_factory=FieldMetrics)
    raw_provider: Optional[str] = None

    def has_data(self) -> bool:
        lab = self.lab.model_dump().values()
        field = self.field.model_dump().values()
        return any(v is not None for v in list(lab) + list(field))


class Metric(BaseModel):
    score: float
    justification: str = ""
    details: Optional[str] = None
    negative_points: List[str] = Field(default_factory=list)
    positive_points: List[str] = Field(default_factory=list)


class Pillar(BaseModel):
    name: str
    score: int
    weight: float
    metrics: Dict[str, Metric] = Field(default_factory=dict)


class TrustReport(BaseModel):
    """E-E-A-T and GEO pillar scoring (PROMETHEUS)"""

    score_interpretation: str
    executive_summary: str
    overall_geo_score: int
    geo_score_details: Optional[Dict[str, Any]] = None
    pillars: Dict[str, Pillar]
    action_plan: Any = None


class SentimentBreakdown(BaseModel):
    positive: float = 0
    neutral: float = 0
    negative: float = 0
    trend: str = "neutral"


class AccuracyReport(BaseModel):
    score: float = 100
    total_claims: int = 0
    verified_claims: int = 0
    examples: List[Dict[str, Any]] = Field(default_factory=list)


class VisibilityReport(BaseModel):
    """Generative search visibility (GEN_PERF)"""

    target_brand: str
    queries: List[str]
    responses_analyzed: int
    share_of_voice: Dict[str, Any]
    citations: Dict[str, Any]
    sentiment: SentimentBreakdown
    accuracy: AccuracyReport
