# Analyzer package - GEO analysis engine
from .errors import AnalysisOrchestrationError, GEOAnalyzerError
from .models import AnalysisJob, JobStatus

__all__ = [
    "AnalysisJob",
    "AnalysisOrchestrationError",
    "GEOAnalyzerError",
    "JobStatus",
]
