"""
Exception types raised by the analysis pipeline.
"""


class GEOAnalyzerError(Exception):
    """Base class for pipeline errors"""

    pass


# Configuration


class ProviderNotConfiguredError(GEOAnalyzerError):
    """Raised when an AI provider (or every AI provider) lacks credentials"""

    pass


# Transient infrastructure


class ScrapeError(GEOAnalyzerError):
    """Raised when a page cannot be loaded or yields no usable content"""

    pass


class ScrapeTimeoutError(ScrapeError):
    """Raised when a scrape attempt exceeds its overall time budget"""

    pass


class HostResolutionError(ScrapeError):
    """Raised when the target hostname does not resolve"""

    pass


class PerformanceProviderError(GEOAnalyzerError):
    """Raised when PageSpeed Insights returns an error response"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


# Input preconditions and aggregation


class StageInputError(GEOAnalyzerError):
    """Raised when a stage is invoked without the inputs it needs"""

    pass


class AggregationError(GEOAnalyzerError):
    """Raised when every attempted AI provider failed"""

    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.errors = errors or []


class StageResultError(GEOAnalyzerError):
    """Raised when a stage gets a result it cannot use"""

    pass


# Catastrophic


class JobValidationError(GEOAnalyzerError):
    """Raised when a job is missing fields the orchestrator requires"""

    pass


class JobNotFoundError(GEOAnalyzerError):
    """Raised when a referenced job does not exist"""

    pass


class AnalysisOrchestrationError(GEOAnalyzerError):
    """Raised when a job is aborted and marked FAILED"""

    def __init__(self, message: str, job_id: str = None):
        super().__init__(message)
        self.job_id = job_id
