# API package - FastAPI components
from .models import (
    JobStatusResponse,
    StartAnalysisRequest,
    StartAnalysisResponse,
)
from .routes import router
from .service import AnalysisService

__all__ = [
    # Models
    "JobStatusResponse",
    "StartAnalysisRequest",
    "StartAnalysisResponse",
    # Service
    "AnalysisService",
    # Router
    "router",
]
