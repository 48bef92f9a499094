# Tasks package - Celery background tasks
from .analysis import CallbackTask, build_orchestrator, run_analysis

__all__ = [
    "CallbackTask",
    "build_orchestrator",
    "run_analysis",
]
