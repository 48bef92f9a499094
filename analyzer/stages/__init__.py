# Stages package - one analysis service per pipeline step
from .agenda import run_agenda_analysis
from .performance import build_performance_report, run_performance_analysis
from .profile import run_profile_analysis
from .trust import run_trust_analysis
from .visibility import classify_sentiment_trend, run_visibility_analysis

__all__ = [
    "build_performance_report",
    "classify_sentiment_trend",
    "run_agenda_analysis",
    "run_performance_analysis",
    "run_profile_analysis",
    "run_trust_analysis",
    "run_visibility_analysis",
]
