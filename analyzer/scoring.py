"""
Scoring engine for GEO pillars.

Pillar scores are means of 0-100 metric scores with optional penalties;
the overall score is a weighted mean over the pillars that carried signal.
"""

import logging
import math
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from analyzer.models import Metric, Pillar

logger = logging.getLogger(__name__)

# Bookkeeping entry in performance metrics, never scored
BOOKKEEPING_KEY = "overallLighthouseScore"

# Marker metric meaning "no usable data for this pillar"
DATA_UNAVAILABLE_KEY = "dataUnavailable"

# Floor returned when no pillar qualifies for the overall score
NO_SIGNAL_SCORE = 5

PILLAR_METRIC_WEIGHTS: Dict[str, Dict[str, float]] = {
    "entityOptimization": {
        "knowledgeGraphPresence": 0.5,
        "entityReconciliation": 0.25,
        "entityCompleteness": 0.25,
    },
}

SCORE_LABELS = {
    "en": {"leader": "Leader", "developing": "Developing", "weak": "Weak"},
    "tr": {"leader": "Lider", "developing": "Gelişmekte", "weak": "Zayıf"},
}

MetricLike = Union[Metric, Mapping[str, Any]]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (built-in round() is banker's)"""
    return int(math.floor(value + 0.5))


def _as_metric(metric: MetricLike) -> Metric:
    if isinstance(metric, Metric):
        return metric
    return Metric(
        score=metric.get("score") or 0,
        justification=metric.get("justification") or "",
        details=metric.get("details"),
        negative_points=metric.get("negative_points") or metric.get("negativePoints") or [],
        positive_points=metric.get("positive_points") or metric.get("positivePoints") or [],
    )


def score_pillar(
    metrics: Mapping[str, MetricLike],
    pillar_name: str,
    apply_penalties: bool = True,
) -> int:
    """
    Score one pillar from its metrics.

    Args:
        metrics: Metric name -> {score, justification, negative_points}
        pillar_name: Pillar key, used to look up metric weights
        apply_penalties: Subtract points for negative signals and poor ratings

    Returns:
        Integer score clamped to 0..100
    """
    entries = {
        name: _as_metric(metric)
        for name, metric in metrics.items()
        if name != BOOKKEEPING_KEY
    }
    if not entries:
        return 0

    weights = PILLAR_METRIC_WEIGHTS.get(pillar_name, {})
    weighted = {name: weights[name] for name in entries if weights.get(name, 0) > 0}

    total_weight = sum(weighted.values())
    if weighted and total_weight > 0:
        total = sum(entries[name].score * weight for name, weight in weighted.items())
    else:
        total = sum(m.score for m in entries.values())
        total_weight = len(entries)

    score = total / total_weight

    if apply_penalties:
        negatives = sum(len(m.negative_points) for m in entries.values())
        needs_improvement = sum(
            1 for m in entries.values() if "NEEDS_IMPROVEMENT" in m.justification
        )
        poor = sum(1 for m in entries.values() if "POOR" in m.justification)
        score -= negatives * 5
        score -= needs_improvement * 5
        score -= poor * 10

    score = min(max(score, 0.0), 100.0)
    return round_half_up(score)


def _is_data_unavailable(pillar: Union[Pillar, Mapping[str, Any]]) -> bool:
    metrics = pillar.metrics if isinstance(pillar, Pillar) else (pillar.get("metrics") or {})
    return DATA_UNAVAILABLE_KEY in metrics


def overall_score(pillars: Mapping[str, Union[Pillar, Mapping[str, Any]]]) -> int:
    """
    Weighted mean over pillars with a nonzero score and usable data.
    Returns NO_SIGNAL_SCORE when no pillar qualifies.
    """
    total = 0.0
    total_weight = 0.0

    for name, pillar in pillars.items():
        if isinstance(pillar, Pillar):
            score, weight = pillar.score, pillar.weight
        else:
            score, weight = pillar.get("score") or 0, pillar.get("weight") or 0
        if score > 0 and not _is_data_unavailable(pillar):
            total += score * weight
            total_weight += weight
        else:
            logger.debug(f"Pillar {name} excluded from overall score")

    if total_weight == 0:
        return NO_SIGNAL_SCORE
    return round_half_up(total / total_weight)


def resilient_score(subcomponents: Iterable[Mapping[str, Any]]) -> float:
    """Weighted mean over subcomponents whose score is defined (0 if none)"""
    valid = [sc for sc in subcomponents if sc.get("score") is not None]
    if not valid:
        return 0

    total_weight = sum(sc.get("weight", 0) for sc in valid)
    if total_weight == 0:
        return 0

    return sum(sc["score"] * sc.get("weight", 0) for sc in valid) / total_weight


def interpret_score(score: int, locale: Optional[str] = "en") -> str:
    labels = SCORE_LABELS.get(locale or "en", SCORE_LABELS["en"])
    if score >= 80:
        return labels["leader"]
    if score >= 50:
        return labels["developing"]
    return labels["weak"]
