"""
Trust signal stage (PROMETHEUS): E-E-A-T scoring from the AI aggregator
combined with performance, content-structure and structured-data signals
into eight weighted GEO pillars.
"""

import logging
import re
from typing import Any, Dict, Optional

from analyzer.aggregator import AIAggregator
from analyzer.errors import StageInputError, StageResultError
from analyzer.models import Metric, Pillar, PerformanceReport, ProfileReport, TrustReport
from analyzer.scoring import (
    DATA_UNAVAILABLE_KEY,
    interpret_score,
    overall_score,
    round_half_up,
    score_pillar,
)

logger = logging.getLogger(__name__)

PILLAR_WEIGHTS = {
    "performance": 0.20,
    "contentStructure": 0.15,
    "eeatSignals": 0.20,
    "technicalGEO": 0.10,
    "structuredData": 0.05,
    "brandAuthority": 0.10,
    "entityOptimization": 0.10,
    "contentStrategy": 0.10,
}

# (good_max, needs_improvement_max) per metric
VITALS_THRESHOLDS = {
    "LCP": (2500, 4000),
    "FCP": (1800, 3000),
    "CLS": (0.1, 0.25),
    "FID": (100, 300),
    "INP": (200, 500),
    "TBT": (200, 600),
    "SpeedIndex": (3400, 5800),
}

RATING_SCORES = {"GOOD": 95, "NEEDS_IMPROVEMENT": 50, "POOR": 10}

DEFAULT_EXECUTIVE_SUMMARY = (
    "The site has a solid foundation but needs improvement in E-E-A-T signals and brand authority."
)

_TEXTS = {
    "en": {
        "headings_good": "Good heading structure.",
        "headings_multi_h1": "Multiple H1 headings dilute the page topic.",
        "headings_missing": "No H1 heading found.",
        "content_depth": "Content depth is sufficient.",
        "content_thin": "Content is thin for AI answers.",
        "mobile": "Mobile friendliness is good.",
        "schema_found": "JSON-LD structured data found.",
        "schema_default": "Default assessment.",
        "mentions": "Limited external mentions.",
        "entity_default": "Default assessment.",
        "topical": "Limited topical coverage.",
    },
    "tr": {
        "headings_good": "Başlık hiyerarşisi genel olarak iyi.",
        "headings_multi_h1": "Birden fazla H1 başlığı sayfa konusunu dağıtıyor.",
        "headings_missing": "H1 başlığı bulunamadı.",
        "content_depth": "İçerik derinliği yeterli.",
        "content_thin": "İçerik yapay zeka yanıtları için zayıf.",
        "mobile": "Mobil uyumluluk iyi.",
        "schema_found": "JSON-LD yapılandırılmış veri bulundu.",
        "schema_default": "Varsayılan değerlendirme.",
        "mentions": "Sınırlı dış mention.",
        "entity_default": "Varsayılan değerlendirme.",
        "topical": "Sınırlı konu kapsaması.",
    },
}

_H1_PATTERN = re.compile(r"<h1[\s>]", re.IGNORECASE)
_H2_PATTERN = re.compile(r"<h2[\s>]", re.IGNORECASE)
_JSON_LD_PATTERN = re.compile(r"<script[^>]+application/ld\+json", re.IGNORECASE)


def to_0_100(value: Any) -> int:
    """Normalize a 0-1, 1-10 or 0-100 score to a 0-100 integer"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if value != value:  # NaN
        return 0
    if 0 <= value <= 1:
        return round_half_up(value * 100)
    if 1 < value <= 10:
        return round_half_up(value * 10)
    if value < 0:
        return 0
    if value > 100:
        return 100
    return round_half_up(value)


def rate_vital(name: str, value: float) -> str:
    good, needs_improvement = VITALS_THRESHOLDS.get(name, (None, None))
    if good is None:
        return "NEEDS_IMPROVEMENT"
    if value <= good:
        return "GOOD"
    if value <= needs_improvement:
        return "NEEDS_IMPROVEMENT"
    return "POOR"


def format_performance_metrics(report: Optional[PerformanceReport]) -> Dict[str, Metric]:
    """
    Rate each available web vital. Field p75 values win over lab values.
    Without any value the pillar gets the data-unavailable marker.
    """
    if report is None:
        return {
            DATA_UNAVAILABLE_KEY: Metric(
                score=0,
                justification="Performance data could not be retrieved or processed.",
                details="Check PSI configuration or network errors.",
            )
        }
    if not report.has_data():
        return {
            DATA_UNAVAILABLE_KEY: Metric(
                score=0,
                justification="No field or lab metrics found in the performance report.",
                details="field/lab blocks empty",
            )
        }

    field, lab = report.field, report.lab
    values = {
        "LCP": (field.lcp_p75 if field.lcp_p75 is not None else lab.lcp_ms, "ms"),
        "FCP": (field.fcp_p75 if field.fcp_p75 is not None else lab.fcp_ms, "ms"),
        "CLS": (field.cls_p75 if field.cls_p75 is not None else lab.cls, ""),
        "INP": (field.inp_p75, "ms"),
        "FID": (field.fid_p75, "ms"),
        "TBT": (lab.tbt_ms, "ms"),
        "SpeedIndex": (lab.speed_index_ms, "ms"),
    }

    formatted = {}
    for name, (value, unit) in values.items():
        if value is None:
            continue
        rating = rate_vital(name, value)
        formatted[name] = Metric(
            score=RATING_SCORES[rating],
            justification=f"{name} = {value}{' ' + unit if unit else ''} ({rating}).",
            details="Source: normalized performance data",
        )

    return formatted


def format_eeat_metrics(eeat_analysis: Dict[str, Any]) -> Dict[str, Metric]:
    metrics = {}
    for component in ("experience", "expertise", "authoritativeness", "trustworthiness"):
        data = eeat_analysis.get(component)
        if not isinstance(data, dict):
            metrics[component] = Metric(
                score=0, justification="No data for this component from AI analysis."
            )
            continue
        metrics[component] = Metric(
            score=to_0_100(data.get("score")),
            justification=data.get("justification") or "No justification provided",
            positive_points=data.get("positiveSignals") or [],
            negative_points=data.get("negativeSignals") or [],
        )
    return metrics


def _content_structure_metrics(html: str, content: str, texts: Dict[str, str]) -> Dict[str, Metric]:
    h1_count = len(_H1_PATTERN.findall(html))
    h2_count = len(_H2_PATTERN.findall(html))

    if h1_count == 1 and h2_count > 0:
        headings = Metric(score=75, justification=texts["headings_good"])
    elif h1_count > 1:
        headings = Metric(score=55, justification=texts["headings_multi_h1"])
    elif h1_count == 0:
        headings = Metric(score=40, justification=texts["headings_missing"])
    else:
        headings = Metric(score=65, justification=texts["headings_good"])

    words = len(content.split())
    if words >= 300:
        depth = Metric(score=70, justification=texts["content_depth"])
    else:
        depth = Metric(score=50, justification=texts["content_thin"])

    return {"headings": headings, "contentDepth": depth}


def _structured_data_metrics(html: str, texts: Dict[str, str]) -> Dict[str, Metric]:
    if _JSON_LD_PATTERN.search(html):
        return {"schemaOrg": Metric(score=70, justification=texts["schema_found"])}
    return {"schemaOrg": Metric(score=50, justification=texts["schema_default"])}


async def run_trust_analysis(
    aggregator: AIAggregator,
    profile: Optional[ProfileReport],
    content: Optional[str],
    html: Optional[str],
    performance: Optional[PerformanceReport] = None,
    locale: str = "en",
) -> TrustReport:
    """
    Score a site's GEO readiness across eight weighted pillars.

    Args:
        aggregator: Dual-provider AI aggregator
        profile: Profile stage report (required)
        content: Scraped visible text (required)
        html: Scraped HTML (required)
        performance: Performance report, or None when that stage failed
        locale: Output language code

    Raises:
        StageInputError: Profile, content or html is missing
        StageResultError: The E-E-A-T result has no eeatAnalysis block
    """
    if profile is None:
        raise StageInputError("Profile report is required for trust analysis.")
    if not content or not html:
        raise StageInputError("Scraped content and HTML are required for trust analysis.")

    texts = _TEXTS.get(locale, _TEXTS["en"])

    sector = profile.business_model.get("modelType") or "Unknown"
    primary_audience = profile.target_audience.get("primaryAudience") or {}
    audience = (
        primary_audience.get("demographics") if isinstance(primary_audience, dict) else None
    ) or "General Audience"

    result = await aggregator.aggregate(
        "analyze_eeat_signals", content=content, sector=sector, audience=audience, locale=locale
    )
    if result.errors:
        logger.warning(f"⚠️ E-E-A-T analysis partial errors: {'; '.join(result.errors)}")

    combined = result.combined if isinstance(result.combined, dict) else {}
    eeat_analysis = combined.get("eeatAnalysis")
    if not isinstance(eeat_analysis, dict):
        raise StageResultError("E-E-A-T analysis returned no valid data.")

    metrics_by_pillar = {
        "performance": format_performance_metrics(performance),
        "contentStructure": _content_structure_metrics(html, content, texts),
        "eeatSignals": format_eeat_metrics(eeat_analysis),
        "technicalGEO": {"mobileFriendly": Metric(score=80, justification=texts["mobile"])},
        "structuredData": _structured_data_metrics(html, texts),
        "brandAuthority": {"mentions": Metric(score=60, justification=texts["mentions"])},
        "entityOptimization": {
            "knowledgeGraphPresence": Metric(score=50, justification=texts["entity_default"])
        },
        "contentStrategy": {"topicalCoverage": Metric(score=65, justification=texts["topical"])},
    }

    pillars = {
        name: Pillar(
            name=name,
            score=score_pillar(metrics, name, apply_penalties=False),
            weight=PILLAR_WEIGHTS[name],
            metrics=metrics,
        )
        for name, metrics in metrics_by_pillar.items()
    }

    geo_score = overall_score(pillars)
    logger.info(f"🔥 Trust analysis scored {geo_score}/100")

    geo_details = combined.get("geoScoreDetails")
    return TrustReport(
        score_interpretation=interpret_score(geo_score, locale),
        executive_summary=combined.get("executiveSummary") or DEFAULT_EXECUTIVE_SUMMARY,
        overall_geo_score=geo_score,
        geo_score_details=geo_details if isinstance(geo_details, dict) else None,
        pillars=pillars,
        action_plan=combined.get("actionPlan"),
    )
