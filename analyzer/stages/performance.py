"""
Performance stage (PSI): PageSpeed Insights lab and field metrics,
normalized into one fixed PerformanceReport shape.
"""

import logging
from typing import Any, Dict, Optional

from analyzer.models import FieldMetrics, LabMetrics, PerformanceReport
from utils.clients.pagespeed import PageSpeedClient

logger = logging.getLogger(__name__)

LAB_AUDITS = {
    "lcp_ms": "largest-contentful-paint",
    "fcp_ms": "first-contentful-paint",
    "cls": "cumulative-layout-shift",
    "tbt_ms": "total-blocking-time",
    "speed_index_ms": "speed-index",
}

# (PSI key, CrUX API key) per field metric
FIELD_KEYS = {
    "lcp_p75": ("LARGEST_CONTENTFUL_PAINT_MS", "largest_contentful_paint"),
    "fcp_p75": ("FIRST_CONTENTFUL_PAINT_MS", "first_contentful_paint"),
    "cls_p75": ("CUMULATIVE_LAYOUT_SHIFT_SCORE", "cumulative_layout_shift"),
    "fid_p75": ("FIRST_INPUT_DELAY_MS", "first_input_delay"),
    "inp_p75": ("INTERACTION_TO_NEXT_PAINT", "interaction_to_next_paint"),
}


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _p75(metrics: Dict[str, Any], key: str) -> Optional[float]:
    entry = metrics.get(key)
    if not isinstance(entry, dict):
        return None
    # PSI embeds p75 as "percentile"; the CrUX API as "percentiles.p75"
    if "percentile" in entry:
        value = _number(entry["percentile"])
        # PSI reports CLS x100 as an integer
        if value is not None and key == "CUMULATIVE_LAYOUT_SHIFT_SCORE":
            value = value / 100
        return value
    percentiles = entry.get("percentiles") or {}
    return _number(percentiles.get("p75"))


def build_performance_report(url: str, payload: Dict[str, Any]) -> PerformanceReport:
    """Normalize a raw PSI (or CrUX API) payload; {} yields an all-null report"""
    payload = payload or {}

    audits = (payload.get("lighthouseResult") or {}).get("audits") or {}
    lab = LabMetrics(**{
        name: _number((audits.get(audit) or {}).get("numericValue"))
        for name, audit in LAB_AUDITS.items()
    })

    field_metrics = (
        (payload.get("loadingExperience") or {}).get("metrics")
        or (payload.get("originLoadingExperience") or {}).get("metrics")
        or (payload.get("record") or {}).get("metrics")
        or {}
    )
    values = {}
    for name, (psi_key, crux_key) in FIELD_KEYS.items():
        value = _p75(field_metrics, psi_key)
        if value is None:
            value = _p75(field_metrics, crux_key)
        values[name] = value

    return PerformanceReport(
        url=url,
        lab=lab,
        field=FieldMetrics(**values),
        raw_provider=payload.get("kind") or "unknown",
    )


async def run_performance_analysis(client: PageSpeedClient, url: str) -> PerformanceReport:
    """
    Fetch and normalize performance metrics for url.

    A client without an API key yields an all-null report instead of failing.

    Raises:
        PerformanceProviderError: PSI answered with an error status
    """
    if not client.configured:
        logger.warning("⚠️ PSI key missing; returning stub performance report")
        return build_performance_report(url, {})

    logger.info(f"📊 PageSpeed Insights analysis starting: {url}")
    payload = await client.fetch_metrics(url)
    report = build_performance_report(url, payload)
    logger.info(f"✅ PageSpeed Insights analysis completed: {url}")
    return report
