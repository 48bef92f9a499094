"""
Action agenda stage (LIR).
"""

import logging
from typing import Any, Dict, Optional

from analyzer.aggregator import AIAggregator
from analyzer.errors import StageInputError, StageResultError
from analyzer.models import TrustReport

logger = logging.getLogger(__name__)


async def run_agenda_analysis(
    aggregator: AIAggregator, trust_report: Optional[TrustReport], locale: str = "en"
) -> Dict[str, Any]:
    """
    Turn a trust report into a prioritized action agenda.
    Any provider error fails the stage, even if the other provider answered.
    """
    if trust_report is None:
        raise StageInputError("Trust report is required for agenda analysis.")

    logger.info(f"🧭 Agenda analysis starting (locale={locale})")
    result = await aggregator.aggregate(
        "generate_delfi_agenda",
        prometheus_report=trust_report.model_dump(mode="json"),
        locale=locale,
    )

    if result.errors:
        message = f"Agenda analysis encountered AI errors: {', '.join(result.errors)}"
        logger.error(f"❌ {message}")
        raise StageResultError(message)

    if not isinstance(result.combined, dict):
        raise StageResultError("Agenda analysis returned no valid data.")
    return result.combined
