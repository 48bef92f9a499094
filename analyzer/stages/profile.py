"""
Business profile stage (ARKHE): business model, target audience and
competitors, asked of the AI aggregator in parallel.
"""

import logging

from analyzer.aggregator import AIAggregator
from analyzer.errors import StageInputError, StageResultError
from analyzer.models import ProfileReport
from config import settings
from utils.concurrency import gather_settled

logger = logging.getLogger(__name__)


async def run_profile_analysis(
    aggregator: AIAggregator, content: str, url: str, locale: str = "en"
) -> ProfileReport:
    """
    Profile the business behind a scraped page.

    Args:
        aggregator: Dual-provider AI aggregator
        content: Visible text of the page
        url: Page URL, given to the competitor prompt
        locale: Output language code

    Returns:
        ProfileReport with the combined result of each operation

    Raises:
        StageInputError: Content is shorter than the minimum length
        AggregationError / ProviderNotConfiguredError: from the aggregator
    """
    if not content or len(content.strip()) < settings.MIN_CONTENT_LENGTH:
        raise StageInputError("Scraped content is insufficient for profile analysis.")

    logger.info(f"🏛️ Profile analysis for {url} ({len(content)} chars, locale={locale})")

    outcomes = await gather_settled(
        aggregator.aggregate("analyze_business_model", content=content, locale=locale),
        aggregator.aggregate("analyze_target_audience", content=content, locale=locale),
        aggregator.aggregate("analyze_competitors", content=content, url=url, locale=locale),
    )
    # All three calls are joined before the first failure is raised
    for outcome in outcomes:
        if not outcome.ok:
            raise outcome.error
    business_model, target_audience, competitors = (o.value for o in outcomes)

    if not (business_model.combined and target_audience.combined and competitors.combined):
        raise StageResultError("Profile analysis encountered AI errors - missing combined results.")

    return ProfileReport(
        business_model=business_model.combined,
        target_audience=target_audience.combined,
        competitors=competitors.combined,
    )
