"""
Generative visibility stage (GEN_PERF): how AI assistants talk about the
brand. Share of voice, citations, sentiment and claim accuracy are computed
from real assistant answers to the site's target queries.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from analyzer.aggregator import AIAggregator
from analyzer.errors import StageInputError, StageResultError
from analyzer.models import (
    AccuracyReport,
    ProfileReport,
    SentimentBreakdown,
    TopQuery,
    VisibilityReport,
)
from analyzer.scoring import round_half_up
from utils.clients.perplexity import AssistantResponder

logger = logging.getLogger(__name__)

# Sentiment is judged on the head of the joined answers
MAX_SENTIMENT_CHARS = 4000
MAX_CITED_URLS = 5
MIXED_MARGIN = 10


def classify_sentiment_trend(positive: float, neutral: float, negative: float) -> str:
    """
    positive / negative / neutral when that share is strictly the largest;
    otherwise "mixed" when positive and negative are less than 10 points apart.
    """
    if positive > neutral and positive > negative:
        return "positive"
    if negative > positive and negative > neutral:
        return "negative"
    if neutral > positive and neutral > negative:
        return "neutral"
    if abs(positive - negative) < MIXED_MARGIN:
        return "mixed"
    return "neutral"


def compute_share_of_voice(
    responses: List[str],
    target_brand: str,
    target_domain: str,
    competitors: List[str],
) -> Dict[str, Dict[str, Any]]:
    """Brand mentions, domain citations and competitor mentions over the answers"""
    brand = (target_brand or "").lower()
    domain = (target_domain or "").lower()
    total = max(len(responses), 1)

    mentions = 0
    citations = 0
    cited_urls: List[str] = []
    url_pattern = (
        re.compile(r"https?://[^\s)\]]*" + re.escape(domain) + r"[^\s)\]]*", re.IGNORECASE)
        if domain
        else None
    )

    for response in responses:
        lowered = (response or "").lower()
        if brand and brand in lowered:
            mentions += 1
        if domain and domain in lowered:
            citations += 1
            for found in url_pattern.findall(response):
                if found not in cited_urls:
                    cited_urls.append(found)

    competitor_scores = []
    for name in competitors:
        hits = sum(1 for r in responses if name.lower() in (r or "").lower())
        competitor_scores.append({"name": name, "score": round_half_up(hits / total * 100)})

    return {
        "share_of_voice": {
            "score": mentions / total * 100,
            "mentions": mentions,
            "competitors": competitor_scores,
        },
        "citations": {
            "citation_rate": citations / total * 100,
            "citations": citations,
            "top_cited_urls": cited_urls[:MAX_CITED_URLS],
        },
    }


async def analyze_sentiment(aggregator: AIAggregator, responses: List[str]) -> SentimentBreakdown:
    if not responses:
        return SentimentBreakdown(positive=0, neutral=0, negative=0, trend="neutral")

    text = " ".join(responses)[:MAX_SENTIMENT_CHARS]
    result = await aggregator.aggregate("analyze_sentiment", text=text)
    data = result.combined if isinstance(result.combined, dict) else {}

    try:
        positive = float(data.get("positive"))
        neutral = float(data.get("neutral"))
        negative = float(data.get("negative"))
    except (TypeError, ValueError):
        logger.warning(f"⚠️ AI returned non-numeric sentiment values: {data}")
        raise StageResultError("AI returned non-numeric sentiment values.")

    return SentimentBreakdown(
        positive=positive,
        neutral=neutral,
        negative=negative,
        trend=classify_sentiment_trend(positive, neutral, negative),
    )


async def score_accuracy(
    aggregator: AIAggregator, responses: List[str], ground_truth: str
) -> AccuracyReport:
    """Extract claims from the answers and verify them against the site's own text"""
    if not responses:
        return AccuracyReport()

    extracted = await aggregator.aggregate("extract_claims", text=" ".join(responses))
    claims = extracted.combined.get("claims") if isinstance(extracted.combined, dict) else None
    claims = [c for c in (claims or []) if isinstance(c, str) and c.strip()]
    if not claims:
        return AccuracyReport()

    verified = await aggregator.aggregate(
        "verify_claims", claims=claims, ground_truth=ground_truth
    )
    examples = verified.combined.get("examples") if isinstance(verified.combined, dict) else None
    examples = [e for e in (examples or []) if isinstance(e, dict)]
    verified_count = sum(1 for e in examples if e.get("verificationResult") == "verified")

    score = round_half_up(verified_count / len(examples) * 100) if examples else 100
    return AccuracyReport(
        score=score,
        total_claims=len(examples),
        verified_claims=verified_count,
        examples=examples,
    )


async def run_visibility_analysis(
    aggregator: AIAggregator,
    responder: AssistantResponder,
    profile: Optional[ProfileReport],
    content: Optional[str],
    target_brand: str,
    target_domain: str,
    top_queries: Optional[List[TopQuery]] = None,
) -> VisibilityReport:
    """
    Measure the brand's visibility in AI assistant answers.

    Args:
        aggregator: Dual-provider AI aggregator (sentiment, claims)
        responder: Source of real assistant answers
        profile: Profile stage report, used for competitor names
        content: Scraped page text, the ground truth for claim checks
        target_brand: Brand name to look for in answers
        target_domain: Site hostname to look for in answers
        top_queries: Queries to ask; defaults to "what is <brand>"

    Raises:
        StageInputError: Profile report or scraped content is missing
        StageResultError: Sentiment values were not numeric
    """
    if profile is None:
        raise StageInputError("Profile report is required for generative visibility analysis.")
    if not content:
        raise StageInputError("Scraped content is required for claim verification.")

    queries = [q.query for q in top_queries or [] if q.query.strip()] or [f"what is {target_brand}"]
    competitors = profile.competitor_names()

    logger.info(f"🔮 Visibility analysis for {target_brand}: {len(queries)} queries")
    responses = await responder.answers(queries)
    if not responses:
        logger.warning(f"⚠️ No assistant responses collected for {target_brand}")

    metrics = compute_share_of_voice(responses, target_brand, target_domain, competitors)
    sentiment = await analyze_sentiment(aggregator, responses)
    accuracy = await score_accuracy(aggregator, responses, content)

    return VisibilityReport(
        target_brand=target_brand,
        queries=queries,
        responses_analyzed=len(responses),
        share_of_voice=metrics["share_of_voice"],
        citations=metrics["citations"],
        sentiment=sentiment,
        accuracy=accuracy,
    )
