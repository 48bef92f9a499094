"""
GEO Analysis Prompts for the AI providers

Every prompt asks for a single JSON object so replies can go through
repair_and_parse_json. Locale controls the language of the narrative fields.
"""

import json
from typing import Any, Callable, Dict, List

# Scraped pages can be large; providers only see the head of the text
MAX_CONTENT_CHARS = 15000
MAX_GROUND_TRUTH_CHARS = 12000

LANGUAGE_NAMES = {
    "en": "English",
    "tr": "Turkish",
}


def _language_instruction(locale: str) -> str:
    language = LANGUAGE_NAMES.get(locale or "en", "English")
    return (
        f"Write every human-readable value in {language}. "
        "Keep JSON keys exactly as shown."
    )


def _truncate(text: str, limit: int) -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + "\n[...truncated]"


JSON_ONLY = "Respond with ONLY a valid JSON object. No markdown, no commentary."


def get_business_model_prompt(content: str, locale: str = "en") -> str:
    """
    Build the business model analysis prompt.

    Args:
        content: Visible text scraped from the target website
        locale: Output language code (en, tr)

    Returns:
        Prompt string expecting {brandName, modelType, valueProposition, ...}
    """
    return f"""You are a senior business analyst. Analyze the website content below and describe the business behind it.

{_language_instruction(locale)}

Return this JSON structure:
{{
  "brandName": "The brand or company name as it appears on the site",
  "modelType": "B2B SaaS | E-commerce | Marketplace | Local Service | Publisher | ...",
  "valueProposition": "One sentence describing the core value offered",
  "revenueStreams": ["..."],
  "keyOfferings": ["..."],
  "summary": "Two or three sentences"
}}

Website content:
\"\"\"
{_truncate(content, MAX_CONTENT_CHARS)}
\"\"\"

{JSON_ONLY}"""


def get_target_audience_prompt(content: str, locale: str = "en") -> str:
    """Build the target audience analysis prompt."""
    return f"""You are a market research specialist. Identify who the website below is written for.

{_language_instruction(locale)}

Return this JSON structure:
{{
  "primaryAudience": {{
    "demographics": "Short description of the main audience",
    "needs": ["..."],
    "painPoints": ["..."]
  }},
  "secondaryAudiences": [
    {{"segment": "...", "description": "..."}}
  ],
  "buyerIntent": "informational | commercial | transactional | navigational"
}}

Website content:
\"\"\"
{_truncate(content, MAX_CONTENT_CHARS)}
\"\"\"

{JSON_ONLY}"""


def get_competitors_prompt(content: str, url: str, locale: str = "en") -> str:
    """Build the competitor discovery prompt."""
    return f"""You are a competitive intelligence analyst. Based on the website at {url} and its content below, list its most relevant competitors.

{_language_instruction(locale)}

Return this JSON structure:
{{
  "businessCompetitors": [
    {{"name": "Competitor name", "domain": "competitor.com", "reason": "Why it competes"}}
  ],
  "contentCompetitors": [
    {{"name": "Publisher or site competing for the same queries", "domain": "..."}}
  ],
  "marketPosition": "Short description of where the brand sits among them"
}}

List at most 5 business competitors.

Website content:
\"\"\"
{_truncate(content, MAX_CONTENT_CHARS)}
\"\"\"

{JSON_ONLY}"""


def get_eeat_signals_prompt(
    content: str, sector: str, audience: str, locale: str = "en"
) -> str:
    """
    Build the E-E-A-T (Experience, Expertise, Authoritativeness, Trust) prompt.

    Args:
        content: Visible text scraped from the target website
        sector: Business model type from the profile analysis
        audience: Primary audience description from the profile analysis
        locale: Output language code (en, tr)

    Returns:
        Prompt string expecting {eeatAnalysis, executiveSummary, geoScoreDetails, actionPlan}
    """
    return f"""You are a Generative Engine Optimization (GEO) auditor. Evaluate how strongly the website content below demonstrates E-E-A-T signals to AI search engines.

Sector: {sector}
Audience: {audience}

{_language_instruction(locale)}

Score each component from 0 to 100. Return this JSON structure:
{{
  "eeatAnalysis": {{
    "experience": {{"score": 0, "justification": "...", "positiveSignals": ["..."], "negativeSignals": ["..."]}},
    "expertise": {{"score": 0, "justification": "...", "positiveSignals": ["..."], "negativeSignals": ["..."]}},
    "authoritativeness": {{"score": 0, "justification": "...", "positiveSignals": ["..."], "negativeSignals": ["..."]}},
    "trustworthiness": {{"score": 0, "justification": "...", "positiveSignals": ["..."], "negativeSignals": ["..."]}}
  }},
  "executiveSummary": "Three to five sentences on the site's GEO readiness",
  "geoScoreDetails": {{
    "citationLikelihood": 0,
    "answerability": 0,
    "entityClarity": 0
  }},
  "actionPlan": [
    {{"title": "...", "description": "...", "priority": "high | medium | low"}}
  ]
}}

Website content:
\"\"\"
{_truncate(content, MAX_CONTENT_CHARS)}
\"\"\"

{JSON_ONLY}"""


def get_delfi_agenda_prompt(prometheus_report: Any, locale: str = "en") -> str:
    """Build the prioritized action agenda prompt from a trust report."""
    if isinstance(prometheus_report, str):
        report_text = prometheus_report
    else:
        report_text = json.dumps(prometheus_report, indent=2, ensure_ascii=False)

    return f"""You are a GEO strategist. Turn the audit report below into a prioritized action agenda for the next 90 days.

{_language_instruction(locale)}

Return this JSON structure:
{{
  "agendaSummary": "Two or three sentences",
  "priorities": [
    {{
      "title": "...",
      "pillar": "performance | contentStructure | eeatSignals | technicalGEO | structuredData | brandAuthority | entityOptimization | contentStrategy",
      "impact": "high | medium | low",
      "effort": "high | medium | low",
      "actions": ["..."],
      "timeframe": "0-30 days | 30-60 days | 60-90 days"
    }}
  ],
  "quickWins": ["..."]
}}

Audit report:
{report_text}

{JSON_ONLY}"""


def get_sentiment_prompt(text: str) -> str:
    """Build the sentiment distribution prompt for AI assistant answers."""
    return f"""Classify the overall sentiment of the AI assistant answers below towards the brand they discuss.

Return this JSON structure, where the three percentages sum to 100:
{{"positive": 0, "neutral": 0, "negative": 0}}

Answers:
\"\"\"
{text}
\"\"\"

{JSON_ONLY}"""


def get_extract_claims_prompt(text: str) -> str:
    """Build the factual-claim extraction prompt."""
    return f"""Extract the distinct factual claims the AI assistant answers below make about the brand (products, prices, locations, founding facts, features). Ignore opinions.

Return this JSON structure:
{{"claims": ["..."]}}

List at most 10 claims.

Answers:
\"\"\"
{_truncate(text, MAX_CONTENT_CHARS)}
\"\"\"

{JSON_ONLY}"""


def get_verify_claims_prompt(claims: List[str], ground_truth: str) -> str:
    """Build the claim verification prompt against the brand's own site content."""
    claims_text = "\n".join(f"- {claim}" for claim in claims)
    return f"""Verify each claim against the SOURCE TEXT taken from the brand's own website.

For each claim decide:
- "verified": the source text supports it
- "unverified": the source text does not mention it
- "contradictory": the source text contradicts it

Return this JSON structure:
{{
  "examples": [
    {{"claim": "...", "sourceText": "Supporting or contradicting excerpt, or empty", "verificationResult": "verified | unverified | contradictory", "explanation": "..."}}
  ]
}}

Claims:
{claims_text}

SOURCE TEXT:
\"\"\"
{_truncate(ground_truth, MAX_GROUND_TRUTH_CHARS)}
\"\"\"

{JSON_ONLY}"""


PROMPT_BUILDERS: Dict[str, Callable[..., str]] = {
    "analyze_business_model": get_business_model_prompt,
    "analyze_target_audience": get_target_audience_prompt,
    "analyze_competitors": get_competitors_prompt,
    "analyze_eeat_signals": get_eeat_signals_prompt,
    "generate_delfi_agenda": get_delfi_agenda_prompt,
    "analyze_sentiment": get_sentiment_prompt,
    "extract_claims": get_extract_claims_prompt,
    "verify_claims": get_verify_claims_prompt,
}


def build_prompt(operation: str, **kwargs) -> str:
    """Build the prompt for a named aggregator operation"""
    try:
        builder = PROMPT_BUILDERS[operation]
    except KeyError:
        raise ValueError(f"Unknown AI operation: {operation}")
    return builder(**kwargs)
