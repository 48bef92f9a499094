"""Shared test fixtures: an in-memory async Redis and fake pipeline collaborators."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from analyzer.aggregator import AggregatedResult
from analyzer.errors import AggregationError
from analyzer.models import AnalysisJob, ScrapeResult
from core.store import JobStore


class FakeRedis:
    """
    The subset of redis.asyncio.Redis the job store uses.

    fail_when(command, key, payload) -> bool makes a command raise a
    redis ConnectionError, the way a dropped connection would.
    """

    def __init__(self):
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.lists: Dict[str, List[str]] = {}
        self.strings: Dict[str, str] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.ttls: Dict[str, int] = {}
        self.hset_history: List[tuple] = []
        self.fail_when: Optional[Callable[[str, str, Any], bool]] = None

    def _check(self, command: str, key: str, payload: Any = None):
        if self.fail_when is not None and self.fail_when(command, key, payload):
            raise RedisConnectionError(f"{command} {key} failed")

    async def hset(self, name, key=None, value=None, mapping=None):
        self._check("hset", name, mapping)
        values = dict(mapping or {})
        if key is not None:
            values[key] = value
        self.hashes.setdefault(name, {}).update(values)
        self.hset_history.append((name, values))
        return len(values)

    async def hgetall(self, name):
        self._check("hgetall", name)
        return dict(self.hashes.get(name, {}))

    async def rpush(self, name, *values):
        self._check("rpush", name, values)
        items = self.lists.setdefault(name, [])
        items.extend(values)
        return len(items)

    async def lrange(self, name, start, end):
        items = self.lists.get(name, [])
        stop = len(items) if end == -1 else end + 1
        return items[start:stop]

    async def expire(self, name, seconds):
        self.ttls[name] = seconds
        return True

    async def set(self, name, value, ex=None):
        self._check("set", name, value)
        self.strings[name] = value
        if ex is not None:
            self.ttls[name] = ex
        return True

    async def get(self, name):
        return self.strings.get(name)

    async def zadd(self, name, mapping):
        self.zsets.setdefault(name, {}).update(mapping)
        return len(mapping)

    async def zrevrangebyscore(self, name, max, min):
        def bound(value):
            if value == "+inf":
                return float("inf")
            if value == "-inf":
                return float("-inf")
            return float(value)

        low, high = bound(min), bound(max)
        members = [
            (member, score)
            for member, score in self.zsets.get(name, {}).items()
            if low <= score <= high
        ]
        return [member for member, _ in sorted(members, key=lambda m: m[1], reverse=True)]

    async def delete(self, *names):
        removed = 0
        for name in names:
            for bucket in (self.hashes, self.lists, self.strings, self.zsets):
                if bucket.pop(name, None) is not None:
                    removed += 1
        return removed

    async def ping(self):
        return True

    def written_statuses(self, job_id: str) -> List[str]:
        """Every status value written to a job hash, in write order"""
        key = JobStore.job_key(job_id)
        return [
            json.loads(values["status"])
            for name, values in self.hset_history
            if name == key and "status" in values
        ]


class FakeAggregator:
    """
    Answers aggregator operations from a dict of canned results.

    A value may be a plain result (returned as `combined`), an
    AggregatedResult, or an exception to raise.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses = dict(responses or {})
        self.calls: List[tuple] = []

    @property
    def operations(self) -> List[str]:
        return [operation for operation, _ in self.calls]

    async def aggregate(self, operation: str, **kwargs) -> AggregatedResult:
        self.calls.append((operation, kwargs))
        response = self.responses.get(operation)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, AggregatedResult):
            return response
        if response is None:
            raise AggregationError(f"All AI platforms failed: no answer for {operation}")
        return AggregatedResult(combined=response)


class FakeScraper:
    def __init__(self, result: Optional[ScrapeResult] = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[str] = []

    async def scrape(self, url: str) -> ScrapeResult:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.result


class FakeResponder:
    def __init__(self, responses: Optional[List[str]] = None):
        self.responses = list(responses or [])
        self.queries: List[str] = []

    async def answers(self, queries: List[str]) -> List[str]:
        self.queries.extend(queries)
        return list(self.responses)


class FakePageSpeed:
    def __init__(self, payload: Optional[dict] = None, error: Optional[Exception] = None, configured=True):
        self.payload = payload or {}
        self.error = error
        self.configured = configured
        self.calls: List[str] = []

    async def fetch_metrics(self, url: str) -> dict:
        self.calls.append(url)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.payload


# ── Canned data ──────────────────────────────────────────────────────

PAGE_TEXT = (
    "Acme builds workflow automation software for operations teams. "
    "Founded in 2015, Acme serves more than 500 customers across Europe and "
    "offers integrations with every major CRM. Our team of engineers and "
    "consultants helps companies replace manual spreadsheets with reliable, "
    "auditable processes."
)

PAGE_HTML = (
    "<html><head><title>Acme</title>"
    '<script type="application/ld+json">{"@type": "Organization", "name": "Acme"}</script>'
    "</head><body><h1>Acme</h1><h2>Features</h2>"
    f"<p>{PAGE_TEXT}</p></body></html>"
)

PSI_PAYLOAD = {
    "kind": "pagespeedonline#result",
    "lighthouseResult": {
        "audits": {
            "largest-contentful-paint": {"numericValue": 2100.5},
            "first-contentful-paint": {"numericValue": 1200},
            "cumulative-layout-shift": {"numericValue": 0.02},
            "total-blocking-time": {"numericValue": 350},
            "speed-index": {"numericValue": 3000},
        }
    },
    "loadingExperience": {
        "metrics": {
            "LARGEST_CONTENTFUL_PAINT_MS": {"percentile": 2600},
            "CUMULATIVE_LAYOUT_SHIFT_SCORE": {"percentile": 5},
            "INTERACTION_TO_NEXT_PAINT": {"percentile": 180},
        }
    },
}

ASSISTANT_ANSWERS = [
    "Acme is a workflow automation vendor. See https://acme.com/pricing for plans.",
    "Popular options include Globex and Acme; Globex focuses on large enterprises.",
    "Initech offers spreadsheet tooling for finance teams.",
]


def ai_responses() -> Dict[str, Any]:
    """A full set of successful aggregator answers"""
    return {
        "analyze_business_model": {
            "modelType": "B2B SaaS",
            "brandName": "Acme",
            "valueProposition": "Workflow automation for operations teams",
        },
        "analyze_target_audience": {
            "primaryAudience": {"demographics": "Operations managers at mid-size companies"}
        },
        "analyze_competitors": {
            "businessCompetitors": [{"name": "Globex"}, {"name": "Initech"}]
        },
        "analyze_eeat_signals": {
            "eeatAnalysis": {
                "experience": {
                    "score": 8,
                    "justification": "Case studies with named customers",
                    "positiveSignals": ["Customer stories"],
                    "negativeSignals": [],
                },
                "expertise": {"score": 0.7, "justification": "Technical documentation"},
                "authoritativeness": {"score": 60, "justification": "Some press coverage"},
                "trustworthiness": {
                    "score": 75,
                    "justification": "Clear contact details",
                    "negativeSignals": ["No security page"],
                },
            },
            "executiveSummary": "Acme has strong first-hand experience signals.",
            "actionPlan": [{"title": "Publish a security page"}],
        },
        "analyze_sentiment": {"positive": 60, "neutral": 30, "negative": 10},
        "extract_claims": {"claims": ["Acme was founded in 2015", "Acme has 2000 customers"]},
        "verify_claims": {
            "examples": [
                {"claim": "Acme was founded in 2015", "verificationResult": "verified"},
                {"claim": "Acme has 2000 customers", "verificationResult": "contradicted"},
            ]
        },
        "generate_delfi_agenda": {
            "agenda": [{"title": "Add a security page", "priority": "high"}]
        },
    }


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return JobStore(fake_redis, job_ttl=3600, event_log_ttl=600)


@pytest.fixture
def scrape_result():
    return ScrapeResult(
        url="https://acme.com",
        final_url="https://acme.com/",
        status_code=200,
        title="Acme",
        content=PAGE_TEXT,
        html=PAGE_HTML,
        robots_txt="User-agent: *\nAllow: /",
        llms_txt=None,
        performance_metrics={},
    )


@pytest.fixture
def make_job():
    def factory(**overrides) -> AnalysisJob:
        fields = {"id": "j1", "url": "https://acme.com", "url_host": "acme.com"}
        fields.update(overrides)
        return AnalysisJob(**fields)

    return factory
