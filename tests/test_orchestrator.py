import asyncio
import logging

import pytest

from analyzer.errors import (
    AggregationError,
    AnalysisOrchestrationError,
    PerformanceProviderError,
    ScrapeError,
)
from analyzer.models import JobStatus, is_failure
from analyzer.orchestrator import AnalysisOrchestrator
from analyzer.scoring import DATA_UNAVAILABLE_KEY, NO_SIGNAL_SCORE, overall_score

from conftest import (
    ASSISTANT_ANSWERS,
    PSI_PAYLOAD,
    FakeAggregator,
    FakePageSpeed,
    FakeResponder,
    FakeScraper,
    ai_responses,
)

STATUS_ORDER = list(JobStatus)


def build(store, scrape_result, responses=None, scraper=None, pagespeed=None, responder=None):
    aggregator = FakeAggregator(ai_responses() if responses is None else responses)
    orchestrator = AnalysisOrchestrator(
        store=store,
        aggregator=aggregator,
        scraper=scraper or FakeScraper(scrape_result),
        performance_client=pagespeed or FakePageSpeed(PSI_PAYLOAD),
        responder=responder or FakeResponder(ASSISTANT_ANSWERS),
        heartbeat_interval=60,
    )
    return orchestrator, aggregator


async def create(store, job):
    await store.create_job(job)
    return job


def steps(job):
    return [(e.step, e.status.value) for e in job.events]


async def test_full_run_completes_with_every_report(store, fake_redis, scrape_result, make_job):
    job = await create(store, make_job(query_id="q1"))
    orchestrator, aggregator = build(store, scrape_result)

    result = await orchestrator.orchestrate(job)

    assert result.status == JobStatus.COMPLETED
    for field in (
        "arkhe_report",
        "performance_report",
        "prometheus_report",
        "generative_performance_report",
        "delfi_agenda",
    ):
        value = getattr(result, field)
        assert value is not None and not is_failure(value), field

    assert result.scraped_content == scrape_result.content
    assert result.scrape_error is None
    assert result.final_geo_score == result.prometheus_report["overall_geo_score"]
    assert 0 <= result.final_geo_score <= 100
    assert result.generative_performance_report["target_brand"] == "Acme"
    assert result.delfi_agenda == ai_responses()["generate_delfi_agenda"]

    snapshot = await store.get_report("j1")
    assert snapshot["status"] == "COMPLETED"
    assert snapshot["final_geo_score"] == result.final_geo_score

    query = await store.get_query_status("q1")
    assert query["status"] == "COMPLETED"

    assert aggregator.operations.count("generate_delfi_agenda") == 1


async def test_events_bracket_every_stage(store, scrape_result, make_job):
    job = await create(store, make_job())
    orchestrator, _ = build(store, scrape_result)

    result = await orchestrator.orchestrate(job)
    events = steps(result)

    assert events[0] == ("INIT", "COMPLETED")
    assert events[-1] == ("JOB", "COMPLETED")
    for step in ("SCRAPE", "PSI", "ARKHE", "PROMETHEUS", "GEN_PERF", "LIR"):
        started = events.index((step, "STARTED"))
        completed = events.index((step, "COMPLETED"))
        assert started < completed

    log = await store.get_events("j1")
    assert [(e["step"], e["status"]) for e in log] == events


async def test_status_never_moves_backward(store, fake_redis, scrape_result, make_job):
    job = await create(store, make_job())
    orchestrator, _ = build(store, scrape_result)

    await orchestrator.orchestrate(job)

    statuses = [JobStatus(s) for s in fake_redis.written_statuses("j1")]
    positions = [STATUS_ORDER.index(s) for s in statuses]
    assert positions == sorted(positions)
    assert statuses[-1] == JobStatus.COMPLETED


async def test_scrape_failure_blanks_content_and_skips_dependents(store, scrape_result, make_job):
    job = await create(store, make_job())
    scraper = FakeScraper(error=ScrapeError("Failed to scrape page after 3 attempts"))
    orchestrator, aggregator = build(store, scrape_result, scraper=scraper)

    result = await orchestrator.orchestrate(job)

    assert result.status == JobStatus.COMPLETED
    assert result.scraped_content == ""
    assert result.scraped_html == ""
    assert "Failed to scrape page" in result.scrape_error

    # PSI does not need the scrape
    assert not is_failure(result.performance_report)
    assert is_failure(result.arkhe_report)
    assert "insufficient" in result.arkhe_report["error"]

    assert result.prometheus_report is None
    assert result.generative_performance_report is None
    assert result.delfi_agenda is None
    assert result.final_geo_score is None
    assert aggregator.calls == []


async def test_profile_failure_skips_later_stages(store, scrape_result, make_job):
    responses = ai_responses()
    responses["analyze_business_model"] = AggregationError("All AI platforms failed: boom")
    job = await create(store, make_job())
    orchestrator, aggregator = build(store, scrape_result, responses=responses)

    result = await orchestrator.orchestrate(job)

    assert result.status == JobStatus.COMPLETED
    assert is_failure(result.arkhe_report)
    assert result.prometheus_report is None
    assert result.generative_performance_report is None
    assert "analyze_eeat_signals" not in aggregator.operations
    assert ("ARKHE", "FAILED") in steps(result)


async def test_trust_failure_skips_agenda_but_keeps_visibility(store, scrape_result, make_job):
    responses = ai_responses()
    responses["analyze_eeat_signals"] = {"executiveSummary": "no eeat block"}
    job = await create(store, make_job())
    orchestrator, aggregator = build(store, scrape_result, responses=responses)

    result = await orchestrator.orchestrate(job)

    assert result.status == JobStatus.COMPLETED
    assert is_failure(result.prometheus_report)
    assert not is_failure(result.generative_performance_report)
    assert result.delfi_agenda is None
    assert result.final_geo_score is None
    assert "generate_delfi_agenda" not in aggregator.operations


async def test_performance_failure_marks_pillar_unavailable(store, scrape_result, make_job):
    job = await create(store, make_job())
    pagespeed = FakePageSpeed(error=PerformanceProviderError("HTTP 500", status_code=500))
    orchestrator, _ = build(store, scrape_result, pagespeed=pagespeed)

    result = await orchestrator.orchestrate(job)

    assert is_failure(result.performance_report)
    performance_pillar = result.prometheus_report["pillars"]["performance"]
    assert DATA_UNAVAILABLE_KEY in performance_pillar["metrics"]
    assert result.final_geo_score == result.prometheus_report["overall_geo_score"]


async def test_agenda_failure_keeps_final_score(store, scrape_result, make_job):
    responses = ai_responses()
    responses["generate_delfi_agenda"] = AggregationError("All AI platforms failed: timeout")
    job = await create(store, make_job())
    orchestrator, _ = build(store, scrape_result, responses=responses)

    result = await orchestrator.orchestrate(job)

    assert result.status == JobStatus.COMPLETED
    assert is_failure(result.delfi_agenda)
    assert result.final_geo_score is not None
    assert steps(result)[-2] == ("LIR", "FAILED")


async def test_rerun_clears_stale_stage_fields(store, scrape_result, make_job):
    job = await create(store, make_job())
    await store.upsert_job_fields("j1", {"delfi_agenda": {"agenda": ["old"]}, "final_geo_score": 99})

    responses = ai_responses()
    responses["analyze_eeat_signals"] = {}
    orchestrator, _ = build(store, scrape_result, responses=responses)

    result = await orchestrator.orchestrate(job)

    assert result.delfi_agenda is None
    assert result.final_geo_score is None


async def test_store_failure_aborts_job_after_siblings_settle(store, fake_redis, scrape_result, make_job):
    job = await create(store, make_job(query_id="q9"))

    def fail_visibility_write(command, key, payload):
        # Only the stage result write, not the reset to null at the start
        return (
            command == "hset"
            and isinstance(payload, dict)
            and payload.get("generative_performance_report") not in (None, "null")
        )

    fake_redis.fail_when = fail_visibility_write
    orchestrator, aggregator = build(store, scrape_result)

    with pytest.raises(AnalysisOrchestrationError) as excinfo:
        await orchestrator.orchestrate(job)

    assert excinfo.value.job_id == "j1"
    fake_redis.fail_when = None

    failed = await store.get_job("j1")
    assert failed.status == JobStatus.FAILED
    assert "hset" in failed.error
    assert steps(failed)[-1] == ("JOB", "FAILED")

    # The sibling trust stage still finished and was persisted
    assert failed.prometheus_report is not None
    assert "generate_delfi_agenda" not in aggregator.operations

    query = await store.get_query_status("q9")
    assert query["status"] == "FAILED"


async def test_event_log_failure_is_not_fatal(store, fake_redis, scrape_result, make_job):
    job = await create(store, make_job())
    fake_redis.fail_when = lambda command, key, payload: key.startswith("job_events:")
    orchestrator, _ = build(store, scrape_result)

    result = await orchestrator.orchestrate(job)

    assert result.status == JobStatus.COMPLETED
    assert await store.get_events("j1") == []
    assert steps(result)[-1] == ("JOB", "COMPLETED")


async def test_job_without_url_is_marked_failed(store, scrape_result, make_job):
    job = await create(store, make_job(url=""))
    orchestrator, _ = build(store, scrape_result)

    with pytest.raises(AnalysisOrchestrationError):
        await orchestrator.orchestrate(job)

    failed = await store.get_job("j1")
    assert failed.status == JobStatus.FAILED
    assert "missing" in failed.error


async def test_visibility_uses_top_queries_and_falls_back_to_host(store, scrape_result, make_job):
    responses = ai_responses()
    responses["analyze_business_model"] = {"modelType": "B2B SaaS"}
    job = await create(
        store,
        make_job(top_queries=[{"query": "best workflow automation"}, {"query": "  "}]),
    )
    responder = FakeResponder(ASSISTANT_ANSWERS)
    orchestrator, _ = build(store, scrape_result, responses=responses, responder=responder)

    result = await orchestrator.orchestrate(job)

    assert responder.queries == ["best workflow automation"]
    assert result.generative_performance_report["target_brand"] == "acme.com"


async def test_unconfigured_performance_provider_still_completes(store, scrape_result, make_job):
    job = await create(store, make_job(locale="en"))
    pagespeed = FakePageSpeed(PSI_PAYLOAD, configured=False)
    orchestrator, _ = build(store, scrape_result, pagespeed=pagespeed)

    result = await orchestrator.orchestrate(job)

    assert result.status == JobStatus.COMPLETED
    assert pagespeed.calls == []
    report = result.performance_report
    assert not is_failure(report)
    assert all(value is None for value in report["lab"].values())
    assert all(value is None for value in report["field"].values())

    pillars = result.prometheus_report["pillars"]
    assert DATA_UNAVAILABLE_KEY in pillars["performance"]["metrics"]
    without_performance = {k: v for k, v in pillars.items() if k != "performance"}
    assert result.final_geo_score == overall_score(without_performance)
    assert result.final_geo_score not in (0, NO_SIGNAL_SCORE)


# ── Heartbeat ────────────────────────────────────────────────────────


class SlowScraper(FakeScraper):
    async def scrape(self, url):
        await asyncio.sleep(0.05)
        return await super().scrape(url)


def heartbeat_tasks():
    return [t for t in asyncio.all_tasks() if t.get_name().startswith("heartbeat:")]


async def test_heartbeat_logs_while_running_and_stops_on_completion(
    store, scrape_result, make_job, caplog
):
    caplog.set_level(logging.INFO, logger="analyzer.orchestrator")
    job = await create(store, make_job())
    orchestrator, _ = build(store, scrape_result, scraper=SlowScraper(scrape_result))
    orchestrator.heartbeat_interval = 0.01

    result = await orchestrator.orchestrate(job)

    assert result.status == JobStatus.COMPLETED
    assert "Job j1 still running" in caplog.text
    assert heartbeat_tasks() == []


async def test_heartbeat_stops_when_job_is_invalid(store, scrape_result, make_job):
    job = await create(store, make_job(url=""))
    orchestrator, _ = build(store, scrape_result)
    orchestrator.heartbeat_interval = 0.01

    with pytest.raises(AnalysisOrchestrationError):
        await orchestrator.orchestrate(job)

    assert heartbeat_tasks() == []


async def test_heartbeat_stops_when_store_fails(store, fake_redis, scrape_result, make_job):
    job = await create(store, make_job())
    def fail_profile_write(command, key, payload):
        return (
            command == "hset"
            and isinstance(payload, dict)
            and payload.get("arkhe_report") not in (None, "null")
        )

    fake_redis.fail_when = fail_profile_write
    orchestrator, _ = build(store, scrape_result, scraper=SlowScraper(scrape_result))
    orchestrator.heartbeat_interval = 0.01

    with pytest.raises(AnalysisOrchestrationError):
        await orchestrator.orchestrate(job)

    assert heartbeat_tasks() == []


# ── Completion ───────────────────────────────────────────────────────


async def test_completed_is_written_after_report_snapshot(store, fake_redis, scrape_result, make_job):
    job = await create(store, make_job(query_id="q1"))
    fake_redis.fail_when = lambda command, key, payload: key.startswith("report:")
    orchestrator, _ = build(store, scrape_result)

    with pytest.raises(AnalysisOrchestrationError):
        await orchestrator.orchestrate(job)
    fake_redis.fail_when = None

    statuses = fake_redis.written_statuses("j1")
    assert "COMPLETED" not in statuses
    assert statuses[-1] == "FAILED"
    assert (await store.get_query_status("q1"))["status"] == "FAILED"


async def test_report_snapshot_is_marked_completed(store, scrape_result, make_job):
    job = await create(store, make_job())
    orchestrator, _ = build(store, scrape_result)

    result = await orchestrator.orchestrate(job)

    snapshot = await store.get_report("j1")
    assert snapshot["status"] == "COMPLETED"
    assert snapshot["prometheus_report"] == result.prometheus_report
