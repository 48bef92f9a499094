import pytest

from analyzer.models import Metric, Pillar
from analyzer.scoring import (
    BOOKKEEPING_KEY,
    DATA_UNAVAILABLE_KEY,
    NO_SIGNAL_SCORE,
    interpret_score,
    overall_score,
    resilient_score,
    round_half_up,
    score_pillar,
)


def test_round_half_up_rounds_halves_away_from_even():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(71.25) == 71


def test_pillar_is_mean_of_metric_scores():
    metrics = {"a": {"score": 80}, "b": {"score": 61}}
    assert score_pillar(metrics, "contentStructure", apply_penalties=False) == 71


def test_pillar_ignores_bookkeeping_entry():
    metrics = {"LCP": {"score": 95}, BOOKKEEPING_KEY: {"score": 0}}
    assert score_pillar(metrics, "performance") == 95


def test_empty_pillar_scores_zero():
    assert score_pillar({}, "performance") == 0
    assert score_pillar({BOOKKEEPING_KEY: {"score": 90}}, "performance") == 0


def test_penalties_for_negative_points_and_ratings():
    metrics = {
        "experience": Metric(score=80, negative_points=["thin bios", "no dates"]),
        "LCP": Metric(score=50, justification="LCP = 3000 ms (NEEDS_IMPROVEMENT)."),
        "CLS": Metric(score=10, justification="CLS = 0.4 (POOR)."),
    }
    # mean 46.67, minus 2*5 negatives, 5 for NEEDS_IMPROVEMENT, 10 for POOR
    assert score_pillar(metrics, "eeatSignals") == 22
    assert score_pillar(metrics, "eeatSignals", apply_penalties=False) == 47


def test_penalties_clamp_at_zero():
    metrics = {"x": {"score": 5, "negativePoints": ["a", "b", "c"]}}
    assert score_pillar(metrics, "brandAuthority") == 0


def test_entity_pillar_uses_metric_weights():
    metrics = {
        "knowledgeGraphPresence": {"score": 100},
        "entityReconciliation": {"score": 40},
        "entityCompleteness": {"score": 20},
    }
    # 100*.5 + 40*.25 + 20*.25
    assert score_pillar(metrics, "entityOptimization", apply_penalties=False) == 65


def test_entity_pillar_reweights_present_metrics():
    metrics = {"knowledgeGraphPresence": {"score": 50}}
    assert score_pillar(metrics, "entityOptimization", apply_penalties=False) == 50


def test_overall_excludes_zero_and_unavailable_pillars():
    pillars = {
        "performance": Pillar(
            name="performance",
            score=0,
            weight=0.2,
            metrics={DATA_UNAVAILABLE_KEY: Metric(score=0)},
        ),
        "eeatSignals": Pillar(name="eeatSignals", score=80, weight=0.2),
        "technicalGEO": Pillar(name="technicalGEO", score=50, weight=0.1),
        "brandAuthority": Pillar(name="brandAuthority", score=0, weight=0.1),
    }
    # (80*.2 + 50*.1) / .3
    assert overall_score(pillars) == 70


def test_overall_skips_unavailable_pillar_even_with_score():
    pillars = {
        "performance": {"score": 40, "weight": 0.2, "metrics": {DATA_UNAVAILABLE_KEY: {"score": 0}}},
        "eeatSignals": {"score": 90, "weight": 0.2, "metrics": {}},
    }
    assert overall_score(pillars) == 90


def test_overall_floor_when_nothing_qualifies():
    pillars = {"eeatSignals": Pillar(name="eeatSignals", score=0, weight=0.2)}
    assert overall_score(pillars) == NO_SIGNAL_SCORE
    assert overall_score({}) == NO_SIGNAL_SCORE


def test_resilient_score_skips_missing_subcomponents():
    subcomponents = [
        {"score": 80, "weight": 0.5},
        {"score": None, "weight": 0.3},
        {"score": 40, "weight": 0.5},
    ]
    assert resilient_score(subcomponents) == pytest.approx(60)
    assert resilient_score([{"score": None, "weight": 1}]) == 0
    assert resilient_score([{"score": 50, "weight": 0}]) == 0


@pytest.mark.parametrize(
    "score, locale, label",
    [
        (80, "en", "Leader"),
        (79, "en", "Developing"),
        (50, "en", "Developing"),
        (49, "en", "Weak"),
        (85, "tr", "Lider"),
        (10, "fr", "Weak"),
        (60, None, "Developing"),
    ],
)
def test_interpret_score(score, locale, label):
    assert interpret_score(score, locale) == label
