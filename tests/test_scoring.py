"""Tests for metrics_engine.analysis.scoring."""

from __future__ import annotations

from dataclasses import fields
from typing import Any

import pytest

from metrics_engine.analysis.scoring import (
    BENCHMARKS,
    TOTAL_SCORE_WEIGHTS,
    Benchmark,
    category_score,
    interpret_score,
    normalize_metric,
    technical_score,
    total_score,
    valuation_score,
)
from metrics_engine.config import TotalScorePolicy
from metrics_engine.metrics.technical import TechnicalMetrics
from metrics_engine.metrics.valuation import ValuationMetrics


def _empty(cls: type, **values: Any) -> Any:
    """Instance of a metrics dataclass with every field None except ``values``."""
    kwargs = {f.name: None for f in fields(cls)}
    kwargs.update(values)
    return cls(**kwargs)


class TestBenchmark:

    def test_min_must_be_below_max(self) -> None:
        with pytest.raises(ValueError, match="must be below"):
            Benchmark(1.0, 1.0)

    def test_weights_sum_to_one(self) -> None:
        assert sum(TOTAL_SCORE_WEIGHTS.values()) == pytest.approx(1.0)


class TestNormalizeMetric:

    def test_higher_is_better(self) -> None:
        bench = Benchmark(0.0, 0.8)
        assert normalize_metric(0.4, bench) == pytest.approx(50.0)
        assert normalize_metric(2.0, bench) == 100.0
        assert normalize_metric(-1.0, bench) == 0.0

    def test_lower_is_better_inverts(self) -> None:
        bench = Benchmark(5.0, 50.0, higher_is_better=False)
        assert normalize_metric(5.0, bench) == 100.0
        assert normalize_metric(50.0, bench) == 0.0

    def test_monotonic_in_raw_value(self) -> None:
        bench = BENCHMARKS["roe"]
        scores = [normalize_metric(v, bench) for v in (-0.2, 0.0, 0.1, 0.2, 0.5)]
        assert scores == sorted(scores)

    def test_missing_is_none(self) -> None:
        assert normalize_metric(None, Benchmark(0.0, 1.0)) is None


class TestCategoryScore:

    def test_reweights_over_present_components(self) -> None:
        score = category_score(
            {"gross_margin": 0.4, "operating_margin": None},
            {"gross_margin": 0.5, "operating_margin": 0.5},
        )
        assert score == pytest.approx(50.0)

    def test_all_missing_is_none(self) -> None:
        assert category_score({}, {"gross_margin": 1.0}) is None

    def test_negative_multiples_ignored_in_valuation(self) -> None:
        metrics = _empty(ValuationMetrics, pe=-12.0, pb=-1.0)
        assert valuation_score(metrics) is None
        metrics = _empty(ValuationMetrics, pe=-12.0, ev_to_ebitda=3.0)
        assert valuation_score(metrics) == pytest.approx(100.0)


class TestTotalScore:

    def test_weighted_blend_of_five_categories(self) -> None:
        assert total_score([80, 60, 70, 50, 90]) == pytest.approx(71.5)

    def test_requires_all_categories_by_default(self) -> None:
        assert total_score([80, 60, None, 50, 90]) is None

    def test_reweight_policy(self) -> None:
        result = total_score([80, 60, None, 50, 90], TotalScorePolicy.REWEIGHT)
        expected = (80 * 0.25 + 60 * 0.20 + 50 * 0.15 + 90 * 0.20) / 0.80
        assert result == pytest.approx(expected)

    def test_wrong_number_of_scores(self) -> None:
        with pytest.raises(ValueError, match="expected 5"):
            total_score([80, 60])

    def test_bounded(self) -> None:
        assert total_score([100, 100, 100, 100, 100]) == pytest.approx(100.0)
        assert total_score([0, 0, 0, 0, 0]) == 0.0

    @pytest.mark.parametrize(
        ("score", "label"),
        [(85, "Excellent"), (60, "Good"), (45, "Fair"), (20, "Poor"), (5, "Very Poor"), (None, "Unknown")],
    )
    def test_interpretation(self, score: float | None, label: str) -> None:
        assert interpret_score(score) == label


class TestTechnicalScore:

    def test_cross_component_skipped_without_long_averages(self) -> None:
        metrics = _empty(TechnicalMetrics, rsi=50.0)
        assert technical_score(metrics) == pytest.approx(100.0)

    def test_golden_cross(self) -> None:
        metrics = _empty(TechnicalMetrics, rsi=50.0, golden_cross=True, death_cross=False)
        assert technical_score(metrics) == pytest.approx(90.0)

    def test_no_cross(self) -> None:
        metrics = _empty(TechnicalMetrics, rsi=80.0, golden_cross=False, death_cross=False)
        assert technical_score(metrics) == pytest.approx((30.0 + 50.0) / 2)
