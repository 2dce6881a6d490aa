"""Tests for metrics_engine.analysis.dcf."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

import pytest

from metrics_engine.analysis.dcf import (
    compute_dcf,
    cost_of_equity,
    implied_growth_rate,
    interpret_valuation,
    multi_stage_dcf,
    sensitivity_grid,
    terminal_value,
    wacc,
)
from metrics_engine.analysis.intermediates import derive_intermediates
from metrics_engine.config import CalculatorConfig
from metrics_engine.data.models import FundamentalData, MacroData, RawSnapshot


def _make_snapshot(**overrides: Any) -> RawSnapshot:
    values: dict[str, Any] = {
        "price": 50.0,
        "market_cap": 5000.0,
        "shares_outstanding": 100.0,
        "beta": 1.2,
        "ebitda": 1800.0,
        "ebit": 1500.0,
        "interest_expense": 100.0,
        "pretax_income": 1400.0,
        "income_tax": 280.0,
        "total_debt": 5000.0,
        "cash": 1000.0,
        "total_equity": 8000.0,
        "free_cash_flow": 400.0,
    }
    values.update(overrides)
    return RawSnapshot(
        symbol="TEST",
        timestamp=datetime(2024, 6, 30, tzinfo=timezone.utc),
        fundamentals=FundamentalData(**values),
        macro=MacroData(treasury_10y=4.0),
    )


def _dcf(config: CalculatorConfig | None = None, growth_rate: float | None = None, **overrides: Any) -> Any:
    config = config or CalculatorConfig()
    snapshot = _make_snapshot(**overrides)
    return compute_dcf(snapshot, derive_intermediates(snapshot, config), config, growth_rate)


class TestCostOfCapital:

    def test_capm(self) -> None:
        assert cost_of_equity(0.04, 1.2, 0.05) == pytest.approx(0.10)
        assert cost_of_equity(0.04, None, 0.05) is None

    def test_wacc_weights_by_market_value(self) -> None:
        assert wacc(600.0, 400.0, 0.10, 0.05, 0.25) == pytest.approx(
            0.6 * 0.10 + 0.4 * 0.05 * 0.75
        )

    def test_wacc_without_capital_is_none(self) -> None:
        assert wacc(0.0, 0.0, 0.10, 0.05, 0.25) is None

    def test_wacc_with_debt_but_unknown_cost_is_none(self) -> None:
        assert wacc(600.0, 400.0, 0.10, None, 0.25) is None


class TestTerminalValue:

    def test_gordon_growth(self) -> None:
        assert terminal_value(100.0, 0.10, 0.025) == pytest.approx(100.0 * 1.025 / 0.075)

    @pytest.mark.parametrize("fcf", [100.0, 0.0, -100.0])
    def test_absent_when_discount_does_not_exceed_growth(self, fcf: float) -> None:
        assert terminal_value(fcf, 0.02, 0.025) is None
        assert terminal_value(fcf, 0.025, 0.025) is None

    def test_implied_growth_round_trips_gordon(self) -> None:
        price = 100.0 * 1.03 / (0.09 - 0.03)
        assert implied_growth_rate(price, 100.0, 0.09) == pytest.approx(0.03)


class TestMultiStage:

    def test_constant_growth_matches_gordon(self) -> None:
        # No fade when initial growth equals terminal growth
        value = multi_stage_dcf(100.0, 0.03, 0.03, 0.09, 5, 0.0, 1.0)
        assert value == pytest.approx(100.0 * 1.03 / 0.06)

    def test_net_debt_deducted_per_share(self) -> None:
        debt_free = multi_stage_dcf(100.0, 0.10, 0.03, 0.09, 5, 0.0, 10.0)
        levered = multi_stage_dcf(100.0, 0.10, 0.03, 0.09, 5, 200.0, 10.0)
        assert debt_free is not None and levered is not None
        assert debt_free - levered == pytest.approx(20.0)

    def test_missing_inputs(self) -> None:
        assert multi_stage_dcf(100.0, None, 0.03, 0.09, 5, 0.0, 1.0) is None
        assert multi_stage_dcf(100.0, 0.05, 0.03, 0.09, 5, 0.0, 0.0) is None
        assert multi_stage_dcf(100.0, 0.05, 0.10, 0.09, 5, 0.0, 1.0) is None

    def test_sensitivity_grid_marks_invalid_cells(self) -> None:
        grid = sensitivity_grid(
            100.0, 0.08, 0.0, 10.0, [0.02, 0.08, 0.10], [0.01, 0.03]
        )
        assert grid.shape == (3, 2)
        assert math.isnan(grid.loc[0.02, 0.03])
        assert grid.loc[0.08, 0.03] > grid.loc[0.10, 0.03]


class TestInterpretValuation:

    @pytest.mark.parametrize(
        ("mos", "expected"),
        [
            (0.6, ("undervalued", "high")),
            (0.4, ("undervalued", "medium")),
            (0.2, ("undervalued", "medium")),
            (0.0, ("fairly valued", "medium")),
            (-0.2, ("overvalued", "medium")),
            (-0.5, ("overvalued", "high")),
            (None, ("fairly valued", "low")),
        ],
    )
    def test_bands(self, mos: float | None, expected: tuple[str, str]) -> None:
        assert interpret_valuation(mos) == expected


class TestComputeDCF:

    def test_single_stage_value(self) -> None:
        result = _dcf()
        discount = 0.5 * 0.10 + 0.5 * 0.02 * 0.8
        tv = 400.0 * 1.025 / (discount - 0.025)
        assert result.wacc == pytest.approx(discount)
        assert result.terminal_value == pytest.approx(tv)
        assert result.intrinsic_value == pytest.approx(tv / 100.0)
        assert result.margin_of_safety == pytest.approx((tv / 100.0 - 50.0) / (tv / 100.0))
        assert result.exit_multiple == pytest.approx(tv / 1800.0)

    def test_wacc_below_growth_leaves_values_absent(self) -> None:
        result = _dcf(config=CalculatorConfig(wacc=0.02))
        assert result.terminal_value is None
        assert result.intrinsic_value is None
        assert result.margin_of_safety is None
        assert result.valuation_label == "fairly valued"
        assert result.valuation_confidence == "low"

    def test_multi_stage_only_with_growth_input(self) -> None:
        assert _dcf().multi_stage_value_per_share is None
        assert _dcf(growth_rate=0.08).multi_stage_value_per_share is not None

    def test_negative_intrinsic_has_no_margin_of_safety(self) -> None:
        result = _dcf(free_cash_flow=-400.0)
        assert result.intrinsic_value is not None and result.intrinsic_value < 0
        assert result.margin_of_safety is None
