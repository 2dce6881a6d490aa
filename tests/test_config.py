"""Tests for metrics_engine.config."""

from __future__ import annotations

import math

import pytest

from metrics_engine.config import CalculatorConfig, TotalScorePolicy


class TestCalculatorConfig:

    def test_defaults(self) -> None:
        config = CalculatorConfig()
        assert config.market_risk_premium == 0.05
        assert config.terminal_growth_rate == 0.025
        assert config.risk_free_rate is None
        assert config.total_score_policy is TotalScorePolicy.REQUIRE_ALL

    @pytest.mark.parametrize(
        "field",
        [
            "market_risk_premium",
            "terminal_growth_rate",
            "tax_rate",
            "risk_free_rate",
            "wacc",
            "cost_of_equity",
        ],
    )
    @pytest.mark.parametrize("value", [float("nan"), math.inf, -math.inf])
    def test_non_finite_rates_rejected(self, field: str, value: float) -> None:
        with pytest.raises(ValueError, match=f"{field} must be finite"):
            CalculatorConfig(**{field: value})

    def test_negative_rates_accepted(self) -> None:
        config = CalculatorConfig(risk_free_rate=-0.005, terminal_growth_rate=-0.01)
        assert config.risk_free_rate == -0.005

    def test_tax_rate_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="tax_rate"):
            CalculatorConfig(tax_rate=1.5)

    def test_projection_years_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="projection_years"):
            CalculatorConfig(projection_years=0)
