"""Tests for the balance-sheet and income-statement metric categories."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from metrics_engine.analysis.intermediates import SharedIntermediates, derive_intermediates
from metrics_engine.config import CalculatorConfig
from metrics_engine.data.models import (
    FundamentalData,
    IndustryData,
    MacroData,
    RawSnapshot,
)
from metrics_engine.metrics.cashflow import compute_cash_flow
from metrics_engine.metrics.dupont import compute_dupont
from metrics_engine.metrics.efficiency import compute_efficiency
from metrics_engine.metrics.leverage import compute_leverage
from metrics_engine.metrics.liquidity import compute_liquidity
from metrics_engine.metrics.other import (
    altman_zone,
    compute_other,
    piotroski_f_score,
    piotroski_strength,
)
from metrics_engine.metrics.profitability import compute_profitability
from metrics_engine.metrics.valuation import compute_valuation, peg_ratio

# --- Test fixtures ---

_FUNDAMENTALS: dict[str, Any] = {
    "price": 50.0,
    "market_cap": 5000.0,
    "shares_outstanding": 100.0,
    "beta": 1.2,
    "revenue": 10000.0,
    "cost_of_revenue": 6000.0,
    "gross_profit": 4000.0,
    "operating_expenses": 2500.0,
    "operating_income": 1500.0,
    "ebitda": 1800.0,
    "ebit": 1500.0,
    "interest_expense": 100.0,
    "pretax_income": 1400.0,
    "income_tax": 280.0,
    "net_income": 1120.0,
    "total_assets": 20000.0,
    "current_assets": 6000.0,
    "cash": 1000.0,
    "short_term_investments": 500.0,
    "net_receivables": 1500.0,
    "inventory": 2000.0,
    "total_liabilities": 12000.0,
    "current_liabilities": 3000.0,
    "short_term_debt": 500.0,
    "accounts_payable": 1000.0,
    "long_term_debt": 4500.0,
    "total_debt": 5000.0,
    "total_equity": 8000.0,
    "retained_earnings": 5000.0,
    "operating_cash_flow": 2000.0,
    "investing_cash_flow": -800.0,
    "financing_cash_flow": -700.0,
    "capital_expenditures": -600.0,
    "free_cash_flow": 1400.0,
    "dividends_paid": -400.0,
}


def _make_snapshot(
    previous_year: FundamentalData | None = None,
    industry: IndustryData | None = None,
    **overrides: Any,
) -> RawSnapshot:
    values = {**_FUNDAMENTALS, **overrides}
    return RawSnapshot(
        symbol="TEST",
        timestamp=datetime(2024, 6, 30, tzinfo=timezone.utc),
        fundamentals=FundamentalData(**values),
        macro=MacroData(treasury_10y=4.0),
        industry=industry if industry is not None else IndustryData(),
        previous_year=previous_year,
    )


def _shared(snapshot: RawSnapshot) -> SharedIntermediates:
    return derive_intermediates(snapshot, CalculatorConfig())


def _compute(fn: Any, **overrides: Any) -> Any:
    snapshot = _make_snapshot(**overrides)
    return fn(snapshot, _shared(snapshot))


# --- Liquidity ---


class TestLiquidity:

    def test_coverage_ratios(self) -> None:
        result = _compute(compute_liquidity)
        assert result.current_ratio == pytest.approx(2.0)
        assert result.quick_ratio == pytest.approx(4000.0 / 3000.0)
        assert result.cash_ratio == pytest.approx(1000.0 / 3000.0)
        assert result.absolute_liquidity_ratio == pytest.approx(0.5)
        assert result.net_working_capital_ratio == pytest.approx(0.15)

    def test_working_capital_cycle(self) -> None:
        result = _compute(compute_liquidity)
        assert result.days_sales_outstanding == pytest.approx(54.75)
        assert result.days_inventory_outstanding == pytest.approx(2000 * 365 / 6000)
        assert result.days_payables_outstanding == pytest.approx(1000 * 365 / 6000)
        assert result.cash_conversion_cycle == pytest.approx(
            54.75 + 2000 * 365 / 6000 - 1000 * 365 / 6000
        )
        assert result.defensive_interval == pytest.approx(438.0)

    def test_service_entity_has_no_inventory_days(self) -> None:
        result = _compute(compute_liquidity, inventory=0.0)
        assert result.days_inventory_outstanding is None
        assert result.cash_conversion_cycle is None

    def test_provider_ratio_fallback(self) -> None:
        result = _compute(
            compute_liquidity, current_assets=None, provider_current_ratio=1.7
        )
        assert result.current_ratio == 1.7

    def test_cash_burn_only_for_loss_makers(self) -> None:
        assert _compute(compute_liquidity).cash_burn_months is None
        result = _compute(compute_liquidity, net_income=-300.0)
        assert result.cash_burn_months == pytest.approx(1000.0 / (2500.0 / 12))


# --- Leverage ---


class TestLeverage:

    def test_ratios(self) -> None:
        result = _compute(compute_leverage)
        assert result.debt_to_assets == pytest.approx(0.25)
        assert result.debt_to_equity == pytest.approx(0.625)
        assert result.interest_coverage == pytest.approx(15.0)
        assert result.equity_multiplier == pytest.approx(2.5)
        assert result.debt_to_ebitda == pytest.approx(5000.0 / 1800.0)
        assert result.net_debt_to_ebitda == pytest.approx(4000.0 / 1800.0)
        assert result.long_term_debt_ratio == pytest.approx(0.36)
        assert result.debt_capacity_utilization == pytest.approx(5000.0 / 3600.0)

    def test_debt_free_company(self) -> None:
        result = _compute(
            compute_leverage, total_debt=0.0, total_equity=1000.0, ebitda=100.0
        )
        assert result.debt_to_equity == 0.0
        assert result.debt_to_ebitda == 0.0

    def test_non_positive_ebitda_leaves_debt_to_ebitda_absent(self) -> None:
        result = _compute(
            compute_leverage, total_debt=0.0, total_equity=1000.0, ebitda=-50.0
        )
        assert result.debt_to_equity == 0.0
        assert result.debt_to_ebitda is None

    @pytest.mark.parametrize("interest", [0.0, -20.0, None])
    def test_interest_coverage_needs_positive_interest(self, interest: float | None) -> None:
        result = _compute(compute_leverage, interest_expense=interest)
        assert result.interest_coverage is None
        assert result.times_interest_earned is None


# --- Efficiency ---


class TestEfficiency:

    def test_turnovers(self) -> None:
        result = _compute(compute_efficiency)
        assert result.asset_turnover == pytest.approx(0.5)
        assert result.fixed_asset_turnover == pytest.approx(10000.0 / 14000.0)
        assert result.inventory_turnover == pytest.approx(3.0)
        assert result.receivables_turnover == pytest.approx(10000.0 / 1500.0)
        assert result.payables_turnover == pytest.approx(6.0)
        assert result.working_capital_turnover == pytest.approx(10000.0 / 3000.0)

    def test_cycles(self) -> None:
        result = _compute(compute_efficiency)
        operating = 365 / 3.0 + 365 / (10000.0 / 1500.0)
        assert result.operating_cycle == pytest.approx(operating)
        assert result.net_trade_cycle == pytest.approx(operating - 365 / 6.0)

    def test_no_inventory(self) -> None:
        result = _compute(compute_efficiency, inventory=None)
        assert result.inventory_turnover is None
        assert result.operating_cycle is None


# --- Profitability and DuPont ---


class TestProfitability:

    def test_margins_and_returns(self) -> None:
        result = _compute(compute_profitability)
        assert result.gross_margin == pytest.approx(0.4)
        assert result.operating_margin == pytest.approx(0.15)
        assert result.ebitda_margin == pytest.approx(0.18)
        assert result.net_margin == pytest.approx(0.112)
        assert result.roa == pytest.approx(0.056)
        assert result.roe == pytest.approx(0.14)
        assert result.roic == pytest.approx(0.1)
        assert result.roce == pytest.approx(1500.0 / 17000.0)

    def test_value_creation_against_hurdles(self) -> None:
        result = _compute(compute_profitability)
        wacc = 0.5 * 0.10 + 0.5 * 0.02 * 0.8
        assert result.economic_profit == pytest.approx(1200.0 - 12000.0 * wacc)
        assert result.residual_income == pytest.approx(1120.0 - 8000.0 * 0.10)
        assert result.spread_above_wacc == pytest.approx(0.1 - wacc)

    def test_zero_revenue_uses_provider_margins(self) -> None:
        result = _compute(compute_profitability, revenue=0.0, provider_gross_margin=0.35)
        assert result.gross_margin == 0.35
        assert result.ebitda_margin is None

    def test_negative_invested_capital(self) -> None:
        result = _compute(compute_profitability, total_equity=-8000.0)
        assert result.roic is None
        assert result.economic_profit is None
        assert result.residual_income is None


class TestDuPont:

    def test_identity_holds(self) -> None:
        result = compute_dupont(_make_snapshot())
        assert result.roe == pytest.approx(0.14)
        assert result.ratio_roe == pytest.approx(0.14)
        assert result.dupont_identity_holds is True

    def test_five_factor_decomposition(self) -> None:
        result = compute_dupont(_make_snapshot())
        assert result.tax_burden == pytest.approx(0.8)
        assert result.interest_burden == pytest.approx(1400.0 / 1500.0)
        assert result.five_factor_roe == pytest.approx(0.14)

    def test_identity_unknown_without_revenue(self) -> None:
        result = compute_dupont(_make_snapshot(revenue=None))
        assert result.roe is None
        assert result.dupont_identity_holds is None


# --- Cash flow ---


class TestCashFlow:

    def test_cash_flows(self) -> None:
        result = _compute(compute_cash_flow)
        assert result.free_cash_flow == 1400.0
        assert result.fcff == pytest.approx(1200.0 - 600.0)
        assert result.cash_flow_adequacy == pytest.approx(2000.0 / 1500.0)
        assert result.reinvestment_ratio == pytest.approx(0.3)
        assert result.fcf_margin == pytest.approx(0.14)
        assert result.fcf_yield == pytest.approx(0.28)
        assert result.capex_to_depreciation == pytest.approx(2.0)

    def test_free_cash_flow_derived_when_unreported(self) -> None:
        result = _compute(
            compute_cash_flow, free_cash_flow=None, capital_expenditures=600.0
        )
        assert result.free_cash_flow == pytest.approx(1400.0)

    def test_adequacy_treats_missing_obligations_as_zero(self) -> None:
        result = _compute(compute_cash_flow, short_term_debt=None, dividends_paid=None)
        assert result.cash_flow_adequacy == pytest.approx(2000.0 / 600.0)


# --- Valuation ---


class TestValuation:

    def _valuation(self, **kwargs: Any) -> Any:
        snapshot = _make_snapshot(**kwargs.pop("overrides", {}))
        return compute_valuation(snapshot, _shared(snapshot), **kwargs)

    def test_multiples(self) -> None:
        result = self._valuation()
        assert result.pe == pytest.approx(50.0 / 11.2)
        assert result.pb == pytest.approx(0.625)
        assert result.ps == pytest.approx(0.5)
        assert result.pcf == pytest.approx(2.5)
        assert result.enterprise_value == pytest.approx(9000.0)
        assert result.ev_to_ebitda == pytest.approx(5.0)
        assert result.ev_to_ebit == pytest.approx(6.0)
        assert result.dividend_yield == pytest.approx(0.08)
        assert result.earnings_yield == pytest.approx(0.224)
        assert result.graham_number == pytest.approx((22.5 * 11.2 * 80.0) ** 0.5)
        assert result.ncav_per_share == pytest.approx(-60.0)

    def test_justified_multiples(self) -> None:
        result = self._valuation(payout_ratio=0.5, roe=0.14)
        assert result.justified_pe == pytest.approx(0.5 / 0.075)
        assert result.justified_pb == pytest.approx(0.115 / 0.075)

    def test_provider_pe_preferred(self) -> None:
        result = self._valuation(overrides={"pe": 20.0})
        assert result.pe == 20.0

    def test_loss_maker_has_no_pe(self) -> None:
        result = self._valuation(overrides={"net_income": -100.0})
        assert result.pe is None
        assert result.earnings_yield is None
        assert result.graham_number is None

    def test_peg_uses_growth_in_percent(self) -> None:
        assert peg_ratio(15.0, 0.10) == pytest.approx(1.5)
        assert peg_ratio(15.0, -0.10) is None


# --- Other ---


class TestOther:

    def test_altman_z(self) -> None:
        result = _compute(compute_other)
        expected = 1.2 * 0.15 + 1.4 * 0.25 + 3.3 * 0.075 + 0.6 * (5000 / 12000) + 0.5
        assert result.altman_z_score == pytest.approx(expected)
        assert result.altman_zone == "distress"

    def test_altman_zones(self) -> None:
        assert altman_zone(3.5) == "safe"
        assert altman_zone(2.0) == "grey"
        assert altman_zone(1.0) == "distress"
        assert altman_zone(None) is None

    def test_piotroski_single_period(self) -> None:
        result = _compute(compute_other)
        assert result.piotroski_f_score == 3
        assert result.piotroski_strength == "moderate"

    def test_piotroski_year_over_year(self) -> None:
        previous = FundamentalData(
            net_income=800.0,
            total_assets=20000.0,
            total_debt=6000.0,
            current_assets=5000.0,
            current_liabilities=3000.0,
            shares_outstanding=110.0,
            gross_profit=3500.0,
            revenue=9500.0,
        )
        current = _make_snapshot().fundamentals
        assert piotroski_f_score(current, previous) == 9
        assert piotroski_strength(9) == "strong"

    def test_piotroski_unknown_without_earnings_or_cash_flow(self) -> None:
        assert piotroski_f_score(FundamentalData(), None) is None

    def test_leverage_degrees_and_per_share(self) -> None:
        snapshot = _make_snapshot(industry=IndustryData(industry_roic=0.08))
        result = compute_other(snapshot, _shared(snapshot), roic=0.1)
        assert result.degree_of_operating_leverage == pytest.approx(4000.0 / 1500.0)
        assert result.degree_of_financial_leverage == pytest.approx(1500.0 / 1400.0)
        assert result.sales_per_share == pytest.approx(100.0)
        assert result.excess_roic == pytest.approx(0.02)
