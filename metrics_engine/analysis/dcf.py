"""DCF intrinsic value calculation.

The headline intrinsic value is a deliberately simplified single-stage
model: a Gordon-growth terminal value on current free cash flow,
divided by shares outstanding. No explicit forecast period is
discounted and net debt is not deducted. It is an approximation, kept
because it needs only current figures.

``multi_stage_dcf`` is the textbook alternative: an explicit forecast
period whose growth fades linearly to the terminal rate, each year
discounted at WACC, plus the discounted terminal value, less net debt.
It is reported separately and never mixed into the single-stage value.

Every function returns None rather than raising when its inputs are
missing or when WACC does not exceed the terminal growth rate.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from metrics_engine.config import CalculatorConfig
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import finite_or_none, percentage_change, safe_divide

if TYPE_CHECKING:
    from metrics_engine.analysis.intermediates import SharedIntermediates

logger = logging.getLogger(__name__)


@dataclass
class DCFMetrics:
    """Cost of capital and discounted cash flow outputs.

    Attributes:
        risk_free_rate: Resolved annual risk-free rate (decimal).
        market_risk_premium: Equity risk premium used in CAPM.
        beta: Instrument beta.
        cost_of_equity: Rf + beta x MRP, or the configured override.
        cost_of_debt: Interest expense / total debt.
        wacc: Weighted average cost of capital, or the configured override.
        terminal_value: FCF x (1 + g) / (WACC - g). None when WACC <= g.
        intrinsic_value: Terminal value / shares (single-stage approximation).
        upside_downside: (intrinsic - price) / |price|.
        pv_of_fcf: PV of FCF grown at g over the projection horizon.
        pv_of_terminal_value: Terminal value discounted over the horizon.
        equity_value_per_share: (PV of FCF + PV of TV - net debt) / shares.
        margin_of_safety: (intrinsic - price) / intrinsic. Needs intrinsic > 0.
        implied_growth_rate: Growth implied by the current price.
        reverse_dcf_growth: Same as implied_growth_rate.
        exit_multiple: Terminal value / EBITDA. Needs EBITDA > 0.
        perpetuity_growth_rate: Terminal growth rate used.
        multi_stage_value_per_share: Explicit-period DCF value per share.
        valuation_label: "undervalued", "fairly valued" or "overvalued".
        valuation_confidence: "high", "medium" or "low".
    """

    risk_free_rate: float | None
    market_risk_premium: float | None
    beta: float | None
    cost_of_equity: float | None
    cost_of_debt: float | None
    wacc: float | None
    terminal_value: float | None
    intrinsic_value: float | None
    upside_downside: float | None
    pv_of_fcf: float | None
    pv_of_terminal_value: float | None
    equity_value_per_share: float | None
    margin_of_safety: float | None
    implied_growth_rate: float | None
    reverse_dcf_growth: float | None
    exit_multiple: float | None
    perpetuity_growth_rate: float | None
    multi_stage_value_per_share: float | None
    valuation_label: str | None
    valuation_confidence: str | None


# ---------------------------------------------------------------------------
# Cost of capital
# ---------------------------------------------------------------------------

def cost_of_equity(
    risk_free_rate: float | None, beta: float | None, market_risk_premium: float | None
) -> float | None:
    """CAPM cost of equity ``rf + beta x MRP``."""
    if risk_free_rate is None or beta is None or market_risk_premium is None:
        return None
    return finite_or_none(risk_free_rate + beta * market_risk_premium)


def cost_of_debt(
    interest_expense: float | None, total_debt: float | None
) -> float | None:
    """Interest expense / total debt."""
    return safe_divide(interest_expense, total_debt)


def wacc(
    equity_value: float | None,
    debt_value: float | None,
    equity_cost: float | None,
    debt_cost: float | None,
    tax_rate: float,
) -> float | None:
    """Market-value-weighted cost of capital ``(E/V)Re + (D/V)Rd(1 - t)``.

    A firm with zero debt has no debt term, so its WACC is its cost of
    equity even though cost of debt is undefined.

    Args:
        equity_value: Market capitalisation.
        debt_value: Total debt.
        equity_cost: Cost of equity.
        debt_cost: Pre-tax cost of debt.
        tax_rate: Marginal tax rate applied to the debt term.

    Returns:
        WACC, or None if E + D is zero or a needed input is absent.
    """
    if equity_value is None or debt_value is None or equity_cost is None:
        return None
    total = equity_value + debt_value
    if total == 0:
        return None
    if debt_value == 0:
        return equity_cost
    if debt_cost is None:
        return None
    return finite_or_none(
        (equity_value / total) * equity_cost
        + (debt_value / total) * debt_cost * (1.0 - tax_rate)
    )


# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------

def terminal_value(
    fcf: float | None, discount_rate: float | None, growth_rate: float
) -> float | None:
    """Gordon growth terminal value ``FCF x (1 + g) / (WACC - g)``.

    None whenever the discount rate does not exceed the growth rate,
    for any FCF including zero or negative values.
    """
    if fcf is None or discount_rate is None or discount_rate <= growth_rate:
        return None
    return safe_divide(fcf * (1.0 + growth_rate), discount_rate - growth_rate)


def present_value(future_value: float, discount_rate: float, periods: float) -> float | None:
    if discount_rate <= -1.0:
        return None
    return finite_or_none(future_value / (1.0 + discount_rate) ** periods)


def pv_of_growing_fcf(
    fcf: float | None, discount_rate: float | None, growth_rate: float, years: int
) -> float | None:
    """PV of ``years`` cash flows growing at ``growth_rate`` from ``fcf``."""
    if fcf is None or discount_rate is None or discount_rate <= -1.0:
        return None
    total = 0.0
    for year in range(1, years + 1):
        total += fcf * (1.0 + growth_rate) ** year / (1.0 + discount_rate) ** year
    return finite_or_none(total)


def implied_growth_rate(
    price: float | None, fcf_per_share: float | None, discount_rate: float | None
) -> float | None:
    """Closed-form growth implied by the market price.

    Solves ``P = F(1 + g) / (W - g)`` for g, giving
    ``g = (P x W - F) / (P + F)``.
    """
    if price is None or fcf_per_share is None or discount_rate is None:
        return None
    denominator = price + fcf_per_share
    if denominator == 0:
        return None
    return finite_or_none((price * discount_rate - fcf_per_share) / denominator)


def multi_stage_dcf(
    fcf: float | None,
    growth_rate: float | None,
    terminal_growth_rate: float,
    discount_rate: float | None,
    projection_years: int,
    net_debt: float | None,
    shares_outstanding: float | None,
) -> float | None:
    """Explicit-period DCF value per share.

    Growth starts at ``growth_rate`` and declines linearly each year
    towards ``terminal_growth_rate``. Each projected cash flow is
    discounted at ``discount_rate``. The terminal value is taken on the
    final projected year's cash flow and discounted over the full
    horizon. Net debt is deducted before the per-share conversion.

    Args:
        fcf: Current annual free cash flow.
        growth_rate: Initial annual growth rate.
        terminal_growth_rate: Perpetual growth after the horizon.
        discount_rate: WACC.
        projection_years: Number of explicit forecast years.
        net_debt: Total debt - cash.
        shares_outstanding: Shares outstanding.

    Returns:
        Intrinsic value per share, or None if inputs are missing,
        shares are non-positive, or WACC <= terminal growth.
    """
    if (
        fcf is None
        or growth_rate is None
        or discount_rate is None
        or net_debt is None
        or shares_outstanding is None
        or shares_outstanding <= 0
        or projection_years < 1
    ):
        return None
    if discount_rate <= terminal_growth_rate:
        return None

    fade = (growth_rate - terminal_growth_rate) / projection_years
    projected = fcf
    pv_cash_flows = 0.0
    for year in range(1, projection_years + 1):
        projected *= 1.0 + growth_rate - fade * (year - 1)
        pv_cash_flows += projected / (1.0 + discount_rate) ** year

    tv = terminal_value(projected, discount_rate, terminal_growth_rate)
    if tv is None:
        return None
    pv_tv = tv / (1.0 + discount_rate) ** projection_years

    return safe_divide(pv_cash_flows + pv_tv - net_debt, shares_outstanding)


def sensitivity_grid(
    fcf: float | None,
    growth_rate: float | None,
    net_debt: float | None,
    shares_outstanding: float | None,
    discount_rates: Sequence[float],
    terminal_growth_rates: Sequence[float],
    projection_years: int = 5,
) -> pd.DataFrame:
    """Multi-stage value per share across WACC x terminal growth pairs.

    Args:
        fcf: Current annual free cash flow.
        growth_rate: Initial annual growth rate.
        net_debt: Total debt - cash.
        shares_outstanding: Shares outstanding.
        discount_rates: WACC values (rows).
        terminal_growth_rates: Terminal growth values (columns).
        projection_years: Explicit forecast years.

    Returns:
        DataFrame indexed by discount rate with one column per terminal
        growth rate. Cells where WACC <= g or inputs are missing are NaN.
    """
    grid = np.full((len(discount_rates), len(terminal_growth_rates)), np.nan)
    for i, rate in enumerate(discount_rates):
        for j, g in enumerate(terminal_growth_rates):
            value = multi_stage_dcf(
                fcf, growth_rate, g, rate, projection_years, net_debt, shares_outstanding
            )
            if value is not None:
                grid[i, j] = value
    return pd.DataFrame(
        grid,
        index=pd.Index(list(discount_rates), name="wacc"),
        columns=pd.Index(list(terminal_growth_rates), name="terminal_growth"),
    )


def interpret_valuation(margin_of_safety: float | None) -> tuple[str, str]:
    """Classify a margin of safety.

    Returns:
        (label, confidence). Thresholds: > 30% undervalued (high
        confidence above 50%), > 10% undervalued, > -10% fairly valued,
        > -30% overvalued, else overvalued with high confidence.
    """
    if margin_of_safety is None:
        return "fairly valued", "low"
    if margin_of_safety > 0.30:
        return "undervalued", "high" if margin_of_safety > 0.50 else "medium"
    if margin_of_safety > 0.10:
        return "undervalued", "medium"
    if margin_of_safety > -0.10:
        return "fairly valued", "medium"
    if margin_of_safety > -0.30:
        return "overvalued", "medium"
    return "overvalued", "high"


def compute_dcf(
    snapshot: RawSnapshot,
    shared: SharedIntermediates,
    config: CalculatorConfig,
    growth_rate: float | None = None,
) -> DCFMetrics:
    """Compute DCF metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Resolved rates and shared aggregates.
        config: Calculator configuration (projection horizon).
        growth_rate: Initial growth for the multi-stage variant. Usually
            a historical revenue CAGR. None skips the multi-stage value.

    Returns:
        DCFMetrics.
    """
    f = snapshot.fundamentals
    g = shared.terminal_growth_rate
    fcf = shared.free_cash_flow
    discount = shared.wacc

    if discount is not None and discount <= g:
        logger.debug(
            "%s: WACC %.4f does not exceed terminal growth %.4f, "
            "terminal value set to None",
            snapshot.symbol, discount, g,
        )

    tv = terminal_value(fcf, discount, g)
    shares = f.shares_outstanding if f.shares_outstanding and f.shares_outstanding > 0 else None
    intrinsic = safe_divide(tv, shares)
    price = f.price

    margin_of_safety = None
    if intrinsic is not None and intrinsic > 0 and price is not None:
        margin_of_safety = finite_or_none((intrinsic - price) / intrinsic)

    years = config.projection_years
    pv_fcf = pv_of_growing_fcf(fcf, discount, g, years)
    pv_tv = None
    if tv is not None and discount is not None:
        pv_tv = present_value(tv, discount, years)

    equity_value_per_share = None
    if pv_fcf is not None and pv_tv is not None and shared.net_debt is not None:
        equity_value_per_share = safe_divide(pv_fcf + pv_tv - shared.net_debt, shares)

    implied = implied_growth_rate(
        price, safe_divide(fcf, shares), discount
    )

    exit_multiple = None
    if tv is not None and f.ebitda is not None and f.ebitda > 0:
        exit_multiple = safe_divide(tv, f.ebitda)

    multi_stage = multi_stage_dcf(
        fcf, growth_rate, g, discount, years, shared.net_debt, shares
    )

    label, confidence = interpret_valuation(margin_of_safety)

    return DCFMetrics(
        risk_free_rate=shared.risk_free_rate,
        market_risk_premium=shared.market_risk_premium,
        beta=f.beta,
        cost_of_equity=shared.cost_of_equity,
        cost_of_debt=shared.cost_of_debt,
        wacc=discount,
        terminal_value=tv,
        intrinsic_value=intrinsic,
        upside_downside=percentage_change(intrinsic, price),
        pv_of_fcf=pv_fcf,
        pv_of_terminal_value=pv_tv,
        equity_value_per_share=equity_value_per_share,
        margin_of_safety=margin_of_safety,
        implied_growth_rate=implied,
        reverse_dcf_growth=implied,
        exit_multiple=exit_multiple,
        perpetuity_growth_rate=g,
        multi_stage_value_per_share=multi_stage,
        valuation_label=label,
        valuation_confidence=confidence,
    )
