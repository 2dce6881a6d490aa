"""Profitability metrics: margins, returns on capital and value creation.

Margins and returns are derived from statement components first. The
provider's own ratio is used only when the derivation is unavailable.
Economic profit and residual income charge capital at the hurdle rates
carried on SharedIntermediates, so they are always computable when the
underlying statement figures are present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import safe_divide, safe_subtract

logger = logging.getLogger(__name__)


@dataclass
class ProfitabilityMetrics:
    """Profitability outputs.

    Attributes:
        gross_margin: Gross profit / revenue, else provider value.
        operating_margin: Operating income / revenue, else provider value.
        ebitda_margin: EBITDA / revenue.
        net_margin: Net income / revenue, else provider value.
        roa: Net income / total assets, else provider value.
        roe: Net income / total equity, else provider value.
        roic: NOPLAT / invested capital. None if invested capital <= 0.
        noplat: EBIT x (1 - tax rate).
        roce: EBIT / capital employed.
        rona: Net income / (total assets - total liabilities).
        cash_roa: Operating cash flow / total assets.
        cash_roe: Operating cash flow / total equity.
        pretax_margin: Pretax income / revenue.
        ebit_margin: EBIT / revenue.
        operating_roa: Operating income / total assets.
        economic_profit: NOPLAT - invested capital x WACC.
        residual_income: Net income - equity x cost of equity.
        spread_above_wacc: ROIC - WACC.
    """

    gross_margin: float | None
    operating_margin: float | None
    ebitda_margin: float | None
    net_margin: float | None
    roa: float | None
    roe: float | None
    roic: float | None
    noplat: float | None
    roce: float | None
    rona: float | None
    cash_roa: float | None
    cash_roe: float | None
    pretax_margin: float | None
    ebit_margin: float | None
    operating_roa: float | None
    economic_profit: float | None
    residual_income: float | None
    spread_above_wacc: float | None


def _margin(numerator: float | None, revenue: float | None) -> float | None:
    if revenue is None or revenue <= 0:
        return None
    return safe_divide(numerator, revenue)


def compute_profitability(
    snapshot: RawSnapshot, shared: SharedIntermediates
) -> ProfitabilityMetrics:
    """Compute profitability metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Shared intermediates (NOPLAT, invested capital, hurdles).

    Returns:
        ProfitabilityMetrics.
    """
    f = snapshot.fundamentals
    symbol = snapshot.symbol

    if f.revenue is None or f.revenue <= 0:
        logger.debug("%s: revenue non-positive or missing, margins from provider only", symbol)

    gross_margin = _margin(f.gross_profit, f.revenue)
    if gross_margin is None:
        gross_margin = f.provider_gross_margin
    operating_margin = _margin(f.operating_income, f.revenue)
    if operating_margin is None:
        operating_margin = f.provider_operating_margin
    net_margin = _margin(f.net_income, f.revenue)
    if net_margin is None:
        net_margin = f.provider_profit_margin

    roa = safe_divide(f.net_income, f.total_assets)
    if roa is None:
        roa = f.provider_return_on_assets
    roe = safe_divide(f.net_income, f.total_equity)
    if roe is None:
        roe = f.provider_return_on_equity

    ic = shared.invested_capital
    if ic is None or ic <= 0:
        roic = None
        economic_profit = None
        logger.debug("%s: invested capital non-positive or missing, ROIC set to None", symbol)
    else:
        roic = safe_divide(shared.noplat, ic)
        economic_profit = safe_subtract(shared.noplat, ic * shared.hurdle_wacc)

    residual_income = None
    if f.total_equity is not None and f.total_equity > 0:
        residual_income = safe_subtract(
            f.net_income, f.total_equity * shared.hurdle_cost_of_equity
        )
    else:
        logger.debug("%s: equity non-positive or missing, residual income set to None", symbol)

    spread = None
    if roic is not None:
        spread = roic - shared.hurdle_wacc

    return ProfitabilityMetrics(
        gross_margin=gross_margin,
        operating_margin=operating_margin,
        ebitda_margin=_margin(f.ebitda, f.revenue),
        net_margin=net_margin,
        roa=roa,
        roe=roe,
        roic=roic,
        noplat=shared.noplat,
        roce=safe_divide(f.ebit, shared.capital_employed),
        rona=safe_divide(
            f.net_income, safe_subtract(f.total_assets, f.total_liabilities)
        ),
        cash_roa=safe_divide(f.operating_cash_flow, f.total_assets),
        cash_roe=safe_divide(f.operating_cash_flow, f.total_equity),
        pretax_margin=_margin(f.pretax_income, f.revenue),
        ebit_margin=_margin(f.ebit, f.revenue),
        operating_roa=safe_divide(f.operating_income, f.total_assets),
        economic_profit=economic_profit,
        residual_income=residual_income,
        spread_above_wacc=spread,
    )
