"""Growth metrics from annual history.

Every historical array is most-recent-first: year-over-year growth
compares index 0 with index 1 and an N-year CAGR compares index 0 with
index N. Price history runs the other way and is never read here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.data.models import HistoricalSeries, RawSnapshot
from metrics_engine.numeric import (
    compound_annual_growth_rate,
    percentage_change,
    safe_multiply,
)

logger = logging.getLogger(__name__)

# Payout ratios above this are treated as data errors.
MAX_PAYOUT_RATIO: float = 1.5


@dataclass
class GrowthMetrics:
    """Growth outputs. Rates are decimals (0.10 = 10%).

    Attributes:
        revenue_growth_yoy: Latest vs prior revenue, else provider value.
        eps_growth_yoy: Latest vs prior EPS, else provider value.
        net_income_growth_yoy: Latest vs prior net income.
        dps_growth: Latest vs prior dividends. None if either is <= 0.
        fcf_growth: Latest vs prior free cash flow. None if either is <= 0.
        revenue_3y_cagr: Needs four annual revenue values.
        revenue_5y_cagr: Needs six annual revenue values.
        eps_3y_cagr: Needs four annual EPS values.
        eps_5y_cagr: Needs six annual EPS values.
        payout_ratio: |Dividends paid| / net income.
        retention_ratio: 1 - payout ratio.
        sustainable_growth_rate: ROE x retention ratio.
        internal_growth_rate: ROA x retention ratio.
    """

    revenue_growth_yoy: float | None
    eps_growth_yoy: float | None
    net_income_growth_yoy: float | None
    dps_growth: float | None
    fcf_growth: float | None
    revenue_3y_cagr: float | None
    revenue_5y_cagr: float | None
    eps_3y_cagr: float | None
    eps_5y_cagr: float | None
    payout_ratio: float | None
    retention_ratio: float | None
    sustainable_growth_rate: float | None
    internal_growth_rate: float | None


def year_over_year(series: HistoricalSeries) -> float | None:
    """Growth from index 1 to index 0."""
    if not series.has_periods(2):
        return None
    return percentage_change(series.prior(0), series.prior(1))


def positive_year_over_year(series: HistoricalSeries) -> float | None:
    """Year-over-year growth that is only defined between two positive values."""
    latest, previous = series.prior(0), series.prior(1)
    if latest is None or previous is None or latest <= 0 or previous <= 0:
        return None
    return percentage_change(latest, previous)


def series_cagr(series: HistoricalSeries, years: int) -> float | None:
    """CAGR between index ``years`` and index 0.

    Args:
        series: Most-recent-first annual values.
        years: Span in years. The series needs ``years + 1`` values.

    Returns:
        Annualised growth, or None with too little history or a
        non-positive starting value.
    """
    if not series.has_periods(years + 1):
        return None
    return compound_annual_growth_rate(series.prior(0), series.prior(years), years)


def payout_ratio(
    dividends_paid: float | None, net_income: float | None
) -> float | None:
    """Share of earnings paid out.

    Unreported dividends give None. Zero dividends give 0 whatever the
    earnings. Otherwise net income must be positive and the ratio must
    not exceed MAX_PAYOUT_RATIO.
    """
    if dividends_paid is None:
        return None
    if dividends_paid == 0:
        return 0.0
    if net_income is None or net_income <= 0:
        return None
    ratio = abs(dividends_paid) / net_income
    if not 0.0 <= ratio <= MAX_PAYOUT_RATIO:
        return None
    return ratio


def compute_growth(
    snapshot: RawSnapshot,
    roe: float | None = None,
    roa: float | None = None,
) -> GrowthMetrics:
    """Compute growth metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        roe: Return on equity from the profitability category.
        roa: Return on assets from the profitability category.

    Returns:
        GrowthMetrics.
    """
    f = snapshot.fundamentals
    history = snapshot.history
    symbol = snapshot.symbol

    revenue_growth = year_over_year(history.revenue)
    if revenue_growth is None:
        revenue_growth = f.provider_revenue_growth
    eps_growth = year_over_year(history.eps)
    if eps_growth is None:
        eps_growth = f.provider_earnings_growth

    dps_growth = positive_year_over_year(history.dividends)
    fcf_growth = positive_year_over_year(history.fcf)

    revenue_3y = series_cagr(history.revenue, 3)
    if revenue_3y is None:
        logger.debug(
            "%s: %d revenue periods, 3-year CAGR set to None",
            symbol, len(history.revenue),
        )

    payout = payout_ratio(f.dividends_paid, f.net_income)
    if payout is None:
        logger.debug("%s: net income non-positive or payout out of range, payout ratio set to None", symbol)

    retention = None
    if payout is not None:
        retention = 1.0 - payout
        if not 0.0 <= retention <= 1.0:
            logger.debug("%s: retention %.4f outside [0, 1], set to None", symbol, retention)
            retention = None

    return GrowthMetrics(
        revenue_growth_yoy=revenue_growth,
        eps_growth_yoy=eps_growth,
        net_income_growth_yoy=year_over_year(history.net_income),
        dps_growth=dps_growth,
        fcf_growth=fcf_growth,
        revenue_3y_cagr=revenue_3y,
        revenue_5y_cagr=series_cagr(history.revenue, 5),
        eps_3y_cagr=series_cagr(history.eps, 3),
        eps_5y_cagr=series_cagr(history.eps, 5),
        payout_ratio=payout,
        retention_ratio=retention,
        sustainable_growth_rate=safe_multiply(roe, retention),
        internal_growth_rate=safe_multiply(roa, retention),
    )
