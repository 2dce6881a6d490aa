"""Miscellaneous metrics: per-share figures, operating leverage and
distress and quality composites (Altman Z, Piotroski F)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.data.models import FundamentalData, RawSnapshot
from metrics_engine.numeric import (
    safe_add,
    safe_divide,
    safe_multiply,
    safe_subtract,
)

logger = logging.getLogger(__name__)

ALTMAN_SAFE_THRESHOLD: float = 2.99
ALTMAN_GREY_THRESHOLD: float = 1.81

PIOTROSKI_STRONG_THRESHOLD: int = 8
PIOTROSKI_MODERATE_THRESHOLD: int = 3


@dataclass
class OtherMetrics:
    """Other outputs.

    Attributes:
        effective_tax_rate: Income tax / pretax income.
        working_capital: Current assets - current liabilities.
        book_value_per_share: Total equity / shares.
        sales_per_share: Revenue / shares.
        cash_flow_per_share: Operating cash flow / shares.
        degree_of_operating_leverage: Gross profit / EBIT (proxy).
        degree_of_financial_leverage: EBIT / (EBIT - interest expense).
        total_leverage: DOL x DFL.
        altman_z_score: Five-factor public manufacturer Z-score.
        altman_zone: "safe", "grey" or "distress".
        piotroski_f_score: Count of passed tests (0-9, 0-3 without
            prior-year data).
        piotroski_strength: "strong", "moderate" or "weak".
        excess_roic: ROIC - industry ROIC.
        tax_burden: Net income / pretax income.
        operating_roi: Operating income / (fixed assets + working capital).
        invested_capital_turnover: Revenue / invested capital.
    """

    effective_tax_rate: float | None
    working_capital: float | None
    book_value_per_share: float | None
    sales_per_share: float | None
    cash_flow_per_share: float | None
    degree_of_operating_leverage: float | None
    degree_of_financial_leverage: float | None
    total_leverage: float | None
    altman_z_score: float | None
    altman_zone: str | None
    piotroski_f_score: int | None
    piotroski_strength: str | None
    excess_roic: float | None
    tax_burden: float | None
    operating_roi: float | None
    invested_capital_turnover: float | None


def altman_z_score(f: FundamentalData, working_capital: float | None) -> float | None:
    """Altman Z = 1.2 A + 1.4 B + 3.3 C + 0.6 D + 1.0 E.

    A = working capital / TA, B = retained earnings / TA, C = EBIT / TA,
    D = market cap / total liabilities, E = revenue / TA.

    Returns:
        Z-score, or None unless total assets and total liabilities are
        positive and every component is present.
    """
    if f.total_assets is None or f.total_assets <= 0:
        return None
    if f.total_liabilities is None or f.total_liabilities <= 0:
        return None
    ta = f.total_assets
    return safe_add(
        safe_multiply(1.2, safe_divide(working_capital, ta)),
        safe_multiply(1.4, safe_divide(f.retained_earnings, ta)),
        safe_multiply(3.3, safe_divide(f.ebit, ta)),
        safe_multiply(0.6, safe_divide(f.market_cap, f.total_liabilities)),
        safe_divide(f.revenue, ta),
    )


def altman_zone(z: float | None) -> str | None:
    if z is None:
        return None
    if z > ALTMAN_SAFE_THRESHOLD:
        return "safe"
    if z >= ALTMAN_GREY_THRESHOLD:
        return "grey"
    return "distress"


def _improved(current: float | None, previous: float | None) -> bool:
    return current is not None and previous is not None and current > previous


def piotroski_f_score(
    current: FundamentalData, previous: FundamentalData | None
) -> int | None:
    """Piotroski F-score.

    Without prior-year fundamentals only the three single-period tests
    run (positive net income, positive operating cash flow, accruals).
    With them, six year-over-year tests follow: ROA up, leverage down,
    current ratio up, no dilution, gross margin up, asset turnover up.
    A test with missing inputs scores zero.

    Returns:
        Number of passed tests, or None if neither net income nor
        operating cash flow is available.
    """
    ni = current.net_income
    ocf = current.operating_cash_flow
    if ni is None and ocf is None:
        return None

    score = 0
    if ni is not None and ni > 0:
        score += 1
    if ocf is not None and ocf > 0:
        score += 1
    if ni is not None and ocf is not None and ocf > ni:
        score += 1

    if previous is None:
        return score

    def roa(f: FundamentalData) -> float | None:
        return safe_divide(f.net_income, f.total_assets)

    def leverage(f: FundamentalData) -> float | None:
        return safe_divide(f.total_debt, f.total_assets)

    def current_ratio(f: FundamentalData) -> float | None:
        return safe_divide(f.current_assets, f.current_liabilities)

    def gross_margin(f: FundamentalData) -> float | None:
        return safe_divide(f.gross_profit, f.revenue)

    def asset_turnover(f: FundamentalData) -> float | None:
        return safe_divide(f.revenue, f.total_assets)

    if _improved(roa(current), roa(previous)):
        score += 1
    if _improved(leverage(previous), leverage(current)):
        score += 1
    if _improved(current_ratio(current), current_ratio(previous)):
        score += 1
    if (
        current.shares_outstanding is not None
        and previous.shares_outstanding is not None
        and current.shares_outstanding <= previous.shares_outstanding
    ):
        score += 1
    if _improved(gross_margin(current), gross_margin(previous)):
        score += 1
    if _improved(asset_turnover(current), asset_turnover(previous)):
        score += 1
    return score


def piotroski_strength(score: int | None) -> str | None:
    if score is None:
        return None
    if score >= PIOTROSKI_STRONG_THRESHOLD:
        return "strong"
    if score >= PIOTROSKI_MODERATE_THRESHOLD:
        return "moderate"
    return "weak"


def compute_other(
    snapshot: RawSnapshot,
    shared: SharedIntermediates,
    roic: float | None = None,
) -> OtherMetrics:
    """Compute the miscellaneous metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Shared intermediates.
        roic: Return on invested capital from the profitability category.

    Returns:
        OtherMetrics.
    """
    f = snapshot.fundamentals
    symbol = snapshot.symbol
    shares = f.shares_outstanding

    dol = safe_divide(f.gross_profit, f.ebit)
    dfl = safe_divide(f.ebit, safe_subtract(f.ebit, f.interest_expense))

    z = altman_z_score(f, shared.working_capital)
    if z is None:
        logger.debug("%s: Altman Z inputs incomplete, set to None", symbol)

    f_score = piotroski_f_score(f, snapshot.previous_year)
    if snapshot.previous_year is None:
        logger.debug("%s: no prior-year fundamentals, Piotroski limited to 3 tests", symbol)

    fixed_assets = safe_subtract(f.total_assets, f.current_assets)

    return OtherMetrics(
        effective_tax_rate=shared.effective_tax_rate,
        working_capital=shared.working_capital,
        book_value_per_share=shared.book_value_per_share,
        sales_per_share=safe_divide(f.revenue, shares),
        cash_flow_per_share=safe_divide(f.operating_cash_flow, shares),
        degree_of_operating_leverage=dol,
        degree_of_financial_leverage=dfl,
        total_leverage=safe_multiply(dol, dfl),
        altman_z_score=z,
        altman_zone=altman_zone(z),
        piotroski_f_score=f_score,
        piotroski_strength=piotroski_strength(f_score),
        excess_roic=safe_subtract(roic, snapshot.industry.industry_roic),
        tax_burden=safe_divide(f.net_income, f.pretax_income),
        operating_roi=safe_divide(
            f.operating_income, safe_add(fixed_assets, shared.working_capital)
        ),
        invested_capital_turnover=safe_divide(f.revenue, shared.invested_capital),
    )
