"""Industry position metrics: market share, concentration and peer-relative
ratios."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from metrics_engine.data.models import RawSnapshot, competitor_revenues
from metrics_engine.numeric import safe_divide, safe_subtract

logger = logging.getLogger(__name__)

HHI_SCALE: float = 10_000.0
HHI_COMPETITIVE: float = 1_500.0
HHI_MODERATE: float = 2_500.0
CR4_COMPETITIVE: float = 0.4
CR4_OLIGOPOLY: float = 0.6


@dataclass
class IndustryMetrics:
    """Industry outputs.

    Attributes:
        industry_name: Resolved industry label.
        sector_name: Resolved sector label.
        market_share: Company revenue / industry revenue.
        hhi: Herfindahl-Hirschman index, 10000 x sum of squared shares.
        hhi_interpretation: Concentration label for the HHI.
        cr4: Combined share of the four largest competitors.
        cr4_interpretation: Concentration label for CR4.
        cr8: Combined share of the eight largest competitors.
        industry_growth_rate: As supplied.
        market_size: As supplied.
        relative_pe: Company P/E / industry P/E.
        relative_pb: Company P/B / industry P/B.
        excess_roe: Company ROE - industry ROE.
        relative_gross_margin: Company gross margin - industry gross margin.
        relative_beta: Company beta / industry beta.
    """

    industry_name: str | None
    sector_name: str | None
    market_share: float | None
    hhi: float | None
    hhi_interpretation: str
    cr4: float | None
    cr4_interpretation: str
    cr8: float | None
    industry_growth_rate: float | None
    market_size: float | None
    relative_pe: float | None
    relative_pb: float | None
    excess_roe: float | None
    relative_gross_margin: float | None
    relative_beta: float | None


def market_shares(revenues: Sequence[float], total: float | None) -> list[float]:
    """Each revenue as a fraction of ``total``; empty for a non-positive total."""
    if total is None or total <= 0:
        return []
    return [r / total for r in revenues]


def herfindahl_index(shares: Sequence[float]) -> float | None:
    if not shares:
        return None
    return HHI_SCALE * math.fsum(s * s for s in shares)


def concentration_ratio(shares: Sequence[float], top_n: int) -> float | None:
    """Combined share of the ``top_n`` largest firms (all firms if fewer)."""
    if not shares:
        return None
    return math.fsum(sorted(shares, reverse=True)[:top_n])


def interpret_hhi(hhi: float | None) -> str:
    if hhi is None:
        return "Unknown"
    if hhi < HHI_COMPETITIVE:
        return "Competitive market"
    if hhi < HHI_MODERATE:
        return "Moderately concentrated"
    return "Highly concentrated"


def interpret_cr4(cr4: float | None) -> str:
    if cr4 is None:
        return "Unknown"
    if cr4 < CR4_COMPETITIVE:
        return "Competitive"
    if cr4 < CR4_OLIGOPOLY:
        return "Oligopoly"
    return "High concentration"


def compute_industry(
    snapshot: RawSnapshot,
    pe: float | None = None,
    pb: float | None = None,
    roe: float | None = None,
    gross_margin: float | None = None,
) -> IndustryMetrics:
    """Compute industry position metrics.

    The share denominator is the supplied industry revenue, else the sum
    of competitor revenues.

    Args:
        snapshot: Raw input snapshot.
        pe: Company P/E from the valuation category.
        pb: Company P/B from the valuation category.
        roe: Company ROE from the profitability category.
        gross_margin: Company gross margin from the profitability category.

    Returns:
        IndustryMetrics.
    """
    industry = snapshot.industry
    revenues = competitor_revenues(industry.competitors)

    total = industry.industry_revenue
    if total is None or total <= 0:
        total = math.fsum(revenues) if revenues else None

    shares = market_shares(revenues, total)
    if not shares:
        logger.debug(
            "%s: no usable competitor revenues, concentration set to None",
            snapshot.symbol,
        )

    hhi = herfindahl_index(shares)
    cr4 = concentration_ratio(shares, 4)

    return IndustryMetrics(
        industry_name=snapshot.resolved_industry,
        sector_name=snapshot.resolved_sector,
        market_share=safe_divide(snapshot.fundamentals.revenue, total),
        hhi=hhi,
        hhi_interpretation=interpret_hhi(hhi),
        cr4=cr4,
        cr4_interpretation=interpret_cr4(cr4),
        cr8=concentration_ratio(shares, 8),
        industry_growth_rate=industry.industry_growth_rate,
        market_size=industry.market_size,
        relative_pe=safe_divide(pe, industry.industry_pe),
        relative_pb=safe_divide(pb, industry.industry_pb),
        excess_roe=safe_subtract(roe, industry.industry_roe),
        relative_gross_margin=safe_subtract(gross_margin, industry.industry_gross_margin),
        relative_beta=safe_divide(snapshot.fundamentals.beta, industry.industry_beta),
    )
