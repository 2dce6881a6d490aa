"""Macro metrics: pass-through indicators plus rate and cycle derivations.

All inputs and rate outputs are in percent, as published by FRED.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.data.models import MacroData
from metrics_engine.numeric import safe_add, safe_subtract

logger = logging.getLogger(__name__)

# Points per health factor; the score is rescaled to 0-100.
HEALTH_FACTOR_POINTS: int = 25
# CPI level carries no direction on its own, so its presence earns a
# neutral score.
CPI_PRESENT_POINTS: int = 15

RECESSION_UNEMPLOYMENT_THRESHOLD: float = 6.0


@dataclass
class MacroMetrics:
    """Macro outputs.

    Attributes:
        indicators: The supplied macro series, unchanged.
        yield_curve_slope: 10Y - 3M treasury yield.
        yield_curve_spread: 10Y - 2Y treasury yield.
        term_premium: 10Y treasury - federal funds rate.
        expected_real_rate: 10Y treasury - 10Y breakeven inflation.
        real_interest_rate: Federal funds rate - inflation rate.
        real_wage_growth: Wage growth - inflation rate.
        fisher_implied_nominal_rate: Real rate + expected inflation
            (10Y breakeven, else realised inflation).
        fisher_gap: 10Y treasury - Fisher-implied nominal rate.
        economic_health_score: 0-100 from GDP growth, unemployment, CPI
            and consumer confidence bands.
        is_recession: GDP growth < 0 and unemployment > 6%.
    """

    indicators: MacroData
    yield_curve_slope: float | None
    yield_curve_spread: float | None
    term_premium: float | None
    expected_real_rate: float | None
    real_interest_rate: float | None
    real_wage_growth: float | None
    fisher_implied_nominal_rate: float | None
    fisher_gap: float | None
    economic_health_score: int | None
    is_recession: bool


def _gdp_points(growth: float) -> int:
    if growth >= 3:
        return 25
    if growth >= 2:
        return 20
    if growth >= 1:
        return 15
    if growth >= 0:
        return 10
    return 0


def _unemployment_points(rate: float) -> int:
    if rate <= 4:
        return 25
    if rate <= 5:
        return 20
    if rate <= 6:
        return 15
    if rate <= 7:
        return 10
    return 5


def _confidence_points(index: float) -> int:
    if index >= 100:
        return 25
    if index >= 90:
        return 20
    if index >= 80:
        return 15
    if index >= 70:
        return 10
    return 5


def economic_health_score(macro: MacroData) -> int | None:
    """Banded 0-100 score over the available health factors.

    Returns:
        Rounded score, or None if none of GDP growth, unemployment, CPI
        and consumer confidence is present.
    """
    points = 0
    factors = 0
    if macro.gdp_growth_rate is not None:
        points += _gdp_points(macro.gdp_growth_rate)
        factors += 1
    if macro.unemployment_rate is not None:
        points += _unemployment_points(macro.unemployment_rate)
        factors += 1
    if macro.cpi is not None:
        points += CPI_PRESENT_POINTS
        factors += 1
    if macro.consumer_confidence is not None:
        points += _confidence_points(macro.consumer_confidence)
        factors += 1
    if factors == 0:
        return None
    return round(points / (factors * HEALTH_FACTOR_POINTS) * 100)


def is_recession(macro: MacroData) -> bool:
    return (
        macro.gdp_growth_rate is not None
        and macro.gdp_growth_rate < 0
        and macro.unemployment_rate is not None
        and macro.unemployment_rate > RECESSION_UNEMPLOYMENT_THRESHOLD
    )


def compute_macro(macro: MacroData) -> MacroMetrics:
    """Derive macro metrics from the supplied series."""
    real_rate = safe_subtract(macro.federal_funds_rate, macro.inflation_rate)
    expected_inflation = (
        macro.breakeven_inflation_10y
        if macro.breakeven_inflation_10y is not None
        else macro.inflation_rate
    )
    implied_nominal = safe_add(real_rate, expected_inflation)

    score = economic_health_score(macro)
    if score is None:
        logger.debug("no macro health factors available, health score set to None")

    return MacroMetrics(
        indicators=macro,
        yield_curve_slope=safe_subtract(macro.treasury_10y, macro.treasury_3m),
        yield_curve_spread=safe_subtract(macro.treasury_10y, macro.treasury_2y),
        term_premium=safe_subtract(macro.treasury_10y, macro.federal_funds_rate),
        expected_real_rate=safe_subtract(
            macro.treasury_10y, macro.breakeven_inflation_10y
        ),
        real_interest_rate=real_rate,
        real_wage_growth=safe_subtract(macro.wage_growth, macro.inflation_rate),
        fisher_implied_nominal_rate=implied_nominal,
        fisher_gap=safe_subtract(macro.treasury_10y, implied_nominal),
        economic_health_score=score,
        is_recession=is_recession(macro),
    )
