"""Normalisation of raw metrics into 0-100 scores.

Each raw metric is clamped to a benchmark range and mapped linearly onto
0-100 (inverted where lower values are better). Category scores are
weighted averages over the components that are present, with the
weights renormalised. The total score blends five category scores and,
under the default policy, only exists when all five do.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from metrics_engine.config import TotalScorePolicy
from metrics_engine.metrics.efficiency import EfficiencyMetrics
from metrics_engine.metrics.growth import GrowthMetrics
from metrics_engine.metrics.leverage import LeverageMetrics
from metrics_engine.metrics.liquidity import LiquidityMetrics
from metrics_engine.metrics.profitability import ProfitabilityMetrics
from metrics_engine.metrics.risk import RiskMetrics
from metrics_engine.metrics.technical import TechnicalMetrics
from metrics_engine.metrics.valuation import ValuationMetrics
from metrics_engine.numeric import clamp, linear_rescale, mean, weighted_average

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Benchmark:
    """Range over which a metric is scored.

    Attributes:
        min_value: Value mapped to 0 (or 100 when lower is better).
        max_value: Value mapped to 100 (or 0 when lower is better).
        higher_is_better: Direction of preference.
    """

    min_value: float
    max_value: float
    higher_is_better: bool = True

    def __post_init__(self) -> None:
        if self.min_value >= self.max_value:
            raise ValueError(
                f"benchmark min ({self.min_value}) must be below max ({self.max_value})"
            )


BENCHMARKS: dict[str, Benchmark] = {
    # Profitability
    "gross_margin": Benchmark(0.0, 0.8),
    "operating_margin": Benchmark(-0.2, 0.4),
    "net_margin": Benchmark(-0.2, 0.3),
    "roe": Benchmark(-0.1, 0.4),
    "roic": Benchmark(-0.1, 0.3),
    # Growth
    "revenue_growth_yoy": Benchmark(-0.3, 0.5),
    "eps_growth_yoy": Benchmark(-0.5, 1.0),
    "fcf_growth": Benchmark(-0.5, 0.5),
    "revenue_3y_cagr": Benchmark(-0.1, 0.3),
    # Valuation
    "pe": Benchmark(5.0, 50.0, higher_is_better=False),
    "pb": Benchmark(0.5, 10.0, higher_is_better=False),
    "peg": Benchmark(0.5, 3.0, higher_is_better=False),
    "ev_to_ebitda": Benchmark(3.0, 25.0, higher_is_better=False),
    # Risk
    "beta": Benchmark(0.5, 2.0, higher_is_better=False),
    "volatility": Benchmark(0.1, 0.6, higher_is_better=False),
    "sharpe_ratio": Benchmark(-0.5, 2.0),
    # Health
    "current_ratio": Benchmark(0.5, 3.0),
    "quick_ratio": Benchmark(0.3, 2.5),
    "debt_to_equity": Benchmark(0.0, 3.0, higher_is_better=False),
    "interest_coverage": Benchmark(0.0, 20.0),
}

PROFITABILITY_WEIGHTS: dict[str, float] = {
    "gross_margin": 0.2,
    "operating_margin": 0.2,
    "net_margin": 0.2,
    "roe": 0.2,
    "roic": 0.2,
}
GROWTH_WEIGHTS: dict[str, float] = {
    "revenue_growth_yoy": 0.3,
    "eps_growth_yoy": 0.3,
    "fcf_growth": 0.2,
    "revenue_3y_cagr": 0.2,
}
VALUATION_WEIGHTS: dict[str, float] = {
    "pe": 0.3,
    "pb": 0.25,
    "peg": 0.25,
    "ev_to_ebitda": 0.2,
}
RISK_WEIGHTS: dict[str, float] = {
    "beta": 0.35,
    "volatility": 0.35,
    "sharpe_ratio": 0.3,
}
HEALTH_WEIGHTS: dict[str, float] = {
    "current_ratio": 0.25,
    "quick_ratio": 0.25,
    "debt_to_equity": 0.25,
    "interest_coverage": 0.25,
}

# Order matters: total_score takes scores in this order.
TOTAL_SCORE_WEIGHTS: dict[str, float] = {
    "profitability": 0.25,
    "growth": 0.20,
    "valuation": 0.20,
    "risk": 0.15,
    "health": 0.20,
}


@dataclass
class ScoreRecord:
    """Score outputs, each in [0, 100] or None.

    Attributes:
        profitability_score: Margins and returns on capital.
        growth_score: Revenue, EPS and FCF growth.
        valuation_score: P/E, P/B, PEG and EV/EBITDA (cheaper scores higher).
        risk_score: Beta, volatility and Sharpe ratio.
        health_score: Liquidity, leverage and coverage.
        total_score: Weighted blend of the five category scores.
        total_score_label: interpret_score of the total.
        momentum_score: RSI band and price vs 50-day SMA.
        quality_score: ROE, ROIC and gross margin.
        stability_score: Volatility and beta distance from 1.
        efficiency_score: Asset and inventory turnover.
        solvency_score: Debt/assets and interest coverage.
        technical_score: RSI band and moving-average cross.
    """

    profitability_score: float | None
    growth_score: float | None
    valuation_score: float | None
    risk_score: float | None
    health_score: float | None
    total_score: float | None
    total_score_label: str
    momentum_score: float | None
    quality_score: float | None
    stability_score: float | None
    efficiency_score: float | None
    solvency_score: float | None
    technical_score: float | None


def normalize_metric(value: float | None, benchmark: Benchmark) -> float | None:
    """Score a raw value in [0, 100] against ``benchmark``."""
    score = linear_rescale(value, benchmark.min_value, benchmark.max_value)
    if score is None:
        return None
    return score if benchmark.higher_is_better else 100.0 - score


def weighted_score(components: Sequence[tuple[float | None, float]]) -> float | None:
    """Reweighted average of (score, weight) pairs, clamped to [0, 100].

    Returns:
        Score, or None when no component is present.
    """
    if not components:
        return None
    values = [score for score, _ in components]
    weights = [weight for _, weight in components]
    result = weighted_average(values, weights)
    if result is None:
        return None
    return clamp(result, 0.0, 100.0)


def category_score(
    raw: Mapping[str, float | None], weights: Mapping[str, float]
) -> float | None:
    """Normalise each raw metric with BENCHMARKS and combine with ``weights``."""
    return weighted_score([
        (normalize_metric(raw.get(name), BENCHMARKS[name]), weight)
        for name, weight in weights.items()
    ])


def _positive(value: float | None) -> float | None:
    # Negative multiples would clamp to the cheapest end of the range
    return value if value is not None and value > 0 else None


def profitability_score(p: ProfitabilityMetrics) -> float | None:
    return category_score(
        {
            "gross_margin": p.gross_margin,
            "operating_margin": p.operating_margin,
            "net_margin": p.net_margin,
            "roe": p.roe,
            "roic": p.roic,
        },
        PROFITABILITY_WEIGHTS,
    )


def growth_score(g: GrowthMetrics) -> float | None:
    return category_score(
        {
            "revenue_growth_yoy": g.revenue_growth_yoy,
            "eps_growth_yoy": g.eps_growth_yoy,
            "fcf_growth": g.fcf_growth,
            "revenue_3y_cagr": g.revenue_3y_cagr,
        },
        GROWTH_WEIGHTS,
    )


def valuation_score(v: ValuationMetrics) -> float | None:
    return category_score(
        {
            "pe": _positive(v.pe),
            "pb": _positive(v.pb),
            "peg": v.peg,
            "ev_to_ebitda": v.ev_to_ebitda,
        },
        VALUATION_WEIGHTS,
    )


def risk_score(r: RiskMetrics) -> float | None:
    return category_score(
        {
            "beta": r.beta,
            "volatility": r.volatility,
            "sharpe_ratio": r.sharpe_ratio,
        },
        RISK_WEIGHTS,
    )


def health_score(liquidity: LiquidityMetrics, leverage: LeverageMetrics) -> float | None:
    return category_score(
        {
            "current_ratio": liquidity.current_ratio,
            "quick_ratio": liquidity.quick_ratio,
            "debt_to_equity": leverage.debt_to_equity,
            "interest_coverage": leverage.interest_coverage,
        },
        HEALTH_WEIGHTS,
    )


def total_score(
    scores: Sequence[float | None],
    policy: TotalScorePolicy = TotalScorePolicy.REQUIRE_ALL,
) -> float | None:
    """Blend the five category scores with TOTAL_SCORE_WEIGHTS.

    Args:
        scores: Profitability, growth, valuation, risk and health scores,
            in that order.
        policy: REQUIRE_ALL returns None unless all five are present.
            REWEIGHT renormalises over the present scores.

    Returns:
        Total score in [0, 100], or None.
    """
    weights = list(TOTAL_SCORE_WEIGHTS.values())
    if len(scores) != len(weights):
        raise ValueError(f"expected {len(weights)} category scores, got {len(scores)}")
    if policy is TotalScorePolicy.REQUIRE_ALL and any(s is None for s in scores):
        return None
    return weighted_score(list(zip(scores, weights)))


def interpret_score(score: float | None) -> str:
    if score is None:
        return "Unknown"
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    if score >= 20:
        return "Poor"
    return "Very Poor"


def _simple_average(values: Sequence[float | None]) -> float | None:
    result = mean(values)
    return None if result is None else clamp(result, 0.0, 100.0)


def _inverted(score: float | None) -> float | None:
    return None if score is None else 100.0 - score


def _rsi_momentum(rsi: float | None) -> float | None:
    """Neutral band scores the RSI itself; overbought and oversold fade."""
    if rsi is None:
        return None
    if 30 <= rsi <= 70:
        return rsi
    if rsi > 70:
        return max(0.0, 100.0 - (rsi - 70) * 3)
    return min(100.0, rsi * 2)


def momentum_score(t: TechnicalMetrics) -> float | None:
    return _simple_average([
        _rsi_momentum(t.rsi),
        linear_rescale(t.price_to_sma_50, 0.8, 1.2),
    ])


def quality_score(p: ProfitabilityMetrics) -> float | None:
    return _simple_average([
        linear_rescale(p.roe, 0.0, 0.25),
        linear_rescale(p.roic, 0.0, 0.20),
        linear_rescale(p.gross_margin, 0.0, 0.5),
    ])


def stability_score(r: RiskMetrics) -> float | None:
    beta_distance = None if r.beta is None else abs(r.beta - 1.0)
    return _simple_average([
        _inverted(linear_rescale(r.volatility, 0.0, 0.5)),
        _inverted(linear_rescale(beta_distance, 0.0, 1.0)),
    ])


def efficiency_score(e: EfficiencyMetrics) -> float | None:
    return _simple_average([
        linear_rescale(e.asset_turnover, 0.0, 2.0),
        linear_rescale(e.inventory_turnover, 0.0, 15.0),
    ])


def solvency_score(lev: LeverageMetrics) -> float | None:
    return _simple_average([
        _inverted(linear_rescale(lev.debt_to_assets, 0.0, 0.8)),
        linear_rescale(lev.interest_coverage, 0.0, 15.0),
    ])


def technical_score(t: TechnicalMetrics) -> float | None:
    rsi_component = None
    if t.rsi is not None:
        if 40 <= t.rsi <= 60:
            rsi_component = 100.0
        elif 30 <= t.rsi <= 70:
            rsi_component = 70.0
        else:
            rsi_component = 30.0

    cross_component = None
    if t.golden_cross:
        cross_component = 80.0
    elif t.death_cross:
        cross_component = 20.0
    elif t.golden_cross is not None:
        cross_component = 50.0

    return _simple_average([rsi_component, cross_component])


def compute_scores(
    *,
    profitability: ProfitabilityMetrics,
    growth: GrowthMetrics,
    valuation: ValuationMetrics,
    risk: RiskMetrics,
    liquidity: LiquidityMetrics,
    leverage: LeverageMetrics,
    efficiency: EfficiencyMetrics,
    technical: TechnicalMetrics,
    policy: TotalScorePolicy = TotalScorePolicy.REQUIRE_ALL,
) -> ScoreRecord:
    """Score every category and blend the total.

    Returns:
        ScoreRecord with the five core scores, the total, and the six
        extended scores.
    """
    core = [
        profitability_score(profitability),
        growth_score(growth),
        valuation_score(valuation),
        risk_score(risk),
        health_score(liquidity, leverage),
    ]
    total = total_score(core, policy)
    if total is None:
        missing = [
            name for name, score in zip(TOTAL_SCORE_WEIGHTS, core) if score is None
        ]
        logger.debug("total score set to None, missing categories: %s", missing)

    return ScoreRecord(
        profitability_score=core[0],
        growth_score=core[1],
        valuation_score=core[2],
        risk_score=core[3],
        health_score=core[4],
        total_score=total,
        total_score_label=interpret_score(total),
        momentum_score=momentum_score(technical),
        quality_score=quality_score(profitability),
        stability_score=stability_score(risk),
        efficiency_score=efficiency_score(efficiency),
        solvency_score=solvency_score(leverage),
        technical_score=technical_score(technical),
    )
