"""Risk metrics from the daily price history."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.analysis import indicators
from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.config import TRADING_DAYS_PER_YEAR
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import finite_or_none, mean, standard_deviation

logger = logging.getLogger(__name__)

# Annualised volatility is only reported with at least this many prices.
MIN_VOLATILITY_PRICES: int = 20

# Market volatility assumed by the Modigliani (M2) measure.
BENCHMARK_VOLATILITY: float = 0.15


@dataclass
class RiskMetrics:
    """Risk outputs. Return-based figures use daily simple returns.

    Attributes:
        beta: As supplied.
        standard_deviation: Population std of daily returns.
        volatility: Annualised volatility. Needs MIN_VOLATILITY_PRICES.
        sharpe_ratio: (mean - rf / 252) / std.
        sortino_ratio: As Sharpe, over downside deviation.
        max_drawdown: Largest peak-to-trough decline as a fraction.
        var_95: Historical 95% value at risk (a return).
        var_99: Historical 99% value at risk.
        cvar_95: Mean return at or below the 95% VaR.
        cvar_99: Mean return at or below the 99% VaR.
        treynor_ratio: (annualised mean return - rf) / beta.
        m_squared: Sharpe x BENCHMARK_VOLATILITY + rf.
        calmar_ratio: Annualised mean return / max drawdown.
        omega_ratio: Gains / |losses| at a zero threshold.
        ulcer_index: RMS percentage drawdown.
        tail_ratio: |95th percentile / 5th percentile return|.
        skewness: Return skewness.
        kurtosis: Excess return kurtosis.
    """

    beta: float | None
    standard_deviation: float | None
    volatility: float | None
    sharpe_ratio: float | None
    sortino_ratio: float | None
    max_drawdown: float | None
    var_95: float | None
    var_99: float | None
    cvar_95: float | None
    cvar_99: float | None
    treynor_ratio: float | None
    m_squared: float | None
    calmar_ratio: float | None
    omega_ratio: float | None
    ulcer_index: float | None
    tail_ratio: float | None
    skewness: float | None
    kurtosis: float | None


def compute_risk(snapshot: RawSnapshot, shared: SharedIntermediates) -> RiskMetrics:
    """Compute risk metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Shared intermediates (risk-free rate).

    Returns:
        RiskMetrics.
    """
    closes = snapshot.prices.closes
    returns = indicators.daily_returns(closes)
    rf = shared.risk_free_rate
    beta = snapshot.fundamentals.beta

    if len(closes) < MIN_VOLATILITY_PRICES:
        volatility = None
        logger.debug(
            "%s: %d prices, volatility set to None", snapshot.symbol, len(closes)
        )
    else:
        volatility = indicators.annualized_volatility(returns)

    sharpe = indicators.sharpe_ratio(returns, rf)
    drawdown = indicators.max_drawdown(closes)

    treynor = None
    avg = mean(returns.tolist())
    if avg is not None and beta:
        treynor = finite_or_none((avg * TRADING_DAYS_PER_YEAR - rf) / beta)

    m_squared = None
    if sharpe is not None:
        m_squared = sharpe * BENCHMARK_VOLATILITY + rf

    return RiskMetrics(
        beta=beta,
        standard_deviation=standard_deviation(returns.tolist()) if len(returns) >= 2 else None,
        volatility=volatility,
        sharpe_ratio=sharpe,
        sortino_ratio=indicators.sortino_ratio(returns, rf),
        max_drawdown=drawdown,
        var_95=indicators.value_at_risk(returns, 0.95),
        var_99=indicators.value_at_risk(returns, 0.99),
        cvar_95=indicators.conditional_value_at_risk(returns, 0.95),
        cvar_99=indicators.conditional_value_at_risk(returns, 0.99),
        treynor_ratio=treynor,
        m_squared=m_squared,
        calmar_ratio=indicators.calmar_ratio(returns, drawdown),
        omega_ratio=indicators.omega_ratio(returns),
        ulcer_index=indicators.ulcer_index(closes),
        tail_ratio=indicators.tail_ratio(returns),
        skewness=indicators.return_skewness(returns),
        kurtosis=indicators.return_kurtosis(returns),
    )
