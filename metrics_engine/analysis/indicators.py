"""Time-series indicators over chronological (oldest-first) price arrays.

Every function is a read-only transform of the arrays it is given and
recomputes from scratch on each call. Inputs shorter than an
indicator's minimum window produce None.
"""

from __future__ import annotations

import math

import numpy as np
from scipy import stats  # type: ignore[import-untyped]

from metrics_engine.config import TRADING_DAYS_PER_YEAR
from metrics_engine.numeric import (
    downside_deviation,
    finite_or_none,
    mean,
    standard_deviation,
)

# Lambert's constant: scales CCI so ~75% of readings fall in [-100, 100].
CCI_CONSTANT: float = 0.015

# Minimum return observations for percentile-based tail statistics.
MIN_TAIL_OBSERVATIONS: int = 20


# ---------------------------------------------------------------------------
# Moving averages
# ---------------------------------------------------------------------------

def sma(values: np.ndarray, window: int) -> float | None:
    """Simple moving average of the trailing ``window`` values."""
    if window <= 0 or len(values) < window:
        return None
    return finite_or_none(np.mean(values[-window:]))


def ema_series(values: np.ndarray, window: int) -> np.ndarray:
    """Exponential moving average at every index.

    Seeded with the SMA of the first ``window`` values and smoothed
    with ``k = 2 / (window + 1)`` thereafter.

    Args:
        values: Oldest-first values.
        window: Smoothing window.

    Returns:
        Array the same length as ``values``. Entries before index
        ``window - 1`` are NaN.
    """
    out = np.full(len(values), np.nan)
    if window <= 0 or len(values) < window:
        return out
    k = 2.0 / (window + 1)
    current = float(np.mean(values[:window]))
    out[window - 1] = current
    for i in range(window, len(values)):
        current = (values[i] - current) * k + current
        out[i] = current
    return out


def ema(values: np.ndarray, window: int) -> float | None:
    """Latest exponential moving average value."""
    series = ema_series(values, window)
    if len(series) == 0:
        return None
    return finite_or_none(series[-1])


def macd(
    closes: np.ndarray, fast: int = 12, slow: int = 26, signal: int = 9
) -> tuple[float | None, float | None, float | None]:
    """MACD line, signal line and histogram.

    Args:
        closes: Oldest-first closing prices.
        fast: Fast EMA window.
        slow: Slow EMA window.
        signal: EMA window applied to the MACD line.

    Returns:
        (macd_line, signal_line, histogram). The line needs ``slow``
        prices, the signal and histogram ``slow + signal - 1``.
    """
    if len(closes) < slow:
        return None, None, None
    line = ema_series(closes, fast) - ema_series(closes, slow)
    valid_line = line[slow - 1:]
    macd_value = finite_or_none(valid_line[-1])
    signal_value = ema(valid_line, signal)
    histogram = None
    if macd_value is not None and signal_value is not None:
        histogram = macd_value - signal_value
    return macd_value, signal_value, histogram


# ---------------------------------------------------------------------------
# Oscillators
# ---------------------------------------------------------------------------

def rsi(closes: np.ndarray, period: int = 14) -> float | None:
    """Relative Strength Index with Wilder smoothing, in [0, 100].

    Needs ``period + 1`` prices. Returns 100 when there are no losses
    in the smoothed window.
    """
    if len(closes) < period + 1:
        return None
    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return finite_or_none(100.0 - 100.0 / (1.0 + rs))


def _percent_k(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray, end: int, period: int
) -> float:
    window_high = float(np.max(highs[end - period:end]))
    window_low = float(np.min(lows[end - period:end]))
    if window_high == window_low:
        return 50.0
    return (closes[end - 1] - window_low) / (window_high - window_low) * 100.0


def stochastic(
    closes: np.ndarray,
    highs: np.ndarray,
    lows: np.ndarray,
    period: int = 14,
    smoothing: int = 3,
) -> tuple[float | None, float | None]:
    """Stochastic oscillator %K and %D, both in [0, 100].

    %K is 50 when the window's high equals its low. %D is the
    ``smoothing``-period SMA of %K and needs ``period + smoothing - 1``
    bars.
    """
    n = len(closes)
    if n < period:
        return None, None
    k = _percent_k(closes, highs, lows, n, period)
    if n < period + smoothing - 1:
        return k, None
    ks = [
        _percent_k(closes, highs, lows, end, period)
        for end in range(n - smoothing + 1, n + 1)
    ]
    return k, float(np.mean(ks))


def williams_r(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray, period: int = 14
) -> float | None:
    """Williams %R in [-100, 0]; -50 when the window has no range."""
    if len(closes) < period:
        return None
    window_high = float(np.max(highs[-period:]))
    window_low = float(np.min(lows[-period:]))
    if window_high == window_low:
        return -50.0
    return (window_high - closes[-1]) / (window_high - window_low) * -100.0


def _typical_prices(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray
) -> np.ndarray:
    return (closes + highs + lows) / 3.0


def cci(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray, period: int = 20
) -> float | None:
    """Commodity Channel Index over the trailing ``period`` bars."""
    if len(closes) < period:
        return None
    window = _typical_prices(closes, highs, lows)[-period:]
    sma_tp = float(np.mean(window))
    mean_deviation = float(np.mean(np.abs(window - sma_tp)))
    if mean_deviation == 0:
        return None
    return finite_or_none((window[-1] - sma_tp) / (CCI_CONSTANT * mean_deviation))


def money_flow_index(
    closes: np.ndarray,
    highs: np.ndarray,
    lows: np.ndarray,
    volumes: np.ndarray,
    period: int = 14,
) -> float | None:
    """Money Flow Index in [0, 100].

    Needs ``period + 1`` bars. None when the window traded no volume.
    """
    n = len(closes)
    if n < period + 1:
        return None
    typical = _typical_prices(closes, highs, lows)
    raw_flow = typical * volumes
    positive = 0.0
    negative = 0.0
    for i in range(n - period, n):
        if typical[i] > typical[i - 1]:
            positive += raw_flow[i]
        elif typical[i] < typical[i - 1]:
            negative += raw_flow[i]
    if positive == 0 and negative == 0:
        return None
    if negative == 0:
        return 100.0
    ratio = positive / negative
    return finite_or_none(100.0 - 100.0 / (1.0 + ratio))


# ---------------------------------------------------------------------------
# Volatility and trend strength
# ---------------------------------------------------------------------------

def _true_ranges(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray
) -> np.ndarray:
    prev_close = closes[:-1]
    return np.maximum.reduce([
        highs[1:] - lows[1:],
        np.abs(highs[1:] - prev_close),
        np.abs(lows[1:] - prev_close),
    ])


def atr(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray, period: int = 14
) -> float | None:
    """Average True Range: mean of the last ``period`` true ranges."""
    if len(closes) < period + 1:
        return None
    return finite_or_none(np.mean(_true_ranges(closes, highs, lows)[-period:]))


def _wilder_smooth(values: np.ndarray, period: int) -> np.ndarray:
    """Wilder running sum: first sum of ``period`` values, then S - S/p + x."""
    out = np.empty(len(values) - period + 1)
    out[0] = np.sum(values[:period])
    for i in range(period, len(values)):
        j = i - period + 1
        out[j] = out[j - 1] - out[j - 1] / period + values[i]
    return out


def adx(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray, period: int = 14
) -> tuple[float | None, float | None, float | None]:
    """Average Directional Index with +DI and -DI.

    Needs ``2 * period`` bars so that a full period of DX values is
    available to seed the ADX average.

    Returns:
        (adx, plus_di, minus_di).
    """
    if len(closes) < 2 * period:
        return None, None, None

    up_move = highs[1:] - highs[:-1]
    down_move = lows[:-1] - lows[1:]
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    tr = _true_ranges(closes, highs, lows)

    tr_s = _wilder_smooth(tr, period)
    plus_s = _wilder_smooth(plus_dm, period)
    minus_s = _wilder_smooth(minus_dm, period)

    with np.errstate(divide="ignore", invalid="ignore"):
        plus_di = np.where(tr_s > 0, 100.0 * plus_s / tr_s, 0.0)
        minus_di = np.where(tr_s > 0, 100.0 * minus_s / tr_s, 0.0)
        di_sum = plus_di + minus_di
        dx = np.where(di_sum > 0, 100.0 * np.abs(plus_di - minus_di) / di_sum, 0.0)

    adx_value = float(np.mean(dx[:period]))
    for value in dx[period:]:
        adx_value = (adx_value * (period - 1) + value) / period

    return (
        finite_or_none(adx_value),
        finite_or_none(plus_di[-1]),
        finite_or_none(minus_di[-1]),
    )


def bollinger_bands(
    closes: np.ndarray, period: int = 20, num_std: float = 2.0
) -> tuple[float, float, float] | None:
    """Bollinger bands (upper, middle, lower) with population std."""
    if len(closes) < period:
        return None
    window = closes[-period:]
    middle = float(np.mean(window))
    spread = num_std * float(np.std(window))
    return middle + spread, middle, middle - spread


# ---------------------------------------------------------------------------
# Volume
# ---------------------------------------------------------------------------

def obv_series(closes: np.ndarray, volumes: np.ndarray) -> np.ndarray:
    """Cumulative on-balance volume, starting at 0 on the first bar."""
    if len(closes) == 0:
        return np.array([])
    direction = np.sign(np.diff(closes))
    return np.concatenate([[0.0], np.cumsum(direction * volumes[1:])])


def obv(closes: np.ndarray, volumes: np.ndarray) -> float | None:
    if len(closes) < 2:
        return None
    return finite_or_none(obv_series(closes, volumes)[-1])


def vwap(
    closes: np.ndarray, highs: np.ndarray, lows: np.ndarray, volumes: np.ndarray
) -> float | None:
    """Volume-weighted average typical price over the whole series."""
    total_volume = float(np.sum(volumes)) if len(volumes) else 0.0
    if total_volume == 0:
        return None
    typical = _typical_prices(closes, highs, lows)
    return finite_or_none(np.sum(typical * volumes) / total_volume)


def support_resistance(
    highs: np.ndarray, lows: np.ndarray, lookback: int = 20
) -> tuple[float | None, float | None]:
    """Lowest low and highest high over the trailing ``lookback`` bars."""
    if len(highs) == 0:
        return None, None
    return (
        finite_or_none(np.min(lows[-lookback:])),
        finite_or_none(np.max(highs[-lookback:])),
    )


# ---------------------------------------------------------------------------
# Return statistics
# ---------------------------------------------------------------------------

def daily_returns(closes: np.ndarray) -> np.ndarray:
    """Simple returns ``(P[i] - P[i-1]) / P[i-1]``.

    Returns whose previous price is non-positive are skipped.
    """
    if len(closes) < 2:
        return np.array([])
    prev = closes[:-1]
    curr = closes[1:]
    mask = prev > 0
    return (curr[mask] - prev[mask]) / prev[mask]


def annualized_volatility(returns: np.ndarray) -> float | None:
    """Standard deviation of daily returns scaled by sqrt(252)."""
    if len(returns) < 2:
        return None
    std = standard_deviation(returns.tolist())
    if std is None:
        return None
    return std * math.sqrt(TRADING_DAYS_PER_YEAR)


def max_drawdown(closes: np.ndarray) -> float | None:
    """Largest peak-to-trough decline as a positive fraction.

    Measured against the running maximum; 0.0 for a series that never
    falls below a previous high.
    """
    if len(closes) == 0:
        return None
    running_max = np.maximum.accumulate(closes)
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(running_max > 0, (running_max - closes) / running_max, 0.0)
    return finite_or_none(np.max(drawdowns))


def sharpe_ratio(returns: np.ndarray, risk_free_rate: float | None) -> float | None:
    """Daily Sharpe ratio ``(mean - rf / 252) / std``.

    Args:
        returns: Daily simple returns.
        risk_free_rate: Annual risk-free rate as a decimal.
    """
    if risk_free_rate is None or len(returns) < 2:
        return None
    avg = mean(returns.tolist())
    std = standard_deviation(returns.tolist())
    if avg is None or not std:
        return None
    return finite_or_none((avg - risk_free_rate / TRADING_DAYS_PER_YEAR) / std)


def sortino_ratio(returns: np.ndarray, risk_free_rate: float | None) -> float | None:
    """Like sharpe_ratio but divides by the std of negative returns."""
    if risk_free_rate is None or len(returns) < 2:
        return None
    avg = mean(returns.tolist())
    downside = downside_deviation(returns.tolist())
    if avg is None or not downside:
        return None
    return finite_or_none((avg - risk_free_rate / TRADING_DAYS_PER_YEAR) / downside)


def _tail_index(n: int, confidence: float) -> int:
    return int(math.floor(n * (1.0 - confidence)))


def value_at_risk(returns: np.ndarray, confidence: float = 0.95) -> float | None:
    """Historical VaR: the sorted return at index ``floor(n * (1 - confidence))``.

    The result is a return (typically negative), not a loss magnitude.
    Needs MIN_TAIL_OBSERVATIONS returns.
    """
    n = len(returns)
    if n < MIN_TAIL_OBSERVATIONS:
        return None
    ordered = np.sort(returns)
    return finite_or_none(ordered[_tail_index(n, confidence)])


def conditional_value_at_risk(
    returns: np.ndarray, confidence: float = 0.95
) -> float | None:
    """Expected shortfall: mean of all sorted returns up to and including
    the VaR index."""
    n = len(returns)
    if n < MIN_TAIL_OBSERVATIONS:
        return None
    ordered = np.sort(returns)
    idx = _tail_index(n, confidence)
    return finite_or_none(np.mean(ordered[: idx + 1]))


def tail_ratio(returns: np.ndarray) -> float | None:
    """|95th percentile return / 5th percentile return|."""
    n = len(returns)
    if n < MIN_TAIL_OBSERVATIONS:
        return None
    ordered = np.sort(returns)
    upper = ordered[min(int(math.floor(n * 0.95)), n - 1)]
    lower = ordered[_tail_index(n, 0.95)]
    if lower == 0:
        return None
    return finite_or_none(abs(upper / lower))


def ulcer_index(closes: np.ndarray) -> float | None:
    """Root-mean-square percentage drawdown from the running maximum."""
    if len(closes) == 0:
        return None
    running_max = np.maximum.accumulate(closes)
    with np.errstate(divide="ignore", invalid="ignore"):
        pct = np.where(running_max > 0, (running_max - closes) / running_max * 100.0, 0.0)
    return finite_or_none(np.sqrt(np.mean(pct**2)))


def omega_ratio(returns: np.ndarray) -> float | None:
    """Sum of gains over the magnitude of the sum of losses (threshold 0)."""
    losses = returns[returns < 0]
    if len(losses) == 0:
        return None
    gains = returns[returns > 0]
    return finite_or_none(np.sum(gains) / abs(np.sum(losses)))


def calmar_ratio(returns: np.ndarray, drawdown: float | None) -> float | None:
    """Annualised mean return over the maximum drawdown."""
    if drawdown is None or drawdown == 0 or len(returns) == 0:
        return None
    avg = mean(returns.tolist())
    if avg is None:
        return None
    return finite_or_none(avg * TRADING_DAYS_PER_YEAR / abs(drawdown))


def return_skewness(returns: np.ndarray) -> float | None:
    if len(returns) < 3 or not np.std(returns):
        return None
    return finite_or_none(stats.skew(returns))


def return_kurtosis(returns: np.ndarray) -> float | None:
    """Excess (Fisher) kurtosis of returns."""
    if len(returns) < 4 or not np.std(returns):
        return None
    return finite_or_none(stats.kurtosis(returns, fisher=True))
