"""Tests for metrics_engine.analysis.indicators."""

from __future__ import annotations

import math

import numpy as np
import pytest

from metrics_engine.analysis import indicators


def _rising(n: int, start: float = 100.0, step: float = 1.0) -> np.ndarray:
    return start + step * np.arange(n, dtype=float)


def _zigzag(n: int) -> np.ndarray:
    """Upward drift with alternating pullbacks."""
    return np.array([100.0 + i * 0.5 + (2.0 if i % 2 else -2.0) for i in range(n)])


def _random_walk(n: int, seed: int = 7) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Closes with highs and lows bracketing them."""
    rng = np.random.default_rng(seed)
    closes = 100.0 + np.cumsum(rng.normal(0.0, 1.5, n))
    highs = closes + rng.uniform(0.1, 1.0, n)
    lows = closes - rng.uniform(0.1, 1.0, n)
    return closes, highs, lows


class TestMovingAverages:

    def test_sma_of_trailing_window(self) -> None:
        assert indicators.sma(np.array([1.0, 2.0, 3.0, 4.0]), 2) == pytest.approx(3.5)

    def test_sma_short_series_is_none(self) -> None:
        assert indicators.sma(np.array([1.0, 2.0]), 5) is None

    def test_ema_of_constant_is_constant(self) -> None:
        values = np.full(40, 42.0)
        assert indicators.ema(values, 12) == pytest.approx(42.0)

    def test_ema_series_seeded_with_sma(self) -> None:
        series = indicators.ema_series(np.array([1.0, 2.0, 3.0, 4.0]), 3)
        assert np.isnan(series[0])
        assert series[2] == pytest.approx(2.0)
        # k = 0.5 for window 3
        assert series[3] == pytest.approx(3.0)


class TestOscillators:

    def test_rsi_of_strictly_rising_series_is_100(self) -> None:
        assert indicators.rsi(_rising(30)) == 100.0

    def test_rsi_of_strictly_falling_series_is_0(self) -> None:
        assert indicators.rsi(_rising(30, step=-1.0)) == pytest.approx(0.0)

    def test_rsi_needs_period_plus_one_prices(self) -> None:
        assert indicators.rsi(_rising(14)) is None
        assert indicators.rsi(_rising(15)) is not None

    def test_rsi_bounded(self) -> None:
        value = indicators.rsi(_zigzag(60))
        assert value is not None
        assert 0.0 <= value <= 100.0

    def test_macd_histogram_is_line_minus_signal(self) -> None:
        line, signal, histogram = indicators.macd(_zigzag(60))
        assert line is not None and signal is not None
        assert histogram == pytest.approx(line - signal)

    def test_macd_short_series(self) -> None:
        assert indicators.macd(_rising(25)) == (None, None, None)
        line, signal, histogram = indicators.macd(_rising(30))
        assert line is not None
        assert signal is None
        assert histogram is None


class TestRangeOscillators:

    @pytest.mark.parametrize("n", [14, 15, 16, 17, 30])
    def test_stochastic_bounded(self, n: int) -> None:
        k, d = indicators.stochastic(*_random_walk(n))
        assert k is not None and 0.0 <= k <= 100.0
        if n >= 16:
            assert d is not None and 0.0 <= d <= 100.0
        else:
            assert d is None

    def test_stochastic_short_series(self) -> None:
        assert indicators.stochastic(*_random_walk(13)) == (None, None)

    def test_stochastic_close_at_window_high(self) -> None:
        closes = _rising(20)
        k, d = indicators.stochastic(closes, closes, closes)
        assert k == pytest.approx(100.0)
        assert d == pytest.approx(100.0)

    @pytest.mark.parametrize("n", [14, 15, 30])
    def test_williams_r_bounded(self, n: int) -> None:
        value = indicators.williams_r(*_random_walk(n))
        assert value is not None and -100.0 <= value <= 0.0

    @pytest.mark.parametrize("n", [20, 21, 40])
    def test_cci_defined_on_random_walk(self, n: int) -> None:
        assert indicators.cci(*_random_walk(n)) is not None

    def test_cci_short_series(self) -> None:
        assert indicators.cci(*_random_walk(19)) is None

    @pytest.mark.parametrize("n", [15, 16, 30])
    def test_money_flow_index_bounded(self, n: int) -> None:
        closes, highs, lows = _random_walk(n)
        volumes = np.linspace(1_000.0, 5_000.0, n)
        value = indicators.money_flow_index(closes, highs, lows, volumes)
        assert value is not None and 0.0 <= value <= 100.0

    def test_money_flow_index_needs_period_plus_one(self) -> None:
        closes, highs, lows = _random_walk(14)
        assert indicators.money_flow_index(closes, highs, lows, np.ones(14)) is None

    def test_flat_range_defaults(self) -> None:
        flat = np.full(30, 10.0)
        assert indicators.stochastic(flat, flat, flat) == (50.0, 50.0)
        assert indicators.williams_r(flat, flat, flat) == -50.0
        assert indicators.cci(flat, flat, flat) is None
        assert indicators.money_flow_index(flat, flat, flat, np.ones(30)) is None

    def test_money_flow_index_without_negative_flow_is_100(self) -> None:
        closes = _rising(20)
        value = indicators.money_flow_index(closes, closes + 1.0, closes - 1.0, np.ones(20))
        assert value == 100.0


class TestBands:

    def test_bollinger_collapse_on_constant_prices(self) -> None:
        upper, middle, lower = indicators.bollinger_bands(np.full(25, 10.0))
        assert upper == middle == lower == 10.0

    def test_obv_accumulates_signed_volume(self) -> None:
        closes = np.array([10.0, 11.0, 10.5, 10.5, 12.0])
        volumes = np.array([100.0, 200.0, 50.0, 80.0, 300.0])
        assert indicators.obv(closes, volumes) == pytest.approx(200.0 - 50.0 + 300.0)


class TestReturnStatistics:

    def test_daily_returns(self) -> None:
        returns = indicators.daily_returns(np.array([100.0, 110.0, 99.0]))
        assert returns.tolist() == pytest.approx([0.10, -0.10])

    def test_max_drawdown_of_rising_series_is_zero(self) -> None:
        assert indicators.max_drawdown(_rising(50)) == 0.0

    def test_max_drawdown_from_running_peak(self) -> None:
        closes = np.array([100.0, 120.0, 90.0, 130.0, 117.0])
        assert indicators.max_drawdown(closes) == pytest.approx(0.25)

    def test_volatility_needs_two_returns(self) -> None:
        assert indicators.annualized_volatility(np.array([0.01])) is None

    def test_var_needs_twenty_returns(self) -> None:
        assert indicators.value_at_risk(np.linspace(-0.05, 0.05, 19)) is None

    def test_var_and_cvar_indexing(self) -> None:
        returns = np.linspace(-0.10, 0.09, 20)
        # floor(20 * 0.05) = 1: second-lowest return
        assert indicators.value_at_risk(returns, 0.95) == pytest.approx(returns[1])
        assert indicators.conditional_value_at_risk(returns, 0.95) == pytest.approx(
            np.mean(returns[:2])
        )

    def test_sharpe_without_variance_is_none(self) -> None:
        assert indicators.sharpe_ratio(np.zeros(30), 0.04) is None

    def test_omega_without_losses_is_none(self) -> None:
        assert indicators.omega_ratio(np.array([0.01, 0.02])) is None

    def test_sharpe_exact(self) -> None:
        returns = np.array([0.01, -0.02, 0.03, 0.0])
        # mean 0.005, population variance 3.25e-4, daily rf 0.0001
        expected = (0.005 - 0.0001) / math.sqrt(3.25e-4)
        assert indicators.sharpe_ratio(returns, 0.0252) == pytest.approx(expected)

    def test_sortino_uses_downside_deviation(self) -> None:
        returns = np.array([0.02, -0.01, 0.03, -0.03])
        # mean 0.0025; negatives -0.01 and -0.03 have population std 0.01
        assert indicators.sortino_ratio(returns, 0.0) == pytest.approx(0.25)
        assert indicators.sortino_ratio(returns, 0.0252) == pytest.approx(0.24)

    def test_sortino_needs_two_losses(self) -> None:
        assert indicators.sortino_ratio(np.array([0.02, -0.01, 0.03]), 0.0) is None
