"""Tests for metrics_engine.metrics.risk and metrics_engine.metrics.technical."""

from __future__ import annotations

import math
from datetime import datetime, timezone

import numpy as np
import pandas as pd
import pytest

from metrics_engine.analysis.intermediates import derive_intermediates
from metrics_engine.config import CalculatorConfig
from metrics_engine.data.models import FundamentalData, MacroData, PriceHistory, RawSnapshot
from metrics_engine.metrics.risk import compute_risk
from metrics_engine.metrics.technical import compute_technical


def _make_prices(closes: np.ndarray) -> PriceHistory:
    n = len(closes)
    return PriceHistory(pd.DataFrame({
        "date": pd.date_range("2023-01-02", periods=n, freq="B"),
        "open": closes,
        "high": closes * 1.01,
        "low": closes * 0.99,
        "close": closes,
        "volume": np.full(n, 1_000.0),
    }))


def _wavy(n: int) -> np.ndarray:
    i = np.arange(n, dtype=float)
    return 100.0 + 0.2 * i + 5.0 * np.sin(i / 5.0)


def _make_snapshot(closes: np.ndarray, **fundamentals: float) -> RawSnapshot:
    return RawSnapshot(
        symbol="TEST",
        timestamp=datetime(2024, 6, 30, tzinfo=timezone.utc),
        fundamentals=FundamentalData(**fundamentals),
        prices=_make_prices(closes),
        macro=MacroData(treasury_10y=4.0),
    )


def _risk(snapshot: RawSnapshot):
    return compute_risk(snapshot, derive_intermediates(snapshot, CalculatorConfig()))


class TestRisk:

    def test_full_history(self) -> None:
        result = _risk(_make_snapshot(_wavy(260), beta=1.1))
        assert result.volatility is not None and result.volatility > 0
        assert result.sharpe_ratio is not None
        assert result.var_95 is not None and result.var_99 is not None
        assert result.cvar_95 <= result.var_95
        assert 0.0 < result.max_drawdown < 1.0
        assert result.treynor_ratio is not None
        assert result.beta == 1.1

    def test_volatility_needs_twenty_prices(self) -> None:
        result = _risk(_make_snapshot(_wavy(19)))
        assert result.volatility is None
        assert result.var_95 is None

    def test_rising_prices_have_no_drawdown(self) -> None:
        closes = 100.0 * 1.001 ** np.arange(40)
        result = _risk(_make_snapshot(closes))
        assert result.max_drawdown == 0.0
        assert result.calmar_ratio is None
        assert result.omega_ratio is None

    def test_m_squared_scales_sharpe(self) -> None:
        result = _risk(_make_snapshot(_wavy(120)))
        assert result.m_squared == pytest.approx(result.sharpe_ratio * 0.15 + 0.04)

    def test_empty_history(self) -> None:
        snapshot = RawSnapshot(symbol="TEST", timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))
        result = _risk(snapshot)
        assert result.volatility is None
        assert result.max_drawdown is None
        assert result.sharpe_ratio is None


class TestTechnical:

    def test_long_history_populates_every_indicator(self) -> None:
        result = compute_technical(_make_snapshot(_wavy(260)))
        for name in ("rsi", "macd", "macd_signal", "sma_200", "ema_26", "adx", "mfi", "vwap"):
            value = getattr(result, name)
            assert value is not None and math.isfinite(value), name
        assert result.macd_histogram == pytest.approx(result.macd - result.macd_signal)
        assert result.golden_cross is True
        assert result.death_cross is False
        assert result.obv_trend in (-1, 0, 1)

    def test_short_history_has_no_cross(self) -> None:
        result = compute_technical(_make_snapshot(_wavy(60)))
        assert result.sma_50 is not None
        assert result.sma_200 is None
        assert result.golden_cross is None
        assert result.death_cross is None
        assert result.price_to_sma_200 is None

    def test_quote_price_preferred_over_last_close(self) -> None:
        closes = _wavy(60)
        result = compute_technical(_make_snapshot(closes, price=200.0))
        assert result.price_to_sma_50 == pytest.approx(200.0 / np.mean(closes[-50:]))

    def test_bollinger_band_ordering(self) -> None:
        result = compute_technical(_make_snapshot(_wavy(60)))
        assert result.bollinger_lower < result.bollinger_middle < result.bollinger_upper

    def test_relative_volume(self) -> None:
        result = compute_technical(
            _make_snapshot(_wavy(30), volume=3_000.0, average_volume=2_000.0)
        )
        assert result.relative_volume == pytest.approx(1.5)

    def test_no_prices(self) -> None:
        snapshot = RawSnapshot(symbol="TEST", timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))
        result = compute_technical(snapshot)
        assert result.rsi is None
        assert result.support is None
        assert result.obv is None
