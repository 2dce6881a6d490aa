"""Technical indicators for the latest bar of the price history."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from metrics_engine.analysis import indicators
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import safe_divide

logger = logging.getLogger(__name__)

# OBV trend compares the latest OBV with its value this many bars back.
OBV_TREND_LOOKBACK: int = 20


@dataclass
class TechnicalMetrics:
    """Technical outputs for the most recent bar.

    Attributes:
        rsi: 14-period RSI.
        macd: MACD line (12/26).
        macd_signal: 9-period EMA of the MACD line.
        macd_histogram: MACD line - signal.
        sma_10: 10-day simple moving average.
        sma_20: 20-day simple moving average.
        sma_50: 50-day simple moving average.
        sma_100: 100-day simple moving average.
        sma_200: 200-day simple moving average.
        ema_12: 12-day exponential moving average.
        ema_26: 26-day exponential moving average.
        bollinger_upper: Middle band + 2 std.
        bollinger_middle: 20-day SMA.
        bollinger_lower: Middle band - 2 std.
        bollinger_width: (upper - lower) / middle.
        relative_volume: Volume / average volume.
        stochastic_k: 14-period %K.
        stochastic_d: 3-period SMA of %K.
        williams_r: 14-period Williams %R.
        cci: 20-period Commodity Channel Index.
        atr: 14-period Average True Range.
        atr_percent: ATR / price x 100.
        adx: 14-period Average Directional Index.
        plus_di: +DI.
        minus_di: -DI.
        obv: On-balance volume.
        obv_trend: 1 if OBV rose over OBV_TREND_LOOKBACK bars, -1 if it
            fell, 0 if flat.
        mfi: 14-period Money Flow Index.
        vwap: Volume-weighted average typical price.
        price_to_sma_50: Price / 50-day SMA.
        price_to_sma_200: Price / 200-day SMA.
        golden_cross: SMA50 > SMA200. None unless both are available.
        death_cross: SMA50 < SMA200. None unless both are available.
        trend_strength: ADX.
        support: Lowest low of the last 20 bars.
        resistance: Highest high of the last 20 bars.
    """

    rsi: float | None
    macd: float | None
    macd_signal: float | None
    macd_histogram: float | None
    sma_10: float | None
    sma_20: float | None
    sma_50: float | None
    sma_100: float | None
    sma_200: float | None
    ema_12: float | None
    ema_26: float | None
    bollinger_upper: float | None
    bollinger_middle: float | None
    bollinger_lower: float | None
    bollinger_width: float | None
    relative_volume: float | None
    stochastic_k: float | None
    stochastic_d: float | None
    williams_r: float | None
    cci: float | None
    atr: float | None
    atr_percent: float | None
    adx: float | None
    plus_di: float | None
    minus_di: float | None
    obv: float | None
    obv_trend: int | None
    mfi: float | None
    vwap: float | None
    price_to_sma_50: float | None
    price_to_sma_200: float | None
    golden_cross: bool | None
    death_cross: bool | None
    trend_strength: float | None
    support: float | None
    resistance: float | None


def _obv_trend(closes: np.ndarray, volumes: np.ndarray) -> int | None:
    if len(closes) <= OBV_TREND_LOOKBACK:
        return None
    series = indicators.obv_series(closes, volumes)
    change = series[-1] - series[-1 - OBV_TREND_LOOKBACK]
    if change > 0:
        return 1
    if change < 0:
        return -1
    return 0


def compute_technical(snapshot: RawSnapshot) -> TechnicalMetrics:
    """Compute technical indicators from the snapshot's price history.

    The current price is the quote price, else the latest close.
    """
    prices = snapshot.prices
    closes = prices.closes
    highs = prices.highs
    lows = prices.lows
    volumes = prices.volumes
    f = snapshot.fundamentals

    if len(closes) == 0:
        logger.debug("%s: no price history, technical indicators set to None", snapshot.symbol)

    price = f.price if f.price is not None else prices.latest_close()

    macd_line, macd_signal, macd_hist = indicators.macd(closes)
    sma_50 = indicators.sma(closes, 50)
    sma_200 = indicators.sma(closes, 200)

    bands = indicators.bollinger_bands(closes)
    upper = middle = lower = width = None
    if bands is not None:
        upper, middle, lower = bands
        width = safe_divide(upper - lower, middle)

    stoch_k, stoch_d = indicators.stochastic(closes, highs, lows)
    atr = indicators.atr(closes, highs, lows)
    adx, plus_di, minus_di = indicators.adx(closes, highs, lows)
    support, resistance = indicators.support_resistance(highs, lows)

    golden = death = None
    if sma_50 is not None and sma_200 is not None:
        golden = sma_50 > sma_200
        death = sma_50 < sma_200

    atr_percent = None
    ratio = safe_divide(atr, price)
    if ratio is not None:
        atr_percent = ratio * 100.0

    return TechnicalMetrics(
        rsi=indicators.rsi(closes),
        macd=macd_line,
        macd_signal=macd_signal,
        macd_histogram=macd_hist,
        sma_10=indicators.sma(closes, 10),
        sma_20=indicators.sma(closes, 20),
        sma_50=sma_50,
        sma_100=indicators.sma(closes, 100),
        sma_200=sma_200,
        ema_12=indicators.ema(closes, 12),
        ema_26=indicators.ema(closes, 26),
        bollinger_upper=upper,
        bollinger_middle=middle,
        bollinger_lower=lower,
        bollinger_width=width,
        relative_volume=safe_divide(f.volume, f.average_volume),
        stochastic_k=stoch_k,
        stochastic_d=stoch_d,
        williams_r=indicators.williams_r(closes, highs, lows),
        cci=indicators.cci(closes, highs, lows),
        atr=atr,
        atr_percent=atr_percent,
        adx=adx,
        plus_di=plus_di,
        minus_di=minus_di,
        obv=indicators.obv(closes, volumes),
        obv_trend=_obv_trend(closes, volumes),
        mfi=indicators.money_flow_index(closes, highs, lows, volumes),
        vwap=indicators.vwap(closes, highs, lows, volumes),
        price_to_sma_50=safe_divide(price, sma_50),
        price_to_sma_200=safe_divide(price, sma_200),
        golden_cross=golden,
        death_cross=death,
        trend_strength=adx,
        support=support,
        resistance=resistance,
    )
