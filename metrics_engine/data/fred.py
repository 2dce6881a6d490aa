"""FRED macro series client.

Fetches the latest observation for each MacroData field from the St.
Louis Fed FRED API. Values are cached per series in a MacroSeriesCache.
Requests are retried with exponential backoff on 429/5xx. A series that
still fails is reported as None; HTTP errors never reach the engine.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any

import requests

from metrics_engine.config import FredConfig
from metrics_engine.data.cache import MISSING, MacroSeriesCache
from metrics_engine.data.models import MacroData
from metrics_engine.numeric import finite_or_none, percentage_change

logger = logging.getLogger(__name__)

_RETRY_STATUS_CODES = {429, 500, 502, 503, 504}
_DAILY_TTL = 3_600
_SLOW_TTL = 86_400
# Observations fetched per request; YoY series need 13 monthly points.
_LATEST_LIMIT = 5
_YOY_LIMIT = 15
_YOY_LAG = 12


class FredConfigError(RuntimeError):
    """Raised when the FRED API key is not configured."""


@dataclass(frozen=True)
class FredSeries:
    """One MacroData field's source series.

    Attributes:
        series_id: FRED series identifier.
        ttl: Cache lifetime in seconds.
        year_over_year: Report the 12-observation percent change instead
            of the level (monthly index series).
    """

    series_id: str
    ttl: int = _SLOW_TTL
    year_over_year: bool = False


FRED_SERIES: dict[str, FredSeries] = {
    # Output
    "gdp_growth_rate": FredSeries("A191RL1Q225SBEA"),
    "real_gdp": FredSeries("GDPC1"),
    "nominal_gdp": FredSeries("GDP"),
    "gdp_per_capita": FredSeries("A939RX0Q048SBEA"),
    "industrial_production": FredSeries("INDPRO"),
    "capacity_utilization": FredSeries("TCU"),
    "retail_sales": FredSeries("RSAFS"),
    "housing_starts": FredSeries("HOUST"),
    # Prices
    "cpi": FredSeries("CPIAUCSL"),
    "ppi": FredSeries("PPIACO"),
    "core_inflation": FredSeries("CPILFESL", year_over_year=True),
    "inflation_rate": FredSeries("CPIAUCSL", year_over_year=True),
    "pce_inflation": FredSeries("PCEPI", year_over_year=True),
    "breakeven_inflation_5y": FredSeries("T5YIE", ttl=_DAILY_TTL),
    "breakeven_inflation_10y": FredSeries("T10YIE", ttl=_DAILY_TTL),
    # Rates
    "federal_funds_rate": FredSeries("FEDFUNDS"),
    "treasury_3m": FredSeries("DTB3", ttl=_DAILY_TTL),
    "treasury_2y": FredSeries("DGS2", ttl=_DAILY_TTL),
    "treasury_10y": FredSeries("DGS10", ttl=_DAILY_TTL),
    "treasury_30y": FredSeries("DGS30", ttl=_DAILY_TTL),
    "prime_rate": FredSeries("DPRIME", ttl=_DAILY_TTL),
    # Money and FX
    "m2_money_supply": FredSeries("M2SL"),
    "usd_index": FredSeries("DTWEXBGS", ttl=_DAILY_TTL),
    "eur_usd": FredSeries("DEXUSEU", ttl=_DAILY_TTL),
    # Labour
    "unemployment_rate": FredSeries("UNRATE"),
    "labor_force_participation": FredSeries("CIVPART"),
    "initial_claims": FredSeries("ICSA"),
    "nonfarm_payrolls": FredSeries("PAYEMS"),
    "wage_growth": FredSeries("CES0500000003", year_over_year=True),
    "labor_productivity": FredSeries("OPHNFB"),
    # Sentiment and financial conditions
    "consumer_confidence": FredSeries("UMCSENT"),
    "business_confidence": FredSeries("BSCICP03USM665S"),
    "credit_spread": FredSeries("BAA10Y", ttl=_DAILY_TTL),
    "vix": FredSeries("VIXCLS", ttl=_DAILY_TTL),
    "financial_stress_index": FredSeries("STLFSI4"),
    # Fiscal
    "federal_debt": FredSeries("GFDEBTN"),
    "debt_to_gdp": FredSeries("GFDEGDQ188S"),
}


def parse_observations(payload: Any) -> list[float | None]:
    """Observation values from a FRED response, in response order.

    FRED marks a missing observation with ``"."``; those become None.
    """
    if not isinstance(payload, dict):
        return []
    observations = payload.get("observations") or []
    return [
        None if obs.get("value") in (".", "", None) else finite_or_none(obs.get("value"))
        for obs in observations
        if isinstance(obs, dict)
    ]


class FredClient:
    """Fetch macro series from FRED with caching and retry.

    Args:
        api_key: FRED API key.
        cache: Series cache. A fresh MacroSeriesCache if omitted.
        config: Endpoint, timeout and retry settings.
    """

    def __init__(
        self,
        api_key: str,
        cache: MacroSeriesCache | None = None,
        config: FredConfig | None = None,
    ) -> None:
        self._api_key = api_key
        self._cache = cache if cache is not None else MacroSeriesCache()
        self._config = config if config is not None else FredConfig()

    @classmethod
    def from_env(
        cls,
        cache: MacroSeriesCache | None = None,
        config: FredConfig | None = None,
    ) -> FredClient:
        """Build a client from the FRED_API_KEY environment variable.

        Raises:
            FredConfigError: If FRED_API_KEY is unset or empty.
        """
        api_key = os.environ.get("FRED_API_KEY")
        if not api_key:
            raise FredConfigError("FRED_API_KEY environment variable is not set")
        return cls(api_key, cache=cache, config=config)

    @property
    def cache(self) -> MacroSeriesCache:
        return self._cache

    def latest_value(self, series_id: str, ttl: int | None = None) -> float | None:
        """Most recent non-missing observation of ``series_id``.

        Args:
            series_id: FRED series identifier.
            ttl: Cache lifetime; the client default if omitted.

        Returns:
            Latest value, or None if the series has no usable
            observation or every request attempt failed.
        """
        cached = self._cache.get(series_id)
        if cached is not MISSING:
            return cached

        values = self._fetch_observations(series_id, _LATEST_LIMIT)
        if values is None:
            return None
        value = next((v for v in values if v is not None), None)
        self._cache.set(series_id, value, ttl or self._config.default_ttl)
        return value

    def year_over_year_change(
        self, series_id: str, ttl: int | None = None
    ) -> float | None:
        """Percent change between the latest observation and the one
        twelve observations earlier (monthly series)."""
        key = f"{series_id}:yoy"
        cached = self._cache.get(key)
        if cached is not MISSING:
            return cached

        values = self._fetch_observations(series_id, _YOY_LIMIT)
        if values is None:
            return None
        change = None
        if len(values) > _YOY_LAG:
            ratio = percentage_change(values[0], values[_YOY_LAG])
            change = None if ratio is None else ratio * 100.0
        else:
            logger.debug("%s: %d observations, YoY change set to None", series_id, len(values))
        self._cache.set(key, change, ttl or self._config.default_ttl)
        return change

    def fetch_macro_data(self) -> MacroData:
        """Fetch every series in FRED_SERIES into a MacroData."""
        values: dict[str, float | None] = {}
        for field_name, series in FRED_SERIES.items():
            if series.year_over_year:
                values[field_name] = self.year_over_year_change(series.series_id, series.ttl)
            else:
                values[field_name] = self.latest_value(series.series_id, series.ttl)

        fetched = sum(v is not None for v in values.values())
        logger.info("FRED: fetched %d of %d macro series", fetched, len(values))
        return MacroData(**values)

    def _fetch_observations(
        self, series_id: str, limit: int
    ) -> list[float | None] | None:
        """Most-recent-first observation values with retry logic.

        Returns:
            Values (possibly empty), or None if every attempt failed.
        """
        url = f"{self._config.base_url}/series/observations"
        params = {
            "series_id": series_id,
            "api_key": self._api_key,
            "file_type": "json",
            "sort_order": "desc",
            "limit": limit,
        }
        max_retries = self._config.max_retries

        for attempt in range(max_retries):
            try:
                response = requests.get(
                    url,
                    params=params,
                    timeout=self._config.request_timeout,
                )

                if response.status_code in _RETRY_STATUS_CODES:
                    sleep_time = self._config.backoff_factor * (2**attempt)
                    logger.warning(
                        "FRED %s returned %d, retrying in %.1fs (attempt %d/%d)",
                        series_id,
                        response.status_code,
                        sleep_time,
                        attempt + 1,
                        max_retries,
                    )
                    time.sleep(sleep_time)
                    continue

                if 400 <= response.status_code < 500:
                    logger.warning(
                        "FRED %s returned %d, not retrying",
                        series_id,
                        response.status_code,
                    )
                    return None

                response.raise_for_status()
                return parse_observations(response.json())

            except requests.RequestException as e:
                if attempt < max_retries - 1:
                    sleep_time = self._config.backoff_factor * (2**attempt)
                    logger.warning(
                        "FRED %s request failed: %s. Retrying in %.1fs "
                        "(attempt %d/%d)",
                        series_id,
                        e,
                        sleep_time,
                        attempt + 1,
                        max_retries,
                    )
                    time.sleep(sleep_time)
                else:
                    logger.error(
                        "FRED %s failed after %d attempts: %s",
                        series_id,
                        max_retries,
                        e,
                    )

        logger.warning("FRED %s unavailable, value set to None", series_id)
        return None
