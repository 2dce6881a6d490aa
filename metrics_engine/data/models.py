"""Data models for the metrics engine.

Two ordered sequence types exist and must not be mixed:

* ``HistoricalSeries`` holds annual figures ordered most-recent-first
  (index 0 is the latest fiscal year). Growth and CAGR metrics use it.
* ``PriceHistory`` holds daily bars ordered oldest-first. Technical
  and risk indicators use it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from datetime import datetime

import numpy as np
import pandas as pd

from metrics_engine.numeric import finite_or_none

logger = logging.getLogger(__name__)

PRICE_COLUMNS: tuple[str, ...] = ("date", "open", "high", "low", "close", "volume")


def _coerce_numeric_fields(record: object, skip: tuple[str, ...] = ()) -> None:
    """Replace NaN/inf (and non-numeric junk) in a frozen record with None."""
    for f in fields(record):  # type: ignore[arg-type]
        if f.name in skip:
            continue
        object.__setattr__(record, f.name, finite_or_none(getattr(record, f.name)))


@dataclass(frozen=True)
class HistoricalSeries:
    """Annual values ordered most-recent-first.

    Attributes:
        values: Index 0 is the most recent period, index n is n years
            earlier. Individual entries may be None.
    """

    values: tuple[float | None, ...] = ()

    @classmethod
    def from_most_recent_first(
        cls, values: Iterable[float | None]
    ) -> HistoricalSeries:
        return cls(tuple(finite_or_none(v) for v in values))

    @classmethod
    def from_chronological(cls, values: Iterable[float | None]) -> HistoricalSeries:
        """Build from an oldest-first sequence by reversing it."""
        return cls(tuple(finite_or_none(v) for v in reversed(list(values))))

    def __len__(self) -> int:
        return len(self.values)

    def has_periods(self, n: int) -> bool:
        """True if at least ``n`` periods are available."""
        return len(self.values) >= n

    def latest(self) -> float | None:
        return self.values[0] if self.values else None

    def prior(self, years_back: int) -> float | None:
        """Value ``years_back`` periods before the latest, None if unavailable."""
        if years_back < 0 or years_back >= len(self.values):
            return None
        return self.values[years_back]


@dataclass(frozen=True, eq=False)
class PriceHistory:
    """Daily OHLCV bars ordered oldest-first.

    The frame is validated on construction: it must carry every column
    in PRICE_COLUMNS and its dates must be strictly increasing. A
    most-recent-first frame is rejected rather than silently reversed.

    Attributes:
        frame: Columns date, open, high, low, close, volume.
    """

    frame: pd.DataFrame = field(
        default_factory=lambda: pd.DataFrame(columns=list(PRICE_COLUMNS))
    )

    def __post_init__(self) -> None:
        missing = [c for c in PRICE_COLUMNS if c not in self.frame.columns]
        if missing:
            raise ValueError(f"price history missing columns: {missing}")

        frame = self.frame.loc[:, list(PRICE_COLUMNS)].copy()
        frame["date"] = pd.to_datetime(frame["date"])
        for col in PRICE_COLUMNS[1:]:
            frame[col] = pd.to_numeric(frame[col], errors="coerce").astype(float)
        unusable = frame["close"].isna() | ~np.isfinite(frame["close"])
        if unusable.any():
            logger.warning("dropping %d price bars without a finite close", int(unusable.sum()))
            frame = frame.loc[~unusable]
        frame["high"] = frame["high"].fillna(frame["close"])
        frame["low"] = frame["low"].fillna(frame["close"])
        frame["open"] = frame["open"].fillna(frame["close"])
        frame["volume"] = frame["volume"].fillna(0.0)
        frame = frame.reset_index(drop=True)

        if len(frame) > 1 and not frame["date"].is_monotonic_increasing:
            raise ValueError(
                "price history must be ordered oldest-first; "
                "use PriceHistory.from_records to sort unordered bars"
            )
        if frame["date"].duplicated().any():
            raise ValueError("price history contains duplicate dates")

        object.__setattr__(self, "frame", frame)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, object]]) -> PriceHistory:
        """Build from bar mappings in any order.

        Bars without a finite close are dropped. Missing open, high and low
        fall back to the close and missing volume to zero. Duplicate dates
        keep the last bar.

        Args:
            records: Mappings with at least ``date`` and ``close`` keys.

        Returns:
            PriceHistory sorted oldest-first.
        """
        rows: list[dict[str, object]] = []
        for record in records:
            close = finite_or_none(record.get("close"))
            if close is None or record.get("date") is None:
                logger.warning("dropping price bar without date/close: %s", record)
                continue
            open_ = finite_or_none(record.get("open"))
            high = finite_or_none(record.get("high"))
            low = finite_or_none(record.get("low"))
            rows.append({
                "date": record["date"],
                "open": close if open_ is None else open_,
                "high": close if high is None else high,
                "low": close if low is None else low,
                "close": close,
                "volume": finite_or_none(record.get("volume")) or 0.0,
            })

        if not rows:
            return cls()

        frame = pd.DataFrame(rows, columns=list(PRICE_COLUMNS))
        frame["date"] = pd.to_datetime(frame["date"])
        frame = (
            frame.sort_values("date", kind="stable")
            .drop_duplicates(subset="date", keep="last")
        )
        return cls(frame)

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def closes(self) -> np.ndarray:
        return self.frame["close"].to_numpy(dtype=float)

    @property
    def highs(self) -> np.ndarray:
        return self.frame["high"].to_numpy(dtype=float)

    @property
    def lows(self) -> np.ndarray:
        return self.frame["low"].to_numpy(dtype=float)

    @property
    def volumes(self) -> np.ndarray:
        return self.frame["volume"].to_numpy(dtype=float)

    def latest_close(self) -> float | None:
        if self.frame.empty:
            return None
        return finite_or_none(self.frame["close"].iloc[-1])


@dataclass(frozen=True)
class FundamentalData:
    """Point-in-time fundamentals for one instrument.

    Every figure is optional. Flow items are trailing annual values,
    stock items come from the latest balance sheet. The ``provider_*``
    fields are ratios pre-computed by the data vendor and are only used
    as fallbacks when the engine cannot derive a ratio itself. Non-finite
    values are stored as None.
    """

    # Quote
    price: float | None = None
    previous_close: float | None = None
    volume: float | None = None
    average_volume: float | None = None
    market_cap: float | None = None
    beta: float | None = None
    pe: float | None = None
    eps: float | None = None
    forward_pe: float | None = None
    dividend_yield: float | None = None

    # Income statement
    revenue: float | None = None
    cost_of_revenue: float | None = None
    gross_profit: float | None = None
    operating_expenses: float | None = None
    operating_income: float | None = None
    ebitda: float | None = None
    ebit: float | None = None
    interest_expense: float | None = None
    pretax_income: float | None = None
    income_tax: float | None = None
    net_income: float | None = None

    # Balance sheet
    total_assets: float | None = None
    current_assets: float | None = None
    cash: float | None = None
    short_term_investments: float | None = None
    net_receivables: float | None = None
    inventory: float | None = None
    total_liabilities: float | None = None
    current_liabilities: float | None = None
    short_term_debt: float | None = None
    accounts_payable: float | None = None
    long_term_debt: float | None = None
    total_debt: float | None = None
    total_equity: float | None = None
    retained_earnings: float | None = None

    # Cash flow statement
    operating_cash_flow: float | None = None
    investing_cash_flow: float | None = None
    financing_cash_flow: float | None = None
    capital_expenditures: float | None = None
    free_cash_flow: float | None = None
    dividends_paid: float | None = None

    # Vendor ratios (fallbacks only)
    provider_current_ratio: float | None = None
    provider_quick_ratio: float | None = None
    provider_debt_to_equity: float | None = None
    provider_return_on_equity: float | None = None
    provider_return_on_assets: float | None = None
    provider_gross_margin: float | None = None
    provider_operating_margin: float | None = None
    provider_profit_margin: float | None = None
    provider_revenue_growth: float | None = None
    provider_earnings_growth: float | None = None

    shares_outstanding: float | None = None

    def __post_init__(self) -> None:
        _coerce_numeric_fields(self)


@dataclass(frozen=True)
class HistoricalArrays:
    """Annual history used for growth metrics, each most-recent-first."""

    revenue: HistoricalSeries = field(default_factory=HistoricalSeries)
    net_income: HistoricalSeries = field(default_factory=HistoricalSeries)
    eps: HistoricalSeries = field(default_factory=HistoricalSeries)
    dividends: HistoricalSeries = field(default_factory=HistoricalSeries)
    fcf: HistoricalSeries = field(default_factory=HistoricalSeries)


@dataclass(frozen=True)
class MacroData:
    """Macro indicators as published by the macro source.

    Rates, yields, inflation and unemployment are in percent (4.25 means
    4.25%), matching FRED's units. Each field is independently optional.
    """

    # Output
    gdp_growth_rate: float | None = None
    real_gdp: float | None = None
    nominal_gdp: float | None = None
    gdp_per_capita: float | None = None
    industrial_production: float | None = None
    capacity_utilization: float | None = None
    retail_sales: float | None = None
    housing_starts: float | None = None

    # Prices
    cpi: float | None = None
    ppi: float | None = None
    core_inflation: float | None = None
    inflation_rate: float | None = None
    pce_inflation: float | None = None
    breakeven_inflation_5y: float | None = None
    breakeven_inflation_10y: float | None = None

    # Rates
    federal_funds_rate: float | None = None
    treasury_3m: float | None = None
    treasury_2y: float | None = None
    treasury_10y: float | None = None
    treasury_30y: float | None = None
    prime_rate: float | None = None

    # Money and FX
    m2_money_supply: float | None = None
    usd_index: float | None = None
    eur_usd: float | None = None

    # Labour
    unemployment_rate: float | None = None
    labor_force_participation: float | None = None
    initial_claims: float | None = None
    nonfarm_payrolls: float | None = None
    wage_growth: float | None = None
    labor_productivity: float | None = None

    # Sentiment and financial conditions
    consumer_confidence: float | None = None
    business_confidence: float | None = None
    credit_spread: float | None = None
    vix: float | None = None
    financial_stress_index: float | None = None

    # Fiscal
    federal_debt: float | None = None
    debt_to_gdp: float | None = None

    def __post_init__(self) -> None:
        _coerce_numeric_fields(self)


@dataclass(frozen=True)
class Competitor:
    symbol: str
    revenue: float | None


@dataclass(frozen=True)
class IndustryData:
    """Industry aggregates and peer revenues."""

    industry_name: str | None = None
    sector_name: str | None = None
    industry_revenue: float | None = None
    industry_growth_rate: float | None = None
    market_size: float | None = None
    competitors: tuple[Competitor, ...] = ()
    industry_pe: float | None = None
    industry_pb: float | None = None
    industry_roe: float | None = None
    industry_roic: float | None = None
    industry_gross_margin: float | None = None
    industry_beta: float | None = None

    def __post_init__(self) -> None:
        _coerce_numeric_fields(
            self, skip=("industry_name", "sector_name", "competitors")
        )
        object.__setattr__(self, "competitors", tuple(self.competitors))


@dataclass(frozen=True, eq=False)
class RawSnapshot:
    """Everything the engine reads for one calculation.

    Built once by the fetch layer and never mutated afterwards.

    Attributes:
        symbol: Ticker symbol.
        timestamp: When the snapshot was assembled.
        fundamentals: Latest fundamentals and quote.
        history: Annual history arrays (most-recent-first).
        prices: Daily bars (oldest-first).
        macro: Macro indicators.
        industry: Industry aggregates and competitors.
        previous_year: Prior fiscal year fundamentals, used for the
            year-over-year Piotroski tests.
        company_name: Display name.
        sector: Business sector. Falls back to the industry sector name.
        industry_name: Industry label. Falls back to the industry data.
    """

    symbol: str
    timestamp: datetime
    fundamentals: FundamentalData = field(default_factory=FundamentalData)
    history: HistoricalArrays = field(default_factory=HistoricalArrays)
    prices: PriceHistory = field(default_factory=PriceHistory)
    macro: MacroData = field(default_factory=MacroData)
    industry: IndustryData = field(default_factory=IndustryData)
    previous_year: FundamentalData | None = None
    company_name: str | None = None
    sector: str | None = None
    industry_name: str | None = None

    @property
    def resolved_sector(self) -> str | None:
        return self.sector or self.industry.sector_name

    @property
    def resolved_industry(self) -> str | None:
        return self.industry_name or self.industry.industry_name


def competitor_revenues(competitors: Sequence[Competitor]) -> list[float]:
    """Finite, non-negative competitor revenues."""
    revenues: list[float] = []
    for comp in competitors:
        revenue = finite_or_none(comp.revenue)
        if revenue is None or revenue < 0:
            logger.debug("%s: competitor revenue unusable, skipped", comp.symbol)
            continue
        revenues.append(revenue)
    return revenues
