"""Engine configuration dataclasses."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

# Annualisation factor for daily return statistics.
TRADING_DAYS_PER_YEAR: int = 252

# Statutory US corporate rate, used when neither the caller nor the
# snapshot supplies a usable tax rate.
DEFAULT_TAX_RATE: float = 0.21

# Used when no risk-free rate is configured and the macro snapshot has
# no 10-year treasury yield.
DEFAULT_RISK_FREE_RATE: float = 0.04

DEFAULT_MARKET_RISK_PREMIUM: float = 0.05
DEFAULT_TERMINAL_GROWTH_RATE: float = 0.025

# Hurdle rates for economic profit and residual income when no WACC or
# cost of equity can be derived.
DEFAULT_WACC: float = 0.10
DEFAULT_COST_OF_EQUITY: float = 0.12


class TotalScorePolicy(Enum):
    """How the total score treats a missing category score."""

    REQUIRE_ALL = "require_all"
    REWEIGHT = "reweight"


@dataclass
class CalculatorConfig:
    """Caller-supplied calculation parameters.

    Every field is optional. A None value triggers the derivation rule
    documented per field rather than an error.

    Attributes:
        market_risk_premium: Equity risk premium over the risk-free rate.
        terminal_growth_rate: Perpetual growth rate for terminal value.
        tax_rate: Marginal tax rate. None uses the snapshot's effective
            tax rate, then DEFAULT_TAX_RATE.
        risk_free_rate: Annual risk-free rate as a decimal. None uses the
            macro 10-year treasury yield, then DEFAULT_RISK_FREE_RATE.
        wacc: WACC override. None derives WACC from the snapshot.
        cost_of_equity: Cost of equity override. None derives it via CAPM.
        projection_years: Explicit forecast horizon for the multi-stage
            DCF variant.
        total_score_policy: Whether the total score needs all five
            category scores or reweights over those present.
    """

    market_risk_premium: float = DEFAULT_MARKET_RISK_PREMIUM
    terminal_growth_rate: float = DEFAULT_TERMINAL_GROWTH_RATE
    tax_rate: float | None = None
    risk_free_rate: float | None = None
    wacc: float | None = None
    cost_of_equity: float | None = None
    projection_years: int = 5
    total_score_policy: TotalScorePolicy = TotalScorePolicy.REQUIRE_ALL

    def __post_init__(self) -> None:
        for name in (
            "market_risk_premium",
            "terminal_growth_rate",
            "tax_rate",
            "risk_free_rate",
            "wacc",
            "cost_of_equity",
        ):
            value = getattr(self, name)
            if value is not None and not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")
        if self.projection_years < 1:
            raise ValueError(
                f"projection_years must be >= 1, got {self.projection_years}"
            )
        if self.tax_rate is not None and not 0.0 <= self.tax_rate <= 1.0:
            raise ValueError(f"tax_rate must be in [0, 1], got {self.tax_rate}")


@dataclass
class FredConfig:
    """FRED macro series client parameters."""

    base_url: str = "https://api.stlouisfed.org/fred"
    request_timeout: int = 30
    max_retries: int = 3
    backoff_factor: float = 1.0
    default_ttl: int = 86_400
