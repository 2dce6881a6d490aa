"""Engine output contract.

Dataclass holding every metric record produced for one snapshot.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

import numpy as np

from metrics_engine.analysis.dcf import DCFMetrics
from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.analysis.scoring import ScoreRecord
from metrics_engine.metrics.cashflow import CashFlowMetrics
from metrics_engine.metrics.dupont import DuPontMetrics
from metrics_engine.metrics.efficiency import EfficiencyMetrics
from metrics_engine.metrics.growth import GrowthMetrics
from metrics_engine.metrics.industry import IndustryMetrics
from metrics_engine.metrics.leverage import LeverageMetrics
from metrics_engine.metrics.liquidity import LiquidityMetrics
from metrics_engine.metrics.macro import MacroMetrics
from metrics_engine.metrics.other import OtherMetrics
from metrics_engine.metrics.profitability import ProfitabilityMetrics
from metrics_engine.metrics.risk import RiskMetrics
from metrics_engine.metrics.technical import TechnicalMetrics
from metrics_engine.metrics.valuation import ValuationMetrics


def to_plain(value: Any) -> Any:
    """Convert to JSON-safe builtins; non-finite floats become None."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (np.bool_,)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, Enum):
        return to_plain(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return to_plain(asdict(value))
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return str(value)


@dataclass
class AggregateResult:
    """Complete engine output for one snapshot."""

    symbol: str
    company_name: str | None
    sector: str | None
    industry: str | None
    timestamp: datetime
    intermediates: SharedIntermediates
    macro: MacroMetrics
    industry_metrics: IndustryMetrics
    liquidity: LiquidityMetrics
    leverage: LeverageMetrics
    efficiency: EfficiencyMetrics
    profitability: ProfitabilityMetrics
    dupont: DuPontMetrics
    growth: GrowthMetrics
    cash_flow: CashFlowMetrics
    valuation: ValuationMetrics
    dcf: DCFMetrics
    risk: RiskMetrics
    technical: TechnicalMetrics
    scores: ScoreRecord
    other: OtherMetrics

    def to_dict(self) -> dict[str, Any]:
        """Nested plain-dict form, safe for ``json.dumps(..., allow_nan=False)``."""
        return to_plain(asdict(self))
