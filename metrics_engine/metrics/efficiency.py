"""Efficiency metrics: how hard the balance sheet works to produce revenue."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import safe_divide, safe_subtract

logger = logging.getLogger(__name__)

DAYS_PER_YEAR: int = 365


@dataclass
class EfficiencyMetrics:
    """Efficiency outputs.

    Attributes:
        asset_turnover: Revenue / total assets.
        fixed_asset_turnover: Revenue / (total assets - current assets).
        inventory_turnover: Cost of revenue / inventory.
        receivables_turnover: Revenue / net receivables.
        payables_turnover: Cost of revenue / accounts payable.
        working_capital_turnover: Revenue / working capital.
        equity_turnover: Revenue / total equity.
        capital_employed_turnover: Revenue / capital employed.
        cash_turnover: Revenue / cash.
        operating_cycle: Days of inventory plus days of receivables.
        net_trade_cycle: Operating cycle less days of payables.
    """

    asset_turnover: float | None
    fixed_asset_turnover: float | None
    inventory_turnover: float | None
    receivables_turnover: float | None
    payables_turnover: float | None
    working_capital_turnover: float | None
    equity_turnover: float | None
    capital_employed_turnover: float | None
    cash_turnover: float | None
    operating_cycle: float | None
    net_trade_cycle: float | None


def _turnover_days(turnover: float | None) -> float | None:
    if turnover is None or turnover <= 0:
        return None
    return DAYS_PER_YEAR / turnover


def compute_efficiency(
    snapshot: RawSnapshot, shared: SharedIntermediates
) -> EfficiencyMetrics:
    """Compute efficiency metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Shared intermediates (working capital, capital employed).

    Returns:
        EfficiencyMetrics.
    """
    f = snapshot.fundamentals

    if not f.inventory:
        inventory_turnover = None
        logger.debug("%s: no inventory, inventory turnover set to None", snapshot.symbol)
    else:
        inventory_turnover = safe_divide(f.cost_of_revenue, f.inventory)
    receivables_turnover = safe_divide(f.revenue, f.net_receivables)
    payables_turnover = safe_divide(f.cost_of_revenue, f.accounts_payable)

    inventory_days = _turnover_days(inventory_turnover)
    receivable_days = _turnover_days(receivables_turnover)
    payable_days = _turnover_days(payables_turnover)

    operating_cycle = None
    if inventory_days is not None and receivable_days is not None:
        operating_cycle = inventory_days + receivable_days
    net_trade_cycle = None
    if operating_cycle is not None and payable_days is not None:
        net_trade_cycle = operating_cycle - payable_days

    return EfficiencyMetrics(
        asset_turnover=safe_divide(f.revenue, f.total_assets),
        fixed_asset_turnover=safe_divide(
            f.revenue, safe_subtract(f.total_assets, f.current_assets)
        ),
        inventory_turnover=inventory_turnover,
        receivables_turnover=receivables_turnover,
        payables_turnover=payables_turnover,
        working_capital_turnover=safe_divide(f.revenue, shared.working_capital),
        equity_turnover=safe_divide(f.revenue, f.total_equity),
        capital_employed_turnover=safe_divide(f.revenue, shared.capital_employed),
        cash_turnover=safe_divide(f.revenue, f.cash),
        operating_cycle=operating_cycle,
        net_trade_cycle=net_trade_cycle,
    )
