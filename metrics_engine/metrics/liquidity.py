"""Liquidity metrics: short-term coverage ratios and working-capital cycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import safe_add, safe_divide, safe_subtract

logger = logging.getLogger(__name__)

DAYS_PER_YEAR: int = 365


@dataclass
class LiquidityMetrics:
    """Liquidity outputs.

    Attributes:
        current_ratio: Current assets / current liabilities, else the
            provider's ratio.
        quick_ratio: (Current assets - inventory) / current liabilities,
            else the provider's ratio.
        cash_ratio: Cash / current liabilities.
        absolute_liquidity_ratio: (Cash + short-term investments) /
            current liabilities.
        days_sales_outstanding: Receivables x 365 / revenue. None if
            revenue <= 0.
        days_inventory_outstanding: Inventory x 365 / cost of revenue.
            None if cost of revenue <= 0 or inventory is zero/absent
            (service entities).
        days_payables_outstanding: Payables x 365 / cost of revenue.
            None if cost of revenue <= 0.
        cash_conversion_cycle: DSO + DIO - DPO.
        defensive_interval: (Cash + receivables + short-term
            investments) / daily operating expenses, in days.
        net_working_capital_ratio: Working capital / total assets.
        operating_cash_flow_ratio: OCF / current liabilities.
        cash_burn_months: Cash / monthly operating expenses. Only for
            loss-making entities.
    """

    current_ratio: float | None
    quick_ratio: float | None
    cash_ratio: float | None
    absolute_liquidity_ratio: float | None
    days_sales_outstanding: float | None
    days_inventory_outstanding: float | None
    days_payables_outstanding: float | None
    cash_conversion_cycle: float | None
    defensive_interval: float | None
    net_working_capital_ratio: float | None
    operating_cash_flow_ratio: float | None
    cash_burn_months: float | None


def _days_outstanding(
    balance: float | None, flow: float | None
) -> float | None:
    """``balance x 365 / flow`` for a positive flow."""
    if flow is None or flow <= 0 or balance is None:
        return None
    return safe_divide(balance * DAYS_PER_YEAR, flow)


def compute_liquidity(
    snapshot: RawSnapshot, shared: SharedIntermediates
) -> LiquidityMetrics:
    """Compute liquidity metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Shared intermediates (working capital).

    Returns:
        LiquidityMetrics.
    """
    f = snapshot.fundamentals
    symbol = snapshot.symbol

    current_ratio = safe_divide(f.current_assets, f.current_liabilities)
    if current_ratio is None:
        current_ratio = f.provider_current_ratio

    quick_ratio = safe_divide(
        safe_subtract(f.current_assets, f.inventory), f.current_liabilities
    )
    if quick_ratio is None:
        quick_ratio = f.provider_quick_ratio

    dso = _days_outstanding(f.net_receivables, f.revenue)
    if dso is None:
        logger.debug("%s: revenue or receivables unusable, DSO set to None", symbol)

    if not f.inventory:
        dio = None
        logger.debug("%s: no inventory, DIO set to None", symbol)
    else:
        dio = _days_outstanding(f.inventory, f.cost_of_revenue)
    dpo = _days_outstanding(f.accounts_payable, f.cost_of_revenue)

    ccc = None
    if dso is not None and dio is not None and dpo is not None:
        ccc = dso + dio - dpo

    defensive_interval = None
    if f.operating_expenses is not None and f.operating_expenses > 0:
        defensive_interval = safe_divide(
            safe_add(f.cash, f.net_receivables, f.short_term_investments),
            f.operating_expenses / DAYS_PER_YEAR,
        )

    cash_burn = None
    if (
        f.net_income is not None
        and f.net_income < 0
        and f.operating_expenses is not None
        and f.operating_expenses > 0
    ):
        cash_burn = safe_divide(f.cash, f.operating_expenses / 12.0)

    return LiquidityMetrics(
        current_ratio=current_ratio,
        quick_ratio=quick_ratio,
        cash_ratio=safe_divide(f.cash, f.current_liabilities),
        absolute_liquidity_ratio=safe_divide(
            safe_add(f.cash, f.short_term_investments), f.current_liabilities
        ),
        days_sales_outstanding=dso,
        days_inventory_outstanding=dio,
        days_payables_outstanding=dpo,
        cash_conversion_cycle=ccc,
        defensive_interval=defensive_interval,
        net_working_capital_ratio=safe_divide(shared.working_capital, f.total_assets),
        operating_cash_flow_ratio=safe_divide(f.operating_cash_flow, f.current_liabilities),
        cash_burn_months=cash_burn,
    )
