"""Leverage and solvency metrics: debt load, coverage and capital structure."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import safe_add, safe_divide

logger = logging.getLogger(__name__)

# Debt capacity is approximated as this multiple of EBITDA.
DEBT_CAPACITY_EBITDA_MULTIPLE: float = 2.0


@dataclass
class LeverageMetrics:
    """Leverage outputs.

    Attributes:
        debt_to_assets: Total debt / total assets.
        debt_to_equity: Total debt / total equity, else the provider's ratio.
        financial_debt_to_equity: (Long-term + short-term debt) / equity.
        interest_coverage: EBIT / interest expense. None if interest
            expense is zero, negative or missing.
        debt_service_coverage: Operating income / interest expense.
        equity_multiplier: Total assets / total equity.
        debt_to_ebitda: Total debt / EBITDA. None if EBITDA <= 0.
        net_debt_to_ebitda: Net debt / EBITDA. None if EBITDA <= 0.
        debt_to_capital: Debt / (debt + equity).
        long_term_debt_ratio: Long-term debt / (long-term debt + equity).
        cash_flow_coverage: Operating cash flow / total debt.
        times_interest_earned: Same as interest coverage.
        debt_capacity_utilization: Debt / (2 x EBITDA). None if EBITDA <= 0.
    """

    debt_to_assets: float | None
    debt_to_equity: float | None
    financial_debt_to_equity: float | None
    interest_coverage: float | None
    debt_service_coverage: float | None
    equity_multiplier: float | None
    debt_to_ebitda: float | None
    net_debt_to_ebitda: float | None
    debt_to_capital: float | None
    long_term_debt_ratio: float | None
    cash_flow_coverage: float | None
    times_interest_earned: float | None
    debt_capacity_utilization: float | None


def compute_leverage(
    snapshot: RawSnapshot, shared: SharedIntermediates
) -> LeverageMetrics:
    """Compute leverage metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Shared intermediates (net debt).

    Returns:
        LeverageMetrics.
    """
    f = snapshot.fundamentals
    symbol = snapshot.symbol

    debt_to_equity = safe_divide(f.total_debt, f.total_equity)
    if debt_to_equity is None:
        debt_to_equity = f.provider_debt_to_equity

    # Negative interest expense is net interest income: nothing to cover
    if f.interest_expense is None or f.interest_expense <= 0:
        interest_coverage = None
        debt_service_coverage = None
        logger.debug(
            "%s: interest expense is zero, negative, or missing, "
            "interest coverage set to None",
            symbol,
        )
    else:
        interest_coverage = safe_divide(f.ebit, f.interest_expense)
        debt_service_coverage = safe_divide(f.operating_income, f.interest_expense)

    if f.ebitda is None or f.ebitda <= 0:
        debt_to_ebitda = None
        net_debt_to_ebitda = None
        debt_capacity = None
        logger.debug("%s: EBITDA non-positive or missing, debt/EBITDA set to None", symbol)
    else:
        debt_to_ebitda = safe_divide(f.total_debt, f.ebitda)
        net_debt_to_ebitda = safe_divide(shared.net_debt, f.ebitda)
        debt_capacity = safe_divide(
            f.total_debt, f.ebitda * DEBT_CAPACITY_EBITDA_MULTIPLE
        )

    return LeverageMetrics(
        debt_to_assets=safe_divide(f.total_debt, f.total_assets),
        debt_to_equity=debt_to_equity,
        financial_debt_to_equity=safe_divide(
            safe_add(f.long_term_debt, f.short_term_debt), f.total_equity
        ),
        interest_coverage=interest_coverage,
        debt_service_coverage=debt_service_coverage,
        equity_multiplier=safe_divide(f.total_assets, f.total_equity),
        debt_to_ebitda=debt_to_ebitda,
        net_debt_to_ebitda=net_debt_to_ebitda,
        debt_to_capital=safe_divide(f.total_debt, safe_add(f.total_debt, f.total_equity)),
        long_term_debt_ratio=safe_divide(
            f.long_term_debt, safe_add(f.long_term_debt, f.total_equity)
        ),
        cash_flow_coverage=safe_divide(f.operating_cash_flow, f.total_debt),
        times_interest_earned=interest_coverage,
        debt_capacity_utilization=debt_capacity,
    )
