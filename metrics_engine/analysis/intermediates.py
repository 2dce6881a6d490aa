"""Shared intermediates derived once per calculation.

Tax rate, NOPLAT, enterprise value, invested capital and the cost of
capital feed several metric categories. They are computed here a
single time and threaded into every category that needs them, so all
categories agree on the same values and the same default fallbacks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.analysis.dcf import cost_of_debt, cost_of_equity, wacc
from metrics_engine.config import (
    DEFAULT_COST_OF_EQUITY,
    DEFAULT_RISK_FREE_RATE,
    DEFAULT_TAX_RATE,
    DEFAULT_WACC,
    CalculatorConfig,
)
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import (
    finite_or_none,
    safe_add,
    safe_divide,
    safe_multiply,
    safe_subtract,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedIntermediates:
    """Values shared across metric categories.

    Attributes:
        effective_tax_rate: Income tax / pretax income. None unless pretax
            income is positive and the rate lies in [0, 1].
        tax_rate: Rate applied to EBIT. From config, else the effective
            rate, else DEFAULT_TAX_RATE.
        tax_rate_source: "config", "snapshot" or "default".
        risk_free_rate: Annual decimal rate. From config, else the macro
            10-year treasury yield (converted from percent), else
            DEFAULT_RISK_FREE_RATE.
        risk_free_rate_source: "config", "macro" or "default".
        market_risk_premium: From config.
        terminal_growth_rate: From config.
        noplat: EBIT x (1 - tax_rate).
        invested_capital: Total equity + total debt - cash.
        enterprise_value: Market cap + total debt - cash.
        net_debt: Total debt - cash.
        free_cash_flow: As reported, else operating cash flow - |capex|.
        working_capital: Current assets - current liabilities.
        capital_employed: Total assets - current liabilities.
        book_value_per_share: Total equity / shares outstanding.
        cost_of_equity: Config override, else CAPM. None if CAPM inputs
            are missing.
        cost_of_equity_source: "config", "capm" or "unavailable".
        cost_of_debt: Interest expense / total debt.
        wacc: Config override, else derived WACC.
        wacc_source: "config", "derived" or "unavailable".
        hurdle_cost_of_equity: cost_of_equity, else DEFAULT_COST_OF_EQUITY.
            Used where a required return is always needed (residual
            income, justified multiples).
        hurdle_wacc: wacc, else DEFAULT_WACC. Used for economic profit.
    """

    effective_tax_rate: float | None
    tax_rate: float
    tax_rate_source: str
    risk_free_rate: float
    risk_free_rate_source: str
    market_risk_premium: float
    terminal_growth_rate: float
    noplat: float | None
    invested_capital: float | None
    enterprise_value: float | None
    net_debt: float | None
    free_cash_flow: float | None
    working_capital: float | None
    capital_employed: float | None
    book_value_per_share: float | None
    cost_of_equity: float | None
    cost_of_equity_source: str
    cost_of_debt: float | None
    wacc: float | None
    wacc_source: str
    hurdle_cost_of_equity: float
    hurdle_wacc: float


def effective_tax_rate(
    income_tax: float | None, pretax_income: float | None
) -> float | None:
    """Income tax / pretax income, None outside [0, 1] or for a pretax loss."""
    if pretax_income is None or pretax_income <= 0 or income_tax is None:
        return None
    rate = safe_divide(income_tax, pretax_income)
    if rate is None or not 0.0 <= rate <= 1.0:
        return None
    return rate


def _resolve_tax_rate(
    config: CalculatorConfig, effective: float | None
) -> tuple[float, str]:
    if config.tax_rate is not None:
        return config.tax_rate, "config"
    if effective is not None:
        return effective, "snapshot"
    return DEFAULT_TAX_RATE, "default"


def _resolve_risk_free_rate(
    config: CalculatorConfig, snapshot: RawSnapshot
) -> tuple[float, str]:
    if config.risk_free_rate is not None:
        return config.risk_free_rate, "config"
    treasury = finite_or_none(snapshot.macro.treasury_10y)
    if treasury is not None:
        # Macro yields are published in percent
        return treasury / 100.0, "macro"
    return DEFAULT_RISK_FREE_RATE, "default"


def derive_intermediates(
    snapshot: RawSnapshot, config: CalculatorConfig
) -> SharedIntermediates:
    """Derive every cross-category intermediate for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        config: Caller configuration.

    Returns:
        SharedIntermediates with resolved rates and derived aggregates.
    """
    f = snapshot.fundamentals

    eff_rate = effective_tax_rate(f.income_tax, f.pretax_income)
    tax_rate, tax_source = _resolve_tax_rate(config, eff_rate)
    rf, rf_source = _resolve_risk_free_rate(config, snapshot)
    logger.debug(
        "%s: tax rate %.4f (%s), risk-free rate %.4f (%s)",
        snapshot.symbol, tax_rate, tax_source, rf, rf_source,
    )

    noplat = safe_multiply(f.ebit, 1.0 - tax_rate)
    net_debt = safe_subtract(f.total_debt, f.cash)
    free_cash_flow = f.free_cash_flow
    if free_cash_flow is None and f.capital_expenditures is not None:
        free_cash_flow = safe_subtract(
            f.operating_cash_flow, abs(f.capital_expenditures)
        )
    invested_capital = safe_subtract(safe_add(f.total_equity, f.total_debt), f.cash)
    enterprise_value = safe_add(f.market_cap, net_debt)

    if config.cost_of_equity is not None:
        re: float | None = config.cost_of_equity
        re_source = "config"
    else:
        re = cost_of_equity(rf, f.beta, config.market_risk_premium)
        re_source = "capm" if re is not None else "unavailable"

    rd = cost_of_debt(f.interest_expense, f.total_debt)

    if config.wacc is not None:
        derived_wacc: float | None = config.wacc
        wacc_source = "config"
    else:
        derived_wacc = wacc(f.market_cap, f.total_debt, re, rd, tax_rate)
        wacc_source = "derived" if derived_wacc is not None else "unavailable"
        if derived_wacc is None:
            logger.debug("%s: WACC inputs incomplete, WACC set to None", snapshot.symbol)

    return SharedIntermediates(
        effective_tax_rate=eff_rate,
        tax_rate=tax_rate,
        tax_rate_source=tax_source,
        risk_free_rate=rf,
        risk_free_rate_source=rf_source,
        market_risk_premium=config.market_risk_premium,
        terminal_growth_rate=config.terminal_growth_rate,
        noplat=noplat,
        invested_capital=invested_capital,
        enterprise_value=enterprise_value,
        net_debt=net_debt,
        free_cash_flow=free_cash_flow,
        working_capital=safe_subtract(f.current_assets, f.current_liabilities),
        capital_employed=safe_subtract(f.total_assets, f.current_liabilities),
        book_value_per_share=safe_divide(f.total_equity, f.shares_outstanding),
        cost_of_equity=re,
        cost_of_equity_source=re_source,
        cost_of_debt=rd,
        wacc=derived_wacc,
        wacc_source=wacc_source,
        hurdle_cost_of_equity=re if re is not None else DEFAULT_COST_OF_EQUITY,
        hurdle_wacc=derived_wacc if derived_wacc is not None else DEFAULT_WACC,
    )
