"""Cash flow metrics."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import safe_add, safe_divide, safe_subtract

logger = logging.getLogger(__name__)


@dataclass
class CashFlowMetrics:
    """Cash flow outputs.

    Capital expenditures and dividends are reported negative by most
    vendors. Formulas that treat them as outflows use their magnitude.

    Attributes:
        operating_cash_flow: As reported.
        investing_cash_flow: As reported.
        financing_cash_flow: As reported.
        free_cash_flow: As reported, else OCF - |capex|.
        fcff: NOPLAT - |capex|.
        fcfe: Free cash flow to equity (reported free cash flow).
        cash_flow_adequacy: OCF / (|capex| + |short-term debt| + |dividends|).
        reinvestment_ratio: Capex / OCF.
        fcf_margin: FCF / revenue.
        fcf_yield: FCF / market cap.
        fcf_to_debt: FCF / total debt.
        fcf_to_equity: FCF / total equity.
        ocf_margin: OCF / revenue.
        capex_to_revenue: |Capex| / revenue.
        capex_to_depreciation: |Capex| / (EBITDA - EBIT). None unless
            the implied depreciation is positive.
        cash_generation_efficiency: OCF / net income.
    """

    operating_cash_flow: float | None
    investing_cash_flow: float | None
    financing_cash_flow: float | None
    free_cash_flow: float | None
    fcff: float | None
    fcfe: float | None
    cash_flow_adequacy: float | None
    reinvestment_ratio: float | None
    fcf_margin: float | None
    fcf_yield: float | None
    fcf_to_debt: float | None
    fcf_to_equity: float | None
    ocf_margin: float | None
    capex_to_revenue: float | None
    capex_to_depreciation: float | None
    cash_generation_efficiency: float | None


def _magnitude(value: float | None) -> float | None:
    return None if value is None else abs(value)


def compute_cash_flow(
    snapshot: RawSnapshot, shared: SharedIntermediates
) -> CashFlowMetrics:
    """Compute cash flow metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Shared intermediates (NOPLAT, free cash flow).

    Returns:
        CashFlowMetrics.
    """
    f = snapshot.fundamentals
    symbol = snapshot.symbol
    capex = _magnitude(f.capital_expenditures)

    fcf = shared.free_cash_flow

    # Missing short-term debt or dividends means no such obligation
    obligations = safe_add(
        capex,
        _magnitude(f.short_term_debt) or 0.0,
        _magnitude(f.dividends_paid) or 0.0,
    )
    adequacy = None
    if obligations is not None and obligations > 0:
        adequacy = safe_divide(f.operating_cash_flow, obligations)

    depreciation = safe_subtract(f.ebitda, f.ebit)
    if depreciation is None or depreciation <= 0:
        capex_to_depreciation = None
        logger.debug("%s: implied depreciation unusable, capex/depreciation set to None", symbol)
    else:
        capex_to_depreciation = safe_divide(capex, depreciation)

    revenue = f.revenue if f.revenue is not None and f.revenue > 0 else None

    return CashFlowMetrics(
        operating_cash_flow=f.operating_cash_flow,
        investing_cash_flow=f.investing_cash_flow,
        financing_cash_flow=f.financing_cash_flow,
        free_cash_flow=fcf,
        fcff=safe_subtract(shared.noplat, capex),
        fcfe=fcf,
        cash_flow_adequacy=adequacy,
        reinvestment_ratio=safe_divide(capex, f.operating_cash_flow),
        fcf_margin=safe_divide(fcf, revenue),
        fcf_yield=safe_divide(fcf, f.market_cap),
        fcf_to_debt=safe_divide(fcf, f.total_debt),
        fcf_to_equity=safe_divide(fcf, f.total_equity),
        ocf_margin=safe_divide(f.operating_cash_flow, revenue),
        capex_to_revenue=safe_divide(capex, revenue),
        capex_to_depreciation=capex_to_depreciation,
        cash_generation_efficiency=safe_divide(f.operating_cash_flow, f.net_income),
    )
