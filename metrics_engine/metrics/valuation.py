"""Valuation multiples and per-share value anchors."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from metrics_engine.analysis.intermediates import SharedIntermediates
from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import finite_or_none, safe_divide, safe_subtract

logger = logging.getLogger(__name__)

GRAHAM_MULTIPLIER: float = 22.5

# FRED reports nominal GDP in billions of dollars.
GDP_UNIT: float = 1e9


@dataclass
class ValuationMetrics:
    """Valuation outputs.

    Attributes:
        pe: Provider P/E, else price / EPS when EPS > 0.
        forward_pe: As supplied.
        justified_pe: Payout / (cost of equity - g). None if cost of
            equity <= g.
        justified_pb: (ROE - g) / (cost of equity - g). None if cost of
            equity <= g.
        pb: Price / book value per share.
        ps: Market cap / revenue.
        pcf: Price / operating cash flow per share.
        enterprise_value: Market cap + net debt.
        ev_to_ebitda: None unless EBITDA > 0.
        ev_to_sales: EV / revenue.
        ev_to_ebit: EV / EBIT.
        dividend_yield: Provider yield, else |dividends| / market cap.
        peg: P/E / (EPS growth in percent). Needs P/E > 0 and growth > 0.
        earnings_yield: 1 / P/E.
        price_to_fcf: Market cap / free cash flow.
        ev_to_fcf: EV / free cash flow.
        ev_to_ocf: EV / operating cash flow.
        ev_to_invested_capital: EV / invested capital.
        ev_per_share: EV / shares outstanding.
        market_cap_to_gdp: Market cap / nominal GDP.
        tobins_q: Market cap / total assets (replacement cost proxy).
        graham_number: sqrt(22.5 x EPS x BVPS). Needs both positive.
        ncav_per_share: (Current assets - total liabilities) / shares.
    """

    pe: float | None
    forward_pe: float | None
    justified_pe: float | None
    justified_pb: float | None
    pb: float | None
    ps: float | None
    pcf: float | None
    enterprise_value: float | None
    ev_to_ebitda: float | None
    ev_to_sales: float | None
    ev_to_ebit: float | None
    dividend_yield: float | None
    peg: float | None
    earnings_yield: float | None
    price_to_fcf: float | None
    ev_to_fcf: float | None
    ev_to_ocf: float | None
    ev_to_invested_capital: float | None
    ev_per_share: float | None
    market_cap_to_gdp: float | None
    tobins_q: float | None
    graham_number: float | None
    ncav_per_share: float | None


def price_to_earnings(
    provider_pe: float | None, price: float | None, eps: float | None
) -> float | None:
    if provider_pe is not None:
        return provider_pe
    if eps is None or eps <= 0:
        return None
    return safe_divide(price, eps)


def peg_ratio(pe: float | None, eps_growth: float | None) -> float | None:
    """P/E divided by EPS growth expressed in percent."""
    if pe is None or pe <= 0 or eps_growth is None or eps_growth <= 0:
        return None
    return safe_divide(pe, eps_growth * 100.0)


def graham_number(eps: float | None, bvps: float | None) -> float | None:
    if eps is None or bvps is None or eps <= 0 or bvps <= 0:
        return None
    return finite_or_none(math.sqrt(GRAHAM_MULTIPLIER * eps * bvps))


def compute_valuation(
    snapshot: RawSnapshot,
    shared: SharedIntermediates,
    eps_growth: float | None = None,
    payout_ratio: float | None = None,
    roe: float | None = None,
) -> ValuationMetrics:
    """Compute valuation metrics for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        shared: Shared intermediates (EV, BVPS, hurdle cost of equity).
        eps_growth: Year-over-year EPS growth as a decimal.
        payout_ratio: Dividend payout ratio.
        roe: Return on equity.

    Returns:
        ValuationMetrics.
    """
    f = snapshot.fundamentals
    symbol = snapshot.symbol
    ev = shared.enterprise_value
    bvps = shared.book_value_per_share

    eps = f.eps if f.eps is not None else safe_divide(f.net_income, f.shares_outstanding)
    pe = price_to_earnings(f.pe, f.price, eps)

    re = shared.hurdle_cost_of_equity
    g = shared.terminal_growth_rate
    if re <= g:
        justified_pe = None
        justified_pb = None
        logger.debug(
            "%s: cost of equity %.4f does not exceed growth %.4f, "
            "justified multiples set to None",
            symbol, re, g,
        )
    else:
        justified_pe = safe_divide(payout_ratio, re - g)
        justified_pb = safe_divide(safe_subtract(roe, g), re - g)

    if f.ebitda is None or f.ebitda <= 0:
        ev_to_ebitda = None
        logger.debug("%s: EBITDA non-positive or missing, EV/EBITDA set to None", symbol)
    else:
        ev_to_ebitda = safe_divide(ev, f.ebitda)

    dividend_yield = f.dividend_yield
    if dividend_yield is None and f.dividends_paid is not None:
        dividend_yield = safe_divide(abs(f.dividends_paid), f.market_cap)

    gdp_dollars = None
    if f.market_cap is not None and snapshot.macro.nominal_gdp is not None:
        gdp_dollars = snapshot.macro.nominal_gdp * GDP_UNIT

    return ValuationMetrics(
        pe=pe,
        forward_pe=f.forward_pe,
        justified_pe=justified_pe,
        justified_pb=justified_pb,
        pb=safe_divide(f.price, bvps),
        ps=safe_divide(f.market_cap, f.revenue),
        pcf=safe_divide(
            f.price, safe_divide(f.operating_cash_flow, f.shares_outstanding)
        ),
        enterprise_value=ev,
        ev_to_ebitda=ev_to_ebitda,
        ev_to_sales=safe_divide(ev, f.revenue),
        ev_to_ebit=safe_divide(ev, f.ebit),
        dividend_yield=dividend_yield,
        peg=peg_ratio(pe, eps_growth),
        earnings_yield=safe_divide(1.0, pe),
        price_to_fcf=safe_divide(f.market_cap, shared.free_cash_flow),
        ev_to_fcf=safe_divide(ev, shared.free_cash_flow),
        ev_to_ocf=safe_divide(ev, f.operating_cash_flow),
        ev_to_invested_capital=safe_divide(ev, shared.invested_capital),
        ev_per_share=safe_divide(ev, f.shares_outstanding),
        market_cap_to_gdp=safe_divide(f.market_cap, gdp_dollars),
        tobins_q=safe_divide(f.market_cap, f.total_assets),
        graham_number=graham_number(eps, bvps),
        ncav_per_share=safe_divide(
            safe_subtract(f.current_assets, f.total_liabilities),
            f.shares_outstanding,
        ),
    )
