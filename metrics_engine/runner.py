"""Calculation orchestrator.

Runs every metric category for one snapshot and assembles an
AggregateResult. The snapshot is read, never modified.
"""

from __future__ import annotations

import logging

from metrics_engine.analysis.dcf import compute_dcf
from metrics_engine.analysis.intermediates import derive_intermediates
from metrics_engine.analysis.scoring import compute_scores
from metrics_engine.config import CalculatorConfig
from metrics_engine.data.contracts import AggregateResult
from metrics_engine.data.models import RawSnapshot
from metrics_engine.metrics.cashflow import compute_cash_flow
from metrics_engine.metrics.dupont import compute_dupont
from metrics_engine.metrics.efficiency import compute_efficiency
from metrics_engine.metrics.growth import compute_growth
from metrics_engine.metrics.industry import compute_industry
from metrics_engine.metrics.leverage import compute_leverage
from metrics_engine.metrics.liquidity import compute_liquidity
from metrics_engine.metrics.macro import compute_macro
from metrics_engine.metrics.other import compute_other
from metrics_engine.metrics.profitability import compute_profitability
from metrics_engine.metrics.risk import compute_risk
from metrics_engine.metrics.technical import compute_technical
from metrics_engine.metrics.valuation import compute_valuation

logger = logging.getLogger(__name__)


def calculate_all(
    snapshot: RawSnapshot, config: CalculatorConfig | None = None
) -> AggregateResult:
    """Compute every metric category for one snapshot.

    Args:
        snapshot: Raw input snapshot.
        config: Calculation parameters. Defaults apply when omitted.

    Returns:
        AggregateResult. Metrics whose inputs are missing or unusable
        are None; the call itself does not fail for missing data.
    """
    # Step 1: Resolve configuration.
    if config is None:
        config = CalculatorConfig()
    symbol = snapshot.symbol

    # Step 2: Derive shared intermediates once.
    shared = derive_intermediates(snapshot, config)
    logger.info(
        "%s: tax rate %.3f (%s), risk-free %.4f (%s), WACC %s (%s)",
        symbol,
        shared.tax_rate, shared.tax_rate_source,
        shared.risk_free_rate, shared.risk_free_rate_source,
        "n/a" if shared.wacc is None else f"{shared.wacc:.4f}",
        shared.wacc_source,
    )

    # Step 3: Macro environment.
    macro = compute_macro(snapshot.macro)

    # Step 4: Fundamental categories. Growth, valuation and other read
    # values produced by profitability and growth.
    liquidity = compute_liquidity(snapshot, shared)
    leverage = compute_leverage(snapshot, shared)
    efficiency = compute_efficiency(snapshot, shared)
    profitability = compute_profitability(snapshot, shared)
    dupont = compute_dupont(snapshot)
    growth = compute_growth(snapshot, roe=profitability.roe, roa=profitability.roa)
    cash_flow = compute_cash_flow(snapshot, shared)
    valuation = compute_valuation(
        snapshot,
        shared,
        eps_growth=growth.eps_growth_yoy,
        payout_ratio=growth.payout_ratio,
        roe=profitability.roe,
    )
    other = compute_other(snapshot, shared, roic=profitability.roic)
    logger.info("%s: fundamental categories computed", symbol)

    # Step 5: Industry position, relative to the company's own ratios.
    industry = compute_industry(
        snapshot,
        pe=valuation.pe,
        pb=valuation.pb,
        roe=profitability.roe,
        gross_margin=profitability.gross_margin,
    )

    # Step 6: Price-history statistics.
    risk = compute_risk(snapshot, shared)
    technical = compute_technical(snapshot)
    logger.info("%s: risk and technical computed from %d bars", symbol, len(snapshot.prices))

    # Step 7: DCF. The multi-stage variant starts from the 3-year revenue
    # CAGR, else the latest year-over-year revenue growth.
    dcf_growth = growth.revenue_3y_cagr
    if dcf_growth is None:
        dcf_growth = growth.revenue_growth_yoy
    dcf = compute_dcf(snapshot, shared, config, growth_rate=dcf_growth)

    # Step 8: Scores.
    scores = compute_scores(
        profitability=profitability,
        growth=growth,
        valuation=valuation,
        risk=risk,
        liquidity=liquidity,
        leverage=leverage,
        efficiency=efficiency,
        technical=technical,
        policy=config.total_score_policy,
    )
    logger.info(
        "%s: total score %s (%s)",
        symbol,
        "n/a" if scores.total_score is None else f"{scores.total_score:.1f}",
        scores.total_score_label,
    )

    # Assemble results.
    return AggregateResult(
        symbol=symbol,
        company_name=snapshot.company_name,
        sector=snapshot.resolved_sector,
        industry=snapshot.resolved_industry,
        timestamp=snapshot.timestamp,
        intermediates=shared,
        macro=macro,
        industry_metrics=industry,
        liquidity=liquidity,
        leverage=leverage,
        efficiency=efficiency,
        profitability=profitability,
        dupont=dupont,
        growth=growth,
        cash_flow=cash_flow,
        valuation=valuation,
        dcf=dcf,
        risk=risk,
        technical=technical,
        scores=scores,
        other=other,
    )
