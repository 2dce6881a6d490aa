"""DuPont decomposition of return on equity.

The three-factor form is net margin x asset turnover x equity multiplier.
The five-factor form splits net margin into tax burden, interest burden
and EBIT margin. Both reduce algebraically to net income / equity, which
is exposed as ``ratio_roe`` so the identity can be checked.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from metrics_engine.data.models import RawSnapshot
from metrics_engine.numeric import safe_divide, safe_multiply

logger = logging.getLogger(__name__)

IDENTITY_REL_TOL: float = 1e-9


@dataclass
class DuPontMetrics:
    """DuPont outputs.

    Attributes:
        net_profit_margin: Net income / revenue.
        asset_turnover: Revenue / total assets.
        equity_multiplier: Total assets / total equity.
        roe: net_profit_margin x asset_turnover x equity_multiplier.
        operating_margin: Operating income / revenue.
        tax_burden: Net income / pretax income.
        interest_burden: Pretax income / EBIT.
        ebit_margin: EBIT / revenue.
        five_factor_roe: Product of the five factors.
        ratio_roe: Net income / total equity, computed directly.
        dupont_identity_holds: True if the three-factor ROE matches
            ratio_roe within IDENTITY_REL_TOL. None if either is absent.
    """

    net_profit_margin: float | None
    asset_turnover: float | None
    equity_multiplier: float | None
    roe: float | None
    operating_margin: float | None
    tax_burden: float | None
    interest_burden: float | None
    ebit_margin: float | None
    five_factor_roe: float | None
    ratio_roe: float | None
    dupont_identity_holds: bool | None


def compute_dupont(snapshot: RawSnapshot) -> DuPontMetrics:
    """Compute the three- and five-factor DuPont decomposition."""
    f = snapshot.fundamentals

    net_margin = safe_divide(f.net_income, f.revenue)
    asset_turnover = safe_divide(f.revenue, f.total_assets)
    equity_multiplier = safe_divide(f.total_assets, f.total_equity)
    roe = safe_multiply(net_margin, asset_turnover, equity_multiplier)

    tax_burden = safe_divide(f.net_income, f.pretax_income)
    interest_burden = safe_divide(f.pretax_income, f.ebit)
    ebit_margin = safe_divide(f.ebit, f.revenue)
    five_factor = safe_multiply(
        tax_burden, interest_burden, ebit_margin, asset_turnover, equity_multiplier
    )

    ratio_roe = safe_divide(f.net_income, f.total_equity)

    identity = None
    if roe is not None and ratio_roe is not None:
        identity = math.isclose(roe, ratio_roe, rel_tol=IDENTITY_REL_TOL, abs_tol=1e-12)
        if not identity:
            logger.warning(
                "%s: DuPont ROE %.6f differs from ratio ROE %.6f",
                snapshot.symbol, roe, ratio_roe,
            )

    return DuPontMetrics(
        net_profit_margin=net_margin,
        asset_turnover=asset_turnover,
        equity_multiplier=equity_multiplier,
        roe=roe,
        operating_margin=safe_divide(f.operating_income, f.revenue),
        tax_burden=tax_burden,
        interest_burden=interest_burden,
        ebit_margin=ebit_margin,
        five_factor_roe=five_factor,
        ratio_roe=ratio_roe,
        dupont_identity_holds=identity,
    )
