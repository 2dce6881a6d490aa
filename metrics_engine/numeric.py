"""Null-safe numeric primitives shared by every metric module.

Absence is always represented by None. No function here raises for a
missing or mathematically unusable operand, and none returns NaN or an
infinity.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

import numpy as np


def finite_or_none(value: object) -> float | None:
    """Coerce a scalar to a finite float.

    Args:
        value: Scalar value (may be None, NaN, a numpy scalar, or non-numeric).

    Returns:
        Finite float, or None on any failure.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f):
        return None
    return f


def safe_divide(numerator: float | None, denominator: float | None) -> float | None:
    """Divide, returning None for an absent operand, a zero denominator
    or a non-finite result."""
    if numerator is None or denominator is None or denominator == 0:
        return None
    return finite_or_none(numerator / denominator)


def safe_multiply(*values: float | None) -> float | None:
    """Product of all operands, None if any is absent."""
    if not values or any(v is None for v in values):
        return None
    return finite_or_none(math.prod(values))  # type: ignore[arg-type]


def safe_add(*values: float | None) -> float | None:
    """Sum of all operands, None if any is absent."""
    if not values or any(v is None for v in values):
        return None
    return finite_or_none(math.fsum(values))  # type: ignore[arg-type]


def safe_subtract(a: float | None, b: float | None) -> float | None:
    if a is None or b is None:
        return None
    return finite_or_none(a - b)


def percentage_change(current: float | None, previous: float | None) -> float | None:
    """Relative change ``(current - previous) / |previous|``.

    Dividing by the magnitude keeps the sign meaningful when the
    previous value is negative (a loss shrinking is positive growth).
    """
    if current is None or previous is None or previous == 0:
        return None
    return finite_or_none((current - previous) / abs(previous))


def compound_annual_growth_rate(
    end: float | None, start: float | None, years: float
) -> float | None:
    """CAGR ``(end / start) ** (1 / years) - 1``.

    Args:
        end: Value at the end of the period.
        start: Value at the start of the period. Must be positive.
        years: Number of years between start and end.

    Returns:
        Annualised growth rate, or None if start <= 0, end is absent,
        years <= 0, or the ratio is negative (no real root).
    """
    if end is None or start is None or start <= 0 or years <= 0:
        return None
    ratio = end / start
    if ratio < 0:
        return None
    return finite_or_none(ratio ** (1.0 / years) - 1.0)


def _present(values: Iterable[float | None]) -> list[float]:
    return [v for v in values if v is not None and math.isfinite(v)]


def mean(values: Iterable[float | None]) -> float | None:
    clean = _present(values)
    if not clean:
        return None
    return finite_or_none(np.mean(clean))


def variance(values: Iterable[float | None]) -> float | None:
    """Population variance of the present values."""
    clean = _present(values)
    if not clean:
        return None
    return finite_or_none(np.var(clean))


def standard_deviation(values: Iterable[float | None]) -> float | None:
    """Population standard deviation of the present values."""
    clean = _present(values)
    if not clean:
        return None
    return finite_or_none(np.std(clean))


def downside_deviation(returns: Iterable[float | None]) -> float | None:
    """Standard deviation computed over the negative returns only.

    Returns:
        Population std of the negative returns, or None if fewer than
        two negative returns exist.
    """
    negatives = [r for r in _present(returns) if r < 0]
    if len(negatives) < 2:
        return None
    return finite_or_none(np.std(negatives))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def linear_rescale(value: float | None, lo: float, hi: float) -> float | None:
    """Clamp ``value`` to ``[lo, hi]`` and map it linearly onto 0-100.

    Args:
        value: Raw metric value.
        lo: Value mapped to 0.
        hi: Value mapped to 100.

    Returns:
        Score in [0, 100], or None if value is absent or the range is empty.
    """
    if value is None or not math.isfinite(value) or hi <= lo:
        return None
    clamped = clamp(value, lo, hi)
    return (clamped - lo) / (hi - lo) * 100.0


def weighted_average(
    values: Sequence[float | None], weights: Sequence[float]
) -> float | None:
    """Weighted mean over the present values, weights renormalised to 1.

    Pairs whose value is absent are dropped and the remaining weights
    are rescaled so they sum to one.

    Args:
        values: Component values, each possibly None.
        weights: Weight per component, same length as values.

    Returns:
        Weighted average, or None if no values remain or the remaining
        weights sum to zero.
    """
    if len(values) != len(weights):
        raise ValueError(
            f"values and weights differ in length ({len(values)} vs {len(weights)})"
        )
    pairs = [
        (v, w) for v, w in zip(values, weights)
        if v is not None and math.isfinite(v)
    ]
    if not pairs:
        return None
    total_weight = math.fsum(w for _, w in pairs)
    if total_weight == 0:
        return None
    return finite_or_none(math.fsum(v * w for v, w in pairs) / total_weight)
