"""JSON snapshot loading.

A snapshot file is a JSON object with ``symbol`` and optional
``timestamp``, ``company_name``, ``sector``, ``industry_name``,
``fundamentals``, ``previous_year``, ``history``, ``prices``, ``macro``
and ``industry`` sections. Keys inside each section use the field names
of the corresponding data model. Historical arrays are most-recent-first;
price bars may be in any order and are sorted on load.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from metrics_engine.data.models import (
    Competitor,
    FundamentalData,
    HistoricalArrays,
    HistoricalSeries,
    IndustryData,
    MacroData,
    PriceHistory,
    RawSnapshot,
)

logger = logging.getLogger(__name__)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"snapshot section '{key}' must be an object")
    return value


def _known_fields(cls: type, section: Mapping[str, Any], name: str) -> dict[str, Any]:
    """Keep keys that are fields of ``cls``; warn about the rest."""
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(section) - names)
    if unknown:
        logger.warning("%s: ignoring unknown keys %s", name, unknown)
    return {k: v for k, v in section.items() if k in names}


def _parse_timestamp(raw: Any) -> datetime:
    if raw is None:
        return datetime.now(timezone.utc)
    if not isinstance(raw, str):
        raise ValueError(f"timestamp must be an ISO-8601 string, got {raw!r}")
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"invalid timestamp {raw!r}") from e


def _history(section: Mapping[str, Any]) -> HistoricalArrays:
    arrays = _known_fields(HistoricalArrays, section, "history")
    series: dict[str, HistoricalSeries] = {}
    for name, values in arrays.items():
        if not isinstance(values, list):
            raise ValueError(f"history '{name}' must be a list")
        series[name] = HistoricalSeries.from_most_recent_first(values)
    return HistoricalArrays(**series)


def _industry(section: Mapping[str, Any]) -> IndustryData:
    values = _known_fields(IndustryData, section, "industry")
    raw_competitors = values.pop("competitors", None) or []
    if not isinstance(raw_competitors, list):
        raise ValueError("industry 'competitors' must be a list")
    competitors = tuple(
        Competitor(symbol=str(c.get("symbol", "")), revenue=c.get("revenue"))
        for c in raw_competitors
        if isinstance(c, Mapping)
    )
    return IndustryData(competitors=competitors, **values)


def snapshot_from_dict(data: Mapping[str, Any]) -> RawSnapshot:
    """Build a RawSnapshot from a decoded JSON object.

    Args:
        data: Decoded snapshot document.

    Returns:
        RawSnapshot.

    Raises:
        ValueError: If the document or one of its sections has the
            wrong shape, or the price history cannot be ordered.
    """
    if not isinstance(data, Mapping):
        raise ValueError("snapshot must be a JSON object")
    symbol = data.get("symbol")
    if not symbol or not isinstance(symbol, str):
        raise ValueError("snapshot requires a 'symbol' string")

    previous = data.get("previous_year")
    previous_year = None
    if previous is not None:
        previous_year = FundamentalData(
            **_known_fields(FundamentalData, _section(data, "previous_year"), "previous_year")
        )

    raw_prices = data.get("prices") or []
    if not isinstance(raw_prices, list):
        raise ValueError("snapshot 'prices' must be a list of bars")

    snapshot = RawSnapshot(
        symbol=symbol,
        timestamp=_parse_timestamp(data.get("timestamp")),
        fundamentals=FundamentalData(
            **_known_fields(FundamentalData, _section(data, "fundamentals"), "fundamentals")
        ),
        history=_history(_section(data, "history")),
        prices=PriceHistory.from_records(b for b in raw_prices if isinstance(b, Mapping)),
        macro=MacroData(**_known_fields(MacroData, _section(data, "macro"), "macro")),
        industry=_industry(_section(data, "industry")),
        previous_year=previous_year,
        company_name=data.get("company_name"),
        sector=data.get("sector"),
        industry_name=data.get("industry_name"),
    )
    logger.info(
        "%s: loaded snapshot with %d price bars, %d revenue periods",
        symbol, len(snapshot.prices), len(snapshot.history.revenue),
    )
    return snapshot


def load_snapshot(path: str | Path) -> RawSnapshot:
    """Read a snapshot JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not valid JSON or has the wrong shape.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"{path}: invalid JSON: {e}") from e
    return snapshot_from_dict(data)
