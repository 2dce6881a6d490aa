"""Snapshot loading orchestration."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from metrics_engine.data.fred import FredClient
from metrics_engine.data.loader import load_snapshot, snapshot_from_dict
from metrics_engine.data.models import (
    HistoricalSeries,
    MacroData,
    PriceHistory,
    RawSnapshot,
)

logger = logging.getLogger(__name__)

__all__ = [
    "HistoricalSeries",
    "MacroData",
    "PriceHistory",
    "RawSnapshot",
    "load_snapshot",
    "load_with_live_macro",
    "overlay_macro",
    "snapshot_from_dict",
]


def overlay_macro(base: MacroData, live: MacroData) -> MacroData:
    """Field-wise merge where every non-None live value wins."""
    updates = {
        f.name: getattr(live, f.name)
        for f in dataclasses.fields(live)
        if getattr(live, f.name) is not None
    }
    return dataclasses.replace(base, **updates)


def load_with_live_macro(
    path: str | Path, client: FredClient | None = None
) -> RawSnapshot:
    """Load a snapshot file, then update its macro section from FRED.

    Loading sequence:
        1. Read and validate the snapshot JSON.
        2. Fetch the latest macro series (when a client is given).
        3. Overlay live values onto the file's macro section.

    Series FRED cannot supply keep the file's values.

    Args:
        path: Snapshot JSON path.
        client: FRED client. None skips the live fetch.

    Returns:
        RawSnapshot.
    """
    snapshot = load_snapshot(path)
    if client is None:
        return snapshot

    live = client.fetch_macro_data()
    merged = overlay_macro(snapshot.macro, live)
    if merged.treasury_10y is not None:
        logger.info("%s: live 10Y treasury %.2f%%", snapshot.symbol, merged.treasury_10y)
    else:
        logger.info("%s: no 10Y treasury available, default risk-free rate applies", snapshot.symbol)
    return dataclasses.replace(snapshot, macro=merged)
