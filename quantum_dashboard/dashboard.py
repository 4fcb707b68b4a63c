"""
Dashboard-ready output functions.

These are the entry points the HTTP layer calls. Each returns plain dicts
and lists ready for JSON rendering.
"""

import logging
from collections.abc import Iterable

import pandas as pd

from .cache import QuantumCache
from .config import UNITS
from .errors import InvalidRequestError
from .filters import available_days, sort_shifts
from .kpis import get_quantum_data
from .loaders import BlobStore, frame_to_records, load_unit
from .trends import build_trend

logger = logging.getLogger(__name__)

DASHBOARD_MODE = "dashboard"


def _check_unit(unit: str | None) -> str | None:
    if unit is None or not unit.strip():
        return None
    unit = unit.strip()
    if unit not in UNITS:
        raise InvalidRequestError(f"Invalid unit '{unit}'", context={"units": list(UNITS)})
    return unit


def get_live_view(
    cache: QuantumCache,
    date: str | None = None,
    shift: str | None = None,
    unit: str | None = None,
    machine: str | None = None,
    mode: str | None = None,
) -> list[dict]:
    """Per-unit aggregates for the live screens.

    With no filters and no mode the view precomputed at the last refresh is
    returned as is.
    """
    unit = _check_unit(unit)
    dashboard = mode == DASHBOARD_MODE

    if date or shift or unit or machine or dashboard:
        state = cache.ensure_loaded()
        return get_quantum_data(state.units, date, shift, unit, machine, dashboard)

    live_view = cache.state.live_view
    if live_view is None:
        state = cache.ensure_loaded()
        live_view = state.live_view
        if live_view is None:
            return get_quantum_data(state.units)
    return list(live_view)


def _distinct(values: Iterable[pd.Series]) -> list[str]:
    found: set[str] = set()
    for series in values:
        found.update(series.dropna().unique())
    return sorted(found)


def get_available_filters(cache: QuantumCache, unit: str | None = None) -> dict:
    """Distinct filter values across the cached rows.

    Returns
    -------
    Dict with keys: dates (most recent first), shifts, units, machines,
    articles, articleNames, lotIds.
    """
    state = cache.ensure_loaded()
    unit = unit.strip() if unit else None
    if unit in state.units:
        tables = [state.units[unit].measures]
    else:
        tables = [snapshot.measures for snapshot in state.units.values()]
    tables = [t for t in tables if not t.empty]

    return {
        "dates": available_days(tables),
        "shifts": sort_shifts(_distinct(t["shift"] for t in tables), descending=False),
        "units": list(UNITS),
        "machines": _distinct(t["machine"] for t in tables),
        "articles": _distinct(t["article"] for t in tables),
        "articleNames": _distinct(t["article_name"] for t in tables),
        "lotIds": _distinct(t["lot"] for t in tables),
    }


def get_unit_rows(store: BlobStore, unit: str) -> list[dict]:
    """Raw rows of one unit, downloaded fresh rather than read from the cache."""
    unit = _check_unit(unit)
    if unit is None:
        raise InvalidRequestError("Invalid unit ''", context={"units": list(UNITS)})
    return frame_to_records(load_unit(store, unit))


def split_filter_values(values: Iterable[str] | str | None) -> list[str] | None:
    """Flatten repeated and comma-separated filter values."""
    if values is None:
        return None
    if isinstance(values, str):
        values = [values]
    flattened = [part.strip() for value in values for part in value.split(",")]
    flattened = [part for part in flattened if part]
    return flattened or None


def get_trend(
    cache: QuantumCache,
    group: str | None,
    first_column: str | None,
    parameter: str | None,
    unit: str | None = None,
    filter_values: Iterable[str] | str | None = None,
) -> dict:
    """Trend series for the trend screen; see trends.build_trend."""
    if not first_column or not parameter:
        raise InvalidRequestError("firstColumn and parameter are required")

    state = cache.ensure_loaded()
    return build_trend(
        state.units,
        group,
        first_column,
        parameter,
        unit=unit.strip() if unit else None,
        wanted_labels=split_filter_values(filter_values),
    )
