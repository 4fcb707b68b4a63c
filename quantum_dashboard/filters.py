"""
Filter resolution: pure functions with no side effects.

Works out which calendar day and shift a live view shows when the caller
leaves them open, and narrows a unit's measure table to that selection.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import pandas as pd

from .config import ALL_SHIFTS, MIN_YARN_LENGTH

logger = logging.getLogger(__name__)

NO_SHIFT = "All"


@dataclass(frozen=True)
class FilterSelection:
    """Effective filters for one live-view request."""

    target_date: str | None
    target_shift: str | None
    latest_shift: str
    machine: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def available_days(measures: Iterable[pd.DataFrame]) -> list[str]:
    """Distinct row days across all tables, most recent first."""
    found: set[str] = set()
    for table in measures:
        if table.empty:
            continue
        found.update(d for d in table["day"].dropna().unique())
    return sorted(found, reverse=True)


def default_day(days_desc: list[str], dashboard: bool = False) -> str | None:
    """Pick the default day from a most-recent-first list.

    The dashboard shows the last complete day, i.e. the second most recent
    one, falling back to the most recent when only one exists.
    """
    if not days_desc:
        return None
    if dashboard and len(days_desc) > 1:
        return days_desc[1]
    return days_desc[0]


def _shift_key(label: str) -> tuple:
    try:
        return (1, float(label), label)
    except ValueError:
        return (0, 0.0, label)


def sort_shifts(shifts: Iterable[str], descending: bool = True) -> list[str]:
    """Order shift labels numerically, non-numeric labels after numbers."""
    return sorted(set(shifts), key=_shift_key, reverse=descending)


def latest_shift(measures: Iterable[pd.DataFrame], day: str) -> str | None:
    """Highest shift recorded on ``day`` across all tables."""
    shifts: set[str] = set()
    for table in measures:
        if table.empty:
            continue
        on_day = table.loc[table["day"] == day, "shift"].dropna()
        shifts.update(on_day.unique())
    ordered = sort_shifts(shifts)
    return ordered[0] if ordered else None


def resolve_filters(
    measures: Iterable[pd.DataFrame],
    date_filter: str | None = None,
    shift_filter: str | None = None,
    machine_filter: str | None = None,
    dashboard: bool = False,
) -> FilterSelection:
    """Compute the effective day/shift/machine selection.

    Parameters
    ----------
    measures : Measure tables used for default discovery (one unit when a
        unit filter is set, every unit otherwise).
    date_filter : ``YYYY-MM-DD``; defaults to the latest day (or the day
        before it in dashboard mode).
    shift_filter : Shift label, ``"all"`` for no shift narrowing, or None to
        default to the latest shift of the target day.
    machine_filter : Exact machine name.
    dashboard : Enables the previous-day default.
    """
    tables = list(measures)
    target_date = _clean(date_filter)
    shift_filter = _clean(shift_filter)

    if target_date is None:
        target_date = default_day(available_days(tables), dashboard)

    latest = latest_shift(tables, target_date) if target_date else None

    if shift_filter is not None and shift_filter.lower() == ALL_SHIFTS:
        target_shift = None
    elif shift_filter is not None:
        target_shift = shift_filter
    else:
        target_shift = latest

    selection = FilterSelection(
        target_date=target_date,
        target_shift=target_shift,
        latest_shift=latest or NO_SHIFT,
        machine=_clean(machine_filter),
    )
    logger.debug("Resolved filters: %s", selection)
    return selection


def apply_filters(table: pd.DataFrame, selection: FilterSelection) -> pd.DataFrame:
    """Rows of one measure table matching the selection.

    Undated rows and rows shorter than MIN_YARN_LENGTH never match.
    """
    if table.empty:
        return table

    mask = table["day"].notna() & (table["yarn_length"] >= MIN_YARN_LENGTH)
    if selection.target_date is not None:
        mask &= table["day"] == selection.target_date
    if selection.target_shift is not None:
        mask &= table["shift"] == selection.target_shift
    if selection.machine is not None:
        mask &= table["machine"] == selection.machine
    return table[mask]
