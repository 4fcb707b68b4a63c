"""
KPI computation functions: pure functions with no side effects.

Rolls filtered measure rows up into unit → article → machine aggregates.
Every level is built by the same routine over a narrower row subset, so cut
rates, quality values and alarm counts use identical formulas throughout.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

import pandas as pd

from .config import (
    ALARM_COLUMNS,
    ALARMS_PER_KM,
    AVERAGE_QUALITY_COLUMNS,
    CUT_COLUMNS,
    CUTS_PER_KM,
    QUALITY_COLUMNS,
    UNITS,
    UNKNOWN_LABEL,
)
from .filters import NO_SHIFT, FilterSelection, apply_filters, resolve_filters
from .transforms import build_row_measures

if TYPE_CHECKING:
    from .cache import UnitSnapshot

logger = logging.getLogger(__name__)

# Grouping keys below the unit level, outermost first
HIERARCHY = ("article", "machine")

ZERO_RATE = "0.00"


def to_fixed(value: float) -> str:
    """Format with two decimals, rounding halves away from zero."""
    rounded = Decimal(float(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    # no "-0.00"
    return str(abs(rounded) if rounded == 0 else rounded)


def as_count(value: float) -> int | float:
    """Sums of integer counters come back from pandas as floats."""
    value = float(value)
    return int(value) if value.is_integer() else value


@dataclass
class MetricAccumulator:
    """Running totals behind every rate: value sum, row count, denominators."""

    sum: float = 0.0
    count: int = 0
    ref_length: float = 0.0
    yarn_length: float = 0.0

    def mean(self) -> str:
        return to_fixed(self.sum / self.count) if self.count > 0 else ZERO_RATE

    def per_ref_length(self) -> str:
        return to_fixed(self.sum / self.ref_length) if self.ref_length > 0 else ZERO_RATE

    def per_100km(self) -> str:
        if self.yarn_length <= 0:
            return ZERO_RATE
        return to_fixed(self.sum / self.yarn_length * CUTS_PER_KM)

    def quality(self, column: str) -> str:
        """Average-type columns are means, the rest are per reference length."""
        if column in AVERAGE_QUALITY_COLUMNS:
            return self.mean()
        return self.per_ref_length()


def accumulate(rows: pd.DataFrame, column: str) -> MetricAccumulator:
    """Totals of one measure column over a row subset."""
    if rows.empty:
        return MetricAccumulator()
    return MetricAccumulator(
        sum=float(rows[column].sum()),
        count=len(rows),
        ref_length=float(rows["ref_length"].sum()),
        yarn_length=float(rows["yarn_length"].sum()),
    )


@dataclass
class Aggregate:
    """Metrics for one unit, article or machine and its children."""

    label: str
    row_count: int
    yarn_length: float
    cuts: dict[str, MetricAccumulator]
    quality: dict[str, MetricAccumulator]
    alarm_breakdown: dict[str, int | float]
    children: list["Aggregate"] = field(default_factory=list)

    @property
    def total_alarms(self) -> int | float:
        return as_count(sum(self.alarm_breakdown.values()))

    def cut_rates(self) -> dict[str, str]:
        return {col: acc.per_100km() for col, acc in self.cuts.items()}

    def quality_values(self) -> dict[str, str]:
        return {col: acc.quality(col) for col, acc in self.quality.items()}


def build_aggregate(rows: pd.DataFrame, label: str, levels: tuple[str, ...] = HIERARCHY) -> Aggregate:
    """Aggregate ``rows`` and, recursively, each group along ``levels``.

    Children are ordered by first appearance in ``rows``; rows without a
    label for a level are grouped under "Unknown".
    """
    children = []
    if levels and not rows.empty:
        key, rest = levels[0], levels[1:]
        keys = rows[key].where(rows[key].notna(), UNKNOWN_LABEL)
        for child_label, child_rows in rows.groupby(keys, sort=False):
            children.append(build_aggregate(child_rows, str(child_label), rest))

    return Aggregate(
        label=label,
        row_count=len(rows),
        yarn_length=float(rows["yarn_length"].sum()) if not rows.empty else 0.0,
        cuts={col: accumulate(rows, col) for col in CUT_COLUMNS},
        quality={col: accumulate(rows, col) for col in QUALITY_COLUMNS},
        alarm_breakdown={
            col: as_count(rows[col].sum()) if not rows.empty else 0 for col in ALARM_COLUMNS
        },
        children=children,
    )


def _level_view(agg: Aggregate, name_key: str) -> dict:
    return {
        name_key: agg.label,
        **agg.cut_rates(),
        **agg.quality_values(),
        "totalAlarms": agg.total_alarms,
        "alarmBreakdown": dict(agg.alarm_breakdown),
    }


def machine_view(agg: Aggregate) -> dict:
    return _level_view(agg, "machineName")


def article_view(agg: Aggregate) -> dict:
    view = _level_view(agg, "articleNumber")
    view["machines"] = [machine_view(child) for child in agg.children]
    return view


def empty_unit_view(unit: str) -> dict:
    """View for a unit whose export holds no rows at all."""
    return {
        "unit": unit,
        "yarnFaults": "N/A",
        "shiftStartTime": None,
        "articles": [],
        "latestShift": NO_SHIFT,
    }


def unit_view(
    unit: str,
    rows: pd.DataFrame,
    selection: FilterSelection,
) -> dict:
    """Unit-level summary of already filtered rows.

    Returns
    -------
    Dict with structure:
    {
        "unit": "U-1",
        "yarnFaults": "0.33",            # faults per 100 km
        "totalAlarms": 12,
        "alarmsPer1000km": "1.20",
        "alarmBreakdown": {"NSABlks": 3, ...},
        "totalCuts": 40,
        "cutsPer100km": "2.67",
        "unitCuts": {"YarnFaults": "0.33", ...},
        "unitQuality": {"Thin50": "0.01", ..., "IPI": "0.05", "HSIPI": "0.12"},
        "shiftStartTime": "2024-01-03",
        "shiftNumber": "3",
        "latestShift": "3",
        "articles": [...],
    }
    """
    agg = build_aggregate(rows, unit)
    total_length = agg.yarn_length
    total_alarms = agg.total_alarms
    total_cuts = as_count(rows["total_cuts"].sum()) if not rows.empty else 0

    yarn_faults: str | int = 0
    alarms_rate: str | int = 0
    cuts_rate: str | int = 0
    if total_length > 0:
        yarn_faults = to_fixed(float(rows["YarnFaults"].sum()) / total_length * CUTS_PER_KM)
        alarms_rate = to_fixed(total_alarms / total_length * ALARMS_PER_KM)
        cuts_rate = to_fixed(total_cuts / total_length * CUTS_PER_KM)

    return {
        "unit": unit,
        "yarnFaults": yarn_faults,
        "totalAlarms": total_alarms,
        "alarmsPer1000km": alarms_rate,
        "alarmBreakdown": dict(agg.alarm_breakdown),
        "totalCuts": total_cuts,
        "cutsPer100km": cuts_rate,
        "unitCuts": agg.cut_rates(),
        "unitQuality": agg.quality_values(),
        "shiftStartTime": selection.target_date,
        "shiftNumber": selection.target_shift or NO_SHIFT,
        "latestShift": selection.latest_shift,
        "articles": [article_view(child) for child in agg.children],
    }


def aggregate_unit(unit: str, measures: pd.DataFrame, selection: FilterSelection) -> dict:
    """Filter one unit's measure table and roll it up."""
    if measures.empty:
        return empty_unit_view(unit)

    rows = apply_filters(measures, selection)
    logger.debug("%s: %d of %d rows match %s", unit, len(rows), len(measures), selection)
    return unit_view(unit, rows, selection)


def get_quantum_data(
    snapshots: Mapping[str, "UnitSnapshot"],
    date: str | None = None,
    shift: str | None = None,
    unit: str | None = None,
    machine: str | None = None,
    dashboard: bool = False,
) -> list[dict]:
    """Live view: one aggregate per unit for the resolved day and shift.

    Parameters
    ----------
    snapshots : unit -> snapshot with a ``measures`` table.
    date, shift, machine : Filters; date and shift default to the latest
        available (see filters.resolve_filters).
    unit : Only report this unit, and discover defaults from its rows only.
    dashboard : Default to the previous day instead of the latest.
    """
    units = [unit] if unit else list(UNITS)
    tables = {
        u: snapshots[u].measures if u in snapshots else build_row_measures(pd.DataFrame())
        for u in units
    }

    selection = resolve_filters(tables.values(), date, shift, machine, dashboard)
    logger.info("Computing live view for %s with %s", ", ".join(units), selection)
    return [aggregate_unit(u, tables[u], selection) for u in units]
