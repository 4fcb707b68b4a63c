"""
Trend computation: one value per (day, label) for a chosen parameter, with a
per-machine breakdown for every label.

Labels come from a grouping dimension (unit, article, lot, machine); values
are finalised by the parameter group (quality, cuts, alarms).
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

import pandas as pd

from . import columns
from .config import DERIVED_QUALITY, UNKNOWN_LABEL
from .kpis import MetricAccumulator, as_count

if TYPE_CHECKING:
    from .cache import UnitSnapshot

logger = logging.getLogger(__name__)

# firstColumn value -> measure column holding the label
LABEL_DIMENSIONS: dict[str, str | None] = {
    "unit": None,
    "articlename": "article_name",
    "articlenumber": "article",
    "lotid": "lot",
    "machinename": "machine",
}

RATE_GROUPS = frozenset({"cuts", "cmt"})

_TOTALS = ["value", "ref_length", "yarn_length"]


def finalise(acc: MetricAccumulator, group: str, parameter: str) -> str | int | float:
    """Turn a bucket's totals into the reported value for ``group``."""
    if group == "quality":
        return acc.quality(parameter)
    if group in RATE_GROUPS:
        return acc.per_100km()
    return as_count(acc.sum)


def parameter_values(rows: pd.DataFrame, measures: pd.DataFrame, parameter: str) -> pd.Series:
    """Per-row value of ``parameter``: a derived index, the alarm total, or a raw column."""
    if parameter in DERIVED_QUALITY:
        return measures[parameter]
    if parameter == "totalAlarms":
        return measures["total_alarms"]
    return columns.numeric(rows, parameter, ignore_whitespace=True)


def label_values(unit: str, measures: pd.DataFrame, dimension: str) -> pd.Series:
    """Grouping label of every row; "Unknown" when unresolved."""
    if dimension not in LABEL_DIMENSIONS:
        return pd.Series(UNKNOWN_LABEL, index=measures.index, dtype=object)
    column = LABEL_DIMENSIONS[dimension]
    if column is None:
        return pd.Series(unit, index=measures.index, dtype=object)
    found = measures[column]
    return found.where(found.notna(), UNKNOWN_LABEL).astype(object)


def trend_rows(
    snapshots: Mapping[str, "UnitSnapshot"],
    dimension: str,
    parameter: str,
    unit: str | None = None,
    wanted_labels: Iterable[str] | None = None,
) -> pd.DataFrame:
    """Long table of day, label, machine and the totals feeding each bucket."""
    wanted = set(wanted_labels) if wanted_labels is not None else None
    parts = []
    for unit_id, snapshot in snapshots.items():
        if unit and unit_id != unit:
            continue
        measures = snapshot.measures
        if measures.empty:
            continue

        part = pd.DataFrame({
            "day": measures["day"],
            "label": label_values(unit_id, measures, dimension),
            "machine": measures["machine"].where(measures["machine"].notna(), UNKNOWN_LABEL),
            "value": parameter_values(snapshot.rows, measures, parameter),
            "ref_length": measures["ref_length"],
            "yarn_length": measures["yarn_length"],
        })
        part = part[part["day"].notna()]
        if wanted is not None:
            part = part[part["label"].isin(wanted)]
        parts.append(part)

    if not parts:
        return pd.DataFrame(columns=["day", "label", "machine"] + _TOTALS)
    return pd.concat(parts, ignore_index=True)


def _bucket_totals(rows: pd.DataFrame, keys: list[str]) -> dict[tuple, MetricAccumulator]:
    grouped = rows.groupby(keys, sort=True).agg(
        sum=("value", "sum"),
        count=("value", "count"),
        ref_length=("ref_length", "sum"),
        yarn_length=("yarn_length", "sum"),
    )
    return {
        key: MetricAccumulator(
            sum=float(rec["sum"]),
            count=int(rec["count"]),
            ref_length=float(rec["ref_length"]),
            yarn_length=float(rec["yarn_length"]),
        )
        for key, rec in grouped.iterrows()
    }


def build_trend(
    snapshots: Mapping[str, "UnitSnapshot"],
    group: str | None,
    dimension: str,
    parameter: str,
    unit: str | None = None,
    wanted_labels: Iterable[str] | None = None,
) -> dict:
    """Compute a day × label trend with machine drill-down.

    Parameters
    ----------
    snapshots : unit -> snapshot with ``rows`` and ``measures`` tables.
    group : "quality", "cuts"/"cmt" (per 100 km) or anything else (raw sum).
    dimension : "unit", "articlename", "articlenumber", "lotid" or "machinename".
    parameter : Column name, or "IPI", "HSIPI", "totalAlarms".
    unit : Restrict to one unit.
    wanted_labels : Keep only these labels.

    Returns
    -------
    {
        "data": [{"date": "2024-01-01", "<label>": value, ...,
                  "machines": {"<label>": {"<machine>": value}}}],
        "labels": sorted labels,
        "dates": sorted days,
        "drillDownData": {"<label>": {"labels": [machines],
                                      "data": [{"date": ..., "<machine>": value}]}},
    }
    """
    group = (group or "").strip()
    dimension = dimension.strip().lower()
    rows = trend_rows(snapshots, dimension, parameter, unit, wanted_labels)

    if rows.empty:
        return {"data": [], "labels": [], "dates": [], "drillDownData": {}}

    # day -> label -> value, and (day, label) -> machine -> value
    label_points: dict[str, dict] = defaultdict(dict)
    for (day, label), acc in _bucket_totals(rows, ["day", "label"]).items():
        label_points[day][label] = finalise(acc, group, parameter)
    machine_points: dict[tuple, dict] = defaultdict(dict)
    for (day, label, machine), acc in _bucket_totals(rows, ["day", "label", "machine"]).items():
        machine_points[(day, label)][machine] = finalise(acc, group, parameter)

    dates = sorted(rows["day"].unique())
    labels = sorted(rows["label"].unique())

    data = []
    for day in dates:
        entry: dict = {"date": day, **label_points[day]}
        entry["machines"] = {label: dict(machine_points[(day, label)]) for label in label_points[day]}
        data.append(entry)

    drill_down = {}
    for label in labels:
        machine_names = sorted(rows.loc[rows["label"] == label, "machine"].unique())
        series = []
        for day in dates:
            # machines without rows on this day are left out
            series.append({"date": day, **machine_points.get((day, label), {})})
        drill_down[label] = {"labels": machine_names, "data": series}

    logger.info(
        "Built %s trend of %s by %s: %d dates, %d labels",
        group or "raw", parameter, dimension, len(dates), len(labels),
    )
    return {
        "data": data,
        "labels": labels,
        "dates": dates,
        "drillDownData": drill_down,
    }
