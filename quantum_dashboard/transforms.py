"""
Data transforms: turn a raw unit export into a canonical per-row measure
table shared by the filter, aggregation and trend engines.
"""

import logging

import pandas as pd

from . import columns
from .config import (
    ALARM_COLUMNS,
    ARTICLE_NAME_FIELDS,
    ARTICLE_NUMBER_FIELDS,
    CUT_COLUMNS,
    DATE_FIELDS,
    DERIVED_QUALITY,
    LOT_FIELDS,
    MACHINE_FIELDS,
    QUALITY_COLUMNS,
    REF_LENGTH_FIELDS,
    SHIFT_FIELDS,
    TOTAL_CUT_FIELDS,
    YARN_LENGTH_FIELD,
)

logger = logging.getLogger(__name__)

IDENTITY_COLUMNS = ["day", "shift", "machine", "article", "article_name", "lot"]

MEASURE_COLUMNS = (
    ["yarn_length", "ref_length", "total_cuts", "total_alarms"]
    + list(ALARM_COLUMNS)
    + list(CUT_COLUMNS)
    + list(QUALITY_COLUMNS)
)


def quality_values(frame: pd.DataFrame) -> dict[str, pd.Series]:
    """Per-row quality values, with IPI and HSIPI summed from their components."""
    values = {}
    for name in QUALITY_COLUMNS:
        components = DERIVED_QUALITY.get(name)
        if components is None:
            values[name] = columns.numeric(frame, name)
        else:
            values[name] = sum(
                (columns.numeric(frame, part) for part in components),
                pd.Series(0.0, index=frame.index),
            )
    return values


def build_row_measures(frame: pd.DataFrame) -> pd.DataFrame:
    """Resolve one unit's raw rows into canonical measures.

    Parameters
    ----------
    frame : Raw rows as returned by load_unit().

    Returns
    -------
    DataFrame aligned with ``frame`` with columns:
        day, shift, machine, article, article_name, lot  (labels, None if blank)
        yarn_length, ref_length, total_cuts, total_alarms
        one column per alarm, cut and quality column
    """
    if frame.empty:
        return pd.DataFrame(columns=IDENTITY_COLUMNS + MEASURE_COLUMNS)

    data: dict[str, pd.Series] = {
        "day": columns.days(frame, DATE_FIELDS),
        "shift": columns.labels(frame, SHIFT_FIELDS),
        "machine": columns.labels(frame, MACHINE_FIELDS),
        "article": columns.labels(frame, ARTICLE_NUMBER_FIELDS),
        "article_name": columns.labels(frame, ARTICLE_NAME_FIELDS),
        "lot": columns.labels(frame, LOT_FIELDS),
        "yarn_length": columns.numeric(frame, YARN_LENGTH_FIELD),
        "ref_length": columns.first_numeric(frame, REF_LENGTH_FIELDS),
        "total_cuts": columns.first_numeric(frame, TOTAL_CUT_FIELDS),
    }

    alarms = {name: columns.numeric(frame, name) for name in ALARM_COLUMNS}
    data["total_alarms"] = sum(alarms.values(), pd.Series(0.0, index=frame.index))
    data.update(alarms)
    data.update({name: columns.numeric(frame, name) for name in CUT_COLUMNS})
    data.update(quality_values(frame))

    measures = pd.DataFrame(data, index=frame.index)
    undated = int(measures["day"].isna().sum())
    if undated:
        logger.debug("%d of %d rows have no usable date", undated, len(measures))
    return measures
