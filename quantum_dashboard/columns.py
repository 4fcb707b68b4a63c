"""
Column resolution over loosely typed Quantum export rows.

Exports from different clearer firmware versions disagree on header case
(``YarnLength`` vs ``yarnlength``) and on a few spellings (``Machine`` vs
``MachineName``). Every field lookup in the engine goes through this module.

Lookups resolve against a frame's column index once, then operate on whole
columns, so the cost is per column rather than per row. ``resolve`` and
``resolve_first`` apply the same rules to a single raw record, as returned
by ``frame_to_records``.
"""

import math
import numbers
import re
from collections.abc import Iterable, Mapping
from typing import Any

import numpy as np
import pandas as pd

from .loaders.utils import normalise_date

_WHITESPACE = re.compile(r"\s+")


def _fold(name: Any, ignore_whitespace: bool = False) -> str:
    folded = str(name).lower()
    if ignore_whitespace:
        folded = _WHITESPACE.sub("", folded)
    return folded


def find_column(
    columns: Iterable[Any],
    name: str,
    ignore_whitespace: bool = False,
) -> Any | None:
    """Return the first column matching ``name`` case-insensitively, or None."""
    target = _fold(name, ignore_whitespace)
    for column in columns:
        if _fold(column, ignore_whitespace) == target:
            return column
    return None


def is_blank(val: Any) -> bool:
    """True for values an export uses to mean "not recorded".

    Missing, NaN, empty strings and zero all count as blank.
    """
    if val is None:
        return True
    if isinstance(val, str):
        return not val.strip()
    if isinstance(val, bool):
        return not val
    if isinstance(val, numbers.Real):
        return val == 0 or math.isnan(val)
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False


def to_number(val: Any) -> float:
    """Coerce a cell to float; anything non-numeric or non-finite counts as 0."""
    if val is None or isinstance(val, bool):
        return 0.0
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return 0.0
    try:
        result = float(val)
    except (ValueError, TypeError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def format_label(val: Any) -> str | None:
    """Render an identity value as a label string; None when blank.

    Integral floats drop their decimal part so shift ``3.0`` reads ``"3"``.
    """
    if is_blank(val):
        return None
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    if hasattr(val, "item") and not isinstance(val, (pd.Timestamp, str)):
        return format_label(val.item())
    return str(val).strip()


def format_day(val: Any) -> str | None:
    """Render a date-like cell as ``YYYY-MM-DD``; None when unparseable."""
    ts = normalise_date(val)
    if ts is None:
        return None
    return ts.strftime("%Y-%m-%d")


# ---------------------------------------------------------------------------
# Single-row lookups
# ---------------------------------------------------------------------------

def resolve(row: Mapping[str, Any], name: str) -> Any:
    """Look up ``name`` in one row, case-insensitively; 0 when absent."""
    key = find_column(row.keys(), name)
    if key is None:
        return 0
    return row[key]


def resolve_first(row: Mapping[str, Any], candidates: Iterable[str]) -> Any | None:
    """Return the first non-blank value among candidate spellings."""
    for name in candidates:
        key = find_column(row.keys(), name)
        if key is not None and not is_blank(row[key]):
            return row[key]
    return None


# ---------------------------------------------------------------------------
# Whole-frame lookups
# ---------------------------------------------------------------------------

def _missing_as_none(series: pd.Series) -> pd.Series:
    """Object series with None, never NaN, for missing entries."""
    return pd.Series(
        [None if is_blank(v) else v for v in series],
        index=series.index,
        dtype=object,
    )


def numeric(frame: pd.DataFrame, name: str, ignore_whitespace: bool = False) -> pd.Series:
    """Numeric values of ``name`` for every row; zeros when the column is absent."""
    column = find_column(frame.columns, name, ignore_whitespace)
    if column is None:
        return pd.Series(0.0, index=frame.index)
    values = frame[column]
    if pd.api.types.is_numeric_dtype(values) and not pd.api.types.is_bool_dtype(values):
        values = values.astype(float)
        return values.where(np.isfinite(values), 0.0)
    return values.map(to_number).astype(float)


def first_numeric(frame: pd.DataFrame, candidates: Iterable[str]) -> pd.Series:
    """Per row, the first candidate column holding a non-zero number."""
    result = pd.Series(0.0, index=frame.index)
    for name in candidates:
        if find_column(frame.columns, name) is None:
            continue
        values = numeric(frame, name)
        result = result.where(result != 0, values)
    return result


def first_value(frame: pd.DataFrame, candidates: Iterable[str]) -> pd.Series:
    """Per row, the first non-blank raw value among candidate columns."""
    result = pd.Series([None] * len(frame), index=frame.index, dtype=object)
    for name in candidates:
        column = find_column(frame.columns, name)
        if column is None:
            continue
        values = frame[column].astype(object)
        missing = result.map(is_blank)
        result = result.where(~missing, values)
    return result


def labels(
    frame: pd.DataFrame,
    candidates: Iterable[str],
    default: str | None = None,
) -> pd.Series:
    """Identity labels (machine, article, shift …) for every row."""
    rendered = _missing_as_none(first_value(frame, candidates).map(format_label))
    if default is not None:
        rendered = rendered.map(lambda label: default if label is None else label).astype(object)
    return rendered


def days(frame: pd.DataFrame, candidates: Iterable[str]) -> pd.Series:
    """Calendar day (``YYYY-MM-DD``) of every row, None when unparseable."""
    return _missing_as_none(first_value(frame, candidates).map(format_day))
