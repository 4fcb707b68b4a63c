"""
Shared utilities for data ingestion: date normalisation and JSON-safe
conversion of raw cell values.
"""

import datetime as dt
import logging
import math
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)


def normalise_date(val: Any) -> pd.Timestamp | None:
    """Convert Excel serial number, datetime or date string to pd.Timestamp.

    Excel serial numbers use the 1899-12-30 epoch. Native datetime objects
    are cast directly. Returns None for blank or unparseable values.
    """
    if val is None or val is pd.NaT or val == "":
        return None
    if isinstance(val, pd.Timestamp):
        return None if pd.isna(val) else val
    if isinstance(val, (dt.datetime, dt.date)):
        return pd.Timestamp(val)
    if isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        if isinstance(val, float) and math.isnan(val):
            return None
        try:
            return pd.Timestamp("1899-12-30") + pd.Timedelta(days=float(val))
        except (ValueError, OverflowError):
            logger.debug("Could not convert serial number %s to date", val)
            return None
    try:
        ts = pd.Timestamp(str(val).strip())
    except (ValueError, TypeError):
        logger.debug("Could not parse date value: %s", val)
        return None
    if pd.isna(ts):
        return None
    # Day-level grouping only cares about the wall-clock date
    return ts.tz_localize(None) if ts.tzinfo is not None else ts


def to_jsonable(val: Any) -> Any:
    """Render a raw cell value as a JSON-safe scalar.

    Datetimes become ISO strings, NaN/NaT become None, numpy scalars
    become Python numbers.
    """
    if val is None:
        return None
    if isinstance(val, (pd.Timestamp, dt.datetime)):
        return None if pd.isna(val) else val.isoformat()
    if isinstance(val, dt.date):
        return val.isoformat()
    if isinstance(val, dt.time):
        return val.isoformat()
    if hasattr(val, "item"):
        val = val.item()
    if isinstance(val, float) and math.isnan(val):
        return None
    return val
