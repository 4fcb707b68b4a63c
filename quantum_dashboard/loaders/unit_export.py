"""
Loader for per-unit Quantum clearer exports.

Source: one workbook per spinning unit (``1.xlsx`` … ``6.xlsx``) in the
blob store bucket.

Structure:
    First sheet only.
    Row 1: header. Names vary in case between firmware versions.
    Row 2 onward: one record per machine / shift / article.

Date cells are returned as datetimes by openpyxl; nothing else is typed.
"""

import io
import logging

import openpyxl
import pandas as pd

from ..config import UNIT_FILES
from ..errors import UnitLoadError
from .blob_store import BlobStore
from .utils import to_jsonable

logger = logging.getLogger(__name__)


def _header_names(raw_header: tuple) -> list[str]:
    """Name header cells, filling blanks and de-duplicating repeats."""
    names: list[str] = []
    seen: dict[str, int] = {}
    for cell in raw_header:
        name = str(cell).strip() if cell is not None and str(cell).strip() else "__EMPTY"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        names.append(name)
    return names


def parse_unit_workbook(content: bytes, source: str = "<bytes>") -> pd.DataFrame:
    """Parse the first sheet of a workbook into a DataFrame of raw rows.

    Assumptions
    -----------
    - The first non-empty row is the header.
    - Fully empty rows are dropped.
    - Cell values are taken as computed (``data_only``), so formula
      columns carry their cached results.

    Returns
    -------
    DataFrame with one column per header cell, in sheet order.
    """
    wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        ws = wb[wb.sheetnames[0]]
        header = None
        records = []
        for values in ws.iter_rows(values_only=True):
            if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
                continue
            if header is None:
                header = _header_names(values)
                continue
            # Rows can be wider than the header when trailing cells carry data
            padded = list(values[: len(header)]) + [None] * (len(header) - len(values))
            records.append(padded)
    finally:
        wb.close()

    if header is None:
        logger.warning("No header row found in %s", source)
        return pd.DataFrame()

    df = pd.DataFrame(records, columns=header)
    logger.info("Parsed %d rows x %d columns from %s", len(df), len(df.columns), source)
    return df


def load_unit(store: BlobStore, unit: str) -> pd.DataFrame:
    """Download and parse the export for one unit.

    Raises
    ------
    UnitLoadError on unknown unit, download failure or unreadable workbook.
    The caller decides whether to fall back to earlier data.
    """
    file_name = UNIT_FILES.get(unit)
    if file_name is None:
        raise UnitLoadError(unit, f"Unknown unit '{unit}'")

    try:
        content = store.download(file_name)
    except Exception as exc:
        raise UnitLoadError(unit, f"Download of {file_name} failed: {exc}", cause=exc) from exc

    try:
        return parse_unit_workbook(content, source=f"{unit} ({file_name})")
    except Exception as exc:
        raise UnitLoadError(unit, f"Could not parse {file_name}: {exc}", cause=exc) from exc


def frame_to_records(df: pd.DataFrame) -> list[dict]:
    """Raw rows as JSON-ready dicts; blank cells are left out of each row."""
    records = []
    for row in df.itertuples(index=False, name=None):
        record = {}
        for column, value in zip(df.columns, row):
            value = to_jsonable(value)
            if value is None:
                continue
            record[column] = value
        records.append(record)
    return records
