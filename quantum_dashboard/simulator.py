"""
Simulated Quantum exports for the spinning units.

Generates realistic clearer data based on typical ring-spinning parameters.
All values are synthetic; no real mill data is used. Header spellings are
varied per unit the way exports from mixed firmware versions are.
"""

import io
from pathlib import Path

import numpy as np
import openpyxl
import pandas as pd

from .config import ALARM_COLUMNS, UNIT_FILES, UNITS

# Seed for reproducibility
_RNG = np.random.default_rng(42)

# ---------------------------------------------------------------------------
# Typical clearer parameters (per shift, per machine)
# ---------------------------------------------------------------------------
_YARN_LENGTH_KM = {"mean": 1400, "std": 250}
_SHORT_RUN_SHARE = 0.05  # doffs and restarts below the sample threshold

# cuts per 100 km
_CUT_RATES = {
    "YarnJoints": 35.0,
    "YarnBreaks": 4.0,
    "NCuts": 6.0,
    "SCuts": 9.0,
    "LCuts": 2.5,
    "TCuts": 3.0,
    "FDCuts": 1.5,
    "PPCuts": 0.8,
}

# imperfections per km of reference length
_IMPERFECTIONS = {
    "Thin50": 2.0,
    "Thick50": 25.0,
    "Nep200": 40.0,
    "Thin40": 15.0,
    "Thick35": 180.0,
    "Nep140": 120.0,
}

_ALARM_RATE = 0.4  # per 1000 km, per alarm type

_ARTICLES = [
    ("30CW", "Ne 30 Combed Weaving"),
    ("40CH", "Ne 40 Combed Hosiery"),
    ("20KW", "Ne 20 Carded Weaving"),
]

# Header spellings per unit; the rest use the canonical names
_HEADER_VARIANTS: dict[str, dict[str, str]] = {
    "U-2": {"YarnLength": "yarnlength", "MachineName": "Machine", "CVAvg": "cvavg"},
    "U-4": {"ShiftStartTime": "Date", "ShiftNumber": "Shift", "Cuts": "TotalCuts"},
    "U-5": {"IPRefLength": "RefLength", "LotID": "LotId", "NSABlks": "nsablks"},
}


def generate_unit_rows(
    unit: str,
    start_date: str = "2026-01-01",
    days: int = 5,
    shifts: int = 3,
    machines: int = 4,
) -> pd.DataFrame:
    """Generate one unit's export rows.

    Produces one row per day, shift and machine; each machine spins one
    article for the whole period.
    """
    unit_no = int(unit.split("-")[1])
    rows = []

    for day in pd.date_range(start_date, periods=days, freq="D"):
        for shift in range(1, shifts + 1):
            shift_start = day + pd.Timedelta(hours=6 + 8 * (shift - 1))
            for m in range(1, machines + 1):
                article, article_name = _ARTICLES[(unit_no + m) % len(_ARTICLES)]

                if _RNG.random() < _SHORT_RUN_SHARE:
                    yarn_length = float(_RNG.uniform(50, 299))
                else:
                    yarn_length = max(
                        350.0, _RNG.normal(_YARN_LENGTH_KM["mean"], _YARN_LENGTH_KM["std"])
                    )
                ref_length = yarn_length * _RNG.uniform(0.8, 1.0)

                record = {
                    "ShiftStartTime": shift_start.to_pydatetime(),
                    "ShiftNumber": shift,
                    "MachineName": f"RS-{unit_no}{m:02d}",
                    "ArticleNumber": article,
                    "ArticleName": article_name,
                    "LotID": f"L{unit_no}{day.strftime('%m%d')}",
                    "YarnLength": round(yarn_length, 1),
                    "IPRefLength": round(ref_length, 1),
                }

                scale = yarn_length / 100
                cuts = {
                    col: int(_RNG.poisson(rate * scale)) for col, rate in _CUT_RATES.items()
                }
                cuts["YarnFaults"] = cuts["NCuts"] + cuts["SCuts"] + cuts["LCuts"] + cuts["TCuts"]
                record.update(cuts)
                record["Cuts"] = sum(cuts.values()) - cuts["YarnJoints"] - cuts["YarnFaults"]

                for col, rate in _IMPERFECTIONS.items():
                    record[col] = int(_RNG.poisson(rate * ref_length))
                record["CVAvg"] = round(float(_RNG.normal(13.5, 0.6)), 2)
                record["HAvg"] = round(float(_RNG.normal(5.2, 0.3)), 2)

                for col in ALARM_COLUMNS:
                    record[col] = int(_RNG.poisson(_ALARM_RATE * yarn_length / 1000))

                rows.append(record)

    df = pd.DataFrame(rows)
    return df.rename(columns=_HEADER_VARIANTS.get(unit, {}))


def _cell(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def to_workbook_bytes(df: pd.DataFrame, sheet_name: str = "Quantum") -> bytes:
    """Write rows to an in-memory .xlsx with the header in row 1."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws.append([str(c) for c in df.columns])
    for values in df.itertuples(index=False, name=None):
        ws.append([_cell(v) for v in values])

    buffer = io.BytesIO()
    wb.save(buffer)
    wb.close()
    return buffer.getvalue()


def write_unit_exports(
    directory: str | Path,
    start_date: str = "2026-01-01",
    days: int = 5,
    units: tuple[str, ...] = UNITS,
) -> dict[str, Path]:
    """Write one simulated workbook per unit under its blob name."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    written = {}
    for unit in units:
        path = directory / UNIT_FILES[unit]
        path.write_bytes(to_workbook_bytes(generate_unit_rows(unit, start_date, days)))
        written[unit] = path
    return written
