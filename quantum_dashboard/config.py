"""
Configuration: unit registry, canonical column sets, identity synonyms,
thresholds, and environment-driven deployment settings.

The column lists define the shape of every aggregate; the synonym tuples
list the historically used spellings of identity fields in priority order.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Units: one Quantum export per spinning unit
# ---------------------------------------------------------------------------
UNITS: tuple[str, ...] = ("U-1", "U-2", "U-3", "U-4", "U-5", "U-6")

UNIT_FILES: dict[str, str] = {unit: f"{unit.split('-')[1]}.xlsx" for unit in UNITS}

# ---------------------------------------------------------------------------
# Canonical column sets
# ---------------------------------------------------------------------------
ALARM_COLUMNS: tuple[str, ...] = (
    "NSABlks", "LABlks", "TABlks", "CABlks", "CCABlks",
    "FABlks", "PPABlks", "PFABlks", "CVpABlks", "HpABlks", "CMTABlks",
)

CUT_COLUMNS: tuple[str, ...] = (
    "YarnFaults", "YarnJoints", "YarnBreaks", "NCuts", "SCuts",
    "LCuts", "TCuts", "FDCuts", "PPCuts",
)

QUALITY_COLUMNS: tuple[str, ...] = (
    "Thin50", "Thick50", "Nep200", "CVAvg", "HAvg", "IPI", "HSIPI",
)

# Quality columns reported as plain per-row averages; the rest are
# normalised by reference length.
AVERAGE_QUALITY_COLUMNS: frozenset[str] = frozenset({"CVAvg", "HAvg"})

# Derived imperfection indices: name -> stored components
DERIVED_QUALITY: dict[str, tuple[str, ...]] = {
    "IPI": ("Thin50", "Thick50", "Nep200"),
    "HSIPI": ("Thin40", "Thick35", "Nep140"),
}

# ---------------------------------------------------------------------------
# Identity fields: spellings seen across export versions, first wins
# ---------------------------------------------------------------------------
DATE_FIELDS = ("ShiftStartTime", "Date")
SHIFT_FIELDS = ("ShiftNumber", "Shift")
MACHINE_FIELDS = ("MachineName", "Machine")
ARTICLE_NUMBER_FIELDS = ("ArticleNumber",)
ARTICLE_NAME_FIELDS = ("ArticleName", "Article")
LOT_FIELDS = ("LotID", "LotId")
TOTAL_CUT_FIELDS = ("Cuts", "TotalCuts")
REF_LENGTH_FIELDS = ("IPRefLength", "RefLength")
YARN_LENGTH_FIELD = "YarnLength"

UNKNOWN_LABEL = "Unknown"
ALL_SHIFTS = "all"

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
# Rows shorter than this (km) are too small a sample to count
MIN_YARN_LENGTH = 300

CUTS_PER_KM = 100  # cut rates are per 100 km
ALARMS_PER_KM = 1000  # alarm rates are per 1000 km

DEFAULT_ALLOWED_ORIGINS = ("http://localhost:5173", "http://localhost:3000")


# ---------------------------------------------------------------------------
# Deployment settings
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    bucket: str
    data_dir: Path | None

    refresh_minutes: float
    download_timeout: float
    stale_after_minutes: float

    allowed_origins: tuple[str, ...]
    port: int


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("QUANTUM_ENV_FILE", ".env")
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    data_dir = os.getenv("QUANTUM_DATA_DIR", "").strip()

    origins = os.getenv("ALLOWED_ORIGINS", "").strip()
    allowed_origins = (
        tuple(o.strip() for o in origins.split(",") if o.strip())
        if origins
        else DEFAULT_ALLOWED_ORIGINS
    )

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
        supabase_key=os.getenv("SUPABASE_KEY", ""),
        bucket=os.getenv("QUANTUM_BUCKET", "uqe"),
        data_dir=Path(data_dir) if data_dir else None,
        refresh_minutes=float(os.getenv("QUANTUM_REFRESH_MINUTES", "30")),
        download_timeout=float(os.getenv("QUANTUM_DOWNLOAD_TIMEOUT", "60")),
        stale_after_minutes=float(os.getenv("QUANTUM_STALE_AFTER_MINUTES", "180")),
        allowed_origins=allowed_origins,
        port=int(os.getenv("PORT", "3001")),
    )
