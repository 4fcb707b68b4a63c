"""Data ingestion loaders for per-unit Quantum exports."""

from .blob_store import BlobStore, LocalBlobStore, SupabaseBlobStore
from .unit_export import frame_to_records, load_unit, parse_unit_workbook

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "SupabaseBlobStore",
    "frame_to_records",
    "load_unit",
    "parse_unit_workbook",
]
