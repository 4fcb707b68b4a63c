"""
Blob stores holding one Quantum workbook export per unit.

SupabaseBlobStore talks to Supabase Storage over its REST API; LocalBlobStore
reads the same file names from a directory, which is what development runs
and the smoke pipeline use.
"""

import logging
from pathlib import Path
from typing import Protocol

import requests

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def download(self, name: str) -> bytes:
        ...


class SupabaseBlobStore:
    """Download objects from a Supabase Storage bucket."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str = "uqe",
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ):
        if not base_url or not api_key:
            raise ValueError("Supabase URL and key are required")
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "apikey": api_key,
        })

    def object_url(self, name: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{name}"

    def download(self, name: str) -> bytes:
        url = self.object_url(name)
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        logger.debug("Downloaded %s (%d bytes)", url, len(response.content))
        return response.content


class LocalBlobStore:
    """Read objects from a local directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def download(self, name: str) -> bytes:
        path = self.directory / name
        return path.read_bytes()
