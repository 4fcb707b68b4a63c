"""
Tests for environment-driven settings and the simulated exports.

Run: python -m pytest tests/test_config.py -v
"""

from pathlib import Path

import pytest

from quantum_dashboard.cache import QuantumCache
from quantum_dashboard.config import UNIT_FILES, UNITS, get_settings
from quantum_dashboard.loaders import LocalBlobStore, load_unit
from quantum_dashboard.simulator import generate_unit_rows, write_unit_exports
from quantum_dashboard.transforms import build_row_measures

_ENV_VARS = (
    "SUPABASE_URL", "SUPABASE_KEY", "QUANTUM_BUCKET", "QUANTUM_DATA_DIR",
    "QUANTUM_REFRESH_MINUTES", "QUANTUM_DOWNLOAD_TIMEOUT",
    "QUANTUM_STALE_AFTER_MINUTES", "ALLOWED_ORIGINS", "PORT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        # set first so values loaded from a dotenv file are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("QUANTUM_ENV_FILE", str(tmp_path / "missing.env"))
    return monkeypatch


class TestSettings:

    def test_defaults(self, clean_env):
        settings = get_settings()
        assert settings.bucket == "uqe"
        assert settings.data_dir is None
        assert settings.refresh_minutes == 30
        assert settings.download_timeout == 60
        assert settings.stale_after_minutes == 180
        assert settings.port == 3001
        assert settings.allowed_origins == ("http://localhost:5173", "http://localhost:3000")

    def test_environment(self, clean_env, tmp_path):
        clean_env.setenv("SUPABASE_URL", "https://example.supabase.co/")
        clean_env.setenv("QUANTUM_DATA_DIR", str(tmp_path))
        clean_env.setenv("QUANTUM_REFRESH_MINUTES", "5")
        clean_env.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")
        settings = get_settings()
        assert settings.supabase_url == "https://example.supabase.co"
        assert settings.data_dir == Path(tmp_path)
        assert settings.refresh_minutes == 5
        assert settings.allowed_origins == ("https://a.example", "https://b.example")

    def test_env_file_does_not_override(self, clean_env, tmp_path):
        env_file = tmp_path / "quantum.env"
        env_file.write_text("QUANTUM_BUCKET=from-file\nPORT=8080\n")
        clean_env.setenv("QUANTUM_ENV_FILE", str(env_file))
        clean_env.setenv("PORT", "9000")
        settings = get_settings()
        assert settings.bucket == "from-file"
        assert settings.port == 9000


class TestSimulator:

    def test_header_variants_resolve(self):
        rows = generate_unit_rows("U-2", days=2)
        assert "yarnlength" in rows.columns
        assert "Machine" in rows.columns
        measures = build_row_measures(rows)
        assert len(measures) == 2 * 3 * 4
        assert measures["yarn_length"].gt(0).all()
        assert measures["machine"].notna().all()
        assert sorted(measures["day"].unique()) == ["2026-01-01", "2026-01-02"]

    def test_exports_round_trip_through_cache(self, tmp_path):
        written = write_unit_exports(tmp_path, days=3)
        assert {path.name for path in written.values()} == set(UNIT_FILES.values())
        assert len(load_unit(LocalBlobStore(tmp_path), "U-4")) == 3 * 3 * 4

        cache = QuantumCache(LocalBlobStore(tmp_path))
        report = cache.refresh()
        assert report.loaded == UNITS
        views = cache.state.live_view
        assert all(view["shiftStartTime"] == "2026-01-03" for view in views)
        assert all(view["shiftNumber"] == "3" for view in views)
