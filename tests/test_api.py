"""
HTTP tests for the /api/quantum routes.

Run: python -m pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from quantum_dashboard.api import build_store, create_app
from quantum_dashboard.cache import QuantumCache
from quantum_dashboard.config import UNITS, Settings
from quantum_dashboard.loaders import LocalBlobStore, SupabaseBlobStore

from builders import FakeStore


def _settings(**overrides) -> Settings:
    values = dict(
        supabase_url="",
        supabase_key="",
        bucket="uqe",
        data_dir=None,
        refresh_minutes=30,
        download_timeout=60,
        stale_after_minutes=180,
        allowed_origins=("http://localhost:5173",),
        port=3001,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client(store, clock):
    cache = QuantumCache(store, clock=clock)
    app = create_app(_settings(), store=store, cache=cache, schedule=False)
    return TestClient(app)


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestLive:

    def test_default_view(self, client):
        response = client.get("/api/quantum/live")
        assert response.status_code == 200
        views = response.json()
        assert [v["unit"] for v in views] == list(UNITS)
        u1 = views[0]
        assert u1["shiftStartTime"] == "2024-01-03"
        assert u1["shiftNumber"] == "2"
        assert u1["yarnFaults"] == "0.60"
        assert views[2] == {
            "unit": "U-3",
            "yarnFaults": "N/A",
            "shiftStartTime": None,
            "articles": [],
            "latestShift": "All",
        }

    def test_dashboard_mode(self, client):
        views = client.get("/api/quantum/live", params={"mode": "dashboard"}).json()
        assert views[0]["shiftStartTime"] == "2024-01-02"

    def test_unit_filter(self, client):
        views = client.get("/api/quantum/live", params={"unit": "U-2", "shift": "all"}).json()
        assert len(views) == 1
        assert views[0]["unit"] == "U-2"
        assert views[0]["articles"][0]["articleNumber"] == "B7"

    def test_unknown_unit(self, client):
        response = client.get("/api/quantum/live", params={"unit": "U-9"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid unit 'U-9'"}

    def test_nothing_loadable(self, clock):
        store = FakeStore()
        app = create_app(_settings(), store=store, cache=QuantumCache(store, clock=clock), schedule=False)
        response = TestClient(app).get("/api/quantum/live")
        assert response.status_code == 503
        assert "error" in response.json()


class TestAvailableFilters:

    def test_all_units(self, client):
        filters = client.get("/api/quantum/available-filters").json()
        assert filters["dates"] == ["2024-01-03", "2024-01-02", "2024-01-01"]
        assert filters["shifts"] == ["1", "2"]
        assert filters["units"] == list(UNITS)
        assert filters["machines"] == ["M1", "M2", "M9"]
        assert filters["articles"] == ["A1", "B7"]
        assert filters["articleNames"] == ["Article One"]
        assert filters["lotIds"] == ["L1"]

    def test_one_unit(self, client):
        filters = client.get("/api/quantum/available-filters", params={"unit": "U-2"}).json()
        assert filters["machines"] == ["M9"]
        assert filters["dates"] == ["2024-01-03"]


class TestUnitData:

    def test_raw_rows(self, client, store):
        rows = client.get("/api/quantum/data/U-2").json()
        assert len(rows) == 1
        assert rows[0]["MachineName"] == "M9"
        assert rows[0]["ShiftStartTime"] == "2024-01-03T06:00:00"
        assert store.downloads[-1] == "2.xlsx"

    def test_unknown_unit(self, client):
        assert client.get("/api/quantum/data/U-7").status_code == 400

    def test_download_failure(self, client):
        response = client.get("/api/quantum/data/U-4")
        assert response.status_code == 500
        assert "4.xlsx" in response.json()["error"]


class TestTrend:

    def test_missing_parameters(self, client):
        response = client.get("/api/quantum/trend", params={"group": "cuts", "firstColumn": "unit"})
        assert response.status_code == 400
        assert response.json() == {"error": "firstColumn and parameter are required"}

    def test_trend(self, client):
        params = {"group": "cuts", "firstColumn": "unit", "parameter": "YarnFaults"}
        trend = client.get("/api/quantum/trend", params=params).json()
        assert trend["labels"] == ["U-1", "U-2"]
        assert trend["dates"] == ["2024-01-01", "2024-01-02", "2024-01-03"]

    def test_filter_values_comma_or_repeated(self, client):
        base = {"group": "cuts", "firstColumn": "machinename", "parameter": "YarnFaults"}
        comma = client.get("/api/quantum/trend", params={**base, "filterValues": "M1,M9"}).json()
        repeated = client.get(
            "/api/quantum/trend", params={**base, "filterValues": ["M1", "M9"]},
        ).json()
        assert comma["labels"] == ["M1", "M9"]
        assert repeated == comma


class TestStatusAndRefresh:

    def test_refresh_then_status(self, client):
        report = client.post("/api/quantum/refresh").json()
        assert report["loaded"] == ["U-1", "U-2"]
        assert set(report["failed"]) == {"U-3", "U-4", "U-5", "U-6"}

        status = client.get("/api/quantum/status").json()
        assert status["lastFetchTime"] == report["finished"]
        assert status["units"]["U-1"]["rows"] == 5
        assert status["units"]["U-3"]["stale"] is True


class TestBuildStore:

    def test_local_directory(self, tmp_path):
        assert isinstance(build_store(_settings(data_dir=tmp_path)), LocalBlobStore)

    def test_supabase(self):
        store = build_store(_settings(supabase_url="https://example.supabase.co", supabase_key="k"))
        assert isinstance(store, SupabaseBlobStore)
        assert store.bucket == "uqe"
