"""
Unit tests for the day × label trend series.

Run: python -m pytest tests/test_trends.py -v
"""

import pytest

from quantum_dashboard.trends import build_trend

from builders import snapshots_of, unit_row


class TestCutRates:

    @pytest.fixture
    def snapshots(self):
        # the 200 km row is below the live-view threshold but still counts here
        return snapshots_of({"U-1": [
            unit_row(YarnLength=200, YarnFaults=4),
            unit_row(YarnLength=300, YarnFaults=6),
        ]})

    def test_per_100km_over_bucket(self, snapshots):
        trend = build_trend(snapshots, "cuts", "unit", "YarnFaults")
        assert trend == {
            "data": [{"date": "2024-01-03", "U-1": "2.00", "machines": {"U-1": {"M1": "2.00"}}}],
            "labels": ["U-1"],
            "dates": ["2024-01-03"],
            "drillDownData": {
                "U-1": {"labels": ["M1"], "data": [{"date": "2024-01-03", "M1": "2.00"}]},
            },
        }

    def test_cmt_is_a_rate_group(self, snapshots):
        trend = build_trend(snapshots, "cmt", "unit", "YarnFaults")
        assert trend["data"][0]["U-1"] == "2.00"

    def test_parameter_ignores_case_and_spaces(self, snapshots):
        for name in ("yarnfaults", "Yarn Faults"):
            assert build_trend(snapshots, "cuts", "unit", name)["data"][0]["U-1"] == "2.00"

    def test_dimension_case_insensitive(self, snapshots):
        trend = build_trend(snapshots, "cuts", "MachineName", "YarnFaults")
        assert trend["labels"] == ["M1"]


class TestValueGroups:

    def test_quality_mean_and_per_reference(self):
        snapshots = snapshots_of({"U-1": [
            unit_row(CVAvg=12, Thin50=2, IPRefLength=10, Thick50=1, Nep200=1),
            unit_row(CVAvg=14, Thin50=4, IPRefLength=20, MachineName="M2"),
        ]})
        assert build_trend(snapshots, "quality", "unit", "CVAvg")["data"][0]["U-1"] == "13.00"
        assert build_trend(snapshots, "quality", "unit", "Thin50")["data"][0]["U-1"] == "0.20"
        assert build_trend(snapshots, "quality", "unit", "IPI")["data"][0]["U-1"] == "0.27"

    def test_alarms_raw_sum(self):
        snapshots = snapshots_of({"U-1": [
            unit_row(NSABlks=2, LABlks=1),
            unit_row(NSABlks=4, MachineName="M2"),
        ]})
        trend = build_trend(snapshots, "alarms", "unit", "totalAlarms")
        assert trend["data"][0]["U-1"] == 7
        assert trend["data"][0]["machines"]["U-1"] == {"M1": 3, "M2": 4}

    def test_unknown_group_is_raw_sum(self):
        snapshots = snapshots_of({"U-1": [unit_row(NCuts=3), unit_row(NCuts=4)]})
        assert build_trend(snapshots, None, "unit", "NCuts")["data"][0]["U-1"] == 7


class TestLabels:

    @pytest.fixture
    def snapshots(self):
        return snapshots_of({
            "U-1": [
                unit_row("2024-01-01", YarnFaults=1),
                unit_row("2024-01-02", YarnFaults=2),
                unit_row("2024-01-02", MachineName="M2", YarnFaults=3),
                unit_row(None, YarnFaults=50),
            ],
            "U-2": [
                unit_row("2024-01-02", MachineName="M9", ArticleName=None, YarnFaults=4),
            ],
        })

    def test_dates_and_labels_sorted(self, snapshots):
        trend = build_trend(snapshots, "alarms", "unit", "YarnFaults")
        assert trend["dates"] == ["2024-01-01", "2024-01-02"]
        assert trend["labels"] == ["U-1", "U-2"]
        first, second = trend["data"]
        assert first == {"date": "2024-01-01", "U-1": 1, "machines": {"U-1": {"M1": 1}}}
        assert second["U-1"] == 5
        assert second["U-2"] == 4

    def test_drill_down_leaves_out_idle_machines(self, snapshots):
        drill = build_trend(snapshots, "alarms", "unit", "YarnFaults")["drillDownData"]["U-1"]
        assert drill["labels"] == ["M1", "M2"]
        assert drill["data"] == [
            {"date": "2024-01-01", "M1": 1},
            {"date": "2024-01-02", "M1": 2, "M2": 3},
        ]

    def test_label_filter(self, snapshots):
        trend = build_trend(snapshots, "alarms", "unit", "YarnFaults", wanted_labels=["U-2"])
        assert trend["labels"] == ["U-2"]
        assert trend["dates"] == ["2024-01-02"]

    def test_unit_filter(self, snapshots):
        trend = build_trend(snapshots, "alarms", "machinename", "YarnFaults", unit="U-2")
        assert trend["labels"] == ["M9"]

    def test_missing_label_is_unknown(self, snapshots):
        trend = build_trend(snapshots, "alarms", "articlename", "YarnFaults")
        assert trend["labels"] == ["Article One", "Unknown"]

    def test_unknown_dimension(self, snapshots):
        trend = build_trend(snapshots, "alarms", "colour", "YarnFaults")
        assert trend["labels"] == ["Unknown"]

    def test_nothing_left(self, snapshots):
        trend = build_trend(snapshots, "alarms", "unit", "YarnFaults", wanted_labels=["U-6"])
        assert trend == {"data": [], "labels": [], "dates": [], "drillDownData": {}}
