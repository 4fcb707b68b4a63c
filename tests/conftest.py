import pytest

from builders import FakeClock, FakeStore, blobs_of, unit_row


@pytest.fixture
def three_day_rows():
    """U-1 rows over 2024-01-01..03 with two shifts on the last day."""
    return [
        unit_row("2024-01-01", ShiftNumber=1, YarnFaults=2),
        unit_row("2024-01-02", ShiftNumber=1, YarnFaults=3),
        unit_row("2024-01-02", ShiftNumber=2, YarnFaults=4),
        unit_row("2024-01-03", ShiftNumber=1, YarnFaults=5),
        unit_row("2024-01-03", ShiftNumber=2, MachineName="M2", YarnFaults=6),
    ]


@pytest.fixture
def store(three_day_rows):
    """Blobs for U-1 and U-2; the other four units are missing."""
    return FakeStore(blobs_of({
        "U-1": three_day_rows,
        "U-2": [unit_row("2024-01-03", MachineName="M9", ArticleNumber="B7", YarnLength=500)],
    }))


@pytest.fixture
def clock():
    return FakeClock()
