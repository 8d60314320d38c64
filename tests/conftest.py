import json

import pytest

from stormstats.engine import StormDashboard
from stormstats.loader import records_from_payload


def _row(state, year, event, count, damage=0.0, direct=0, indirect=0, injuries=0):
    return {
        "STATE": state,
        "YEAR": year,
        "EVENT": event,
        "EVENT_COUNT": count,
        "DAMAGE_PROPERTY_EVENT_SUM": damage,
        "DEATHS_DIRECT_COUNT": direct,
        "DEATHS_INDIRECT_COUNT": indirect,
        "INJURIES_DIRECT_COUNT": injuries,
    }


# Events by state: KANSAS 13, TEXAS 8, FLORIDA 5, VERMONT 1 (27 in total).
# "Dust Devil" is not a recognized category.
SAMPLE = [
    _row("TEXAS", 2000, "Tornado", 5, 1_000_000.0, 2, 1, 10),
    _row("TEXAS", 2000, "Flood", 2, 50_000.0, 1, 0, 0),
    _row("TEXAS", 2002, "Hurricane", 1, 9_000_000.0, 4, 2, 3),
    _row("KANSAS", 2000, "Tornado", 8, 200_000.0, 0, 0, 4),
    _row("KANSAS", 2001, "Winter Storm", 3, 10_000.0, 1, 1, 0),
    _row("FLORIDA", 2001, "Hurricane", 4, 25_000_000.0, 6, 3, 20),
    _row("FLORIDA", 2002, "Flood", 1, 0.0, 0, 0, 0),
    _row("VERMONT", 2002, "Winter Storm", 1, 500.0, 0, 0, 0),
    _row("KANSAS", 2002, "Dust Devil", 2, 100.0, 0, 0, 1),
]


@pytest.fixture
def payload():
    return [dict(r) for r in SAMPLE]


@pytest.fixture
def records(payload):
    return records_from_payload(payload)


@pytest.fixture
def dataset_file(tmp_path, payload):
    path = tmp_path / "Storm_Data_Sums.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def dashboard(records):
    return StormDashboard(records=records)
