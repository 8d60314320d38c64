import pytest

from stormstats.config import STORM_EVENT_CATEGORIES
from stormstats.errors import UnknownMetricError
from stormstats.formatting import (
    axis_format, choose_hint, format_for_display, format_si, format_storm_events,
    format_top_states, format_value, selected_metrics,
)
from stormstats.models import AxisValue, DisplayMode, FormatHint, Metric
from stormstats.wrangle import aggregate_by_group, top_n


@pytest.fixture
def top_rows(records):
    return top_n(aggregate_by_group(records), Metric.TOTAL_EVENTS, 3, must_include="Vermont")


@pytest.mark.parametrize("value,expected", [
    (0, "0.0"),
    (1_234_567, "1.2M"),
    (12_345, "12k"),
    (123_456, "120k"),
    (999_999, "1.0M"),
    (25_000_000.0, "25M"),
    (3_500_000_000, "3.5G"),
    (0.5, "500m"),
])
def test_format_si(value, expected):
    assert format_si(value) == expected


def test_hint_switches_after_five_digits():
    assert choose_hint(99_999) is FormatHint.FIXED
    assert choose_hint(12_345.67) is FormatHint.FIXED
    assert choose_hint(100_000) is FormatHint.COMPACT
    assert choose_hint(-250_000) is FormatHint.COMPACT


def test_format_value():
    assert format_value(12_345.6, FormatHint.FIXED) == "12346"
    assert format_value(1_234_567, FormatHint.COMPACT) == "1.2M"
    assert AxisValue("Deaths", 42).formatted() == "42"


def test_axis_format_uses_domain_maximum():
    fmt = axis_format(2_000_000)
    assert fmt(500_000) == "500k"
    assert axis_format(900)(450) == "450"


def test_format_top_states(top_rows):
    radar = format_top_states(top_rows)
    assert [entry[0].group for entry in radar] == ["KANSAS", "TEXAS", "FLORIDA", "VERMONT"]
    florida = radar[2]
    assert [(v.axis, v.value) for v in florida] == [
        ("Total Storms", 5), ("Deaths", 9), ("Property Damage", 25_000_000.0),
    ]
    assert florida[2].hint is FormatHint.COMPACT
    assert florida[0].hint is FormatHint.FIXED


def test_format_storm_events_zero_fills(top_rows):
    radar = format_storm_events(top_rows, Metric.DAMAGE_PROPERTY_EVENT_SUM)
    texas = {v.axis: v.value for v in radar[1]}
    assert list(texas) == list(STORM_EVENT_CATEGORIES)
    assert texas["Hurricane"] == 9_000_000.0
    assert texas["Tornado"] == 1_000_000.0
    assert texas["Wildfire"] == 0
    assert all(v.group == "TEXAS" for v in radar[1])


def test_injuries_use_the_deaths_breakdown(top_rows):
    by_deaths = format_storm_events(top_rows, Metric.DEATHS_TOTAL_COUNT)
    by_injuries = format_storm_events(top_rows, Metric.INJURIES_DIRECT_COUNT)
    assert by_deaths == by_injuries


def test_format_for_display_dispatch(top_rows):
    assert format_for_display(top_rows, "TOTAL_EVENTS", DisplayMode.TOP_STATES) == format_top_states(top_rows)
    assert format_for_display(top_rows, "TOTAL_EVENTS", "storm_events") == \
        format_storm_events(top_rows, Metric.TOTAL_EVENTS)


def test_format_for_display_rejects_unknowns(top_rows):
    with pytest.raises(ValueError):
        format_for_display(top_rows, Metric.TOTAL_EVENTS, "pie_chart")
    with pytest.raises(UnknownMetricError):
        format_for_display(top_rows, "RAINFALL", DisplayMode.TOP_STATES)


def test_selected_metrics(top_rows):
    radar = format_top_states(top_rows)
    s = selected_metrics(radar, "florida")
    assert (s.deaths, s.event_count, s.property_damage) == (9, 5, 25_000_000.0)
    assert selected_metrics(radar, "ALL") is None
    assert selected_metrics(radar, "Ohio") is None
