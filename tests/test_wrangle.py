import pytest

from stormstats.config import STORM_EVENT_CATEGORIES
from stormstats.errors import SelectionNotFoundError, UnknownMetricError
from stormstats.models import AggregateRow, Breakdown, GroupKey, Metric, StormRecord
from stormstats.wrangle import (
    aggregate_by_group, aggregate_by_year, event_series, fill_years, filter_records,
    group_records, state_metric_values, summarize, top_n, top_state_series,
    wrangle_storm_events, wrangle_top_state_metrics, wrangle_top_states,
)


def _by_key(rows):
    return {r.key: r for r in rows}


# ---------------- Filter ----------------
def test_open_filters_return_input_unchanged(records):
    assert filter_records(records) == records
    assert filter_records(records, None, "ALL", "all") == records
    assert filter_records(records, None, None, None) == records


def test_filter_by_each_predicate(records):
    assert {r.state for r in filter_records(records, region="texas")} == {"TEXAS"}
    assert {r.event for r in filter_records(records, event="HURRICANE")} == {"Hurricane"}
    assert {r.year for r in filter_records(records, year_range=(2001, 2001))} == {2001}


def test_filter_combines_predicates_and_keeps_order(records):
    out = filter_records(records, year_range=(2000, 2001), event="Tornado", region="Kansas")
    assert [(r.state, r.year) for r in out] == [("KANSAS", 2000)]
    ids = [r.record_id for r in filter_records(records, year_range=(2001, 2002))]
    assert ids == sorted(ids)


def test_filter_rejects_reversed_years(records):
    with pytest.raises(ValueError):
        filter_records(records, year_range=(2002, 2000))


def test_filter_does_not_touch_input(records):
    before = list(records)
    filter_records(records, region="Texas")
    assert records == before


# ---------------- Group / Aggregate ----------------
def test_group_records_first_appearance_order(records):
    assert list(group_records(records, GroupKey.STATE)) == ["TEXAS", "KANSAS", "FLORIDA", "VERMONT"]
    assert list(group_records(records, GroupKey.EVENT)) == ["Tornado", "Flood", "Hurricane", "Winter Storm"]


def test_aggregate_by_state_sums_metrics(records):
    rows = _by_key(aggregate_by_group(records, GroupKey.STATE))
    tx = rows["TEXAS"]
    assert tx.total_events == 8
    assert tx.deaths_direct == 7
    assert tx.deaths_indirect == 3
    assert tx.deaths_total == 10
    assert tx.injuries_direct == 13
    assert tx.damage_property == 10_050_000.0
    assert tx.counts_by_event == {"Tornado": 5, "Flood": 2, "Hurricane": 1}
    assert tx.deaths_by_event == {"Tornado": 3, "Flood": 1, "Hurricane": 6}
    assert tx.damages_by_event["Hurricane"] == 9_000_000.0


def test_event_counts_are_conserved(records):
    for filters in ({}, {"year_range": (2000, 2001)}, {"event": "Flood"}, {"region": "Kansas"}):
        filtered = filter_records(records, **filters)
        rows = aggregate_by_group(filtered, GroupKey.STATE)
        assert sum(r.total_events for r in rows) == sum(r.event_count for r in filtered)


def test_unrecognized_events_stay_out_of_breakdowns(records):
    ks = _by_key(aggregate_by_group(records))["KANSAS"]
    assert ks.total_events == 13
    assert "Dust Devil" not in ks.counts_by_event
    for row in aggregate_by_group(records):
        assert set(row.counts_by_event) <= set(STORM_EVENT_CATEGORIES)
        assert set(row.deaths_by_event) <= set(STORM_EVENT_CATEGORIES)
        assert set(row.damages_by_event) <= set(STORM_EVENT_CATEGORIES)


def test_aggregate_by_event(records):
    rows = _by_key(aggregate_by_group(records, GroupKey.EVENT))
    assert set(rows) == {"Tornado", "Flood", "Hurricane", "Winter Storm"}
    assert rows["Tornado"].total_events == 13
    assert rows["Hurricane"].deaths_total == 15


def test_stray_header_group_is_skipped():
    recs = [StormRecord(0, "STATE", 2000, "Flood", 9), StormRecord(1, "OHIO", 2000, "Flood", 1)]
    assert [r.key for r in aggregate_by_group(recs)] == ["OHIO"]


def test_aggregate_by_year(records):
    rows = aggregate_by_year(filter_records(records, region="Florida"), "FLORIDA")
    assert [(r.year, r.total_events) for r in rows] == [(2001, 4), (2002, 1)]
    assert all(r.key == "FLORIDA" and r.counts_by_event == {} for r in rows)


def test_texas_example():
    recs = [
        StormRecord(0, "TX", 2000, "Tornado", event_count=5),
        StormRecord(1, "TX", 2000, "Flood", event_count=2),
    ]
    (tx,) = aggregate_by_group(recs)
    assert tx.total_events == 7
    filled = fill_years(aggregate_by_year(recs, "TX"), 2000, 2002)
    assert [r.year for r in filled] == [2000, 2001, 2002]
    assert filled[1] == AggregateRow.zero("TX", 2001)
    assert filled[2].total_events == 0


# ---------------- Top-N ----------------
def test_top_n_descending(records):
    rows = aggregate_by_group(records)
    top = top_n(rows, Metric.TOTAL_EVENTS, 3)
    assert [r.key for r in top] == ["KANSAS", "TEXAS", "FLORIDA"]
    values = [r.total_events for r in top]
    assert values == sorted(values, reverse=True)


def test_top_n_accepts_metric_names(records):
    rows = aggregate_by_group(records)
    top = top_n(rows, "damage_property_event_sum", 2)
    assert [r.key for r in top] == ["FLORIDA", "TEXAS"]


def test_top_n_ties_keep_prior_order():
    rows = [AggregateRow("A", total_events=5), AggregateRow("B", total_events=7),
            AggregateRow("C", total_events=5), AggregateRow("D", total_events=7)]
    assert [r.key for r in top_n(rows, Metric.TOTAL_EVENTS, 4)] == ["B", "D", "A", "C"]


def test_top_n_appends_selection(records):
    rows = aggregate_by_group(records)
    top = top_n(rows, Metric.TOTAL_EVENTS, 3, must_include="vermont")
    assert [r.key for r in top] == ["KANSAS", "TEXAS", "FLORIDA", "VERMONT"]
    assert len(top) <= 4


def test_top_n_selection_already_leading(records):
    rows = aggregate_by_group(records)
    assert len(top_n(rows, Metric.TOTAL_EVENTS, 3, must_include="Texas")) == 3
    assert len(top_n(rows, Metric.TOTAL_EVENTS, 3, must_include="ALL")) == 3


def test_top_n_missing_selection_is_signalled(records):
    rows = aggregate_by_group(records)
    with pytest.raises(SelectionNotFoundError) as exc:
        top_n(rows, Metric.TOTAL_EVENTS, 3, must_include="Ohio")
    assert exc.value.selection == "Ohio"
    assert [r.key for r in exc.value.leaders] == ["KANSAS", "TEXAS", "FLORIDA"]


def test_top_n_unknown_metric(records):
    with pytest.raises(UnknownMetricError):
        top_n(aggregate_by_group(records), "HAIL_SIZE", 3)


# ---------------- Year fill ----------------
def test_fill_years_length_and_zero_rows():
    series = [AggregateRow("Flood", year=1990, total_events=4, deaths_total=1),
              AggregateRow("Flood", year=1995, total_events=2)]
    filled = fill_years(series, 1988, 1996)
    assert len(filled) == 1996 - 1988 + 1
    assert [r.year for r in filled] == list(range(1988, 1997))
    synthesized = [r for r in filled if r.year not in (1990, 1995)]
    for r in synthesized:
        assert r.key == "Flood"
        assert (r.total_events, r.deaths_total, r.damage_property, r.injuries_direct) == (0, 0, 0.0, 0)


def test_fill_years_drops_out_of_range_rows():
    series = [AggregateRow("X", year=1980, total_events=1), AggregateRow("X", year=2001, total_events=3)]
    assert [r.total_events for r in fill_years(series, 2000, 2002)] == [0, 3, 0]


def test_fill_years_empty_series_needs_key():
    with pytest.raises(ValueError):
        fill_years([], 2000, 2001)
    assert [r.key for r in fill_years([], 2000, 2001, key="OHIO")] == ["OHIO", "OHIO"]


# ---------------- Composites ----------------
def test_wrangle_top_states_flags_missing_selection(records):
    rows, missing = wrangle_top_states(records, event="Tornado", region="Vermont")
    assert missing is True
    assert [r.key for r in rows] == ["KANSAS", "TEXAS"]

    rows, missing = wrangle_top_states(records, region="Vermont")
    assert missing is False
    assert rows[-1].key == "VERMONT"


def test_wrangle_top_state_metrics_shape(records):
    radar = wrangle_top_state_metrics(records, n=2)
    assert [[v.axis for v in entry] for entry in radar] == [["Total Storms", "Deaths", "Property Damage"]] * 2


def test_wrangle_storm_events_one_axis_per_category(records):
    radar = wrangle_storm_events(records, metric=Metric.TOTAL_EVENTS, n=3)
    assert len(radar) == 3
    for entry in radar:
        assert [v.axis for v in entry] == list(STORM_EVENT_CATEGORIES)


def test_event_series_filled_and_sorted(records):
    series = event_series(records)
    assert [s.key for s in series] == ["Flood", "Hurricane", "Winter Storm", "Tornado"]
    flood = series[0]
    assert [r.year for r in flood.values] == [2002, 2001, 2000]
    assert flood.values[1].total_events == 0


def test_event_series_with_fill_range(records):
    series = event_series(records, region="Texas", fill_range=(1999, 2002))
    assert all(len(s.values) == 4 for s in series)


def test_top_state_series(records):
    series = top_state_series(records, year_range=(2000, 2002), n=2, region="Vermont")
    assert [s.key for s in series] == ["KANSAS", "TEXAS", "VERMONT"]
    assert all(s.years() == (2002, 2001, 2000) for s in series)
    assert series[2].values[0].total_events == 1


def test_state_metric_values(records):
    cells = {c.axis: c.value for c in state_metric_values(records, metric="DEATHS_TOTAL_COUNT")}
    assert cells == {"TEXAS": 10, "KANSAS": 2, "FLORIDA": 9, "VERMONT": 0}


def test_summarize(records):
    s = summarize(filter_records(records, region="Florida"))
    assert (s.deaths, s.event_count, s.property_damage) == (9, 5, 25_000_000.0)


def test_pipeline_is_idempotent(records):
    def run():
        rows, _ = wrangle_top_states(records, year_range=(2000, 2002), region="Vermont",
                                     metric=Metric.DEATHS_TOTAL_COUNT)
        return rows, event_series(records), state_metric_values(records)

    snapshot = list(records)
    assert run() == run()
    assert records == snapshot


def test_breakdowns_are_read_only(records):
    ks = _by_key(aggregate_by_group(records))["KANSAS"]
    with pytest.raises(TypeError):
        ks.breakdown(Breakdown.COUNTS_BY_EVENT)["Tornado"] = 0
    with pytest.raises(TypeError):
        ks.damages_by_event["Flood"] = 1.0
    assert ks.counts_by_event == {"Tornado": 8, "Winter Storm": 3}


def test_top_state_series_reuses_given_leaders(records):
    leaders, _ = wrangle_top_states(records, region="Vermont", n=2)
    assert top_state_series(records, region="Vermont", n=2, leaders=leaders) == \
        top_state_series(records, region="Vermont", n=2)
