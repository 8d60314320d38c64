"""
Wrangling pipeline
==================

This is the heart of the project. Every chart on the dashboard is fed by the
same short pipeline, re-run from scratch whenever a filter changes:

1) Filter    -> keep records matching year range, event type and region
2) Group     -> partition records by state or by event category
3) Aggregate -> sum counts/deaths/damage per group (+ per-event breakdowns)
4) Top-N     -> rank groups by the selected metric, keep the leaders
5) Fill      -> give a per-year series one entry for every year in range
6) Format    -> see `formatting.py`

All functions are pure: they never modify their inputs and always return new
collections, so running the pipeline twice on the same input gives the same
output.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union
import logging

from .config import ALL, HEADER_TOKEN, canonical_event, is_all
from .dsa import extent, merge_sort
from .errors import SelectionNotFoundError
from .formatting import RadarData, choose_hint, format_storm_events, format_top_states
from .models import (
    AggregateRow, AxisValue, GroupKey, Metric, Series, StormRecord, Summary, resolve_metric,
)

logger = logging.getLogger(__name__)

YearRange = Optional[Tuple[int, int]]


# ---------------- 1) Filter ----------------
def filter_records(
    records: Iterable[StormRecord],
    year_range: YearRange = None,
    event: Optional[str] = ALL,
    region: Optional[str] = ALL,
) -> List[StormRecord]:
    """Return the records that satisfy all three predicates, in input order.

    `None` or "ALL" leaves a predicate open. Region and event are compared
    case-insensitively.
    """
    if year_range is not None:
        y1, y2 = year_range
        if y1 > y2:
            raise ValueError(f"Year range is reversed: {y1} > {y2}")
    want_event = None if is_all(event) else str(event).strip().lower()
    want_region = None if is_all(region) else str(region).strip().lower()

    out: List[StormRecord] = []
    for r in records:
        if year_range is not None and not (year_range[0] <= r.year <= year_range[1]):
            continue
        if want_event is not None and r.event.lower() != want_event:
            continue
        if want_region is not None and r.state.lower() != want_region:
            continue
        out.append(r)
    return out


# ---------------- 2) Group ----------------
def _group_value(r: StormRecord, group_key: GroupKey) -> Optional[str]:
    if group_key is GroupKey.STATE:
        return r.state
    # unrecognized categories do not form a group
    return canonical_event(r.event)


def group_records(records: Iterable[StormRecord], group_key: GroupKey = GroupKey.STATE) -> Dict[str, List[StormRecord]]:
    """Partition records by state or event category, in first-appearance order."""
    groups: Dict[str, List[StormRecord]] = {}
    for r in records:
        k = _group_value(r, group_key)
        if k is None:
            continue
        groups.setdefault(k, []).append(r)
    return groups


# ---------------- 3) Aggregate ----------------
def _sum_records(key: str, records: Iterable[StormRecord], year: Optional[int] = None,
                 with_breakdowns: bool = True) -> AggregateRow:
    damage = 0.0
    deaths_direct = deaths_indirect = injuries = events = 0
    counts: Dict[str, float] = {}
    deaths: Dict[str, float] = {}
    damages: Dict[str, float] = {}

    for r in records:
        damage += r.damage_property
        deaths_direct += r.deaths_direct
        deaths_indirect += r.deaths_indirect
        injuries += r.injuries_direct
        events += r.event_count

        if not with_breakdowns:
            continue
        cat = canonical_event(r.event)
        if cat is None:
            continue
        counts[cat] = counts.get(cat, 0) + r.event_count
        deaths[cat] = deaths.get(cat, 0) + r.deaths_total
        damages[cat] = damages.get(cat, 0) + r.damage_property

    return AggregateRow(
        key=key,
        year=year,
        damage_property=damage,
        deaths_direct=deaths_direct,
        deaths_indirect=deaths_indirect,
        deaths_total=deaths_direct + deaths_indirect,
        injuries_direct=injuries,
        total_events=events,
        counts_by_event=counts,
        deaths_by_event=deaths,
        damages_by_event=damages,
    )


def aggregate_by_group(records: Iterable[StormRecord], group_key: GroupKey = GroupKey.STATE) -> List[AggregateRow]:
    """Sum every metric per group and build the per-event breakdowns in the same pass.

    Grouping by state keeps records of unrecognized categories in the totals
    (they only stay out of the breakdowns); grouping by event drops them.
    """
    rows: List[AggregateRow] = []
    for key, members in group_records(records, group_key).items():
        if key.upper() == HEADER_TOKEN:
            logger.debug("Skipping stray header group %r", key)
            continue
        rows.append(_sum_records(key, members))
    return rows


def aggregate_by_year(records: Iterable[StormRecord], key: str) -> List[AggregateRow]:
    """One row per year present in `records`, ascending, all labelled `key`."""
    by_year: Dict[int, List[StormRecord]] = {}
    for r in records:
        by_year.setdefault(r.year, []).append(r)
    return [_sum_records(key, by_year[y], year=y, with_breakdowns=False) for y in sorted(by_year)]


# ---------------- 4) Top-N ----------------
def top_n(
    rows: Sequence[AggregateRow],
    metric: Union[str, Metric],
    n: int,
    must_include: Optional[str] = None,
) -> List[AggregateRow]:
    """Leaders by `metric`, descending; ties keep their prior order.

    When `must_include` names a group outside the first `n`, that group is
    appended as row n+1. If no row carries it, SelectionNotFoundError is raised
    with the leaders attached.
    """
    m = resolve_metric(metric)
    if n < 0:
        raise ValueError("n must be >= 0")
    ranked = merge_sort(list(rows), key=lambda r: r.metric(m), reverse=True)
    leaders = ranked[:n]
    if is_all(must_include):
        return leaders

    wanted = str(must_include).strip().lower()
    if any(r.key.lower() == wanted for r in leaders):
        return leaders
    for r in ranked[n:]:
        if r.key.lower() == wanted:
            return leaders + [r]
    raise SelectionNotFoundError(str(must_include), leaders)


# ---------------- 5) Year fill ----------------
def fill_years(series: Sequence[AggregateRow], min_year: int, max_year: int,
               key: Optional[str] = None) -> List[AggregateRow]:
    """Exactly one row per year of [min_year, max_year], ascending.

    Missing years become zero rows carrying the series' key. Rows outside the
    range are dropped; if several rows share a year the first one is kept.
    """
    if min_year > max_year:
        raise ValueError(f"Year range is reversed: {min_year} > {max_year}")
    if key is None:
        if not series:
            raise ValueError("An empty series needs an explicit key")
        key = series[0].key

    by_year: Dict[int, AggregateRow] = {}
    for row in series:
        if row.year is None:
            raise ValueError(f"Row {row.key!r} has no year")
        by_year.setdefault(row.year, row)

    return [by_year[y] if y in by_year else AggregateRow.zero(key, y)
            for y in range(min_year, max_year + 1)]


def _descending_series(key: str, rows: List[AggregateRow], fill_range: YearRange) -> Series:
    span = fill_range or extent(r.year for r in rows)
    filled = fill_years(rows, span[0], span[1], key=key) if span else []
    return Series(key=key, values=tuple(sorted(filled, key=lambda r: r.year, reverse=True)))


# ---------------- Composite wranglers (one per dashboard panel) ----------------
def wrangle_top_states(
    records: Sequence[StormRecord],
    *,
    year_range: YearRange = None,
    event: Optional[str] = ALL,
    region: Optional[str] = ALL,
    metric: Union[str, Metric] = Metric.TOTAL_EVENTS,
    n: int = 3,
) -> Tuple[List[AggregateRow], bool]:
    """Top `n` states plus the selected region.

    Returns (rows, selection_missing). The region is not used as a filter
    here: it is the group forced into the comparison.
    """
    filtered = filter_records(records, year_range=year_range, event=event)
    rows = aggregate_by_group(filtered, GroupKey.STATE)
    logger.debug("top states: %d records -> %d states", len(filtered), len(rows))
    try:
        return top_n(rows, metric, n, must_include=region), False
    except SelectionNotFoundError as e:
        logger.info("%s", e)
        return e.leaders, True


def wrangle_storm_events(
    records: Sequence[StormRecord],
    *,
    year_range: YearRange = None,
    event: Optional[str] = ALL,
    region: Optional[str] = ALL,
    metric: Union[str, Metric] = Metric.TOTAL_EVENTS,
    n: int = 3,
) -> RadarData:
    """Per-event-category axes for the top states (and the selection)."""
    rows, _ = wrangle_top_states(records, year_range=year_range, event=event,
                                 region=region, metric=metric, n=n)
    return format_storm_events(rows, metric)


def wrangle_top_state_metrics(records: Sequence[StormRecord], **filters) -> RadarData:
    rows, _ = wrangle_top_states(records, **filters)
    return format_top_states(rows)


def event_series(
    records: Sequence[StormRecord],
    *,
    year_range: YearRange = None,
    region: Optional[str] = ALL,
    fill_range: YearRange = None,
) -> List[Series]:
    """Yearly totals per event category, densest category first.

    Each series is filled over its own year extent (or `fill_range`) and
    sorted by year, newest first.
    """
    filtered = filter_records(records, year_range=year_range, region=region)
    out: List[Series] = []
    for cat, members in group_records(filtered, GroupKey.EVENT).items():
        out.append(_descending_series(cat, aggregate_by_year(members, cat), fill_range))
    return merge_sort(out, key=lambda s: len(s.values), reverse=True)


def top_state_series(
    records: Sequence[StormRecord],
    *,
    year_range: YearRange = None,
    event: Optional[str] = ALL,
    region: Optional[str] = ALL,
    metric: Union[str, Metric] = Metric.TOTAL_EVENTS,
    n: int = 3,
    leaders: Optional[Sequence[AggregateRow]] = None,
) -> List[Series]:
    """Yearly totals of the leading states (plus the selection), year-filled.

    Pass `leaders` when the top-states rows for the same filters are already
    at hand; otherwise they are ranked here.
    """
    if leaders is None:
        leaders, _ = wrangle_top_states(records, year_range=year_range, event=event,
                                        region=region, metric=metric, n=n)
    filtered = filter_records(records, year_range=year_range, event=event)
    groups = group_records(filtered, GroupKey.STATE)
    return [
        _descending_series(row.key, aggregate_by_year(groups.get(row.key, []), row.key), year_range)
        for row in leaders
    ]


def state_metric_values(
    records: Sequence[StormRecord],
    *,
    year_range: YearRange = None,
    event: Optional[str] = ALL,
    metric: Union[str, Metric] = Metric.TOTAL_EVENTS,
) -> List[AxisValue]:
    """One value per state for the heat map."""
    m = resolve_metric(metric)
    rows = aggregate_by_group(filter_records(records, year_range=year_range, event=event))
    return [AxisValue(axis=r.key, value=r.metric(m), group=r.key, hint=choose_hint(r.metric(m)))
            for r in rows]


def summarize(records: Iterable[StormRecord]) -> Summary:
    deaths = events = 0
    damage = 0.0
    for r in records:
        deaths += r.deaths_total
        events += r.event_count
        damage += r.damage_property
    return Summary(deaths=deaths, event_count=events, property_damage=damage)
