"""
Dashboard engine
================

The engine is the one place that holds view state. Presentation code (the
CLI, the report, a web page) works like this:

1) Load dataset -> list of StormRecord (immutable)
2) Build indices -> fast lookup tables
3) Hold the *current filters* in a FilterState (year range, region, event,
   metric, N)
4) Change filters through the setters (events up)
5) Ask for a DashboardView, which re-runs the whole pipeline with the current
   filters passed down as plain arguments (state down)

Filter changes are kept on undo/redo stacks. Views are never cached: each
call is an independent run over the same records, and a caller simply keeps
the newest view it asked for.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union
import csv, json, logging, time

from .config import ALL, DEFAULT_TOP_N, YEAR_RANGE, canonical_event, is_all
from .formatting import RadarData, format_storm_events, format_top_states, selected_metrics
from .indices import StormIndex, build_index, select_ids
from .models import AggregateRow, AxisValue, Metric, Series, StormRecord, Summary, resolve_metric
from .wrangle import (
    event_series, filter_records, state_metric_values, summarize, top_state_series,
    wrangle_top_states,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterState:
    """Every user selection the pipeline depends on."""
    year_range: Optional[Tuple[int, int]] = YEAR_RANGE
    region: str = ALL
    event: str = ALL
    metric: Metric = Metric.TOTAL_EVENTS
    top_n: int = DEFAULT_TOP_N


@dataclass(frozen=True)
class DashboardView:
    """Chart-ready output of one pipeline run."""
    filters: FilterState
    top_states: List[AggregateRow]
    radar_states: RadarData
    radar_storms: RadarData
    storm_series: List[Series]
    state_series: List[Series]
    heatmap: List[AxisValue]
    summary: Summary
    selection_missing: bool


@dataclass
class StormDashboard:
    """Severe-weather dashboard state plus the pipeline runs that feed it.

    The engine stores:
    - records: all StormRecord rows (never reordered; the index points into it)
    - idx: precomputed indices for fast filters
    - state: current FilterState
    """
    records: List[StormRecord]
    idx: Optional[StormIndex] = None
    dataset_path: Optional[str] = None
    # Commands that changed the filters (for reproducibility in reports)
    command_log: List[str] = field(default_factory=list)
    state: FilterState = field(default_factory=FilterState)

    _undo: List[FilterState] = field(default_factory=list, init=False)
    _redo: List[FilterState] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        if self.idx is None:
            self.idx = build_index(self.records)

    # ---------------- History (Stacks) ----------------
    def _push(self, new_state: FilterState) -> FilterState:
        if new_state != self.state:
            self._undo.append(self.state)
            self._redo.clear()
            self.state = new_state
            logger.debug("Filters changed: %s", new_state)
        return self.state

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.state)
        self.state = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.state)
        self.state = self._redo.pop()
        return True

    # ---------------- Setters ----------------
    def reset(self) -> FilterState:
        """Back to all years, all states, all events, default metric."""
        return self._push(FilterState(top_n=self.state.top_n))

    def set_region(self, region: Optional[str]) -> FilterState:
        value = ALL if is_all(region) else str(region).strip()
        return self._push(replace(self.state, region=value))

    def set_event(self, event: Optional[str]) -> FilterState:
        if is_all(event):
            return self._push(replace(self.state, event=ALL))
        cat = canonical_event(event)
        if cat is None:
            raise ValueError(f"Unknown event type {event!r}")
        return self._push(replace(self.state, event=cat))

    def set_years(self, y1: Optional[int] = None, y2: Optional[int] = None) -> FilterState:
        """Restrict to [y1, y2]; calling with no arguments clears the year filter."""
        if y1 is None and y2 is None:
            return self._push(replace(self.state, year_range=None))
        lo = YEAR_RANGE[0] if y1 is None else int(y1)
        hi = YEAR_RANGE[1] if y2 is None else int(y2)
        if lo > hi:
            raise ValueError(f"Year range is reversed: {lo} > {hi}")
        if lo < YEAR_RANGE[0] or hi > YEAR_RANGE[1]:
            raise ValueError(f"Years must be within {YEAR_RANGE[0]}-{YEAR_RANGE[1]}")
        return self._push(replace(self.state, year_range=(lo, hi)))

    def set_metric(self, metric: Union[str, Metric]) -> FilterState:
        return self._push(replace(self.state, metric=resolve_metric(metric)))

    def set_top_n(self, n: int) -> FilterState:
        if int(n) < 1:
            raise ValueError("N must be at least 1")
        return self._push(replace(self.state, top_n=int(n)))

    # ---------------- Pipeline runs ----------------
    def filtered(self, include_region: bool = True) -> List[StormRecord]:
        """Records matching the current filters (index-based)."""
        s = self.state
        ids = select_ids(self.idx, s.year_range, s.event, s.region if include_region else ALL)
        return [self.records[i] for i in ids]

    def view(self) -> DashboardView:
        s = self.state
        common = dict(year_range=s.year_range, event=s.event, region=s.region, metric=s.metric)

        top_rows, missing = wrangle_top_states(self.records, n=s.top_n, **common)
        radar_states = format_top_states(top_rows)
        summary = selected_metrics(radar_states, s.region) or summarize(self.filtered())

        return DashboardView(
            filters=s,
            top_states=top_rows,
            radar_states=radar_states,
            radar_storms=format_storm_events(top_rows, s.metric),
            storm_series=event_series(self.records, year_range=s.year_range, region=s.region),
            state_series=top_state_series(self.records, n=s.top_n, leaders=top_rows, **common),
            heatmap=state_metric_values(self.records, year_range=s.year_range,
                                        event=s.event, metric=s.metric),
            summary=summary,
            selection_missing=missing,
        )

    # ---------------- Output operations ----------------
    def export_csv(self, path: str) -> int:
        rows = self.filtered()
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["STATE", "YEAR", "EVENT", "EVENT_COUNT", "DAMAGE_PROPERTY_EVENT_SUM",
                        "DEATHS_DIRECT_COUNT", "DEATHS_INDIRECT_COUNT", "INJURIES_DIRECT_COUNT"])
            for r in rows:
                w.writerow([r.state, r.year, r.event, r.event_count, r.damage_property,
                            r.deaths_direct, r.deaths_indirect, r.injuries_direct])
        return len(rows)

    def export_json(self, path: str) -> int:
        """Export the current selection in the same shape the dataset is read from."""
        rows = self.filtered()
        with open(path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in rows], f, ensure_ascii=False, indent=2)
        return len(rows)

    def bench(self, rounds: int = 30) -> Dict[str, float]:
        """Time the scanning filter against the index-based one for the current filters."""
        s = self.state

        def naive():
            return filter_records(self.records, s.year_range, s.event, s.region)

        def indexed():
            return select_ids(self.idx, s.year_range, s.event, s.region)

        t0 = time.perf_counter()
        for _ in range(rounds): naive()
        t1 = time.perf_counter()
        for _ in range(rounds): indexed()
        t2 = time.perf_counter()
        return {"naive_ms": (t1 - t0) * 1000 / rounds, "indexed_ms": (t2 - t1) * 1000 / rounds}
