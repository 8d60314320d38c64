"""
Data model
==========

Each object of the storm-summary JSON is converted into a `StormRecord`.
Records are immutable (`frozen=True`) so that:
- rows cannot be accidentally modified after loading, and
- every pipeline stage builds new collections instead of editing old ones.

Aggregated values use `AggregateRow` (per state, per event category, or per
year of one group) and chart-ready values use `AxisValue`.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

from .errors import UnknownMetricError


class Metric(str, Enum):
    """Numeric dimension selectable for ranking and display."""
    TOTAL_EVENTS = "TOTAL_EVENTS"
    DEATHS_TOTAL_COUNT = "DEATHS_TOTAL_COUNT"
    DEATHS_DIRECT_COUNT = "DEATHS_DIRECT_COUNT"
    DEATHS_INDIRECT_COUNT = "DEATHS_INDIRECT_COUNT"
    DAMAGE_PROPERTY_EVENT_SUM = "DAMAGE_PROPERTY_EVENT_SUM"
    INJURIES_DIRECT_COUNT = "INJURIES_DIRECT_COUNT"

    @property
    def label(self) -> str:
        return METRIC_LABELS[self]


METRIC_LABELS: Dict[Metric, str] = {
    Metric.TOTAL_EVENTS: "Total Storms",
    Metric.DEATHS_TOTAL_COUNT: "Total Deaths",
    Metric.DEATHS_DIRECT_COUNT: "Direct Deaths",
    Metric.DEATHS_INDIRECT_COUNT: "Indirect Deaths",
    Metric.DAMAGE_PROPERTY_EVENT_SUM: "Property Damage",
    Metric.INJURIES_DIRECT_COUNT: "Direct Injuries",
}


class Breakdown(str, Enum):
    """Per-event-category mappings built alongside the totals."""
    COUNTS_BY_EVENT = "COUNTS_BY_EVENT"
    DEATHS_BY_EVENT = "DEATHS_BY_EVENT"
    DAMAGES_BY_EVENT = "DAMAGES_BY_EVENT"


# Which breakdown answers "this metric, split by event category".
# Injuries have no breakdown of their own and share the deaths one.
METRIC_BREAKDOWN: Dict[Metric, Breakdown] = {
    Metric.TOTAL_EVENTS: Breakdown.COUNTS_BY_EVENT,
    Metric.DEATHS_TOTAL_COUNT: Breakdown.DEATHS_BY_EVENT,
    Metric.DEATHS_DIRECT_COUNT: Breakdown.DEATHS_BY_EVENT,
    Metric.DEATHS_INDIRECT_COUNT: Breakdown.DEATHS_BY_EVENT,
    Metric.DAMAGE_PROPERTY_EVENT_SUM: Breakdown.DAMAGES_BY_EVENT,
    Metric.INJURIES_DIRECT_COUNT: Breakdown.DEATHS_BY_EVENT,
}


class GroupKey(str, Enum):
    STATE = "STATE"
    EVENT = "EVENT"


class DisplayMode(str, Enum):
    TOP_STATES = "TOP_STATES"
    STORM_EVENTS = "STORM_EVENTS"


class FormatHint(str, Enum):
    COMPACT = "compact"   # SI prefix, two significant digits (1.2M)
    FIXED = "fixed"       # no decimals (12345)


def resolve_metric(name: Union[str, Metric]) -> Metric:
    """Accept a Metric or its name (any case); raise UnknownMetricError otherwise."""
    if isinstance(name, Metric):
        return name
    try:
        return Metric(str(name).strip().upper())
    except ValueError:
        raise UnknownMetricError(name) from None


@dataclass(frozen=True)
class StormRecord:
    """One row of the storm-summary dataset (state x year x event category)."""
    record_id: int
    state: str
    year: int
    event: str
    event_count: int = 0
    damage_property: float = 0.0
    deaths_direct: int = 0
    deaths_indirect: int = 0
    injuries_direct: int = 0

    @property
    def deaths_total(self) -> int:
        return self.deaths_direct + self.deaths_indirect

    def to_dict(self) -> Dict[str, object]:
        """Return the record using the dataset's field names."""
        return {
            "STATE": self.state,
            "YEAR": self.year,
            "EVENT": self.event,
            "EVENT_COUNT": self.event_count,
            "DAMAGE_PROPERTY_EVENT_SUM": self.damage_property,
            "DEATHS_DIRECT_COUNT": self.deaths_direct,
            "DEATHS_INDIRECT_COUNT": self.deaths_indirect,
            "INJURIES_DIRECT_COUNT": self.injuries_direct,
        }


@dataclass(frozen=True)
class AggregateRow:
    """Sums over all records sharing a grouping key.

    `year` is set only for rows of a per-year series. The three breakdowns
    map event category -> running sum and are empty for per-year rows.
    They are stored as read-only views.
    """
    key: str
    year: Optional[int] = None
    damage_property: float = 0.0
    deaths_direct: int = 0
    deaths_indirect: int = 0
    deaths_total: int = 0
    injuries_direct: int = 0
    total_events: int = 0
    counts_by_event: Mapping[str, float] = field(default_factory=dict)
    deaths_by_event: Mapping[str, float] = field(default_factory=dict)
    damages_by_event: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("counts_by_event", "deaths_by_event", "damages_by_event"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def metric(self, metric: Union[str, Metric]) -> float:
        m = resolve_metric(metric)
        if m is Metric.TOTAL_EVENTS:
            return self.total_events
        if m is Metric.DEATHS_TOTAL_COUNT:
            return self.deaths_total
        if m is Metric.DEATHS_DIRECT_COUNT:
            return self.deaths_direct
        if m is Metric.DEATHS_INDIRECT_COUNT:
            return self.deaths_indirect
        if m is Metric.DAMAGE_PROPERTY_EVENT_SUM:
            return self.damage_property
        return self.injuries_direct

    def breakdown(self, which: Breakdown) -> Mapping[str, float]:
        if which is Breakdown.COUNTS_BY_EVENT:
            return self.counts_by_event
        if which is Breakdown.DEATHS_BY_EVENT:
            return self.deaths_by_event
        return self.damages_by_event

    @classmethod
    def zero(cls, key: str, year: Optional[int] = None) -> "AggregateRow":
        return cls(key=key, year=year)


@dataclass(frozen=True)
class Series:
    """Per-year rows of one group (a line on a time-series chart)."""
    key: str
    values: Tuple[AggregateRow, ...]

    def years(self) -> Tuple[int, ...]:
        return tuple(r.year for r in self.values if r.year is not None)


@dataclass(frozen=True)
class AxisValue:
    """The universal shape consumed by chart components."""
    axis: str
    value: float
    group: Optional[str] = None
    hint: FormatHint = FormatHint.FIXED

    def formatted(self) -> str:
        from .formatting import format_value
        return format_value(self.value, self.hint)


@dataclass(frozen=True)
class Summary:
    """Headline numbers shown next to the filters."""
    deaths: float
    event_count: float
    property_damage: float
