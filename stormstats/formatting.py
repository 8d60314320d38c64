"""
Output formatter
================

Reshapes aggregated rows into lists of `AxisValue`, the shape every chart
consumes. One inner list per group (state), one `AxisValue` per axis.

Two layouts exist:
- TOP_STATES: three fixed axes (Total Storms, Deaths, Property Damage)
- STORM_EVENTS: one axis per recognized event category, values taken from the
  breakdown that matches the selected metric

Every value carries a `FormatHint`: large numbers (more than five integer
digits) are shown in SI notation with two significant digits, the rest as
plain integers.
"""

from __future__ import annotations
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
import math

from .config import COMPACT_DIGITS, STORM_EVENT_CATEGORIES, is_all
from .models import (
    AggregateRow, AxisValue, DisplayMode, FormatHint, Metric, METRIC_BREAKDOWN,
    Summary, resolve_metric,
)

RadarData = List[List[AxisValue]]

SI_PREFIXES: Dict[int, str] = {
    -8: "y", -7: "z", -6: "a", -5: "f", -4: "p", -3: "n", -2: "µ", -1: "m",
    0: "", 1: "k", 2: "M", 3: "G", 4: "T", 5: "P", 6: "E", 7: "Z", 8: "Y",
}

TOP_STATE_AXES: Tuple[Tuple[str, Metric], ...] = (
    ("Total Storms", Metric.TOTAL_EVENTS),
    ("Deaths", Metric.DEATHS_TOTAL_COUNT),
    ("Property Damage", Metric.DAMAGE_PROPERTY_EVENT_SUM),
)


# ---------------- Numbers ----------------
def choose_hint(value: float) -> FormatHint:
    if not math.isfinite(value):
        return FormatHint.FIXED
    digits = len(str(int(abs(value))))
    return FormatHint.COMPACT if digits > COMPACT_DIGITS else FormatHint.FIXED


def format_si(value: float, precision: int = 2) -> str:
    """SI-prefix notation with `precision` significant digits (1234567 -> 1.2M)."""
    if value == 0:
        return f"{0:.{precision - 1}f}"
    rounded = float(f"{value:.{precision}g}")
    exp = int(math.floor(math.log10(abs(rounded)) / 3))
    exp = max(-8, min(8, exp))
    scaled = rounded / 10 ** (3 * exp) if exp >= 0 else rounded * 10 ** (-3 * exp)
    decimals = max(0, precision - 1 - int(math.floor(math.log10(abs(scaled)))))
    return f"{scaled:.{decimals}f}{SI_PREFIXES[exp]}"


def format_value(value: float, hint: FormatHint) -> str:
    if hint is FormatHint.COMPACT:
        return format_si(value)
    return f"{value:.0f}"


def axis_format(max_value: float) -> Callable[[float], str]:
    """Tick formatter for a chart axis whose domain ends at `max_value`."""
    hint = choose_hint(max_value)
    return lambda v: format_value(v, hint)


def _axis_value(axis: str, value: float, group: str) -> AxisValue:
    return AxisValue(axis=axis, value=value, group=group, hint=choose_hint(value))


# ---------------- Layouts ----------------
def format_top_states(rows: Sequence[AggregateRow]) -> RadarData:
    return [
        [_axis_value(axis, row.metric(metric), row.key) for axis, metric in TOP_STATE_AXES]
        for row in rows
    ]


def format_storm_events(rows: Sequence[AggregateRow], metric: Union[str, Metric]) -> RadarData:
    """One axis per event category, zero-filled, from the metric's breakdown."""
    breakdown = METRIC_BREAKDOWN[resolve_metric(metric)]
    out: RadarData = []
    for row in rows:
        values = row.breakdown(breakdown)
        out.append([_axis_value(name, values.get(name, 0), row.key) for name in STORM_EVENT_CATEGORIES])
    return out


_LAYOUTS: Dict[DisplayMode, Callable[[Sequence[AggregateRow], Metric], RadarData]] = {
    DisplayMode.TOP_STATES: lambda rows, metric: format_top_states(rows),
    DisplayMode.STORM_EVENTS: format_storm_events,
}


def format_for_display(
    rows: Sequence[AggregateRow],
    metric: Union[str, Metric],
    mode: Union[str, DisplayMode] = DisplayMode.TOP_STATES,
) -> RadarData:
    m = resolve_metric(metric)
    return _LAYOUTS[resolve_mode(mode)](rows, m)


def resolve_mode(mode: Union[str, DisplayMode]) -> DisplayMode:
    if isinstance(mode, DisplayMode):
        return mode
    try:
        return DisplayMode(str(mode).strip().upper())
    except ValueError:
        raise ValueError(f"Unknown display mode {mode!r}. Use: top_states | storm_events") from None


def selected_metrics(radar: RadarData, region: Optional[str]) -> Optional[Summary]:
    """Headline numbers of `region` from TOP_STATES output, or None."""
    if is_all(region):
        return None
    wanted = str(region).strip().lower()
    for entry in radar:
        if not entry or (entry[0].group or "").lower() != wanted:
            continue
        by_axis = {v.axis: v.value for v in entry}
        return Summary(
            deaths=by_axis.get("Deaths", 0),
            event_count=by_axis.get("Total Storms", 0),
            property_damage=by_axis.get("Property Damage", 0),
        )
    return None
