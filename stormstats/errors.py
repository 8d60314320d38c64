"""
Errors raised by stormstats.

Everything derives from `StormStatsError` so callers (the CLI loop, a web
handler) can catch the package's failures in one place.
"""

from __future__ import annotations
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import AggregateRow


class StormStatsError(Exception):
    pass


class DatasetLoadError(StormStatsError):
    """The dataset could not be fetched, parsed or has the wrong shape."""


class UnknownMetricError(StormStatsError, ValueError):
    def __init__(self, name: object) -> None:
        from .models import Metric
        valid = ", ".join(m.value for m in Metric)
        super().__init__(f"Unknown metric {name!r}. Valid metrics: {valid}")
        self.name = name


class SelectionNotFoundError(StormStatsError, LookupError):
    """The selected group has no rows in the filtered data.

    `leaders` holds the top-N rows computed without the selection, so a
    caller can still render the leaders and flag the missing selection.
    """

    def __init__(self, selection: str, leaders: Optional[List["AggregateRow"]] = None) -> None:
        super().__init__(f"Selection {selection!r} is not present in the filtered data")
        self.selection = selection
        self.leaders = list(leaders or [])
