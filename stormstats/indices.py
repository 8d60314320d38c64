"""
Indices (precomputed lookup tables)
===================================

The dashboard re-runs the pipeline on every filter change, always over the
same immutable record list. Building simple indices once (value -> sorted
list of record positions) turns the three filter predicates into list
intersections.

Example:
- `by_state["texas"]` gives the sorted positions of all Texas rows.
- `year_to_ids[2001]` gives the positions of all rows for 2001.

Keys of `by_state` and `by_event` are lower-cased because the filters compare
case-insensitively. Sorted positions keep the original input order when
mapped back to records.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
from bisect import bisect_left, bisect_right

from .config import is_all
from .dsa import intersect_sorted
from .models import StormRecord


@dataclass
class StormIndex:
    """Container of precomputed indices for fast filtering."""
    by_state: Dict[str, List[int]]
    by_event: Dict[str, List[int]]
    year_to_ids: Dict[int, List[int]]
    years_sorted: List[int]
    size: int

    def states(self) -> List[str]:
        return sorted(self.by_state)

    def events(self) -> List[str]:
        return sorted(self.by_event)


def build_index(records: Sequence[StormRecord]) -> StormIndex:
    """Build indices from the loaded dataset.

    Positions are indexes into `records`, which is why records must not be
    reordered after the index is built.
    """
    by_state: Dict[str, List[int]] = {}
    by_event: Dict[str, List[int]] = {}
    year_to_ids: Dict[int, List[int]] = {}

    for pos, r in enumerate(records):
        by_state.setdefault(r.state.lower(), []).append(pos)
        by_event.setdefault(r.event.lower(), []).append(pos)
        year_to_ids.setdefault(r.year, []).append(pos)

    years_sorted = sorted(year_to_ids.keys())
    return StormIndex(by_state=by_state, by_event=by_event, year_to_ids=year_to_ids,
                      years_sorted=years_sorted, size=len(records))


def year_range_ids(idx: StormIndex, y1: int, y2: int) -> List[int]:
    """Return sorted positions with year in [y1, y2].

    Binary search on `years_sorted`, then merge the position lists.
    """
    lo = bisect_left(idx.years_sorted, y1)
    hi = bisect_right(idx.years_sorted, y2)
    out: List[int] = []
    for y in idx.years_sorted[lo:hi]:
        out.extend(idx.year_to_ids.get(y, []))
    out.sort()
    return out


def select_ids(
    idx: StormIndex,
    year_range: Optional[Tuple[int, int]] = None,
    event: Optional[str] = None,
    region: Optional[str] = None,
) -> List[int]:
    """Positions matching all three predicates, ascending.

    Same semantics as `wrangle.filter_records`.
    """
    ids = list(range(idx.size))
    if year_range is not None:
        y1, y2 = year_range
        if y1 > y2:
            raise ValueError(f"Year range is reversed: {y1} > {y2}")
        ids = year_range_ids(idx, y1, y2)
    if not is_all(event):
        ids = intersect_sorted(ids, idx.by_event.get(str(event).strip().lower(), []))
    if not is_all(region):
        ids = intersect_sorted(ids, idx.by_state.get(str(region).strip().lower(), []))
    return ids
