"""
Algorithm utilities
===================

Small, explicit primitives used by the pipeline and the engine.

Included:
- Bottom-up merge sort. Stable in both directions: ranking relies on equal
  values keeping their prior relative order, which `reverse=True` on a
  naive merge would break.
- Intersection of two ascending position lists (two pointers)
- Extent (min/max in one pass)
"""

from __future__ import annotations
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")


def merge_sort(arr: List[T], key: Callable[[T], object] = lambda x: x, reverse: bool = False) -> List[T]:
    """Stable merge sort. Returns a new list; `arr` is left untouched."""
    keyed = [(key(item), item) for item in arr]
    width = 1
    while width < len(keyed):
        merged: List[Tuple[object, T]] = []
        for start in range(0, len(keyed), 2 * width):
            left = keyed[start:start + width]
            right = keyed[start + width:start + 2 * width]
            merged.extend(_merge(left, right, reverse))
        keyed = merged
        width *= 2
    return [item for _, item in keyed]


def _merge(left: List[Tuple[object, T]], right: List[Tuple[object, T]], reverse: bool) -> List[Tuple[object, T]]:
    out: List[Tuple[object, T]] = []
    li = ri = 0
    while li < len(left) and ri < len(right):
        lk, rk = left[li][0], right[ri][0]
        # right only wins when strictly ahead, so ties stay in input order
        right_first = (rk > lk) if reverse else (rk < lk)
        if right_first:
            out.append(right[ri]); ri += 1
        else:
            out.append(left[li]); li += 1
    return out + left[li:] + right[ri:]


def intersect_sorted(a: List[int], b: List[int]) -> List[int]:
    """Positions present in both ascending lists, ascending."""
    out: List[int] = []
    ia, ib = 0, 0
    while ia < len(a) and ib < len(b):
        x, y = a[ia], b[ib]
        if x < y:
            ia += 1
        elif y < x:
            ib += 1
        else:
            out.append(x)
            ia += 1
            ib += 1
    return out


def extent(values: Iterable[T]) -> Optional[Tuple[T, T]]:
    """Return (min, max) of values, or None if there are none."""
    lo = hi = None
    for v in values:
        if lo is None or v < lo:
            lo = v
        if hi is None or v > hi:
            hi = v
    if lo is None:
        return None
    return lo, hi
