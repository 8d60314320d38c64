"""
Dataset loader (JSON -> StormRecord list)
=========================================

This module fetches the storm-summary JSON export once and converts each
object into a `StormRecord`.

Key ideas:
- The source is either an http(s) URL (fetched with `requests`) or a local path.
- We try lenient column matching because exports differ in case/punctuation.
- Conversion helpers (_to_int/_to_float/_to_str) turn blanks into 0 / "".
- Input shape is validated here so later stages never see stray header rows
  or rows without a state or year.
- The loader returns a list of immutable records; nothing downstream edits it.
"""

from __future__ import annotations
from typing import Any, List, Optional
import json
import logging
import math
import re

import pandas as pd
import requests

from .config import DEFAULT_HTTP_TIMEOUT, HEADER_TOKEN
from .errors import DatasetLoadError
from .models import StormRecord

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("STATE", "YEAR", "EVENT")
NUMERIC_COLUMNS = (
    "EVENT_COUNT",
    "DAMAGE_PROPERTY_EVENT_SUM",
    "DEATHS_DIRECT_COUNT",
    "DEATHS_INDIRECT_COUNT",
    "INJURIES_DIRECT_COUNT",
)


def _missing(x) -> bool:
    """True for None, NaN and cells that are not a single value (lists, dicts)."""
    return x is None or not pd.api.types.is_scalar(x) or pd.isna(x)


def _finite(x) -> Optional[float]:
    """Cell as a finite float, or None if missing/invalid/infinite."""
    if _missing(x): return None
    try: v = float(x)
    except (TypeError, ValueError, OverflowError): return None
    return v if math.isfinite(v) else None


def _to_int(x) -> int:
    """Convert a cell to int, returning 0 if missing/invalid."""
    v = _finite(x)
    return 0 if v is None else int(v)


def _to_float(x) -> float:
    """Convert a cell to float, returning 0.0 if missing/invalid."""
    v = _finite(x)
    return 0.0 if v is None else v


def _to_str(x) -> str:
    if _missing(x): return ""
    return str(x).strip()


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, name: str) -> Optional[str]:
    if name in df.columns:
        return name
    norm_map = {_norm(c): c for c in df.columns}
    return norm_map.get(_norm(name))


def _is_url(source: str) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


def fetch_json(source: str, timeout: float = DEFAULT_HTTP_TIMEOUT) -> Any:
    """Return the parsed JSON document at `source` (URL or local path)."""
    if _is_url(source):
        logger.info("Fetching dataset from %s", source)
        try:
            r = requests.get(source, timeout=timeout)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as e:
            raise DatasetLoadError(f"Could not fetch {source}: {e}") from e
        except ValueError as e:
            raise DatasetLoadError(f"Response from {source} is not valid JSON: {e}") from e

    logger.info("Reading dataset from %s", source)
    try:
        with open(source, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise DatasetLoadError(f"Could not read {source}: {e}") from e
    except json.JSONDecodeError as e:
        raise DatasetLoadError(f"{source} is not valid JSON: {e}") from e


def records_from_payload(payload: Any) -> List[StormRecord]:
    """Validate a decoded JSON array and convert it into records.

    Rows without a state or a year are dropped, as are repeated header rows.
    Missing, malformed or non-finite numeric fields become 0.
    """
    if not isinstance(payload, list):
        raise DatasetLoadError(f"Expected a JSON array of records, got {type(payload).__name__}")
    if not payload:
        return []
    if not all(isinstance(row, dict) for row in payload):
        raise DatasetLoadError("Every element of the dataset array must be an object")

    df = pd.DataFrame(payload)
    cols = {name: _col(df, name) for name in REQUIRED_COLUMNS + NUMERIC_COLUMNS}
    missing = [name for name in REQUIRED_COLUMNS if cols[name] is None]
    if missing:
        raise DatasetLoadError(f"Missing required column(s) {missing}. Available={list(df.columns)}")

    def cell(row, name):
        c = cols[name]
        return row[c] if c is not None else None

    records: List[StormRecord] = []
    headers = incomplete = 0
    for _, row in df.iterrows():
        state = _to_str(cell(row, "STATE"))
        if state.upper() == HEADER_TOKEN:
            headers += 1
            continue
        year = _finite(cell(row, "YEAR"))
        if not state or not year:
            incomplete += 1
            continue
        records.append(StormRecord(
            record_id=len(records),
            state=state,
            year=int(year),
            event=_to_str(cell(row, "EVENT")),
            event_count=_to_int(cell(row, "EVENT_COUNT")),
            damage_property=_to_float(cell(row, "DAMAGE_PROPERTY_EVENT_SUM")),
            deaths_direct=_to_int(cell(row, "DEATHS_DIRECT_COUNT")),
            deaths_indirect=_to_int(cell(row, "DEATHS_INDIRECT_COUNT")),
            injuries_direct=_to_int(cell(row, "INJURIES_DIRECT_COUNT")),
        ))

    if headers:
        logger.warning("Dropped %d repeated header row(s)", headers)
    if incomplete:
        logger.warning("Dropped %d row(s) without a state or year", incomplete)
    return records


def load_storm_json(source: str, timeout: float = DEFAULT_HTTP_TIMEOUT) -> List[StormRecord]:
    """Load the dataset once. Any failure is raised as DatasetLoadError."""
    records = records_from_payload(fetch_json(source, timeout=timeout))
    logger.info("Loaded %d storm records", len(records))
    return records
