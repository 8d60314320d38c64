"""
Configuration
=============

Fixed constants shared by the pipeline plus a small `Settings` object for the
things a user may want to change without editing code (where the dataset
lives, log level, how many leaders to show).

The event categories and the year bounds are configuration, not user input:
filters and breakdowns are always expressed in terms of these values.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
import os

# Sentinel used by every filter for "no restriction"
ALL = "ALL"

# A JSON export sometimes repeats the CSV header as a data row
HEADER_TOKEN = "STATE"

STORM_EVENT_CATEGORIES: Tuple[str, ...] = (
    "Extreme Temperature",
    "Flood",
    "Hurricane",
    "Landslide",
    "Thunderstorm",
    "Tornado",
    "Wildfire",
    "Winter Storm",
)

YEAR_RANGE: Tuple[int, int] = (1950, 2022)

DEFAULT_TOP_N = 3

# Values whose integer part has more digits than this use SI notation
COMPACT_DIGITS = 5

DEFAULT_DATA_PATH = "data/Storm_Data_Sums.json"
DEFAULT_HTTP_TIMEOUT = 30.0


def is_all(value: Optional[str]) -> bool:
    """True when a filter value means "no restriction"."""
    return value is None or str(value).strip().upper() == ALL


def canonical_event(name: str) -> Optional[str]:
    """Return the configured spelling of an event category, or None."""
    n = str(name).strip().lower()
    for cat in STORM_EVENT_CATEGORIES:
        if cat.lower() == n:
            return cat
    return None


@dataclass(frozen=True)
class Settings:
    """Runtime settings. CLI flags take precedence over these."""
    data_source: str = DEFAULT_DATA_PATH
    log_level: str = "INFO"
    top_n: int = DEFAULT_TOP_N
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from STORMSTATS_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            data_source=env.get("STORMSTATS_DATA", DEFAULT_DATA_PATH),
            log_level=env.get("STORMSTATS_LOG_LEVEL", "INFO").upper(),
            top_n=int(env.get("STORMSTATS_TOP_N", DEFAULT_TOP_N)),
            http_timeout=float(env.get("STORMSTATS_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)),
        )
