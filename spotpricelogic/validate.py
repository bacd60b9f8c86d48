from __future__ import annotations
import pandas as pd
from typing import cast

from . import canon, exceptions


def assert_series(s: pd.Series) -> None:
    if s.index.name != canon.INDEX_NAME:
        raise exceptions.CanonError(f"Index must be '{canon.INDEX_NAME}'.")
    if not isinstance(s.index, pd.DatetimeIndex):
        raise exceptions.CanonError("Index must be a DatetimeIndex.")
    tz_index = cast(pd.DatetimeIndex, s.index)
    if tz_index.tz is None:
        raise exceptions.CanonError("Index must be tz-aware.")
    if not s.index.is_monotonic_increasing:
        raise exceptions.CanonError("Index must be sorted ascending.")
    if s.index.has_duplicates:
        raise exceptions.CanonError("Index must not contain duplicate timestamps.")


def assert_hourly(s: pd.Series) -> None:
    """Every key must sit on a whole hour."""
    idx = pd.DatetimeIndex(s.index)
    off = (idx.minute != 0) | (idx.second != 0)
    if off.any():
        first = idx[off][0]
        raise exceptions.CanonError(f"Timestamp {first.isoformat()} is not hour aligned.")
