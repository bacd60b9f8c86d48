# spotpricelogic/utils.py
from __future__ import annotations
from typing import Iterable, Mapping, Optional
from zoneinfo import ZoneInfo

import numpy as np
import pandas as pd

from . import canon
from .types import PriceData, UsageData


def to_utc(ts, tz: str = "UTC") -> pd.Timestamp:
    """Timestamp in UTC; naive input is taken to be in ``tz``."""
    ts = pd.Timestamp(ts)
    if ts.tz is None:
        ts = ts.tz_localize(ZoneInfo(tz))
    return ts.tz_convert("UTC")


def ensure_utc_index(s: pd.Series) -> pd.Series:
    idx = pd.DatetimeIndex(s.index)
    if idx.tz is None:
        idx = idx.tz_localize("UTC")
    else:
        idx = idx.tz_convert("UTC")
    out = s.copy()
    out.index = idx.rename(canon.INDEX_NAME)
    return out


def local_index(idx: pd.Index, tz: str = canon.DEFAULT_TZ) -> pd.DatetimeIndex:
    """Convert a tz-aware index to local wall time for calendar maths."""
    idx = pd.DatetimeIndex(idx)
    if idx.tz is None:
        raise ValueError("Index must be tz-aware for local calendar operations.")
    return idx.tz_convert(ZoneInfo(tz))


def local_hours(idx: pd.Index, tz: str = canon.DEFAULT_TZ) -> np.ndarray:
    return np.asarray(local_index(idx, tz).hour, dtype=int)


def build_series(
    values: Mapping[pd.Timestamp, float] | Iterable[tuple[pd.Timestamp, float]],
    *,
    name: str = "kwh",
) -> pd.Series:
    """
    Build a canonical series from (timestamp, value) pairs.

    Later duplicates overwrite earlier ones; the result is sorted by time.
    """
    items = dict(values.items() if isinstance(values, Mapping) else values)
    if not items:
        return empty_series(name=name)
    idx = pd.DatetimeIndex([to_utc(t) for t in items.keys()], name=canon.INDEX_NAME)
    s = pd.Series(np.fromiter(items.values(), dtype=float, count=len(items)), index=idx, name=name)
    return s.sort_index()


def empty_series(name: str = "kwh") -> pd.Series:
    idx = pd.DatetimeIndex([], tz="UTC", name=canon.INDEX_NAME)
    return pd.Series([], index=idx, dtype=float, name=name)


def bounds(s: pd.Series) -> tuple[Optional[pd.Timestamp], Optional[pd.Timestamp]]:
    if s.empty:
        return None, None
    return s.index.min(), s.index.max()


def now_local(tz: str = canon.DEFAULT_TZ) -> pd.Timestamp:
    """Current time in ``tz`` truncated to the hour."""
    return pd.Timestamp.now(tz=ZoneInfo(tz)).floor("h")


def as_series(obj) -> pd.Series:
    """Accept UsageData, PriceData, a PriceCache or a bare series."""
    if isinstance(obj, pd.Series):
        return obj
    if isinstance(obj, (UsageData, PriceData)):
        return obj.series
    if callable(getattr(obj, "get", None)) and callable(getattr(obj, "refresh", None)):
        return obj.get().series
    raise TypeError(f"Unsupported series source: {type(obj)!r}")
