"""
Calendar and hour-window predicates over a series index.

Every predicate returns a boolean numpy mask aligned with the index and is
evaluated in the local calendar timezone. Masks compose with ``&`` / ``|``.
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from . import canon, utils


def day_filter(
    index: pd.Index, day: int, month: int, year: int, tz: str = canon.DEFAULT_TZ
) -> np.ndarray:
    local = utils.local_index(index, tz)
    return np.asarray((local.day == day) & (local.month == month) & (local.year == year))


def month_filter(
    index: pd.Index, month: int, year: int, tz: str = canon.DEFAULT_TZ
) -> np.ndarray:
    local = utils.local_index(index, tz)
    return np.asarray((local.month == month) & (local.year == year))


def year_filter(index: pd.Index, year: int, tz: str = canon.DEFAULT_TZ) -> np.ndarray:
    local = utils.local_index(index, tz)
    return np.asarray(local.year == year)


def range_filter(index: pd.Index, start=None, end=None) -> np.ndarray:
    """start <= t <= end; a missing bound is open."""
    idx = pd.DatetimeIndex(index)
    mask = np.ones(len(idx), dtype=bool)
    if start is not None:
        mask &= np.asarray(idx >= utils.to_utc(start))
    if end is not None:
        mask &= np.asarray(idx <= utils.to_utc(end))
    return mask


def before_hour_filter(index: pd.Index, hour: int, tz: str = canon.DEFAULT_TZ) -> np.ndarray:
    return utils.local_hours(index, tz) < hour


def after_hour_filter(index: pd.Index, hour: int, tz: str = canon.DEFAULT_TZ) -> np.ndarray:
    return utils.local_hours(index, tz) > hour


def hour_window_filter(
    index: pd.Index, after_hour: int, before_hour: int, tz: str = canon.DEFAULT_TZ
) -> np.ndarray:
    """Local hour strictly between ``after_hour`` and ``before_hour``."""
    return after_hour_filter(index, after_hour, tz) & before_hour_filter(index, before_hour, tz)


def select(s: pd.Series, mask: np.ndarray) -> pd.Series:
    return s[np.asarray(mask, dtype=bool)]


def in_range(s: pd.Series, start=None, end=None) -> pd.Series:
    if start is None and end is None:
        return s
    return select(s, range_filter(s.index, start, end))


def day_window(
    s: pd.Series,
    start=None,
    end=None,
    *,
    after_hour: int = canon.DAY_START_HOUR,
    before_hour: int = canon.DAY_END_HOUR,
    tz: str = canon.DEFAULT_TZ,
) -> pd.Series:
    # range first so the window applies per matching day
    ranged = in_range(s, start, end)
    return select(ranged, hour_window_filter(ranged.index, after_hour, before_hour, tz))


def night_window(
    s: pd.Series,
    start=None,
    end=None,
    *,
    before_hour: int = canon.DAY_START_HOUR,
    after_hour: int = canon.DAY_END_HOUR,
    tz: str = canon.DEFAULT_TZ,
) -> pd.Series:
    ranged = in_range(s, start, end)
    mask = before_hour_filter(ranged.index, before_hour, tz) | after_hour_filter(
        ranged.index, after_hour, tz
    )
    return select(ranged, mask)


def for_day(s: pd.Series, day: int, month: int, year: int, tz: str = canon.DEFAULT_TZ) -> pd.Series:
    return select(s, day_filter(s.index, day, month, year, tz))


def for_month(s: pd.Series, month: int, year: int, tz: str = canon.DEFAULT_TZ) -> pd.Series:
    return select(s, month_filter(s.index, month, year, tz))


def for_year(s: pd.Series, year: int, tz: str = canon.DEFAULT_TZ) -> pd.Series:
    return select(s, year_filter(s.index, year, tz))

