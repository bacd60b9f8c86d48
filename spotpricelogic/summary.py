from __future__ import annotations
from typing import Optional
from zoneinfo import ZoneInfo

import pandas as pd

from . import filters, utils, vat
from .aggregate import average_price
from .prices import PriceCache


def _now(cache: PriceCache, now: Optional[pd.Timestamp]) -> pd.Timestamp:
    tz = ZoneInfo(cache.config.tz)
    if now is None:
        return utils.now_local(cache.config.tz)
    ts = pd.Timestamp(now)
    return ts.tz_localize(tz) if ts.tz is None else ts.tz_convert(tz)


def _with_vat(cache: PriceCache, s: pd.Series, with_vat: bool) -> pd.Series:
    if not with_vat:
        return s
    mult = vat.vat_multipliers(s.index, cache.config.vat_schedule, tz=cache.config.tz)
    return s * mult


def current_prices(cache: PriceCache) -> pd.Series:
    """The whole cached series, VAT exclusive."""
    return cache.get().series


def price_data_today(
    cache: PriceCache, now: Optional[pd.Timestamp] = None, *, with_vat: bool = True
) -> pd.Series:
    today = _now(cache, now)
    s = filters.for_day(cache.get().series, today.day, today.month, today.year, cache.config.tz)
    return _with_vat(cache, s, with_vat)


def prices_today(cache: PriceCache, now: Optional[pd.Timestamp] = None) -> list[float]:
    return price_data_today(cache, now).tolist()


def price_data_tomorrow(
    cache: PriceCache, now: Optional[pd.Timestamp] = None, *, with_vat: bool = True
) -> pd.Series:
    tomorrow = _now(cache, now) + pd.Timedelta(days=1)
    s = filters.for_day(
        cache.get().series, tomorrow.day, tomorrow.month, tomorrow.year, cache.config.tz
    )
    return _with_vat(cache, s, with_vat)


def prices_tomorrow(cache: PriceCache, now: Optional[pd.Timestamp] = None) -> list[float]:
    return price_data_tomorrow(cache, now).tolist()


def price_data_for_month(
    cache: PriceCache,
    now: Optional[pd.Timestamp] = None,
    *,
    with_vat: bool = True,
) -> pd.Series:
    today = _now(cache, now)
    s = filters.for_month(cache.get().series, today.month, today.year, cache.config.tz)
    return _with_vat(cache, s, with_vat)


def prices_for_year(cache: PriceCache, now: Optional[pd.Timestamp] = None) -> list[float]:
    today = _now(cache, now)
    s = filters.for_year(cache.get().series, today.year, cache.config.tz)
    return _with_vat(cache, s, True).tolist()


def _average(cache: PriceCache, s: pd.Series, with_vat: bool) -> float:
    return average_price(
        s, cache.config.vat_schedule, with_vat=with_vat, tz=cache.config.tz
    )


def average_price_today(
    cache: PriceCache, now: Optional[pd.Timestamp] = None, *, with_vat: bool = True
) -> float:
    return _average(cache, price_data_today(cache, now, with_vat=False), with_vat)


def average_price_month(
    cache: PriceCache, year: int, month: int, *, with_vat: bool = True
) -> float:
    s = filters.for_month(cache.get().series, month, year, cache.config.tz)
    return _average(cache, s, with_vat)


def average_price_this_month(
    cache: PriceCache, now: Optional[pd.Timestamp] = None, *, with_vat: bool = True
) -> float:
    today = _now(cache, now)
    return average_price_month(cache, today.year, today.month, with_vat=with_vat)


def average_price_this_year(
    cache: PriceCache, now: Optional[pd.Timestamp] = None, *, with_vat: bool = True
) -> float:
    today = _now(cache, now)
    s = filters.for_year(cache.get().series, today.year, cache.config.tz)
    return _average(cache, s, with_vat)
