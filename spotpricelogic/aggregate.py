from __future__ import annotations

import logging
from functools import reduce
from typing import Iterable, Literal, Optional

import numpy as np
import pandas as pd

from . import canon, filters, utils, vat as vatpolicy
from .config import VatSchedule
from .exceptions import NoOverlapError
from .types import SpotCalculation, SpotDetails, merge

logger = logging.getLogger(__name__)

Period = Literal["day", "month", "year"]

_PERIOD_FORMATS = {"day": "%Y-%m-%d", "month": "%Y-%m", "year": "%Y"}


def join(usage: pd.Series, prices: pd.Series) -> tuple[pd.Series, pd.Series]:
    """Inner join on timestamp; usage hours without a price are dropped."""
    matched = usage[usage.index.isin(prices.index)]
    return matched, prices.reindex(matched.index)


def accumulate(
    usage,
    prices,
    margin: float,
    vat: Optional[float] = None,
    *,
    schedule: Optional[VatSchedule] = None,
    tz: str = canon.DEFAULT_TZ,
) -> SpotCalculation:
    """
    Fold matched (usage, price) points into an unfinalised SpotCalculation.

    The result can be merged with accumulators of other, disjoint ranges.
    """
    q_series, p_series = join(utils.as_series(usage), utils.as_series(prices))
    if q_series.empty:
        return SpotCalculation.zero()

    mult = vatpolicy.vat_multipliers(q_series.index, schedule, vat, tz=tz)
    q = q_series.to_numpy(dtype=float)
    spot = p_series.to_numpy(dtype=float) * mult
    with_margin = spot + margin
    cost_c = vatpolicy.cost(p_series.to_numpy(dtype=float), q, margin, mult)
    cost_nm = vatpolicy.cost_without_margin(p_series.to_numpy(dtype=float), q, mult)
    hours = utils.local_hours(q_series.index, tz)

    def bucket(weights: np.ndarray) -> np.ndarray:
        return np.bincount(hours, weights=weights, minlength=canon.HOURS_PER_DAY).astype(float)

    return SpotCalculation(
        total_spot_price=float(with_margin.sum()),
        total_spot_price_without_margin=float(spot.sum()),
        total_cost=float(cost_c.sum()),
        total_cost_without_margin=float(cost_nm.sum()),
        total_consumption=float(q.sum()),
        count=int(len(q)),
        start=q_series.index.min(),
        end=q_series.index.max(),
        consumption_hours=bucket(q),
        cost_hours=bucket(cost_c / 100),
        cost_hours_without_margin=bucket(cost_nm / 100),
        spot_average=bucket(spot),
    )


def combine(parts: Iterable[SpotCalculation]) -> SpotCalculation:
    return reduce(merge, parts, SpotCalculation.zero())


def finalize(acc: SpotCalculation) -> SpotDetails:
    """Turn accumulated sums into averages; call once, after all merges."""
    if acc.count == 0:
        raise NoOverlapError(
            "no matched usage/price points to average",
            stage="finalize",
            start=acc.start,
            end=acc.end,
        )
    days = acc.count / canon.HOURS_PER_DAY
    return SpotDetails(
        total_spot_price=acc.total_spot_price,
        total_spot_price_without_margin=acc.total_spot_price_without_margin,
        total_cost=acc.total_cost / 100,
        total_cost_without_margin=acc.total_cost_without_margin / 100,
        total_consumption=acc.total_consumption,
        average_price=acc.total_spot_price / acc.count,
        average_price_without_margin=acc.total_spot_price_without_margin / acc.count,
        count=acc.count,
        start=acc.start,
        end=acc.end,
        consumption_hours=acc.consumption_hours.copy(),
        cost_hours=acc.cost_hours.copy(),
        cost_hours_without_margin=acc.cost_hours_without_margin.copy(),
        spot_average=acc.spot_average / days,
    )


def compute_details(
    usage,
    prices,
    margin: float,
    vat: Optional[float] = None,
    start=None,
    end=None,
    *,
    schedule: Optional[VatSchedule] = None,
    tz: str = canon.DEFAULT_TZ,
) -> SpotDetails:
    """
    Spot cost breakdown of ``usage`` against ``prices``.

    ``margin`` is c/kWh added after VAT; ``vat`` (e.g. 1.24) overrides the
    schedule. Raises NoOverlapError when nothing in range has a price.
    """
    u = filters.in_range(utils.as_series(usage), start, end)
    acc = accumulate(u, prices, margin, vat, schedule=schedule, tz=tz)
    if acc.count == 0:
        lo, hi = utils.bounds(u)
        raise NoOverlapError(
            f"none of {len(u)} usage hours has a spot price",
            stage="join",
            start=start if start is not None else lo,
            end=end if end is not None else hi,
        )
    logger.debug("Spot details over %d matched hours %s .. %s", acc.count, acc.start, acc.end)
    return finalize(acc)


def details_by_period(
    usage,
    prices,
    margin: float,
    vat: Optional[float] = None,
    *,
    period: Period = "month",
    schedule: Optional[VatSchedule] = None,
    tz: str = canon.DEFAULT_TZ,
) -> dict[str, SpotDetails]:
    """
    Spot details per local calendar day, month or year.

    Periods with no priced usage are left out.
    """
    if period not in _PERIOD_FORMATS:
        raise ValueError("period must be 'day', 'month', or 'year'")
    u = utils.as_series(usage)
    p = utils.as_series(prices)
    labels = utils.local_index(u.index, tz).strftime(_PERIOD_FORMATS[period])
    out: dict[str, SpotDetails] = {}
    for label, chunk in u.groupby(np.asarray(labels), sort=True):
        acc = accumulate(chunk, p, margin, vat, schedule=schedule, tz=tz)
        if acc.count:
            out[str(label)] = finalize(acc)
    return out


def average_price(
    series,
    schedule: Optional[VatSchedule] = None,
    vat: Optional[float] = None,
    *,
    with_vat: bool = True,
    tz: str = canon.DEFAULT_TZ,
) -> float:
    s = utils.as_series(series)
    if s.empty:
        raise NoOverlapError("no prices to average", stage="finalize")
    values = s.to_numpy(dtype=float)
    if with_vat:
        values = values * vatpolicy.vat_multipliers(s.index, schedule, vat, tz=tz)
    return float(values.sum() / len(values))


def total_consumption(usage) -> float:
    return float(utils.as_series(usage).sum())


def compute_fixed_price(usage, flat_rate: float, start=None, end=None) -> float:
    """Cost in EUR of ``usage`` at a flat ``flat_rate`` c/kWh."""
    u = filters.in_range(utils.as_series(usage), start, end)
    return float((u * flat_rate).sum() / 100)


def spot_price_cost(usage, prices, margin: float) -> float:
    """Plain spot cost in EUR, (price + margin) * kWh, without VAT."""
    q, p = join(utils.as_series(usage), utils.as_series(prices))
    return float(((p + margin) * q).sum() / 100)


def compute_day_price(
    usage, flat_rate: float, start=None, end=None, *, tz: str = canon.DEFAULT_TZ
) -> float:
    return compute_fixed_price(filters.day_window(utils.as_series(usage), start, end, tz=tz), flat_rate)


def compute_night_price(
    usage, flat_rate: float, start=None, end=None, *, tz: str = canon.DEFAULT_TZ
) -> float:
    return compute_fixed_price(filters.night_window(utils.as_series(usage), start, end, tz=tz), flat_rate)


def compute_day_consumption(usage, start=None, end=None, *, tz: str = canon.DEFAULT_TZ) -> float:
    return total_consumption(filters.day_window(utils.as_series(usage), start, end, tz=tz))


def compute_night_consumption(usage, start=None, end=None, *, tz: str = canon.DEFAULT_TZ) -> float:
    return total_consumption(filters.night_window(utils.as_series(usage), start, end, tz=tz))
