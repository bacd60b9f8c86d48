from __future__ import annotations
from typing import Optional

import numpy as np
import pandas as pd

from . import canon, utils
from .config import VatSchedule, finnish_vat_schedule


def vat_multiplier(
    ts,
    schedule: Optional[VatSchedule] = None,
    vat: Optional[float] = None,
    *,
    tz: str = canon.DEFAULT_TZ,
) -> float:
    """
    VAT multiplier in force for the local calendar date of ``ts``.

    An explicit ``vat`` (e.g. 1.24) replaces the schedule lookup.
    """
    if vat is not None:
        return float(vat)
    schedule = schedule or finnish_vat_schedule()
    return schedule.lookup(pd.Timestamp(ts), tz)


def vat_multipliers(
    index: pd.Index,
    schedule: Optional[VatSchedule] = None,
    vat: Optional[float] = None,
    *,
    tz: str = canon.DEFAULT_TZ,
) -> np.ndarray:
    """Vectorised ``vat_multiplier`` over a tz-aware index."""
    if vat is not None:
        return np.full(len(index), float(vat))
    if len(index) == 0:
        return np.zeros(0)
    schedule = schedule or finnish_vat_schedule()
    # Tax law changes at local midnight, so look rates up once per date
    dates = pd.Index(utils.local_index(index, tz).date)
    per_date = {d: schedule.lookup_date(d) for d in dates.unique()}
    return np.asarray(dates.map(per_date), dtype=float)


def cost(price, quantity, margin, vat):
    """(price * vat + margin) * quantity, in cents when price is c/kWh."""
    return (price * vat + margin) * quantity


def cost_without_margin(price, quantity, vat):
    return price * vat * quantity
