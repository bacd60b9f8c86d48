from __future__ import annotations
from typing import Optional

import pandas as pd

from . import filters, utils
from .types import NetMeteringResult


def net_metering_totals(
    consumption,
    production,
    unit_price: float,
    start=None,
    end=None,
) -> NetMeteringResult:
    """
    Net self-produced energy against consumption cost at one flat price.

    Hours are walked in time order. Production value accrues as excess
    credit that can only offset the cost of the same or a later hour; it is
    never refunded, so ``excess_production`` is what is left at the end.
    All amounts are EUR with ``unit_price`` in c/kWh.
    """
    cons = filters.in_range(utils.as_series(consumption), start, end).sort_index()
    prod: Optional[pd.Series] = None
    if production is not None:
        prod = filters.in_range(utils.as_series(production), start, end)
        prod = prod.reindex(cons.index, fill_value=0.0)

    energy_cost = 0.0
    saved_production = 0.0
    excess_production = 0.0
    produced = prod.to_numpy(dtype=float) if prod is not None else None

    for i, kwh in enumerate(cons.to_numpy(dtype=float)):
        cost = unit_price * kwh / 100
        energy_cost += cost
        if produced is None:
            continue
        excess_production += unit_price * produced[i] / 100
        if excess_production > 0 and cost > 0:
            saved = min(excess_production, cost)
            saved_production += saved
            excess_production -= saved

    return NetMeteringResult(
        energy_cost=energy_cost,
        saved_production=saved_production,
        excess_production=excess_production,
    )
