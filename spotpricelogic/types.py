from __future__ import annotations
from typing import TypedDict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np
import pandas as pd
from pydantic import BaseModel

from . import canon


def _zeros() -> np.ndarray:
    return np.zeros(canon.HOURS_PER_DAY, dtype=float)


# Feed snapshot, as deposited by the external fetcher
class FeedPrice(BaseModel):
    date: datetime
    value: float  # raw feed units (EUR/MWh)


class FeedSnapshot(BaseModel):
    prices: List[FeedPrice]


@dataclass(frozen=True)
class UsageData:
    """Hourly usage in kWh, index 't_start' (UTC)."""

    series: pd.Series
    start: Optional[pd.Timestamp]
    end: Optional[pd.Timestamp]
    schema: str = canon.SCHEMA_LEGACY

    @property
    def empty(self) -> bool:
        return self.series.empty


@dataclass(frozen=True)
class PriceData:
    """Hourly spot prices in c/kWh excluding VAT, index 't_start' (UTC)."""

    series: pd.Series
    start: Optional[pd.Timestamp]
    end: Optional[pd.Timestamp]

    def __contains__(self, ts) -> bool:
        return ts in self.series.index


@dataclass(frozen=True, eq=False)
class SpotCalculation:
    """
    Additive accumulator over matched (usage, price) points.

    Buckets are indexed by local hour-of-day 0..23 and sum across days.
    Costs inside the accumulator are still in cents except the hourly cost
    buckets, which are already in euros.
    """

    total_spot_price: float = 0.0
    total_spot_price_without_margin: float = 0.0
    total_cost: float = 0.0
    total_cost_without_margin: float = 0.0
    total_consumption: float = 0.0
    count: int = 0
    start: Optional[pd.Timestamp] = None
    end: Optional[pd.Timestamp] = None
    consumption_hours: np.ndarray = field(default_factory=_zeros)
    cost_hours: np.ndarray = field(default_factory=_zeros)
    cost_hours_without_margin: np.ndarray = field(default_factory=_zeros)
    spot_average: np.ndarray = field(default_factory=_zeros)

    @classmethod
    def zero(cls) -> "SpotCalculation":
        return cls()

    def merge(self, other: "SpotCalculation") -> "SpotCalculation":
        return merge(self, other)

    def __add__(self, other: "SpotCalculation") -> "SpotCalculation":
        return merge(self, other)


def _earliest(a: Optional[pd.Timestamp], b: Optional[pd.Timestamp]):
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _latest(a: Optional[pd.Timestamp], b: Optional[pd.Timestamp]):
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge(a: SpotCalculation, b: SpotCalculation) -> SpotCalculation:
    return SpotCalculation(
        total_spot_price=a.total_spot_price + b.total_spot_price,
        total_spot_price_without_margin=a.total_spot_price_without_margin
        + b.total_spot_price_without_margin,
        total_cost=a.total_cost + b.total_cost,
        total_cost_without_margin=a.total_cost_without_margin
        + b.total_cost_without_margin,
        total_consumption=a.total_consumption + b.total_consumption,
        count=a.count + b.count,
        start=_earliest(a.start, b.start),
        end=_latest(a.end, b.end),
        consumption_hours=a.consumption_hours + b.consumption_hours,
        cost_hours=a.cost_hours + b.cost_hours,
        cost_hours_without_margin=a.cost_hours_without_margin
        + b.cost_hours_without_margin,
        spot_average=a.spot_average + b.spot_average,
    )


class SpotDetailsPayload(TypedDict):
    total_cost: float
    total_cost_without_margin: float
    total_consumption: float
    average_price: float
    average_price_without_margin: float
    count: int
    start: str
    end: str
    consumption_hours: List[float]
    cost_hours: List[float]
    cost_hours_without_margin: List[float]
    spot_average: List[float]


@dataclass(frozen=True, eq=False)
class SpotDetails:
    total_spot_price: float
    total_spot_price_without_margin: float
    total_cost: float  # EUR
    total_cost_without_margin: float  # EUR
    total_consumption: float  # kWh
    average_price: float  # c/kWh incl. VAT and margin
    average_price_without_margin: float
    count: int
    start: pd.Timestamp
    end: pd.Timestamp
    consumption_hours: np.ndarray
    cost_hours: np.ndarray
    cost_hours_without_margin: np.ndarray
    spot_average: np.ndarray

    def to_dict(self) -> SpotDetailsPayload:
        return {
            "total_cost": float(self.total_cost),
            "total_cost_without_margin": float(self.total_cost_without_margin),
            "total_consumption": float(self.total_consumption),
            "average_price": float(self.average_price),
            "average_price_without_margin": float(self.average_price_without_margin),
            "count": int(self.count),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "consumption_hours": self.consumption_hours.tolist(),
            "cost_hours": self.cost_hours.tolist(),
            "cost_hours_without_margin": self.cost_hours_without_margin.tolist(),
            "spot_average": self.spot_average.tolist(),
        }


@dataclass(frozen=True)
class NetMeteringResult:
    energy_cost: float = 0.0
    saved_production: float = 0.0
    excess_production: float = 0.0
