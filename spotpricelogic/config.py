from __future__ import annotations

import bisect
from datetime import date
from typing import Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, Field, field_validator

from . import canon


class VatPeriod(BaseModel):
    effective_from: date
    multiplier: float  # e.g. 1.24 for 24 %


class VatSchedule(BaseModel):
    """Calendar-indexed VAT table; a rate applies to every hour of its dates."""

    periods: List[VatPeriod]

    @field_validator("periods")
    @classmethod
    def _sorted(cls, periods: List[VatPeriod]) -> List[VatPeriod]:
        if not periods:
            raise ValueError("VAT schedule needs at least one period")
        return sorted(periods, key=lambda p: p.effective_from)

    def lookup_date(self, day: date) -> float:
        starts = [p.effective_from for p in self.periods]
        pos = bisect.bisect_right(starts, day) - 1
        # Dates before the first period use the earliest known rate
        return self.periods[max(pos, 0)].multiplier

    def lookup(self, ts: pd.Timestamp, tz: str = canon.DEFAULT_TZ) -> float:
        ts = pd.Timestamp(ts)
        local = ts.tz_localize("UTC").tz_convert(tz) if ts.tz is None else ts.tz_convert(tz)
        return self.lookup_date(local.date())


def finnish_vat_schedule() -> VatSchedule:
    return VatSchedule(
        periods=[
            VatPeriod(effective_from=date(2013, 1, 1), multiplier=1.24),
            VatPeriod(effective_from=date(2022, 12, 1), multiplier=1.10),
            VatPeriod(effective_from=date(2023, 5, 1), multiplier=1.24),
            VatPeriod(effective_from=date(2024, 9, 1), multiplier=1.255),
        ]
    )


class EngineConfig(BaseModel):
    tz: str = canon.DEFAULT_TZ  # calendar timezone for day/month/hour buckets
    feed_tz: str = canon.FEED_TZ  # publication timezone of the price feed
    price_scale: float = canon.PRICE_SCALE
    day_start_hour: int = canon.DAY_START_HOUR
    day_end_hour: int = canon.DAY_END_HOUR
    missing_marker: str = canon.MISSING_MARKER
    quarter_hour_tag: str = canon.QUARTER_HOUR_TAG
    delimiter: str = canon.DELIMITER
    # Header rows per schema generation. Older exports have been seen both
    # with and without a header, so this stays configurable.
    header_rows: Dict[str, int] = Field(
        default_factory=lambda: {canon.SCHEMA_LEGACY: 1, canon.SCHEMA_NEW: 1}
    )
    snapshot_path: Optional[str] = None
    vat_schedule: VatSchedule = Field(default_factory=finnish_vat_schedule)


def default_config() -> EngineConfig:
    return EngineConfig()
