from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional
from zoneinfo import ZoneInfo

import pandas as pd
from pydantic import ValidationError

from . import canon, utils, vat
from .config import EngineConfig, default_config
from .exceptions import DataUnavailableError, require
from .types import FeedSnapshot, PriceData

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[], FeedSnapshot]
Clock = Callable[[], pd.Timestamp]


def load_snapshot(path: str | Path) -> FeedSnapshot:
    """Read a feed snapshot JSON file: {"prices": [{"date": ..., "value": ...}]}."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise DataUnavailableError(f"could not read price snapshot {path}: {exc}") from exc
    try:
        return FeedSnapshot.model_validate_json(raw)
    except ValidationError as exc:
        raise DataUnavailableError(f"invalid price snapshot {path}: {exc}") from exc


def build_price_data(snapshot: FeedSnapshot, scale: float = canon.PRICE_SCALE) -> PriceData:
    """Scale raw feed values into c/kWh; first and last entries bound the series."""
    require(bool(snapshot.prices), "price snapshot contains no prices", DataUnavailableError)
    series = utils.build_series(
        ((p.date, p.value / scale) for p in snapshot.prices), name="price"
    )
    start = utils.to_utc(snapshot.prices[0].date)
    end = utils.to_utc(snapshot.prices[-1].date)
    return PriceData(series=series, start=start, end=end)


class PriceCache:
    """
    Process-wide spot price series, built lazily and replaced whole on refresh.

    Readers never lock: ``get`` returns whichever complete PriceData the
    cache currently references.
    """

    def __init__(
        self,
        loader: Optional[SnapshotLoader] = None,
        *,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or default_config()
        if loader is None:
            if self.config.snapshot_path is None:
                raise ValueError("PriceCache needs a loader or config.snapshot_path")
            path = self.config.snapshot_path
            loader = lambda: load_snapshot(path)  # noqa: E731
        self._loader = loader
        self._clock = clock or (lambda: pd.Timestamp.now(tz="UTC"))
        self._data: Optional[PriceData] = None
        self._build_lock = threading.Lock()

    @classmethod
    def from_file(cls, path: str | Path, **kwargs) -> "PriceCache":
        return cls(lambda: load_snapshot(path), **kwargs)

    @property
    def data(self) -> Optional[PriceData]:
        return self._data

    def get(self) -> PriceData:
        data = self._data
        if data is not None:
            return data
        with self._build_lock:
            if self._data is None:
                self._data = self._build()
            return self._data

    def refresh(self) -> PriceData:
        with self._build_lock:
            data = self._build()
            self._data = data
        return data

    def _build(self) -> PriceData:
        try:
            snapshot = self._loader()
            data = build_price_data(snapshot, self.config.price_scale)
        except DataUnavailableError:
            logger.error("Could not load the spot price snapshot", exc_info=True)
            raise
        except (OSError, ValidationError) as exc:
            logger.error("Could not load the spot price snapshot", exc_info=True)
            raise DataUnavailableError(f"price snapshot unreadable: {exc}") from exc
        logger.info(
            "Updated spot data: %d prices %s .. %s", len(data.series), data.start, data.end
        )
        return data

    def _end_date_in_feed_tz(self):
        data = self._data
        if data is None or data.end is None:
            return None, None
        tz = ZoneInfo(self.config.feed_tz)
        end_day = data.end.tz_convert(tz).date()
        today = pd.Timestamp(self._clock()).tz_convert(tz).date()
        return end_day, today

    def is_fresh_as_of_today(self) -> bool:
        """True once the cached series extends past today (tomorrow's prices are in)."""
        end_day, today = self._end_date_in_feed_tz()
        return end_day is not None and end_day > today

    def is_fresh_as_of_yesterday(self) -> bool:
        """True when the cached series ends on today's date in the feed timezone."""
        end_day, today = self._end_date_in_feed_tz()
        return end_day is not None and end_day == today

    def vat_price_list(self, vat_rate: Optional[float] = None) -> list[tuple[int, float]]:
        """VAT-inclusive prices as (epoch milliseconds, c/kWh) pairs, for charting."""
        s = self.get().series
        mult = vat.vat_multipliers(
            s.index, self.config.vat_schedule, vat_rate, tz=self.config.tz
        )
        prices = s.to_numpy() * mult
        return [(int(t.timestamp() * 1000), float(p)) for t, p in zip(s.index, prices)]

    def latest_day_of_month(self) -> int:
        end = self.get().end
        return end.tz_convert(ZoneInfo(self.config.tz)).day
