from __future__ import annotations

import codecs
import contextlib
import csv
import io
import logging
import os
from dataclasses import dataclass
from itertools import chain, islice
from typing import IO, Iterator, Optional

import pandas as pd

from . import canon, utils, validate
from .config import EngineConfig, default_config
from .exceptions import (
    IncompleteIntervalError,
    MalformedInputError,
    ParseError,
)
from .types import UsageData

logger = logging.getLogger(__name__)

UsageSource = str | os.PathLike | bytes | IO[str] | IO[bytes]


@dataclass(frozen=True)
class Layout:
    schema: str
    timestamp: int
    quantity: int
    status: int
    resolution: Optional[int] = None


LEGACY_LAYOUT = Layout(schema=canon.SCHEMA_LEGACY, **canon.LEGACY_COLUMNS)
NEW_LAYOUT = Layout(schema=canon.SCHEMA_NEW, **canon.NEW_COLUMNS)


def classify_header(header: Optional[list[str]]) -> Layout:
    """Pick the schema generation from the width of the header row."""
    if not header:
        raise MalformedInputError("Usage file is empty; no header row found.")
    width = len(header)
    if width == canon.NEW_SCHEMA_WIDTH:
        return NEW_LAYOUT
    if width in canon.LEGACY_SCHEMA_WIDTHS:
        return LEGACY_LAYOUT
    raise MalformedInputError(
        f"Unrecognised header with {width} columns; expected "
        f"{canon.NEW_SCHEMA_WIDTH} (new) or one of {canon.LEGACY_SCHEMA_WIDTHS} (legacy)."
    )


def parse_timestamp(text: str, *, row: Optional[int] = None) -> pd.Timestamp:
    try:
        ts = pd.Timestamp(text.strip())
    except (ValueError, TypeError) as exc:
        raise ParseError(f"invalid timestamp {text!r}", row=row) from exc
    if ts is pd.NaT:
        raise ParseError(f"invalid timestamp {text!r}", row=row)
    return utils.to_utc(ts)


def parse_quantity(text: str, *, row: Optional[int] = None) -> float:
    """
    Parse a reading in either decimal convention.

    The exporter switched from comma to dot decimals in January 2023, so a
    value containing '.' is already a plain literal and anything else uses
    the comma as decimal separator.
    """
    raw = text.strip()
    if "." in raw:
        cleaned = raw
    else:
        cleaned = raw.replace("\u00a0", "").replace(" ", "").replace(",", ".")
    try:
        return float(cleaned)
    except ValueError as exc:
        raise ParseError(f"invalid quantity {text!r}", row=row) from exc


@dataclass(frozen=True)
class UsageRow:
    line: int
    cells: list[str]
    layout: Layout

    def _cell(self, index: Optional[int]) -> Optional[str]:
        if index is None or index >= len(self.cells):
            return None
        return self.cells[index].strip()

    @property
    def status(self) -> Optional[str]:
        return self._cell(self.layout.status)

    @property
    def resolution(self) -> Optional[str]:
        return self._cell(self.layout.resolution)

    def is_missing(self, marker: str = canon.MISSING_MARKER) -> bool:
        return self.status == marker

    def timestamp(self) -> pd.Timestamp:
        text = self._cell(self.layout.timestamp)
        if text is None:
            raise ParseError("timestamp column absent", row=self.line)
        return parse_timestamp(text, row=self.line)

    def quantity(self) -> float:
        text = self._cell(self.layout.quantity)
        if text is None:
            raise ParseError("quantity column absent", row=self.line)
        return parse_quantity(text, row=self.line)


class RowStream:
    """Lazy sequence of data rows with bounded look-ahead."""

    def __init__(
        self,
        rows: Iterator[tuple[int, list[str]]],
        layout: Layout,
        missing_marker: str = canon.MISSING_MARKER,
    ):
        self._rows = rows
        self.layout = layout
        self.missing_marker = missing_marker

    def __iter__(self) -> "RowStream":
        return self

    def __next__(self) -> UsageRow:
        for line, cells in self._rows:
            if not cells or all(not c.strip() for c in cells):
                continue
            return UsageRow(line=line, cells=cells, layout=self.layout)
        raise StopIteration

    def take_group(self, n: int) -> list[UsageRow]:
        """
        Take exactly ``n`` further rows.

        Raises IncompleteIntervalError if the stream ends first or any of
        the rows carries the missing marker.
        """
        group: list[UsageRow] = []
        for _ in range(n):
            row = next(self, None)
            if row is None:
                raise IncompleteIntervalError(
                    f"stream ended after {len(group)} of {n} follow-up rows"
                )
            if row.is_missing(self.missing_marker):
                raise IncompleteIntervalError(
                    f"row {row.line} is {self.missing_marker}; interval cannot be completed"
                )
            group.append(row)
        return group


QUARTER_HOUR = pd.Timedelta(minutes=15)


def _quarter_hour_rest(stream: RowStream, first: UsageRow, ts: pd.Timestamp) -> float:
    """
    Sum of the :15, :30 and :45 readings following ``first``.

    ``first`` must sit on the hour and each follow-up row must carry the
    next quarter of that same hour, otherwise the hour cannot be completed.
    """
    if ts != ts.floor("h"):
        raise IncompleteIntervalError(
            f"row {first.line} at {ts.isoformat()} does not start an hour"
        )
    total = 0.0
    for offset, member in enumerate(stream.take_group(3), start=1):
        expected = ts + offset * QUARTER_HOUR
        if member.timestamp() != expected:
            raise IncompleteIntervalError(
                f"row {member.line} is not the {expected.isoformat()} reading"
            )
        total += member.quantity()
    return total


@contextlib.contextmanager
def _open_text(source: UsageSource) -> Iterator[IO[str]]:
    if isinstance(source, (str, os.PathLike)):
        with open(source, "r", encoding="utf-8-sig", newline="") as handle:
            yield handle
    elif isinstance(source, (bytes, bytearray)):
        with io.StringIO(bytes(source).decode("utf-8-sig"), newline="") as handle:
            yield handle
    elif isinstance(source, io.TextIOBase):
        yield source
    else:
        # binary file object owned by the caller; do not close it
        yield codecs.getreader("utf-8-sig")(source)


def from_usage_csv(
    source: UsageSource,
    *,
    config: Optional[EngineConfig] = None,
) -> UsageData:
    """
    Parse a grid-operator usage export into hourly kWh.

    - ';' separated, header width selects the legacy or new layout
    - a MISSING row ends ingestion; later rows are never read
    - new-layout PT15M rows are summed with the next three readings into one
      hour keyed at the first row; an incomplete hour ends ingestion
    """
    cfg = config or default_config()
    values: dict[pd.Timestamp, float] = {}
    start: Optional[pd.Timestamp] = None
    end: Optional[pd.Timestamp] = None

    with _open_text(source) as handle:
        reader = csv.reader(handle, delimiter=cfg.delimiter)
        header = next(reader, None)
        layout = classify_header(header)

        numbered = enumerate(reader, start=2)
        skip = cfg.header_rows.get(layout.schema, 1)
        if skip <= 0:
            numbered = chain([(1, list(header or []))], numbered)
        elif skip > 1:
            numbered = islice(numbered, skip - 1, None)

        stream = RowStream(numbered, layout, cfg.missing_marker)
        for row in stream:
            if row.is_missing(cfg.missing_marker):
                logger.debug("Usage ingestion stopped at row %d: %s", row.line, cfg.missing_marker)
                break
            ts = row.timestamp()
            qty = row.quantity()
            if layout.resolution is not None and row.resolution == cfg.quarter_hour_tag:
                try:
                    qty += _quarter_hour_rest(stream, row, ts)
                except IncompleteIntervalError as exc:
                    logger.debug("Usage ingestion stopped at row %d: %s", row.line, exc)
                    break
            values[ts] = qty
            if start is None or ts < start:
                start = ts
            if end is None or ts > end:
                end = ts

    series = utils.build_series(values, name="kwh")
    return UsageData(series=series, start=start, end=end, schema=layout.schema)


def _auto_rename(df: pd.DataFrame) -> pd.DataFrame:
    new = df.copy()

    if isinstance(new.index, pd.DatetimeIndex):
        new.index.name = canon.INDEX_NAME
    else:
        cols = {c.lower(): c for c in new.columns}
        tcol = next((cols[k] for k in canon.COMMON_TIMESTAMP_NAMES if k in cols), None)
        if tcol is None:
            raise MalformedInputError(
                "No timestamp column found and index is not datetime. "
                "Expected one of: t_start, timestamp, time, ts, datetime, date."
            )
        new = new.rename(columns={tcol: canon.INDEX_NAME})
        new[canon.INDEX_NAME] = pd.to_datetime(new[canon.INDEX_NAME], utc=True)
        new = new.set_index(canon.INDEX_NAME)

    if "kwh" not in new.columns:
        for candidate in canon.COMMON_VALUE_NAMES:
            if candidate in new.columns:
                new = new.rename(columns={candidate: "kwh"})
                break
    if "kwh" not in new.columns:
        raise MalformedInputError("Missing required value column (kwh/energy/value).")
    return new


def from_dataframe(df: pd.DataFrame, *, tz: str = "UTC") -> UsageData:
    """
    Build UsageData from an already tabular frame.

    Naive timestamps are taken to be in ``tz``.
    """
    df = _auto_rename(df)
    s = df["kwh"].astype(float)
    idx = pd.DatetimeIndex(s.index)
    if idx.tz is None:
        s.index = idx.tz_localize(tz)
    s = utils.ensure_utc_index(s)
    s = s[~s.index.duplicated(keep="last")].sort_index().rename("kwh")
    validate.assert_series(s)
    start, end = utils.bounds(s)
    return UsageData(series=s, start=start, end=end)
