from __future__ import annotations
from typing import Optional


class SpotError(Exception):
    """Base error; carries the failing stage and, when known, the input range."""

    stage: str = "compute"

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        start: object = None,
        end: object = None,
    ):
        if stage is not None:
            self.stage = stage
        self.start = start
        self.end = end
        detail = f"[{self.stage}] {message}"
        if start is not None or end is not None:
            detail = f"{detail} (range {start} .. {end})"
        super().__init__(detail)


class CanonError(SpotError):
    stage = "validate"


class MalformedInputError(SpotError):
    stage = "parse"


class ParseError(SpotError):
    stage = "parse"

    def __init__(self, message: str, *, row: Optional[int] = None, **kwargs):
        self.row = row
        if row is not None:
            message = f"row {row}: {message}"
        super().__init__(message, **kwargs)


class IncompleteIntervalError(SpotError):
    stage = "parse"


class DataUnavailableError(SpotError):
    stage = "load"


class NoOverlapError(SpotError):
    stage = "finalize"


def require(condition: bool, message: str, exc: type[SpotError] = SpotError):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
