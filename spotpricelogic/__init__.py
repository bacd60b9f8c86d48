from . import (
    canon,
    config,
    exceptions,
    types,
    utils,
    validate,
    ingest,
    vat,
    filters,
    prices,
    aggregate,
    netmetering,
    summary,
)

__all__ = [
    "canon",
    "config",
    "exceptions",
    "types",
    "utils",
    "validate",
    "ingest",
    "vat",
    "filters",
    "prices",
    "aggregate",
    "netmetering",
    "summary",
]
