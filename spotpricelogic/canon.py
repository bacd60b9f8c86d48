from __future__ import annotations
from typing import Final, Dict

INDEX_NAME: Final[str] = "t_start"
DEFAULT_TZ: Final[str] = "Europe/Helsinki"
FEED_TZ: Final[str] = "CET"
HOURS_PER_DAY: Final[int] = 24

# Feed values are published in EUR/MWh; divide by this to get c/kWh
PRICE_SCALE: Final[float] = 10.0

DAY_START_HOUR: Final[int] = 7
DAY_END_HOUR: Final[int] = 22

MISSING_MARKER: Final[str] = "MISSING"
QUARTER_HOUR_TAG: Final[str] = "PT15M"
DELIMITER: Final[str] = ";"

SCHEMA_LEGACY: Final[str] = "legacy"
SCHEMA_NEW: Final[str] = "new"

# Column positions for the legacy export; the new export shifts each by one
LEGACY_COLUMNS: Final[Dict[str, int]] = {
    "timestamp": 4,
    "quantity": 5,
    "status": 6,
}
NEW_COLUMNS: Final[Dict[str, int]] = {
    "resolution": 2,
    "timestamp": 5,
    "quantity": 6,
    "status": 7,
}
NEW_SCHEMA_WIDTH: Final[int] = 8
LEGACY_SCHEMA_WIDTHS: Final[tuple[int, ...]] = (6, 7)

COMMON_TIMESTAMP_NAMES = ("t_start", "timestamp", "time", "ts", "datetime", "date")
COMMON_VALUE_NAMES = ("kwh", "energy", "value", "consumption")
