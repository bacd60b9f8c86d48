import pandas as pd
import pytest

from spotpricelogic import utils
from spotpricelogic.types import FeedPrice, FeedSnapshot, PriceData

TZ = "Europe/Helsinki"

LEGACY_HEADER = "Mittauspisteen tunnus;Tuotetyyppi;Resoluutio;Yksikkotyyppi;Alkuaika;Maara;Laatu"
NEW_HEADER = (
    "Mittauspisteen tunnus;Tuotetyyppi;Resoluutio;Yksikkotyyppi;"
    "Lukeman tyyppi;Alkuaika;Maara;Laatu"
)


def legacy_row(ts, qty, status="OK"):
    return f"643000000000000001;8716867000030;PT1H;kWh;{ts};{qty};{status}"


def new_row(ts, qty, status="OK", resolution="PT1H"):
    return f"643000000000000001;8716867000030;{resolution};kWh;BN01;{ts};{qty};{status}"


def csv_text(header, rows):
    return "\n".join([header, *rows]) + "\n"


@pytest.fixture
def local_day_rng():
    # 2023-01-15 in Helsinki, 24 hourly points, stored in UTC
    return pd.date_range("2023-01-15 00:00", periods=24, freq="h", tz=TZ).tz_convert("UTC")


@pytest.fixture
def two_day_rng():
    return pd.date_range("2023-01-15 00:00", periods=48, freq="h", tz=TZ).tz_convert("UTC")


@pytest.fixture
def flat_usage(local_day_rng):
    return pd.Series(1.0, index=local_day_rng.rename("t_start"), name="kwh")


@pytest.fixture
def price_snapshot(two_day_rng):
    # raw feed values in EUR/MWh: 100, 110, 120, ...
    return FeedSnapshot(
        prices=[FeedPrice(date=t.to_pydatetime(), value=100.0 + 10 * i) for i, t in enumerate(two_day_rng)]
    )


@pytest.fixture
def price_data(two_day_rng):
    s = utils.build_series(((t, 5.0) for t in two_day_rng), name="price")
    return PriceData(series=s, start=s.index.min(), end=s.index.max())
