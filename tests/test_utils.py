import pandas as pd
import pytest

from spotpricelogic import utils
from spotpricelogic.prices import PriceCache
from spotpricelogic.types import UsageData


def test_as_series_accepts_known_sources(flat_usage, price_snapshot):
    assert utils.as_series(flat_usage) is flat_usage
    usage = UsageData(series=flat_usage, start=None, end=None)
    assert utils.as_series(usage) is flat_usage
    cache = PriceCache(lambda: price_snapshot)
    assert utils.as_series(cache) is cache.get().series


def test_as_series_rejects_mappings():
    with pytest.raises(TypeError, match="Unsupported series source"):
        utils.as_series({pd.Timestamp("2023-01-01T00:00:00Z"): 1.0})


def test_build_series_sorts_and_keeps_last():
    t0 = pd.Timestamp("2023-01-01T01:00:00Z")
    t1 = pd.Timestamp("2023-01-01T00:00:00Z")
    s = utils.build_series([(t0, 1.0), (t1, 2.0), (t0, 3.0)])
    assert list(s.index) == [t1, t0]
    assert s.tolist() == [2.0, 3.0]
    assert s.index.name == "t_start"
