"""Cost details, the accumulator merge and the flat / day / night figures."""

import numpy as np
import pandas as pd
import pytest

from spotpricelogic import aggregate, utils
from spotpricelogic.exceptions import NoOverlapError
from spotpricelogic.types import PriceData, SpotCalculation, UsageData

T0 = pd.Timestamp("2023-01-15T22:00:00Z")  # 00:00 in Helsinki
T1 = pd.Timestamp("2023-01-15T23:00:00Z")


def _series(pairs, name="kwh"):
    return utils.build_series(pairs, name=name)


@pytest.fixture
def worked_example():
    usage = _series({T0: 10.0, T1: 20.0})
    prices = _series({T0: 5.0, T1: 7.0}, name="price")
    return usage, prices


def test_compute_details_worked_example(worked_example):
    usage, prices = worked_example
    out = aggregate.compute_details(usage, prices, margin=0.5, vat=1.24)
    # (5 * 1.24 + 0.5) * 10 = 67 and (7 * 1.24 + 0.5) * 20 = 183.6 cents
    assert out.total_cost == pytest.approx((67 + 183.6) / 100)
    assert out.average_price == pytest.approx((6.7 + 9.18) / 2)
    assert out.average_price_without_margin == pytest.approx((5 * 1.24 + 7 * 1.24) / 2)
    assert out.total_cost_without_margin == pytest.approx((5 * 1.24 * 10 + 7 * 1.24 * 20) / 100)
    assert out.total_consumption == 30.0
    assert out.count == 2
    assert out.start == T0 and out.end == T1


def test_buckets_use_local_hour(worked_example):
    usage, prices = worked_example
    out = aggregate.compute_details(usage, prices, margin=0.5, vat=1.24)
    assert out.consumption_hours[0] == 10.0
    assert out.consumption_hours[1] == 20.0
    assert out.cost_hours[0] == pytest.approx(0.67)
    assert out.cost_hours_without_margin[1] == pytest.approx(7 * 1.24 * 20 / 100)
    # spot bucket averaged over count / 24 contributing days
    assert out.spot_average[0] == pytest.approx(5 * 1.24 / (2 / 24))
    assert out.consumption_hours.sum() == out.total_consumption


def test_usage_without_price_is_excluded(worked_example):
    usage, prices = worked_example
    extra = pd.concat([usage, _series({pd.Timestamp("2023-01-16T00:00:00Z"): 100.0})])
    out = aggregate.compute_details(extra, prices, margin=0.5, vat=1.24)
    assert out.count == 2
    assert out.total_consumption == 30.0


def test_no_overlap_raises_with_stage_and_range(worked_example):
    usage, _ = worked_example
    prices = _series({pd.Timestamp("2024-01-01T00:00:00Z"): 5.0}, name="price")
    with pytest.raises(NoOverlapError) as err:
        aggregate.compute_details(usage, prices, margin=0.0, vat=1.0)
    assert err.value.stage == "join"
    assert err.value.start == T0


def test_finalize_of_identity_raises():
    with pytest.raises(NoOverlapError) as err:
        aggregate.finalize(SpotCalculation.zero())
    assert err.value.stage == "finalize"


def test_merge_matches_single_pass(two_day_rng, price_data):
    usage = pd.Series(
        np.linspace(0.1, 4.8, len(two_day_rng)), index=two_day_rng.rename("t_start"), name="kwh"
    )
    whole = aggregate.accumulate(usage, price_data, margin=0.4, vat=1.24)
    parts = [
        aggregate.accumulate(usage.iloc[:13], price_data, margin=0.4, vat=1.24),
        aggregate.accumulate(usage.iloc[13:30], price_data, margin=0.4, vat=1.24),
        aggregate.accumulate(usage.iloc[30:], price_data, margin=0.4, vat=1.24),
    ]
    left = parts[0].merge(parts[1]).merge(parts[2])
    right = parts[0].merge(parts[1].merge(parts[2]))
    swapped = aggregate.combine(reversed(parts))

    a = aggregate.finalize(whole)
    for acc in (left, right, swapped):
        b = aggregate.finalize(acc)
        assert b.count == a.count
        assert b.start == a.start and b.end == a.end
        assert b.total_cost == pytest.approx(a.total_cost)
        assert b.average_price == pytest.approx(a.average_price)
        assert np.allclose(b.spot_average, a.spot_average)
        assert np.allclose(b.consumption_hours, a.consumption_hours)


def test_identity_merge_keeps_bounds(worked_example):
    usage, prices = worked_example
    acc = aggregate.accumulate(usage, prices, margin=0.5, vat=1.24)
    merged = SpotCalculation.zero() + acc
    assert merged.start == acc.start and merged.end == acc.end
    assert merged.total_cost == acc.total_cost


def test_schedule_used_without_explicit_vat(worked_example):
    usage, prices = worked_example
    out = aggregate.compute_details(usage, prices, margin=0.0)
    # January 2023 sits in the reduced 10 % period
    assert out.average_price == pytest.approx((5 + 7) * 1.10 / 2)


def test_compute_details_range(worked_example):
    usage, prices = worked_example
    out = aggregate.compute_details(usage, prices, margin=0.5, vat=1.24, start=T1, end=T1)
    assert out.count == 1
    assert out.total_cost == pytest.approx(1.836)


def test_details_by_period(two_day_rng, price_data):
    usage = UsageData(
        series=pd.Series(1.0, index=two_day_rng.rename("t_start"), name="kwh"),
        start=two_day_rng[0],
        end=two_day_rng[-1],
    )
    days = aggregate.details_by_period(usage, price_data, margin=0.0, vat=1.0, period="day")
    assert list(days) == ["2023-01-15", "2023-01-16"]
    assert all(d.count == 24 for d in days.values())
    assert days["2023-01-15"].total_cost == pytest.approx(24 * 5 / 100)
    months = aggregate.details_by_period(usage, price_data, margin=0.0, vat=1.0)
    assert list(months) == ["2023-01"]


def test_average_price(price_data):
    assert aggregate.average_price(price_data, vat=1.24) == pytest.approx(5 * 1.24)
    assert aggregate.average_price(price_data, with_vat=False) == pytest.approx(5.0)
    with pytest.raises(NoOverlapError):
        aggregate.average_price(utils.empty_series())


def test_fixed_price_and_spot_cost(worked_example):
    usage, prices = worked_example
    assert aggregate.compute_fixed_price(usage, 10.0) == pytest.approx(3.0)
    assert aggregate.compute_fixed_price(usage, 10.0, start=T1) == pytest.approx(2.0)
    assert aggregate.spot_price_cost(usage, prices, 0.5) == pytest.approx(
        ((5 + 0.5) * 10 + (7 + 0.5) * 20) / 100
    )
    assert aggregate.total_consumption(usage) == 30.0


def test_day_and_night_split(flat_usage):
    # day: local hours strictly between 7 and 22; night: before 7 or after 22
    assert aggregate.compute_day_consumption(flat_usage) == 14.0
    assert aggregate.compute_night_consumption(flat_usage) == 8.0
    assert aggregate.compute_day_price(flat_usage, 10.0) == pytest.approx(1.4)
    assert aggregate.compute_night_price(flat_usage, 10.0) == pytest.approx(0.8)


def test_day_split_respects_range(flat_usage):
    end = flat_usage.index[11]  # 11:00 local
    assert aggregate.compute_day_consumption(flat_usage, flat_usage.index[0], end) == 4.0
    assert aggregate.compute_night_consumption(flat_usage, flat_usage.index[0], end) == 7.0


def test_accepts_price_data(worked_example):
    usage, prices = worked_example
    pdata = PriceData(series=prices, start=T0, end=T1)
    out = aggregate.compute_details(usage, pdata, margin=0.5, vat=1.24)
    assert out.to_dict()["count"] == 2
    assert len(out.to_dict()["spot_average"]) == 24


def test_results_compare_by_identity(worked_example):
    usage, prices = worked_example
    acc = aggregate.accumulate(usage, prices, margin=0.5, vat=1.24)
    assert acc == acc
    assert acc != SpotCalculation.zero()
    out = aggregate.finalize(acc)
    assert out == out
    assert out != aggregate.finalize(acc)
