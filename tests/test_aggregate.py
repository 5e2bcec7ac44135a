from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from pipeline.aggregate import (
    ALL_AGES,
    ALL_YEARS,
    AVERAGE,
    CAMERA_BASED,
    POLICE_ISSUED,
    Bucket,
    FilterConfig,
    Reducer,
    aggregate,
    detection_bucket,
    distinct,
    month_key,
    national_total,
    per_thousand,
    ratio,
)
from pipeline.load import EnforcementRecord, load


def rec(**kw) -> EnforcementRecord:
    kw.setdefault("year", 2024)
    kw.setdefault("jurisdiction", "NSW")
    kw.setdefault("metric", "speed_fines")
    return EnforcementRecord(**kw)


def test_sum_by_metric():
    records = [
        rec(fines=10, arrests=2, charges=1),
        rec(fines=5, arrests=0, charges=0),
    ]
    buckets = aggregate(records, "metric")
    assert list(buckets) == [("speed_fines",)]
    b = buckets[("speed_fines",)]
    assert (b.fines, b.arrests, b.charges) == (15, 2, 1)
    assert b.arrests_per_fine == pytest.approx(2 / 15)
    assert b.charges_per_fine == pytest.approx(1 / 15)
    assert b.count == 2


def test_zero_bucket_ratios_are_zero():
    b = Bucket(key=("x",), count=1, fines=0, arrests=0, charges=0)
    assert b.arrests_per_fine == 0
    assert b.charges_per_fine == 0
    assert b.severe_share == 0
    assert b.fines_share == 0


def test_zero_fines_with_arrests_still_zero_ratio():
    b = Bucket(key=("x",), count=1, fines=0, arrests=4, charges=2)
    assert b.arrests_per_fine == 0
    assert b.severe_share == 1


def test_severe_share():
    b = Bucket(key=("x",), count=3, fines=6, arrests=1, charges=1)
    assert b.severe == 2
    assert b.total == 8
    assert b.severe_share == pytest.approx(0.25)


def test_all_ages_sentinel_bypasses_age_filter(sample_csv):
    records = load(sample_csv)
    with_sentinel = aggregate(
        records, "jurisdiction",
        filters=FilterConfig(metric="speed_fines", age_group=ALL_AGES),
    )
    metric_only = aggregate([r for r in records if r.metric == "speed_fines"], "jurisdiction")
    assert with_sentinel == metric_only


def test_age_filter_restricts_records(sample_csv):
    records = load(sample_csv)
    buckets = aggregate(
        records, "jurisdiction",
        filters=FilterConfig(metric="speed_fines", age_group="17-25"),
    )
    assert list(buckets) == [("NSW",)]
    assert buckets[("NSW",)].fines == 250


def test_grouping_is_a_partition(sample_csv):
    records = load(sample_csv)
    filters = FilterConfig(metric="speed_fines")
    buckets = aggregate(records, ("year", "jurisdiction"), filters=filters)
    assert sum(b.count for b in buckets.values()) == len(filters.apply(records))
    assert sum(b.fines for b in buckets.values()) == sum(r.fines for r in filters.apply(records))


def test_aggregation_is_idempotent(sample_csv):
    records = load(sample_csv)
    first = aggregate(records, ("metric", "year"))
    second = aggregate(records, ("metric", "year"))
    assert first == second


def test_buckets_in_first_occurrence_order(sample_csv):
    buckets = aggregate(load(sample_csv), "metric")
    assert list(buckets) == [
        ("speed_fines",), ("unlicensed_driving",), ("non_wearing_seatbelts",),
    ]


def test_average_selection_uses_mean(sample_csv):
    records = load(sample_csv)
    filters = FilterConfig(metric="speed_fines", year=AVERAGE)
    assert filters.reducer is Reducer.MEAN
    buckets = aggregate(records, "jurisdiction", filters=filters)
    nsw = buckets[("NSW",)]
    assert nsw.fines == pytest.approx(125)
    assert nsw.arrests == pytest.approx(2.5)


def test_all_years_sums_every_year(sample_csv):
    records = load(sample_csv)
    filters = FilterConfig(metric="speed_fines", year=ALL_YEARS)
    assert filters.reducer is Reducer.SUM
    assert aggregate(records, "jurisdiction", filters=filters)[("NSW",)].fines == 250


def test_year_filter(sample_csv):
    buckets = aggregate(load(sample_csv), "jurisdiction",
                        filters=FilterConfig(metric="speed_fines", year="2024"))
    assert buckets[("NSW",)].fines == 150
    assert buckets[("VIC",)].fines == 50


def test_per_field_reducers():
    records = [rec(fines=2, arrests=1), rec(fines=4, arrests=3)]
    b = aggregate(records, "metric", reducers={"fines": Reducer.MEAN})[("speed_fines",)]
    assert b.fines == pytest.approx(3)
    assert b.arrests == 4


def test_callable_key_wraps_scalars():
    records = [rec(detection_method="Fixed camera"), rec(detection_method="Police issued")]
    buckets = aggregate(records, lambda r: detection_bucket(r.detection_method))
    assert list(buckets) == [(CAMERA_BASED,), (POLICE_ISSUED,)]


def test_key_validation():
    with pytest.raises(ValueError):
        aggregate([], ("metric", "year", "jurisdiction"))
    with pytest.raises(ValueError):
        aggregate([], "fines")


def test_filter_config_is_frozen_and_validated():
    f = FilterConfig(metric="speed_fines")
    with pytest.raises(ValidationError):
        f.metric = "other"
    with pytest.raises(ValidationError):
        FilterConfig(year="last year")
    updated = f.model_copy(update={"age_group": "17-25"})
    assert f.age_group is None
    assert updated.age_group == "17-25"


def test_ratio_helpers():
    assert ratio(1, 0) == 0
    assert ratio(1, 4) == 0.25
    assert per_thousand(0, 0) == 0
    assert per_thousand(1, 4) == 250


def test_detection_bucket():
    assert detection_bucket("Police issued") == POLICE_ISSUED
    assert detection_bucket("Mobile Camera") == CAMERA_BASED
    assert detection_bucket("Other") is None
    assert detection_bucket(None) is None


def test_month_key():
    assert month_key(rec(start_date=date(2024, 3, 9))) == "2024-03"
    assert month_key(rec()) is None


def test_national_total_fallbacks():
    empty = [Bucket(key=("NSW",), count=1)]
    full = [Bucket(key=("NSW",), count=1, fines=3, arrests=1)]
    assert national_total(full) == 4
    assert national_total(empty, fallback=full) == 4
    assert national_total(empty) == 1


def test_distinct_sorted(sample_csv):
    assert distinct(load(sample_csv), "year") == [2023, 2024]
