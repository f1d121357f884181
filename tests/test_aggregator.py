"""Unit tests for the aggregation logic."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from models.records import Sample, SampleQuality, Statistics, Window
from services.aggregator import Aggregator

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _at(seconds: int) -> datetime:
    return EPOCH + timedelta(seconds=seconds)


def _sample(seconds: int, value: float | None, quality: SampleQuality = SampleQuality.ok) -> Sample:
    """Helper to build deterministic samples."""

    return Sample(timestamp=_at(seconds), value=value, quality=quality)


WINDOW = Window(start=_at(0), end=_at(20))


def test_aggregate_empty_iterable_returns_no_data() -> None:
    aggregator = Aggregator()

    stats = aggregator.aggregate([], WINDOW)

    assert stats == Statistics(count=0, min=None, max=None, mean=None, latest=None)
    assert stats.total_observed == 0


def test_aggregate_single_sample() -> None:
    stats = Aggregator().aggregate([_sample(10, 3.5)], WINDOW)

    assert stats.count == 1
    assert stats.min == stats.max == stats.mean == stats.latest == 3.5
    assert stats.latest_at == _at(10)


def test_aggregate_computes_statistics() -> None:
    samples = [_sample(1, 10.0), _sample(2, 30.0), _sample(3, 20.0)]

    stats = Aggregator().aggregate(samples, WINDOW)

    assert stats.count == 3
    assert stats.min == 10.0
    assert stats.max == 30.0
    assert stats.mean == 20.0
    assert stats.latest == 20.0


def test_zero_is_a_real_reading() -> None:
    stats = Aggregator().aggregate([_sample(5, 0.0)], WINDOW)

    assert stats.count == 1
    assert stats.min == 0.0
    assert stats.latest == 0.0


def test_non_ok_quality_is_excluded_but_observed() -> None:
    samples = [
        _sample(5, 1.0),
        _sample(5, 999.0, SampleQuality.error),
        _sample(6, 50.0, SampleQuality.estimated),
        _sample(7, None, SampleQuality.missing),
    ]

    stats = Aggregator().aggregate(samples, Window(start=_at(0), end=_at(10)))

    assert stats.count == 1
    assert stats.mean == 1.0
    assert stats.max == 1.0
    assert stats.total_observed == 4


def test_accepted_qualities_are_configurable() -> None:
    aggregator = Aggregator(accepted_qualities={SampleQuality.ok, SampleQuality.estimated})
    samples = [_sample(1, 1.0), _sample(2, 3.0, SampleQuality.estimated)]

    stats = aggregator.aggregate(samples, WINDOW)

    assert stats.count == 2
    assert stats.mean == 2.0


def test_ok_samples_without_finite_value_are_skipped() -> None:
    samples = [_sample(1, None), _sample(2, math.nan), _sample(3, math.inf), _sample(4, 2.0)]

    stats = Aggregator().aggregate(samples, WINDOW)

    assert stats.count == 1
    assert stats.mean == 2.0
    assert stats.total_observed == 4


def test_window_is_half_open() -> None:
    samples = [_sample(-1, 100.0), _sample(0, 1.0), _sample(19, 2.0), _sample(20, 100.0)]

    stats = Aggregator().aggregate(samples, WINDOW)

    assert stats.count == 2
    assert stats.max == 2.0
    assert stats.total_observed == 2


def test_latest_follows_timestamp_not_input_order() -> None:
    samples = [_sample(15, 7.0), _sample(3, 1.0), _sample(9, 4.0)]

    stats = Aggregator().aggregate(samples, WINDOW)

    assert stats.latest == 7.0
    assert stats.latest_at == _at(15)


def test_aggregate_accepts_generators() -> None:
    stats = Aggregator().aggregate((_sample(i, float(i)) for i in range(5)), WINDOW)

    assert stats.count == 5
    assert stats.mean == pytest.approx(2.0, rel=1e-6)


def test_aggregate_is_idempotent() -> None:
    samples = tuple(_sample(i, 0.1 * i) for i in range(20))
    aggregator = Aggregator()

    assert aggregator.aggregate(samples, WINDOW) == aggregator.aggregate(samples, WINDOW)


def test_aggregate_many_keeps_parameters_separate() -> None:
    result = Aggregator().aggregate_many(
        {
            "water_level": [_sample(1, 1.5), _sample(2, 2.5)],
            "rainfall": [],
        },
        WINDOW,
    )

    assert result["water_level"].mean == 2.0
    assert result["rainfall"].count == 0
    assert result["rainfall"].mean is None
