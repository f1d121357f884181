"""Aggregation logic for sensor readings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from models.records import Sample, SampleQuality, Statistics, Window

DEFAULT_ACCEPTED_QUALITIES: FrozenSet[SampleQuality] = frozenset({SampleQuality.ok})


@dataclass
class _RunningStats:
    count: int = 0
    total_observed: int = 0
    total: float = 0.0
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    latest: Optional[float] = None
    latest_at: Optional[datetime] = None

    def observe(self, value: float, timestamp: datetime) -> None:
        self.count += 1
        self.total += value
        if self.min_value is None or value < self.min_value:
            self.min_value = value
        if self.max_value is None or value > self.max_value:
            self.max_value = value
        if self.latest_at is None or timestamp >= self.latest_at:
            self.latest = value
            self.latest_at = timestamp

    def freeze(self) -> Statistics:
        if not self.count:
            return Statistics(total_observed=self.total_observed)
        return Statistics(
            count=self.count,
            min=self.min_value,
            max=self.max_value,
            mean=self.total / self.count,
            latest=self.latest,
            latest_at=self.latest_at,
            total_observed=self.total_observed,
        )


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation.

    Input does not need to be sorted or pre-filtered: samples outside the
    window are ignored, and ``latest`` follows the greatest timestamp rather
    than input order.
    """

    def __init__(self, accepted_qualities: Iterable[SampleQuality] | None = None) -> None:
        qualities = (
            DEFAULT_ACCEPTED_QUALITIES
            if accepted_qualities is None
            else frozenset(accepted_qualities)
        )
        self.accepted_qualities: FrozenSet[SampleQuality] = qualities

    def aggregate(self, samples: Iterable[Sample], window: Window) -> Statistics:
        running = _RunningStats()

        for sample in samples:
            if not window.contains(sample.timestamp):
                continue
            running.total_observed += 1

            if sample.quality not in self.accepted_qualities:
                continue
            value = sample.value
            if value is None or not math.isfinite(value):
                continue
            running.observe(float(value), sample.timestamp)

        return running.freeze()

    def aggregate_many(
        self,
        samples_by_parameter: Mapping[str, Iterable[Sample]],
        window: Window,
    ) -> Dict[str, Statistics]:
        """Aggregate each parameter's samples independently over one window."""
        return {
            parameter: self.aggregate(samples, window)
            for parameter, samples in samples_by_parameter.items()
        }
