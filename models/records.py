"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SampleQuality(str, Enum):
    """Quality flag attached to every stored reading."""

    ok = "ok"
    missing = "missing"
    estimated = "estimated"
    error = "error"


@dataclass(frozen=True, slots=True)
class Sample:
    """A single timestamped sensor or environmental reading."""

    timestamp: datetime
    value: Optional[float]
    quality: SampleQuality = SampleQuality.ok


@dataclass(frozen=True, slots=True)
class Window:
    """Half-open time interval ``[start, end)``."""

    start: datetime
    end: datetime

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp < self.end


@dataclass(frozen=True, slots=True)
class Statistics:
    """Summary of the accepted samples inside a window.

    ``count`` covers accepted samples only, ``total_observed`` every in-window
    sample regardless of quality. Numeric fields stay ``None`` when nothing
    was accepted; zero is a real reading.
    """

    count: int = 0
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    latest: Optional[float] = None
    latest_at: Optional[datetime] = None
    total_observed: int = 0
