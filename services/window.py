"""Translate period tokens or explicit bounds into concrete query windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Union

from models.records import Window
from services.errors import InvalidWindowSpec

SUPPORTED_PERIODS: Dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "6h": timedelta(hours=6),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


@dataclass(frozen=True)
class WindowBounds:
    """Explicit window request; a missing ``end`` means "up to now"."""

    start: datetime
    end: Optional[datetime] = None


WindowSpec = Union[str, WindowBounds]


def as_utc(value: datetime) -> datetime:
    """Normalize ``value`` to UTC; a naive datetime is read as UTC."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def select_window(spec: WindowSpec, now: datetime) -> Window:
    """Resolve ``spec`` against the reference instant ``now``.

    Naive datetimes, in ``now`` or explicit bounds, are taken to be UTC.
    """
    now = as_utc(now)

    if isinstance(spec, str):
        duration = SUPPORTED_PERIODS.get(spec.strip().lower())
        if duration is None:
            supported = ", ".join(SUPPORTED_PERIODS)
            raise InvalidWindowSpec(
                f"Unsupported period {spec!r}; expected one of: {supported}."
            )
        return Window(start=now - duration, end=now)

    if isinstance(spec, WindowBounds):
        start = as_utc(spec.start)
        end = as_utc(spec.end) if spec.end is not None else now
        if start >= end:
            raise InvalidWindowSpec("Window start must be strictly before its end.")
        return Window(start=start, end=end)

    raise InvalidWindowSpec(f"Unsupported window specification: {spec!r}.")


def parse_window_spec(
    period: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    default_period: str = "24h",
) -> WindowSpec:
    """Build a window spec from request parameters.

    Explicit bounds win over ``period``. An ``end`` without a ``start`` is
    rejected because the window length would be undefined.
    """
    if start is not None:
        return WindowBounds(start=start, end=end)
    if end is not None:
        raise InvalidWindowSpec("An explicit window end requires a start.")
    candidate = (period or "").strip()
    return (candidate or default_period).lower()
