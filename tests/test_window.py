"""Unit tests for window selection."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from services.errors import InvalidWindowSpec
from services.window import SUPPORTED_PERIODS, WindowBounds, parse_window_spec, select_window

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("token", sorted(SUPPORTED_PERIODS))
def test_period_token_ends_now_and_spans_its_duration(token: str) -> None:
    window = select_window(token, NOW)

    assert window.end == NOW
    assert window.end - window.start == SUPPORTED_PERIODS[token]


def test_token_lookup_ignores_case_and_whitespace() -> None:
    window = select_window(" 7D ", NOW)

    assert window.start == NOW - timedelta(days=7)


def test_unknown_token_is_rejected() -> None:
    with pytest.raises(InvalidWindowSpec, match="banana"):
        select_window("banana", NOW)


def test_explicit_bounds_are_returned_unchanged() -> None:
    start = NOW - timedelta(hours=3)
    end = NOW - timedelta(hours=1)

    window = select_window(WindowBounds(start=start, end=end), NOW)

    assert (window.start, window.end) == (start, end)


def test_explicit_bounds_without_end_default_to_now() -> None:
    start = NOW - timedelta(minutes=30)

    window = select_window(WindowBounds(start=start), NOW)

    assert window.end == NOW


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(hours=2)])
def test_explicit_bounds_require_start_before_end(offset: timedelta) -> None:
    t1 = NOW - timedelta(hours=1)
    t2 = t1 + offset

    with pytest.raises(InvalidWindowSpec):
        select_window(WindowBounds(start=t2, end=t1), NOW)


def test_naive_datetimes_are_read_as_utc() -> None:
    naive_start = (NOW - timedelta(hours=2)).replace(tzinfo=None)

    window = select_window(WindowBounds(start=naive_start), NOW)
    token_window = select_window("1h", NOW.replace(tzinfo=None))

    assert window.start == NOW - timedelta(hours=2)
    assert window.start.tzinfo is timezone.utc
    assert token_window.end == NOW


def test_offset_bounds_are_normalized_to_utc() -> None:
    manila = timezone(timedelta(hours=8))
    start = (NOW - timedelta(hours=1)).astimezone(manila)

    window = select_window(WindowBounds(start=start), NOW)

    assert window.start == start
    assert window.start.utcoffset() == timedelta(0)


def test_parse_window_spec_prefers_explicit_bounds() -> None:
    start = NOW - timedelta(hours=2)

    spec = parse_window_spec(period="7d", start=start)

    assert spec == WindowBounds(start=start, end=None)


def test_parse_window_spec_falls_back_to_default_period() -> None:
    assert parse_window_spec(default_period="6h") == "6h"
    assert parse_window_spec(period="  ", default_period="6h") == "6h"
    assert parse_window_spec(period="1h") == "1h"


def test_parse_window_spec_rejects_end_without_start() -> None:
    with pytest.raises(InvalidWindowSpec):
        parse_window_spec(end=NOW)
