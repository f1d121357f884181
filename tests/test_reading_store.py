"""Unit tests for the in-process reading store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from models.records import Sample, SampleQuality, Window
from storage.readings import ReadingStore

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _sample(hours: int, value: float | None, quality: SampleQuality = SampleQuality.ok) -> Sample:
    return Sample(timestamp=EPOCH + timedelta(hours=hours), value=value, quality=quality)


def test_fetch_samples_filters_by_window_and_sorts() -> None:
    store = ReadingStore()
    store.put_samples("s-1", "water_level", [_sample(5, 2.0), _sample(1, 1.0), _sample(9, 3.0)])

    window = Window(start=EPOCH, end=EPOCH + timedelta(hours=6))
    fetched = store.fetch_samples("s-1", "water_level", window)

    assert [sample.value for sample in fetched] == [1.0, 2.0]


def test_fetch_samples_for_unknown_sensor_raises() -> None:
    store = ReadingStore()
    window = Window(start=EPOCH, end=EPOCH + timedelta(hours=1))

    with pytest.raises(KeyError, match="missing-sensor"):
        store.fetch_samples("missing-sensor", "water_level", window)


def test_unknown_parameter_of_known_sensor_is_empty() -> None:
    store = ReadingStore()
    store.register_sensor("s-1", "Bagong Silang")
    window = Window(start=EPOCH, end=EPOCH + timedelta(hours=1))

    assert store.fetch_samples("s-1", "rainfall", window) == []
    assert store.parameters("s-1") == []


def test_register_sensor_groups_by_barangay() -> None:
    store = ReadingStore()
    store.register_sensor("s-2", "Tumana")
    store.register_sensor("s-1", "Tumana")
    store.register_sensor("s-3", "Malanday")
    store.register_sensor("s-3")

    assert store.sensors_in("Tumana") == ["s-1", "s-2"]
    assert store.sensor_barangay("s-3") == "Malanday"
    assert store.sensors_in("Nowhere") == []
    assert store.list_sensors() == {"s-1": "Tumana", "s-2": "Tumana", "s-3": "Malanday"}


def test_list_sensors_returns_a_copy() -> None:
    store = ReadingStore()
    store.register_sensor("s-1", "Tumana")

    listing = store.list_sensors()
    listing["s-1"] = "Elsewhere"

    assert store.sensor_barangay("s-1") == "Tumana"


def test_store_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "readings.json"
    store = ReadingStore(persistence_path=path)
    store.register_sensor("s-1", "Tumana")
    store.put_samples(
        "s-1",
        "water_level",
        [_sample(2, 1.5), _sample(1, None, SampleQuality.missing)],
    )

    payload = json.loads(path.read_text())
    assert payload["s-1"]["barangay"] == "Tumana"
    assert len(payload["s-1"]["readings"]["water_level"]) == 2

    reloaded = ReadingStore(persistence_path=path)
    window = Window(start=EPOCH, end=EPOCH + timedelta(days=1))
    samples = reloaded.fetch_samples("s-1", "water_level", window)
    assert samples == [_sample(1, None, SampleQuality.missing), _sample(2, 1.5)]
    assert reloaded.sensor_barangay("s-1") == "Tumana"


def test_corrupt_persistence_file_starts_empty(tmp_path) -> None:
    path = tmp_path / "readings.json"
    path.write_text("{not json")

    store = ReadingStore(persistence_path=path)

    assert store.list_sensors() == {}
