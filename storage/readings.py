from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional

from pydantic import TypeAdapter

from models.records import Sample, Window
from settings import get_settings

_SAMPLES_ADAPTER = TypeAdapter(List[Sample])


class ReadingStore:
    """In-process time-series store keyed by sensor and parameter."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._barangays: Dict[str, Optional[str]] = {}
        self._samples: Dict[str, Dict[str, List[Sample]]] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def register_sensor(self, sensor_id: str, barangay: Optional[str] = None) -> None:
        """Add a sensor, or attach it to ``barangay`` when one is given."""
        with self._lock:
            if sensor_id in self._barangays:
                if barangay is None or self._barangays[sensor_id] == barangay:
                    return
            self._barangays[sensor_id] = barangay
            self._samples.setdefault(sensor_id, {})
            self._persist()

    def put_samples(self, sensor_id: str, parameter: str, samples: Iterable[Sample]) -> int:
        incoming = list(samples)
        with self._lock:
            self._barangays.setdefault(sensor_id, None)
            series = self._samples.setdefault(sensor_id, {}).setdefault(parameter, [])
            series.extend(incoming)
            series.sort(key=lambda sample: sample.timestamp)
            self._persist()
        return len(incoming)

    def fetch_samples(self, sensor_id: str, parameter: str, window: Window) -> List[Sample]:
        """Return the sensor's samples for ``parameter`` inside ``window``, oldest first."""
        with self._lock:
            if sensor_id not in self._barangays:
                raise KeyError(f"Sensor {sensor_id!r} not found.")
            series = self._samples.get(sensor_id, {}).get(parameter, [])
            return [sample for sample in series if window.contains(sample.timestamp)]

    def parameters(self, sensor_id: str) -> List[str]:
        with self._lock:
            if sensor_id not in self._barangays:
                raise KeyError(f"Sensor {sensor_id!r} not found.")
            return sorted(self._samples.get(sensor_id, {}))

    def sensor_barangay(self, sensor_id: str) -> Optional[str]:
        with self._lock:
            if sensor_id not in self._barangays:
                raise KeyError(f"Sensor {sensor_id!r} not found.")
            return self._barangays[sensor_id]

    def sensors_in(self, barangay: str) -> List[str]:
        with self._lock:
            return sorted(
                sensor_id
                for sensor_id, owner in self._barangays.items()
                if owner == barangay
            )

    def list_sensors(self) -> Dict[str, Optional[str]]:
        """Return a copy of the sensor to barangay mapping."""

        with self._lock:
            return dict(sorted(self._barangays.items()))

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            sensor_id: {
                "barangay": barangay,
                "readings": {
                    parameter: _SAMPLES_ADAPTER.dump_python(series, mode="json")
                    for parameter, series in self._samples.get(sensor_id, {}).items()
                },
            }
            for sensor_id, barangay in self._barangays.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for sensor_id, payload in data.items():
            self._barangays[sensor_id] = payload.get("barangay")
            self._samples[sensor_id] = {
                parameter: sorted(
                    _SAMPLES_ADAPTER.validate_python(series),
                    key=lambda sample: sample.timestamp,
                )
                for parameter, series in (payload.get("readings") or {}).items()
            }


@lru_cache
def build_default_store(path: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(persistence_path=persistence)
