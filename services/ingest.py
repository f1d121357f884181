"""CSV ingestion of sensor readings into the reading store."""

from __future__ import annotations

import csv
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, TextIO, Tuple

from models.records import Sample, SampleQuality
from services.window import as_utc
from storage.readings import ReadingStore

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("sensor_id", "timestamp", "parameter", "value")


@dataclass(frozen=True)
class RowError:
    """Details about a row that failed validation or parsing."""

    row_number: int
    reason: str


@dataclass
class IngestSummary:
    accepted: int = 0
    per_parameter_count: Dict[str, int] = field(default_factory=dict)
    errors: List[RowError] = field(default_factory=list)


class ReadingIngestor:
    """Parses uploaded CSV rows into samples and stores them per sensor."""

    def __init__(self, store: ReadingStore) -> None:
        self.store = store

    def ingest(self, stream: TextIO) -> IngestSummary:
        reader = csv.DictReader(stream)
        if not reader.fieldnames:
            raise ValueError("CSV file is missing a header row.")

        normalized = {name.lower().strip(): name for name in reader.fieldnames}
        missing = sorted(set(REQUIRED_COLUMNS) - normalized.keys())
        if missing:
            raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

        summary = IngestSummary()
        batches: Dict[Tuple[str, str], List[Sample]] = defaultdict(list)
        barangays: Dict[str, str] = {}

        for row_number, row in enumerate(reader, start=2):
            sensor_id = _cell(row, normalized, "sensor_id")
            parameter = _cell(row, normalized, "parameter").lower()
            timestamp_raw = _cell(row, normalized, "timestamp")
            value_raw = _cell(row, normalized, "value")
            quality_raw = _cell(row, normalized, "quality").lower()
            barangay = _cell(row, normalized, "barangay")

            reason: Optional[str] = None
            sample: Optional[Sample] = None
            if not sensor_id:
                reason = "missing sensor_id"
            elif not parameter:
                reason = "missing parameter"
            elif not timestamp_raw:
                reason = "missing timestamp"
            else:
                try:
                    timestamp = parse_timestamp(timestamp_raw)
                except ValueError:
                    reason = "invalid timestamp"
                else:
                    sample, reason = self._build_sample(timestamp, value_raw, quality_raw)

            if reason is not None or sample is None:
                summary.errors.append(RowError(row_number=row_number, reason=reason or "invalid row"))
                logger.warning(
                    "Skipping row: %s",
                    reason,
                    extra={
                        "row_number": row_number,
                        "sensor_id": sensor_id or None,
                        "reason": reason,
                        "invalid_value": value_raw or None,
                    },
                )
                continue

            batches[(sensor_id, parameter)].append(sample)
            if barangay:
                barangays[sensor_id] = barangay

        for sensor_id, barangay in barangays.items():
            self.store.register_sensor(sensor_id, barangay)
        for (sensor_id, parameter), samples in batches.items():
            stored = self.store.put_samples(sensor_id, parameter, samples)
            summary.accepted += stored
            summary.per_parameter_count[parameter] = (
                summary.per_parameter_count.get(parameter, 0) + stored
            )

        logger.info(
            "Ingested %d readings",
            summary.accepted,
            extra={"sample_count": summary.accepted, "error_count": len(summary.errors)},
        )
        return summary

    @staticmethod
    def _build_sample(
        timestamp: datetime, value_raw: str, quality_raw: str
    ) -> Tuple[Optional[Sample], Optional[str]]:
        quality: Optional[SampleQuality] = None
        if quality_raw:
            try:
                quality = SampleQuality(quality_raw)
            except ValueError:
                return None, "unknown quality flag"

        if not value_raw:
            return Sample(timestamp=timestamp, value=None, quality=quality or SampleQuality.missing), None

        try:
            value = float(value_raw)
        except ValueError:
            return None, "invalid numeric value"
        if not math.isfinite(value):
            return None, "invalid numeric value"
        return Sample(timestamp=timestamp, value=value, quality=quality or SampleQuality.ok), None


def _cell(row: Dict[str, Optional[str]], columns: Dict[str, str], name: str) -> str:
    source = columns.get(name)
    if source is None:
        return ""
    return (row.get(source) or "").strip()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime; naive input is UTC."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    return as_utc(parsed)
