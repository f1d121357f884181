"""Request-level orchestration of window selection, aggregation and risk."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, List, Mapping, Optional, Sequence

from models.records import Statistics, Window
from services.aggregator import Aggregator
from services.classifier import (
    ALERT_THRESHOLDS,
    AlertLevel,
    RiskLevel,
    RiskSummary,
    ThresholdTable,
    at_or_above,
    build_default_thresholds,
    classify,
    classify_alert,
    summarize_levels,
)
from services.window import WindowSpec, select_window
from settings import get_settings
from storage.readings import ReadingStore, build_default_store

logger = logging.getLogger(__name__)


@dataclass
class ParameterReport:
    statistics: Statistics
    risk: Optional[RiskLevel] = None


@dataclass
class SensorReport:
    sensor_id: str
    barangay: Optional[str]
    window: Window
    parameters: Dict[str, ParameterReport] = field(default_factory=dict)

    @property
    def total_readings(self) -> int:
        return sum(report.statistics.total_observed for report in self.parameters.values())


@dataclass
class BarangayRiskReport:
    barangay: str
    parameter: str
    window: Window
    sensors: Dict[str, ParameterReport] = field(default_factory=dict)
    summary: RiskSummary = field(default_factory=RiskSummary)
    min_level: Optional[RiskLevel] = None


@dataclass
class LatestReading:
    sensor_id: str
    barangay: Optional[str]
    report: ParameterReport


@dataclass
class LatestReadingsReport:
    parameter: str
    window: Window
    sensors: List[LatestReading] = field(default_factory=list)

    @property
    def total_sensors(self) -> int:
        return len(self.sensors)


class MonitoringService:
    """Answers dashboard queries from stored readings.

    Risk is classified from ``latest`` so that a recent spike is reported
    even when the window mean is still low.
    """

    def __init__(
        self,
        store: ReadingStore,
        aggregator: Aggregator,
        thresholds: Mapping[str, ThresholdTable],
        alert_thresholds: ThresholdTable = ALERT_THRESHOLDS,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.thresholds = thresholds
        self.alert_thresholds = alert_thresholds

    def sensor_statistics(
        self,
        sensor_id: str,
        spec: WindowSpec,
        parameters: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> SensorReport:
        window = select_window(spec, now or datetime.now(timezone.utc))
        barangay = self.store.sensor_barangay(sensor_id)
        names = list(parameters) if parameters else self.store.parameters(sensor_id)

        samples_by_parameter = {
            parameter: self.store.fetch_samples(sensor_id, parameter, window) for parameter in names
        }
        report = SensorReport(sensor_id=sensor_id, barangay=barangay, window=window)
        for parameter, statistics in self.aggregator.aggregate_many(samples_by_parameter, window).items():
            report.parameters[parameter] = ParameterReport(
                statistics=statistics,
                risk=self._risk_for(parameter, statistics),
            )

        logger.info(
            "Computed sensor statistics",
            extra={
                "sensor_id": sensor_id,
                "period": spec if isinstance(spec, str) else None,
                "sample_count": report.total_readings,
            },
        )
        return report

    def barangay_risk(
        self,
        barangay: str,
        spec: WindowSpec,
        parameter: str = "water_level",
        now: Optional[datetime] = None,
        min_level: Optional[RiskLevel] = None,
    ) -> BarangayRiskReport:
        """Classify every sensor in ``barangay``.

        The summary always covers the whole barangay; ``min_level`` only
        narrows the listed sensors to those at or above it.
        """
        if parameter not in self.thresholds:
            raise KeyError(f"No risk thresholds configured for {parameter!r}.")
        sensor_ids = self.store.sensors_in(barangay)
        if not sensor_ids:
            raise KeyError(f"Barangay {barangay!r} has no registered sensors.")

        window = select_window(spec, now or datetime.now(timezone.utc))
        report = BarangayRiskReport(
            barangay=barangay, parameter=parameter, window=window, min_level=min_level
        )
        reports = {sensor_id: self._parameter_report(sensor_id, parameter, window) for sensor_id in sensor_ids}
        report.summary = summarize_levels(item.risk for item in reports.values())
        report.sensors = {
            sensor_id: item
            for sensor_id, item in reports.items()
            if min_level is None or at_or_above(item.risk, min_level)
        }

        logger.info(
            "Computed barangay risk",
            extra={
                "barangay": barangay,
                "parameter": parameter,
                "risk_level": report.summary.highest,
            },
        )
        return report

    def latest_readings(
        self,
        spec: WindowSpec,
        barangay: Optional[str] = None,
        parameter: str = "water_level",
        now: Optional[datetime] = None,
    ) -> LatestReadingsReport:
        """Latest ``parameter`` reading and its risk for every sensor.

        Sensors are listed by id; ``barangay`` restricts the
        listing to one barangay and an unknown barangay yields no sensors.
        """
        window = select_window(spec, now or datetime.now(timezone.utc))
        if barangay is None:
            sensors = self.store.list_sensors()
        else:
            sensors = {sensor_id: barangay for sensor_id in self.store.sensors_in(barangay)}

        report = LatestReadingsReport(parameter=parameter, window=window)
        for sensor_id, sensor_barangay in sensors.items():
            report.sensors.append(
                LatestReading(
                    sensor_id=sensor_id,
                    barangay=sensor_barangay,
                    report=self._parameter_report(sensor_id, parameter, window),
                )
            )

        logger.info(
            "Collected latest readings",
            extra={
                "barangay": barangay,
                "parameter": parameter,
                "sample_count": report.total_sensors,
            },
        )
        return report

    def alert_level(self, probability: float) -> AlertLevel:
        return classify_alert(probability, self.alert_thresholds)

    def classify_metric(self, kind: str, value: float) -> RiskLevel:
        table = self.thresholds.get(kind)
        if table is None:
            raise KeyError(f"No risk thresholds configured for {kind!r}.")
        return classify(value, table)

    def _parameter_report(self, sensor_id: str, parameter: str, window: Window) -> ParameterReport:
        statistics = self.aggregator.aggregate(self.store.fetch_samples(sensor_id, parameter, window), window)
        return ParameterReport(statistics=statistics, risk=self._risk_for(parameter, statistics))

    def _risk_for(self, parameter: str, statistics: Statistics) -> Optional[RiskLevel]:
        table = self.thresholds.get(parameter)
        if table is None or statistics.latest is None:
            return None
        return classify(statistics.latest, table)


@lru_cache
def build_default_monitoring() -> MonitoringService:
    """Factory that wires the service with the configured store and thresholds."""
    settings = get_settings()
    return MonitoringService(
        store=build_default_store(),
        aggregator=Aggregator(accepted_qualities=settings.accepted_qualities),
        thresholds=build_default_thresholds(),
    )
