"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.records import Statistics
from services.classifier import VOCABULARIES, AlertLevel, RiskLevel, level_style, to_vocabulary


class RiskInfo(BaseModel):
    """Risk level with its presentation metadata."""

    level: RiskLevel
    rank: int = Field(..., ge=0)
    label: str
    color: str

    @classmethod
    def from_level(cls, level: RiskLevel) -> "RiskInfo":
        style = level_style(level)
        return cls(level=level, rank=level.rank, label=style.label, color=style.color)


class StatisticsModel(BaseModel):
    """Aggregate metrics computed for one parameter over a window."""

    count: int = Field(..., ge=0)
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    latest: Optional[float] = None
    latest_at: Optional[datetime] = None
    total_observed: int = Field(0, ge=0)

    @classmethod
    def from_statistics(cls, statistics: Statistics) -> "StatisticsModel":
        return cls(
            count=statistics.count,
            min=statistics.min,
            max=statistics.max,
            mean=statistics.mean,
            latest=statistics.latest,
            latest_at=statistics.latest_at,
            total_observed=statistics.total_observed,
        )


class ParameterStatistics(BaseModel):
    statistics: StatisticsModel
    risk: Optional[RiskInfo] = Field(
        default=None,
        description="Classification of the latest value; null without thresholds or data.",
    )


class TimeRange(BaseModel):
    start: datetime
    end: datetime


class SensorStatisticsResponse(BaseModel):
    """Per-parameter statistics for a sensor over the requested window."""

    sensor_id: str
    barangay: Optional[str] = None
    period: Optional[str] = None
    time_range: TimeRange
    statistics: Dict[str, ParameterStatistics] = Field(default_factory=dict)
    total_readings: int = Field(0, ge=0)


class BarangayRiskResponse(BaseModel):
    """Risk of every sensor in a barangay plus the level summary."""

    barangay: str
    parameter: str
    period: Optional[str] = None
    time_range: TimeRange
    sensors: Dict[str, ParameterStatistics] = Field(default_factory=dict)
    min_level: Optional[RiskLevel] = None
    risk_summary: Dict[RiskLevel, int] = Field(default_factory=dict)
    highest_risk: Optional[RiskInfo] = None


class LatestReading(BaseModel):
    sensor_id: str
    barangay: Optional[str] = None
    latest_reading: Optional[float] = None
    latest_at: Optional[datetime] = None
    risk: Optional[RiskInfo] = None


class LatestReadingsResponse(BaseModel):
    """Most recent reading of one parameter for each sensor."""

    timestamp: datetime
    parameter: str
    time_range: TimeRange
    sensors: List[LatestReading] = Field(default_factory=list)
    total_sensors: int = Field(0, ge=0)


class ClassificationResponse(BaseModel):
    kind: str
    value: float
    risk: RiskInfo
    labels: Dict[str, str] = Field(
        default_factory=dict,
        description="The level expressed in each supported external vocabulary.",
    )
    alert: Optional[AlertLevel] = Field(
        default=None,
        description="Warning stage; only reported for flood probabilities.",
    )

    @classmethod
    def build(
        cls,
        kind: str,
        value: float,
        level: RiskLevel,
        alert: Optional[AlertLevel] = None,
    ) -> "ClassificationResponse":
        return cls(
            kind=kind,
            value=value,
            risk=RiskInfo.from_level(level),
            labels={name: to_vocabulary(level, name) for name in VOCABULARIES},
            alert=alert,
        )


class SensorInfo(BaseModel):
    sensor_id: str
    barangay: Optional[str] = None


class IngestError(BaseModel):
    """Details about a row that failed validation or parsing."""

    row_number: int = Field(..., ge=1)
    reason: str


class IngestResponse(BaseModel):
    """Outcome of a CSV upload."""

    accepted: int = Field(..., ge=0)
    per_parameter_count: Dict[str, int] = Field(default_factory=dict)
    errors: List[IngestError] = Field(default_factory=list)
