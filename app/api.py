"""HTTP route definitions for the service."""

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from app.schemas import (
    BarangayRiskResponse,
    ClassificationResponse,
    IngestError,
    IngestResponse,
    LatestReading,
    LatestReadingsResponse,
    ParameterStatistics,
    RiskInfo,
    SensorInfo,
    SensorStatisticsResponse,
    StatisticsModel,
    TimeRange,
)
from services.classifier import RiskLevel
from services.errors import InvalidMetric, InvalidWindowSpec
from services.ingest import ReadingIngestor
from services.monitoring import MonitoringService, ParameterReport, build_default_monitoring
from services.window import WindowSpec, parse_window_spec
from settings import get_settings

router = APIRouter()


def get_monitoring() -> MonitoringService:
    return build_default_monitoring()


def _window_spec(period: Optional[str], start: Optional[datetime], end: Optional[datetime]) -> WindowSpec:
    try:
        return parse_window_spec(
            period=period,
            start=start,
            end=end,
            default_period=get_settings().default_period,
        )
    except InvalidWindowSpec as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _parameter_statistics(report: ParameterReport) -> ParameterStatistics:
    return ParameterStatistics(
        statistics=StatisticsModel.from_statistics(report.statistics),
        risk=RiskInfo.from_level(report.risk) if report.risk is not None else None,
    )


def _split_parameters(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    names = [name.strip().lower() for name in raw.split(",") if name.strip()]
    return names or None


@router.post(
    "/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestResponse,
    summary="Upload a CSV file of sensor readings.",
)
async def upload_readings(
    file: UploadFile = File(..., description="CSV file containing sensor readings."),
    monitoring: MonitoringService = Depends(get_monitoring),
) -> IngestResponse:
    contents = await file.read()
    await file.close()
    if not contents:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty.",
        )
    try:
        text = contents.decode("utf-8-sig")
        summary = ReadingIngestor(monitoring.store).ingest(io.StringIO(text))
    except (UnicodeDecodeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return IngestResponse(
        accepted=summary.accepted,
        per_parameter_count=dict(summary.per_parameter_count),
        errors=[IngestError(row_number=error.row_number, reason=error.reason) for error in summary.errors],
    )


@router.get(
    "/sensors",
    response_model=List[SensorInfo],
    summary="List known sensors and the barangay each belongs to.",
)
async def list_sensors(
    monitoring: MonitoringService = Depends(get_monitoring),
) -> List[SensorInfo]:
    return [
        SensorInfo(sensor_id=sensor_id, barangay=barangay)
        for sensor_id, barangay in monitoring.store.list_sensors().items()
    ]


@router.get(
    "/sensors/latest",
    response_model=LatestReadingsResponse,
    summary="Latest reading and risk of every sensor, optionally for one barangay.",
)
async def latest_readings(
    barangay: Optional[str] = Query(None, description="Only list sensors in this barangay."),
    period: Optional[str] = Query(None, description="How far back to look for a reading."),
    parameter: str = Query("water_level", description="Parameter to report."),
    monitoring: MonitoringService = Depends(get_monitoring),
) -> LatestReadingsResponse:
    spec = _window_spec(period, None, None)
    now = datetime.now(timezone.utc)
    try:
        report = monitoring.latest_readings(spec, barangay, parameter.strip().lower(), now=now)
    except InvalidWindowSpec as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return LatestReadingsResponse(
        timestamp=now,
        parameter=report.parameter,
        time_range=TimeRange(start=report.window.start, end=report.window.end),
        sensors=[
            LatestReading(
                sensor_id=item.sensor_id,
                barangay=item.barangay,
                latest_reading=item.report.statistics.latest,
                latest_at=item.report.statistics.latest_at,
                risk=RiskInfo.from_level(item.report.risk) if item.report.risk is not None else None,
            )
            for item in report.sensors
        ],
        total_sensors=report.total_sensors,
    )


@router.get(
    "/sensors/{sensor_id}/statistics",
    response_model=SensorStatisticsResponse,
    summary="Aggregate a sensor's readings over a period or explicit bounds.",
)
async def sensor_statistics(
    sensor_id: str,
    period: Optional[str] = Query(None, description="One of 1h, 6h, 24h, 7d, 30d."),
    start: Optional[datetime] = Query(None, description="Explicit window start (overrides period)."),
    end: Optional[datetime] = Query(None, description="Explicit window end; defaults to now."),
    parameters: Optional[str] = Query(None, description="Comma separated parameter names."),
    monitoring: MonitoringService = Depends(get_monitoring),
) -> SensorStatisticsResponse:
    spec = _window_spec(period, start, end)
    try:
        report = monitoring.sensor_statistics(sensor_id, spec, _split_parameters(parameters))
    except InvalidWindowSpec as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except InvalidMetric as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.args[0]) from exc

    return SensorStatisticsResponse(
        sensor_id=report.sensor_id,
        barangay=report.barangay,
        period=spec if isinstance(spec, str) else None,
        time_range=TimeRange(start=report.window.start, end=report.window.end),
        statistics={
            parameter: _parameter_statistics(item) for parameter, item in report.parameters.items()
        },
        total_readings=report.total_readings,
    )


@router.get(
    "/barangays/{barangay}/risk",
    response_model=BarangayRiskResponse,
    summary="Classify the latest reading of every sensor in a barangay.",
)
async def barangay_risk(
    barangay: str,
    period: Optional[str] = Query(None, description="One of 1h, 6h, 24h, 7d, 30d."),
    parameter: str = Query("water_level", description="Parameter with configured thresholds."),
    min_level: Optional[RiskLevel] = Query(None, description="Only list sensors at or above this level."),
    monitoring: MonitoringService = Depends(get_monitoring),
) -> BarangayRiskResponse:
    spec = _window_spec(period, None, None)
    try:
        report = monitoring.barangay_risk(
            barangay, spec, parameter.strip().lower(), min_level=min_level
        )
    except InvalidWindowSpec as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except InvalidMetric as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.args[0]) from exc

    highest = report.summary.highest
    return BarangayRiskResponse(
        barangay=report.barangay,
        parameter=report.parameter,
        period=spec if isinstance(spec, str) else None,
        time_range=TimeRange(start=report.window.start, end=report.window.end),
        sensors={sensor_id: _parameter_statistics(item) for sensor_id, item in report.sensors.items()},
        min_level=report.min_level,
        risk_summary=dict(report.summary.counts),
        highest_risk=RiskInfo.from_level(highest) if highest is not None else None,
    )


@router.get(
    "/risk/classify",
    response_model=ClassificationResponse,
    summary="Classify a single metric value against its threshold table.",
)
async def classify_value(
    kind: str = Query(..., description="Metric kind, e.g. water_level or rainfall."),
    value: float = Query(..., description="Metric value to classify."),
    monitoring: MonitoringService = Depends(get_monitoring),
) -> ClassificationResponse:
    kind = kind.strip().lower()
    try:
        level = monitoring.classify_metric(kind, value)
        alert = monitoring.alert_level(value) if kind == "flood_probability" else None
    except InvalidMetric as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.args[0]) from exc
    return ClassificationResponse.build(kind=kind, value=value, level=level, alert=alert)


@router.get(
    "/risk/levels",
    response_model=List[RiskInfo],
    summary="Risk legend ordered from lowest to highest severity.",
)
async def risk_levels() -> List[RiskInfo]:
    return [RiskInfo.from_level(level) for level in RiskLevel]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
