"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    AggregatePoint,
    AnomalyItem,
    AnomalySettingsPayload,
    ApiResponse,
    MessagePayload,
    ReadingCreate,
    ReadingItem,
    ReadingsPayload,
    SensorItem,
    StatItem,
    StreamItem,
    StreamPayload,
)
from services.errors import ComputationError, SensorNotFoundError, SettingsValidationError
from services.sensors import SensorService, build_default_service

router = APIRouter()


def get_service() -> SensorService:
    return build_default_service()


def _not_found(exc: SensorNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get(
    "/api/sensors",
    response_model=ApiResponse[List[SensorItem]],
    summary="List sensors with their latest reading.",
)
def list_sensors(
    service: SensorService = Depends(get_service),
) -> ApiResponse[List[SensorItem]]:
    items = [SensorItem.from_domain(item) for item in service.list_sensors()]
    return ApiResponse.ok(items)


@router.get(
    "/api/sensors/statistics",
    response_model=ApiResponse[List[StatItem]],
    summary="Per-sensor average, minimum, maximum and count over a lookback window.",
)
def sensor_statistics(
    hours: int = Query(24, description="Lookback window in hours."),
    service: SensorService = Depends(get_service),
) -> ApiResponse[List[StatItem]]:
    return ApiResponse.ok([StatItem.from_domain(stats) for stats in service.statistics(hours)])


@router.get(
    "/api/sensors/stream",
    response_model=ApiResponse[StreamPayload],
    summary="Most recent readings across all sensors.",
)
def sensor_stream(
    limit: int = Query(10, description="Number of readings, clamped to 1..1000."),
    service: SensorService = Depends(get_service),
) -> ApiResponse[StreamPayload]:
    items = [StreamItem.from_domain(item) for item in service.stream(limit)]
    return ApiResponse.ok(StreamPayload(readings=items))


@router.get(
    "/api/sensors/{sensor_id}/readings",
    response_model=ApiResponse[ReadingsPayload],
    summary="Raw readings for a sensor, newest first.",
)
def sensor_readings(
    sensor_id: int,
    hours: int = Query(2, description="Lookback window in hours."),
    limit: Optional[int] = Query(None, description="Optional cap, clamped to 1..1000."),
    service: SensorService = Depends(get_service),
) -> ApiResponse[ReadingsPayload]:
    try:
        points = service.readings(sensor_id, hours=hours, limit=limit)
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc
    return ApiResponse.ok(ReadingsPayload(readings=[ReadingItem.from_domain(p) for p in points]))


@router.post(
    "/api/sensors/{sensor_id}/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ReadingItem],
    summary="Record a reading for a sensor.",
)
def create_reading(
    sensor_id: int,
    payload: ReadingCreate,
    service: SensorService = Depends(get_service),
) -> ApiResponse[ReadingItem]:
    try:
        point = service.record_reading(sensor_id, payload.value, payload.timestamp)
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc
    return ApiResponse.ok(ReadingItem.from_domain(point))


@router.get(
    "/api/sensors/{sensor_id}/aggregates",
    response_model=ApiResponse[List[AggregatePoint]],
    summary="Readings summarized into hourly or daily buckets.",
)
def sensor_aggregates(
    sensor_id: int,
    hours: int = Query(24, description="Lookback window in hours."),
    period: str = Query("hour", description="Bucket width: 'hour' or 'day'."),
    service: SensorService = Depends(get_service),
) -> ApiResponse[List[AggregatePoint]]:
    try:
        buckets = service.aggregates(sensor_id, hours=hours, period=period)
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc
    except ComputationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return ApiResponse.ok([AggregatePoint.from_domain(bucket) for bucket in buckets])


@router.get(
    "/api/sensors/{sensor_id}/anomalies",
    response_model=ApiResponse[List[AnomalyItem]],
    summary="Readings whose z-score magnitude meets the threshold, oldest first.",
)
def sensor_anomalies(
    sensor_id: int,
    hours: int = Query(24, description="Lookback window in hours."),
    z: float = Query(3.0, description="Z-score threshold."),
    service: SensorService = Depends(get_service),
) -> ApiResponse[List[AnomalyItem]]:
    try:
        anomalies = service.anomalies(sensor_id, hours=hours, z_threshold=z)
    except SensorNotFoundError as exc:
        raise _not_found(exc) from exc
    return ApiResponse.ok([AnomalyItem.from_domain(point) for point in anomalies])


@router.get(
    "/api/settings/anomaly-detection",
    response_model=ApiResponse[AnomalySettingsPayload],
    summary="Current anomaly detection settings.",
)
def get_anomaly_settings(
    service: SensorService = Depends(get_service),
) -> ApiResponse[AnomalySettingsPayload]:
    return ApiResponse.ok(AnomalySettingsPayload.from_domain(service.anomaly_settings()))


@router.post(
    "/api/settings/anomaly-detection",
    response_model=ApiResponse[MessagePayload],
    summary="Validate and persist anomaly detection settings.",
)
def save_anomaly_settings(
    payload: AnomalySettingsPayload,
    service: SensorService = Depends(get_service),
) -> ApiResponse[MessagePayload]:
    try:
        service.save_anomaly_settings(payload.to_domain())
    except SettingsValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ApiResponse.ok(MessagePayload(message="Anomaly detection settings saved successfully"))


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
def healthcheck(service: SensorService = Depends(get_service)) -> dict[str, Any]:
    return {"status": "ok", "native_aggregation": service.native_aggregation_enabled}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
