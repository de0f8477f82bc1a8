"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.schemas import (
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    LatestResponse,
    StatusBreakdown,
    StatusResponse,
)
from services.errors import InvalidLocationError, StoreUnavailableError
from services.query import QueryService, build_default_query_service
from settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_GENERIC_UNAVAILABLE = "The aggregate store is currently unavailable."


def get_query_service() -> QueryService:
    return build_default_query_service()


def _failure(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def _unavailable(error: str, exc: StoreUnavailableError) -> JSONResponse:
    logger.error(error, exc_info=exc, extra={"location": exc.location})
    message = str(exc) if get_settings().expose_error_details else _GENERIC_UNAVAILABLE
    return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, error, message)


@router.get(
    "/latest",
    response_model=LatestResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Latest aggregate window for every location with data.",
)
def get_latest(
    service: QueryService = Depends(get_query_service),
) -> Union[LatestResponse, JSONResponse]:
    try:
        snapshot = service.get_latest_snapshot()
    except StoreUnavailableError as exc:
        return _unavailable("Failed to fetch latest data", exc)
    return LatestResponse(timestamp=snapshot.timestamp, data=snapshot.records)


@router.get(
    "/history/{location:path}",
    response_model=HistoryResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Recent aggregate windows for one location, oldest first.",
)
def get_history(
    location: str,
    limit: Optional[str] = Query(None, description="Number of windows (default 12)."),
    service: QueryService = Depends(get_query_service),
) -> Union[HistoryResponse, JSONResponse]:
    try:
        window = service.get_history(location, limit)
    except InvalidLocationError as exc:
        logger.info("Rejected history request", extra={"location": exc.location})
        return _failure(status.HTTP_400_BAD_REQUEST, "Unknown location", str(exc))
    except StoreUnavailableError as exc:
        return _unavailable("Failed to fetch historical data", exc)
    return HistoryResponse(
        location=window.location,
        data_points=len(window.records),
        limit=window.limit,
        data=window.records,
    )


@router.get(
    "/status",
    response_model=StatusResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Overall safety status rolled up across locations.",
)
def get_status(
    service: QueryService = Depends(get_query_service),
) -> Union[StatusResponse, JSONResponse]:
    try:
        snapshot, summary = service.get_overall_status()
    except StoreUnavailableError as exc:
        return _unavailable("Failed to fetch system status", exc)
    return StatusResponse(
        timestamp=snapshot.timestamp,
        overall_status=summary.overall_status,
        breakdown=StatusBreakdown(
            safe=summary.safe,
            caution=summary.caution,
            unsafe=summary.unsafe,
            total=summary.total,
        ),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> HealthResponse:
    return HealthResponse(timestamp=datetime.now(timezone.utc))
