"""
ShipsGo tracking API routes.

Unauthenticated lookups by container, BL or booking number, rate limited
per client. Provider failures come back as 200 with success=false.
"""

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.tracking import IdentifierType, TrackingResult, ProviderHealth
from services.tracking_service import get_tracking_service
from utils.rate_limit import limit_tracking_requests
from exceptions import AppError, MissingTrackingIdentifierError

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/api/shipsgo-tracking",
    tags=["ShipsGo Tracking"],
    dependencies=[Depends(limit_tracking_requests)],
)

CONTAINER_PATTERN = r"^[A-Za-z]{4}[0-9]{7}$"
REFERENCE_PATTERN = r"^[A-Za-z0-9-]+$"


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


@router.get("/track", response_model=TrackingResult)
def track(
    container: Optional[str] = Query(None, pattern=CONTAINER_PATTERN, description="Container number (ABCD1234567)"),
    bl: Optional[str] = Query(None, min_length=6, max_length=30, pattern=REFERENCE_PATTERN, description="Bill of lading number"),
    booking: Optional[str] = Query(None, min_length=3, max_length=30, pattern=REFERENCE_PATTERN, description="Booking number"),
):
    """
    Track by whichever identifier is given.

    Container wins over BL, BL over booking.

    Raises:
        400: No identifier given
    """
    try:
        if container:
            return get_tracking_service().track(IdentifierType.CONTAINER, container)
        if bl:
            return get_tracking_service().track(IdentifierType.BL, bl)
        if booking:
            return get_tracking_service().track(IdentifierType.BOOKING, booking)
        raise MissingTrackingIdentifierError()

    except Exception as e:
        return handle_error(e)


@router.get("/container/{container_number}", response_model=TrackingResult)
def track_container(container_number: str = Path(..., pattern=CONTAINER_PATTERN)):
    """Track by container number."""
    try:
        return get_tracking_service().track(IdentifierType.CONTAINER, container_number)

    except Exception as e:
        return handle_error(e)


@router.get("/bl/{bl_number}", response_model=TrackingResult)
def track_bl(bl_number: str = Path(..., min_length=6, max_length=30, pattern=REFERENCE_PATTERN)):
    """Track by bill of lading number."""
    try:
        return get_tracking_service().track(IdentifierType.BL, bl_number)

    except Exception as e:
        return handle_error(e)


@router.get("/booking/{booking_number}", response_model=TrackingResult)
def track_booking(booking_number: str = Path(..., min_length=3, max_length=30, pattern=REFERENCE_PATTERN)):
    """Track by booking number."""
    try:
        return get_tracking_service().track(IdentifierType.BOOKING, booking_number)

    except Exception as e:
        return handle_error(e)


@router.get("/health", response_model=ProviderHealth)
async def provider_health():
    """Provider status. mockMode is true while unconfigured or degraded."""
    try:
        return get_tracking_service().health()

    except Exception as e:
        return handle_error(e)
