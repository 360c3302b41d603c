"""
Customer portal API routes.

Customer tokens only. Each customer sees the shipments of the client
their token is linked to.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from models.customer_portal import (
    CustomerShipmentListResponse,
    CustomerShipmentDetail,
    CustomerFinancialSummaryResponse,
)
from models.tracking import ShipmentTrackingResponse
from services.customer_portal_service import get_customer_portal_service
from utils.auth import CustomerActor
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/customer", tags=["Customer Portal"])


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


@router.get("/shipments", response_model=CustomerShipmentListResponse)
async def list_my_shipments(
    actor: CustomerActor,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """List the caller's shipments, newest first."""
    try:
        return get_customer_portal_service().list_shipments(actor, page=page, limit=limit)

    except Exception as e:
        return handle_error(e)


@router.get("/shipments/{shipment_id}", response_model=CustomerShipmentDetail)
async def get_my_shipment(shipment_id: str, actor: CustomerActor):
    """
    Shipment detail with payments and balance.

    Raises:
        404: Unknown shipment, or owned by another client
    """
    try:
        return get_customer_portal_service().get_shipment(actor, shipment_id)

    except Exception as e:
        return handle_error(e)


@router.get("/shipments/{shipment_id}/tracking", response_model=ShipmentTrackingResponse)
def get_my_shipment_tracking(shipment_id: str, actor: CustomerActor):
    """
    Tracking for one of the caller's shipments.

    Raises:
        403: Tracking disabled for this shipment
        404: Unknown shipment, or owned by another client
    """
    try:
        return get_customer_portal_service().get_tracking(actor, shipment_id)

    except Exception as e:
        return handle_error(e)


@router.get("/financial-summary", response_model=CustomerFinancialSummaryResponse)
async def get_my_financial_summary(actor: CustomerActor):
    """Amount due, paid and remaining across the caller's shipments, per currency."""
    try:
        return get_customer_portal_service().get_financial_summary(actor)

    except Exception as e:
        return handle_error(e)
