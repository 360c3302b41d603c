"""
Shipment API routes.

Admin endpoints for the shipment lifecycle plus the public tracking lookup.
Mutating endpoints accept expectedVersion in the body or an If-Match header.
"""

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.base import Pagination
from models.shipment import (
    ShipmentCreate,
    ShipmentUpdate,
    ShipmentStatusUpdate,
    PaymentStatusUpdate,
    LocationUpdate,
    TrackingSettingsUpdate,
    WarehouseArrival,
    ShipmentResponse,
    ShipmentListResponse,
    ShipmentMutationResponse,
    ShipmentPublicView,
    TrackingLinkResponse,
    ShipmentStatus,
)
from models.payment import (
    PaymentRecordCreate,
    PaymentListResponse,
    PaymentRecordedResponse,
    PaymentStatusChangeResponse,
)
from models.shipment_update import ShipmentUpdateListResponse
from models.tracking import ShipmentTrackingResponse
from services.shipment_service import get_shipment_service
from services.payment_service import get_payment_service
from services.shipment_update_service import get_shipment_update_service
from services.tracking_service import get_tracking_service
from utils.auth import AdminActor
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/shipments", tags=["Shipments"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
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


def parse_if_match(if_match: Optional[str]) -> Optional[int]:
    """
    Read a shipment version from an If-Match header.

    Accepts 3, "3" and W/"3".
    """
    if not if_match:
        return None
    value = if_match.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    if not value.isdigit():
        raise ValidationError("If-Match must carry a shipment version", details={"if_match": if_match})
    return int(value)


# ===================
# PUBLIC
# ===================

@router.get("/track/{tracking_number}", response_model=ShipmentTrackingResponse)
def track_by_number(
    tracking_number: str,
    token: Optional[str] = Query(None, description="Secret token from the shared tracking link"),
):
    """
    Public tracking by tracking number (or container number).

    Returns the public shipment summary with the reconciliation result.
    No financial or client data is exposed. When a token is given it must
    match the shipment's tracking token.

    Raises:
        404: Unknown tracking number or wrong token
    """
    try:
        shipment = get_shipment_service().find_for_public_tracking(tracking_number, token=token)
        tracking = get_tracking_service().track_shipment(shipment)

        return ShipmentTrackingResponse(
            shipment=ShipmentPublicView.from_shipment(shipment),
            tracking=tracking,
            tracking_enabled=shipment.enable_tracking,
        )

    except Exception as e:
        return handle_error(e)


# ===================
# ADMIN ROUTES
# ===================

@router.get("", response_model=ShipmentListResponse)
async def list_shipments(
    actor: AdminActor,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    status: Optional[ShipmentStatus] = Query(None, description="Filter by status"),
    client_id: Optional[str] = Query(None, alias="clientId", description="Filter by client"),
    search: Optional[str] = Query(None, max_length=100, description="Tracking, container or description"),
):
    """List shipments, newest first."""
    try:
        shipments, total = get_shipment_service().get_all(
            page=page,
            page_size=limit,
            status=status,
            client_id=client_id,
            search=search,
        )

        return ShipmentListResponse(
            shipments=shipments,
            pagination=Pagination.create(page, limit, total),
        )

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=ShipmentResponse, status_code=201)
async def create_shipment(data: ShipmentCreate, actor: AdminActor):
    """
    Create a new shipment.

    Raises:
        404: Client not found
        409: Tracking number already exists
    """
    try:
        return get_shipment_service().create(data, actor=actor)

    except Exception as e:
        return handle_error(e)


@router.get("/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(shipment_id: str, actor: AdminActor):
    """
    Get a single shipment by ID.

    Raises:
        404: Shipment not found
    """
    try:
        return get_shipment_service().get_by_id(shipment_id)

    except Exception as e:
        return handle_error(e)


@router.put("/{shipment_id}", response_model=ShipmentResponse)
async def update_shipment(
    shipment_id: str,
    data: ShipmentUpdate,
    actor: AdminActor,
    if_match: Optional[str] = Header(None),
):
    """Update descriptive shipment fields."""
    try:
        return get_shipment_service().update(
            shipment_id,
            data,
            actor=actor,
            expected_version=parse_if_match(if_match),
        )

    except Exception as e:
        return handle_error(e)


@router.delete("/{shipment_id}", status_code=204)
async def delete_shipment(shipment_id: str, actor: AdminActor):
    """
    Delete a shipment with its payments and history.

    Raises:
        400: Shipment is shipped or in transit
        404: Shipment not found
    """
    try:
        get_shipment_service().delete(shipment_id)
        return None

    except Exception as e:
        return handle_error(e)


@router.put("/{shipment_id}/status", response_model=ShipmentMutationResponse)
async def update_shipment_status(
    shipment_id: str,
    data: ShipmentStatusUpdate,
    actor: AdminActor,
    if_match: Optional[str] = Header(None),
):
    """
    Set shipment status. Any status may follow any other.

    Raises:
        400: Unknown status
        404: Shipment not found
        409: Version conflict
    """
    try:
        shipment = get_shipment_service().update_status(
            shipment_id,
            data.status,
            notes=data.notes,
            actor=actor,
            expected_version=data.expected_version or parse_if_match(if_match),
            actual_departure=data.actual_departure,
            actual_arrival=data.actual_arrival,
        )
        return ShipmentMutationResponse(
            message="Shipment status updated successfully",
            shipment=shipment,
        )

    except Exception as e:
        return handle_error(e)


@router.patch("/{shipment_id}/payment-status", response_model=PaymentStatusChangeResponse)
async def update_payment_status(
    shipment_id: str,
    data: PaymentStatusUpdate,
    actor: AdminActor,
    if_match: Optional[str] = Header(None),
):
    """
    Set payment status directly.

    Raises:
        400: Unknown payment status, or contradicts the ledger without override
        404: Shipment not found
        409: Version conflict
    """
    try:
        shipment, summary = get_payment_service().set_payment_status(
            shipment_id,
            data.payment_status,
            override=data.override,
            notes=data.notes,
            actor=actor,
            expected_version=data.expected_version or parse_if_match(if_match),
        )
        return PaymentStatusChangeResponse(
            message="Payment status updated successfully",
            shipment=shipment,
            summary=summary,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{shipment_id}/payments", response_model=PaymentListResponse)
async def list_payments(shipment_id: str, actor: AdminActor):
    """Payment records in creation order with the ledger summary."""
    try:
        return get_payment_service().list_payments(shipment_id)

    except Exception as e:
        return handle_error(e)


@router.post("/{shipment_id}/payments", response_model=PaymentRecordedResponse, status_code=201)
async def add_payment(
    shipment_id: str,
    data: PaymentRecordCreate,
    actor: AdminActor,
    if_match: Optional[str] = Header(None),
):
    """
    Record a payment.

    Raises:
        400: Non-positive amount, wrong currency or overpayment
        404: Shipment not found
        409: Version conflict
    """
    try:
        return get_payment_service().add_payment(
            shipment_id,
            data,
            actor=actor,
            expected_version=parse_if_match(if_match),
        )

    except Exception as e:
        return handle_error(e)


@router.post("/{shipment_id}/warehouse-arrival", response_model=ShipmentMutationResponse)
async def mark_warehouse_arrival(
    shipment_id: str,
    data: WarehouseArrival,
    actor: AdminActor,
    if_match: Optional[str] = Header(None),
):
    """Mark a shipment delivered at the warehouse."""
    try:
        shipment = get_shipment_service().mark_warehouse_arrival(
            shipment_id,
            data,
            actor=actor,
            expected_version=parse_if_match(if_match),
        )
        return ShipmentMutationResponse(
            message="Shipment marked as arrived at warehouse",
            shipment=shipment,
        )

    except Exception as e:
        return handle_error(e)


@router.put("/{shipment_id}/location", response_model=ShipmentMutationResponse)
async def update_location(
    shipment_id: str,
    data: LocationUpdate,
    actor: AdminActor,
    if_match: Optional[str] = Header(None),
):
    """Record the shipment's current location."""
    try:
        shipment = get_shipment_service().update_location(
            shipment_id,
            data,
            actor=actor,
            expected_version=parse_if_match(if_match),
        )
        return ShipmentMutationResponse(
            message="Shipment location updated successfully",
            shipment=shipment,
        )

    except Exception as e:
        return handle_error(e)


@router.put("/{shipment_id}/tracking-settings", response_model=ShipmentMutationResponse)
async def update_tracking_settings(
    shipment_id: str,
    data: TrackingSettingsUpdate,
    actor: AdminActor,
    if_match: Optional[str] = Header(None),
):
    """Enable/disable external tracking and set identifiers."""
    try:
        shipment = get_shipment_service().update_tracking_settings(
            shipment_id,
            data,
            actor=actor,
            expected_version=parse_if_match(if_match),
        )
        return ShipmentMutationResponse(
            message="Tracking settings updated successfully",
            shipment=shipment,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{shipment_id}/update-history", response_model=ShipmentUpdateListResponse)
async def get_update_history(
    shipment_id: str,
    actor: AdminActor,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """History of status, payment, location and tracking changes, most recent first."""
    try:
        return get_shipment_update_service().get_history(shipment_id, page=page, limit=limit)

    except Exception as e:
        return handle_error(e)


@router.get("/{shipment_id}/tracking", response_model=ShipmentTrackingResponse)
def get_shipment_tracking(shipment_id: str, actor: AdminActor):
    """Reconcile one shipment with the tracking provider."""
    try:
        shipment = get_shipment_service().get_by_id(shipment_id)
        tracking = get_tracking_service().track_shipment(shipment)

        return ShipmentTrackingResponse(
            shipment=ShipmentPublicView.from_shipment(shipment),
            tracking=tracking,
            tracking_enabled=shipment.enable_tracking,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{shipment_id}/tracking-link", response_model=TrackingLinkResponse)
async def get_tracking_link(shipment_id: str, actor: AdminActor):
    """Shareable public tracking link for a shipment."""
    try:
        return get_shipment_service().get_tracking_link(shipment_id)

    except Exception as e:
        return handle_error(e)
