"""
Tracking reconciliation service.

Merges ShipsGo lookups with the internal shipment record for display.
Nothing here writes to the database: a tracking result may suggest a
status, but only an explicit admin status update changes the shipment.
"""

from typing import Optional, Union
from datetime import datetime, timezone
import structlog

from config import settings
from integrations.shipsgo import ShipsGoClient
from integrations.shipsgo_mock import mock_tracking_data
from models.shipment import ShipmentResponse, ShipmentStatus, has_reached
from models.tracking import (
    IdentifierType,
    TrackingSource,
    TrackingData,
    TrackingResult,
    ProviderHealth,
    Milestone,
)

logger = structlog.get_logger(__name__)


# Checked in order; the first matching term wins.
MILESTONE_STATUS_TERMS: list[tuple[tuple[str, ...], ShipmentStatus]] = [
    (("delivered", "gate out", "empty return"), ShipmentStatus.DELIVERED),
    (("customs",), ShipmentStatus.CUSTOMS_CLEARANCE),
    (("discharged", "arrived", "arrival", "berthed", "at port"), ShipmentStatus.AT_PORT),
    (("sailing", "in transit", "transshipment", "on board"), ShipmentStatus.IN_TRANSIT),
    (("departed", "departure", "loaded", "gate in"), ShipmentStatus.SHIPPED),
    (("booked", "booking"), ShipmentStatus.PROCESSING),
]

PENDING_MILESTONE_STATUSES = {"pending", "planned", "estimated"}


def suggest_status(data: Optional[TrackingData]) -> Optional[ShipmentStatus]:
    """
    Map provider status and milestone wording onto a ShipmentStatus.

    Looks at the provider's overall status first, then at milestones that
    have already happened, latest first. Returns None when nothing matches.
    """
    if data is None:
        return None

    candidates = [data.status or ""]
    for milestone in reversed(data.milestones):
        if (milestone.status or "").lower() in PENDING_MILESTONE_STATUSES:
            continue
        candidates.append(milestone.event)

    for text in candidates:
        lowered = text.lower()
        for terms, status in MILESTONE_STATUS_TERMS:
            if any(term in lowered for term in terms):
                return status
    return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def internal_milestones(shipment: ShipmentResponse) -> list[Milestone]:
    """Milestones implied by the shipment's own status and dates."""
    status = shipment.status
    created = _iso(shipment.created_at)
    milestones = []

    if status != ShipmentStatus.PENDING:
        milestones.append(Milestone(
            event="Booking Confirmed",
            location="Office",
            date=created,
            status="completed",
            description="Shipment booking confirmed",
        ))

    if has_reached(status, ShipmentStatus.SHIPPED):
        milestones.append(Milestone(
            event="Departed",
            location=shipment.origin_port,
            date=_iso(shipment.actual_departure or shipment.estimated_departure) or created,
            status="completed",
            description="Vessel departed from origin port",
        ))

    if has_reached(status, ShipmentStatus.IN_TRANSIT):
        milestones.append(Milestone(
            event="In Transit",
            location=shipment.current_location or "Sea",
            date=_iso(shipment.updated_at) or created,
            status="in_progress" if status == ShipmentStatus.IN_TRANSIT else "completed",
            description="Container in transit",
        ))

    if has_reached(status, ShipmentStatus.AT_PORT):
        milestones.append(Milestone(
            event="Arrived at Port",
            location=shipment.destination_port,
            date=_iso(shipment.estimated_arrival) or _iso(shipment.updated_at) or created,
            status="in_progress" if status == ShipmentStatus.AT_PORT else "completed",
            description="Container arrived at destination port",
        ))

    if status == ShipmentStatus.DELIVERED:
        milestones.append(Milestone(
            event="Delivered",
            location=shipment.warehouse_location or shipment.destination_port,
            date=_iso(shipment.actual_arrival) or _iso(shipment.updated_at) or created,
            status="completed",
            description="Container delivered to consignee",
        ))

    return milestones


def internal_tracking_data(shipment: ShipmentResponse) -> TrackingData:
    """Project a shipment into the provider contract."""
    return TrackingData(
        container_number=shipment.container_number,
        bl_number=shipment.bl_number,
        booking_number=shipment.booking_number,
        shipping_line=shipment.shipping_line,
        vessel_name=shipment.vessel_name,
        vessel_imo=shipment.vessel_imo,
        voyage=shipment.voyage,
        port_of_loading=shipment.origin_port,
        port_of_discharge=shipment.destination_port,
        estimated_departure=_iso(shipment.estimated_departure),
        estimated_arrival=_iso(shipment.estimated_arrival),
        actual_departure=_iso(shipment.actual_departure),
        actual_arrival=_iso(shipment.actual_arrival),
        status=shipment.status_label or shipment.status.value,
        eta=_iso(shipment.estimated_arrival),
        milestones=internal_milestones(shipment),
    )


class TrackingService:
    """
    Tracking reconciliation.

    track() and track_shipment() never raise: provider failures come back
    as success=False and mark the provider degraded until the next success.
    """

    def __init__(self, client: Optional[ShipsGoClient] = None):
        self.client = client or ShipsGoClient()
        self.degraded = False
        self.last_error: Optional[str] = None
        self.last_checked_at: Optional[datetime] = None

    def track(
        self,
        identifier_type: Union[IdentifierType, str],
        identifier: str
    ) -> TrackingResult:
        """Look up one identifier with the provider (or mock data when unconfigured)."""
        identifier_type = IdentifierType(identifier_type)
        identifier = identifier.strip().upper()

        if not self.client.configured:
            logger.info(
                "shipsgo_mock_mode",
                identifier_type=identifier_type.value,
                identifier=identifier
            )
            data = mock_tracking_data(identifier, identifier_type)
            return TrackingResult(
                success=True,
                data=data,
                message="Mock data - API key not configured",
                mock=True,
                source=TrackingSource.MOCK,
                identifier_type=identifier_type,
                identifier=identifier,
                suggested_status=suggest_status(data),
            )

        self.last_checked_at = datetime.now(timezone.utc)

        try:
            data = self.client.track(identifier_type, identifier)

        except Exception as e:
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            self.degraded = True
            self.last_error = message

            logger.warning(
                "shipsgo_request_failed",
                identifier_type=identifier_type.value,
                identifier=identifier,
                error=message,
                error_type=type(e).__name__
            )

            fallback = None
            if settings.shipsgo_fallback_to_mock:
                fallback = mock_tracking_data(identifier, identifier_type)

            return TrackingResult(
                success=False,
                data=fallback,
                message=message,
                mock=fallback is not None,
                source=TrackingSource.MOCK if fallback else TrackingSource.PROVIDER,
                identifier_type=identifier_type,
                identifier=identifier,
            )

        if self.degraded:
            logger.info("shipsgo_recovered", identifier=identifier)
        self.degraded = False
        self.last_error = None

        return TrackingResult(
            success=True,
            data=data,
            message="Tracking data retrieved successfully",
            source=TrackingSource.PROVIDER,
            identifier_type=identifier_type,
            identifier=identifier,
            suggested_status=suggest_status(data),
        )

    def track_shipment(self, shipment: ShipmentResponse) -> TrackingResult:
        """
        Reconcile one shipment.

        With tracking disabled or no identifier on file the provider is not
        contacted and the internal projection is returned. Otherwise the
        first available identifier (container, then BL, then booking) is
        tracked; on failure the internal projection is attached.
        """
        identifiers = shipment.tracking_identifiers

        if not shipment.enable_tracking or not identifiers:
            reason = "Tracking disabled" if not shipment.enable_tracking else "No tracking identifier on file"
            logger.debug(
                "tracking_short_circuit",
                shipment_id=shipment.id,
                reason=reason
            )
            return TrackingResult(
                success=True,
                data=internal_tracking_data(shipment),
                message=reason,
                source=TrackingSource.INTERNAL,
            )

        identifier_type, identifier = identifiers[0]
        result = self.track(identifier_type, identifier)

        if not result.success and result.data is None:
            result.data = internal_tracking_data(shipment)
            result.source = TrackingSource.INTERNAL

        if result.suggested_status == shipment.status:
            result.suggested_status = None

        return result

    def health(self) -> ProviderHealth:
        """Provider availability and whether mock data is being served."""
        configured = self.client.configured
        if not configured:
            status = "mock"
        elif self.degraded:
            status = "degraded"
        else:
            status = "operational"

        return ProviderHealth(
            status=status,
            configured=configured,
            mock_mode=not configured or self.degraded,
            degraded=self.degraded,
            rate_limit=settings.shipsgo_rate_limit,
            api_url=self.client.api_url,
            fallback_enabled=settings.shipsgo_fallback_to_mock,
            timeout_seconds=self.client.timeout,
            last_error=self.last_error,
            last_checked_at=self.last_checked_at,
        )


# Singleton instance
_tracking_service: Optional[TrackingService] = None


def get_tracking_service() -> TrackingService:
    """Get or create TrackingService instance."""
    global _tracking_service
    if _tracking_service is None:
        _tracking_service = TrackingService()
    return _tracking_service
