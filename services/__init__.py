"""
Business logic services.

Each service handles one domain area.
"""

from services.shipment_service import ShipmentService, get_shipment_service
from services.payment_service import PaymentService, get_payment_service
from services.shipment_update_service import ShipmentUpdateService, get_shipment_update_service
from services.tracking_service import TrackingService, get_tracking_service, suggest_status
from services.customer_portal_service import CustomerPortalService, get_customer_portal_service

__all__ = [
    "ShipmentService",
    "get_shipment_service",
    "PaymentService",
    "get_payment_service",
    "ShipmentUpdateService",
    "get_shipment_update_service",
    "TrackingService",
    "get_tracking_service",
    "suggest_status",
    "CustomerPortalService",
    "get_customer_portal_service",
]
