"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
    Money,
    Pagination,
)
from models.shipment import (
    ShipmentStatus,
    PaymentStatus,
    ShipmentType,
    Currency,
    STATUS_LABELS,
    STATUS_ORDER,
    ACTIVE_STATUSES,
    EXCEPTIONAL_STATUSES,
    parse_status,
    parse_payment_status,
    is_valid_container_number,
    validate_container_number,
    ShipmentCreate,
    ShipmentUpdate,
    ShipmentStatusUpdate,
    PaymentStatusUpdate,
    LocationUpdate,
    TrackingSettingsUpdate,
    WarehouseArrival,
    ShipmentResponse,
    ShipmentListResponse,
    ShipmentPublicView,
    TrackingLinkResponse,
    ShipmentMutationResponse,
)
from models.payment import (
    PaymentMethod,
    PaymentRecordCreate,
    PaymentRecordResponse,
    PaymentSummary,
    PaymentListResponse,
    PaymentRecordedResponse,
    PaymentStatusChangeResponse,
    derive_payment_status,
)
from models.shipment_update import (
    UpdateType,
    ShipmentUpdateCreate,
    ShipmentUpdateResponse,
    ShipmentUpdateListResponse,
)
from models.tracking import (
    IdentifierType,
    TrackingSource,
    Milestone,
    TrackingData,
    TrackingResult,
    ProviderHealth,
    ShipmentTrackingResponse,
)
from models.auth import Role, Actor

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    "Money",
    "Pagination",

    # Shipment
    "ShipmentStatus",
    "PaymentStatus",
    "ShipmentType",
    "Currency",
    "STATUS_LABELS",
    "STATUS_ORDER",
    "ACTIVE_STATUSES",
    "EXCEPTIONAL_STATUSES",
    "parse_status",
    "parse_payment_status",
    "is_valid_container_number",
    "validate_container_number",
    "ShipmentCreate",
    "ShipmentUpdate",
    "ShipmentStatusUpdate",
    "PaymentStatusUpdate",
    "LocationUpdate",
    "TrackingSettingsUpdate",
    "WarehouseArrival",
    "ShipmentResponse",
    "ShipmentListResponse",
    "ShipmentPublicView",
    "TrackingLinkResponse",
    "ShipmentMutationResponse",

    # Payment
    "PaymentMethod",
    "PaymentRecordCreate",
    "PaymentRecordResponse",
    "PaymentSummary",
    "PaymentListResponse",
    "PaymentRecordedResponse",
    "PaymentStatusChangeResponse",
    "derive_payment_status",

    # History
    "UpdateType",
    "ShipmentUpdateCreate",
    "ShipmentUpdateResponse",
    "ShipmentUpdateListResponse",

    # Tracking
    "IdentifierType",
    "TrackingSource",
    "Milestone",
    "TrackingData",
    "TrackingResult",
    "ProviderHealth",
    "ShipmentTrackingResponse",

    # Auth
    "Role",
    "Actor",
]
