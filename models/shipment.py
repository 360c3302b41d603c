"""
Shipment schemas for validation and serialization.

The status vocabulary and its display labels live here and nowhere else.
"""

import re
from pydantic import Field, field_validator, model_validator
from typing import Optional, Union
from enum import Enum
from datetime import datetime

from models.base import BaseSchema, TimestampMixin, Money, Pagination
from exceptions import (
    InvalidStatusError,
    InvalidPaymentStatusError,
    InvalidContainerNumberError,
)


class ShipmentStatus(str, Enum):
    """Shipment status values."""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    AT_PORT = "at_port"
    CUSTOMS_CLEARANCE = "customs_clearance"
    DELIVERED = "delivered"
    DELAYED = "delayed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment status values."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class ShipmentType(str, Enum):
    SEA = "sea"
    AIR = "air"
    LAND = "land"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    LYD = "LYD"


# Normal forward progression. DELAYED and CANCELLED sit outside it.
STATUS_ORDER = {
    ShipmentStatus.PENDING: 0,
    ShipmentStatus.PROCESSING: 1,
    ShipmentStatus.SHIPPED: 2,
    ShipmentStatus.IN_TRANSIT: 3,
    ShipmentStatus.AT_PORT: 4,
    ShipmentStatus.CUSTOMS_CLEARANCE: 5,
    ShipmentStatus.DELIVERED: 6,
}

STATUS_LABELS = {
    ShipmentStatus.PENDING: "Pending",
    ShipmentStatus.PROCESSING: "Processing",
    ShipmentStatus.SHIPPED: "Shipped",
    ShipmentStatus.IN_TRANSIT: "In Transit",
    ShipmentStatus.AT_PORT: "At Port",
    ShipmentStatus.CUSTOMS_CLEARANCE: "Customs Clearance",
    ShipmentStatus.DELIVERED: "Delivered",
    ShipmentStatus.DELAYED: "Delayed",
    ShipmentStatus.CANCELLED: "Cancelled",
}

EXCEPTIONAL_STATUSES = frozenset({ShipmentStatus.DELAYED, ShipmentStatus.CANCELLED})

ACTIVE_STATUSES = frozenset({
    ShipmentStatus.PROCESSING,
    ShipmentStatus.SHIPPED,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.AT_PORT,
    ShipmentStatus.CUSTOMS_CLEARANCE,
})

# Shipments on the water cannot be deleted
UNDELETABLE_STATUSES = frozenset({ShipmentStatus.SHIPPED, ShipmentStatus.IN_TRANSIT})

CONTAINER_NUMBER_RE = re.compile(r"^[A-Z]{4}[0-9]{7}$")


def status_label(status: ShipmentStatus) -> str:
    """Human-facing label for a status."""
    return STATUS_LABELS.get(ShipmentStatus(status), "Unknown")


def has_reached(current: ShipmentStatus, milestone: ShipmentStatus) -> bool:
    """
    Check whether current is at or past milestone in the forward flow.

    Exceptional statuses never count as having reached anything.
    """
    if current in EXCEPTIONAL_STATUSES:
        return False
    return STATUS_ORDER[current] >= STATUS_ORDER[milestone]


def parse_status(value: Union[str, ShipmentStatus]) -> ShipmentStatus:
    """
    Coerce a raw value into ShipmentStatus.

    Raises:
        InvalidStatusError: If value is not in the vocabulary
    """
    try:
        return ShipmentStatus(value)
    except ValueError:
        raise InvalidStatusError(str(value), [s.value for s in ShipmentStatus])


def parse_payment_status(value: Union[str, PaymentStatus]) -> PaymentStatus:
    """
    Coerce a raw value into PaymentStatus.

    Raises:
        InvalidPaymentStatusError: If value is not in the vocabulary
    """
    try:
        return PaymentStatus(value)
    except ValueError:
        raise InvalidPaymentStatusError(str(value), [s.value for s in PaymentStatus])


def is_valid_container_number(value: str) -> bool:
    """Check the 4 letters + 7 digits container format (case-insensitive)."""
    return bool(CONTAINER_NUMBER_RE.match(value.strip().upper()))


def validate_container_number(value: str) -> str:
    """
    Normalize and validate a container number.

    Returns:
        Upper-cased container number

    Raises:
        InvalidContainerNumberError: If format is wrong
    """
    normalized = value.strip().upper()
    if not CONTAINER_NUMBER_RE.match(normalized):
        raise InvalidContainerNumberError(value)
    return normalized


def _normalize_container(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not is_valid_container_number(v):
        raise ValueError("Invalid container number format. Expected ABCD1234567")
    return v.strip().upper()


def _normalize_reference(v: Optional[str]) -> Optional[str]:
    if v is None or v.strip() == "":
        return None
    return v.upper().strip()


# ===================
# SHIPMENT SCHEMAS
# ===================

class ShipmentCreate(BaseSchema):
    """
    Create a new shipment.

    Tracking number is generated unless one is supplied.
    """

    client_id: str = Field(..., description="Owning client UUID")
    customer_account_id: Optional[str] = Field(None, description="Customer portal account UUID")
    tracking_number: Optional[str] = Field(None, max_length=40, description="Public tracking number (generated if omitted)")
    description: str = Field(..., min_length=1, max_length=500, description="Cargo description")
    type: ShipmentType = Field(default=ShipmentType.SEA, description="Transport mode")

    # Route
    origin_port: str = Field(..., min_length=1, max_length=200)
    destination_port: str = Field(..., min_length=1, max_length=200)

    # Cargo
    weight: Money = Field(..., gt=0, description="Weight in kg")
    volume: Optional[Money] = Field(None, ge=0, description="Volume in cubic meters")
    value: Money = Field(..., gt=0, description="Declared cargo value")
    currency: Currency = Field(default=Currency.USD)

    # Cost
    total_cost: Money = Field(..., gt=0, description="Total shipping cost")
    additional_charges: Money = Field(default=0, ge=0, description="Charges added by admin")
    admin_amount_paid: Money = Field(default=0, ge=0, description="Lump sum paid outside the ledger")

    # Schedule
    estimated_departure: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None

    # Tracking linkage
    container_number: Optional[str] = Field(None, description="Container number (ABCD1234567)")
    bl_number: Optional[str] = Field(None, max_length=30)
    booking_number: Optional[str] = Field(None, max_length=30)
    enable_tracking: bool = False
    shipping_line: Optional[str] = Field(None, max_length=100)
    voyage: Optional[str] = Field(None, max_length=50)
    vessel_name: Optional[str] = Field(None, max_length=100)
    vessel_mmsi: Optional[str] = Field(None, max_length=20, alias="vesselMMSI")
    vessel_imo: Optional[str] = Field(None, max_length=20, alias="vesselIMO")

    notes: Optional[str] = Field(None, max_length=2000)
    special_instructions: Optional[str] = Field(None, max_length=2000)

    @field_validator("container_number")
    @classmethod
    def normalize_container(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_container(v)

    @field_validator("bl_number", "booking_number", "tracking_number")
    @classmethod
    def normalize_reference(cls, v: Optional[str]) -> Optional[str]:
        """Normalize reference numbers to uppercase."""
        return _normalize_reference(v)

    @field_validator("total_cost", "additional_charges", "admin_amount_paid", "value")
    @classmethod
    def round_money(cls, v):
        """Round to 2 decimal places."""
        return round(v, 2)


class ShipmentUpdate(BaseSchema):
    """
    Update descriptive shipment fields.

    Status, payment status, location and tracking settings have
    their own endpoints.
    """

    description: Optional[str] = Field(None, min_length=1, max_length=500)
    origin_port: Optional[str] = Field(None, min_length=1, max_length=200)
    destination_port: Optional[str] = Field(None, min_length=1, max_length=200)
    weight: Optional[Money] = Field(None, gt=0)
    volume: Optional[Money] = Field(None, ge=0)
    value: Optional[Money] = Field(None, gt=0)
    total_cost: Optional[Money] = Field(None, gt=0)
    additional_charges: Optional[Money] = Field(None, ge=0)
    estimated_departure: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None
    shipping_line: Optional[str] = Field(None, max_length=100)
    voyage: Optional[str] = Field(None, max_length=50)
    special_instructions: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = Field(None, max_length=2000, description="Note attached to the history entry")
    expected_version: Optional[int] = Field(None, ge=1)


class ShipmentStatusUpdate(BaseSchema):
    """Update only the status of a shipment."""

    status: str = Field(..., description="New status (any value of ShipmentStatus)")
    notes: Optional[str] = Field(None, max_length=1000)
    actual_departure: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    expected_version: Optional[int] = Field(None, ge=1)


class PaymentStatusUpdate(BaseSchema):
    """Set payment status directly."""

    payment_status: str = Field(..., description="New payment status (unpaid, partial, paid)")
    override: bool = Field(
        default=False,
        description="Persist even when it contradicts the ledger (write-offs, manual settlement)"
    )
    notes: Optional[str] = Field(None, max_length=1000)
    expected_version: Optional[int] = Field(None, ge=1)


class LocationUpdate(BaseSchema):
    """Admin location update for a shipment in transit."""

    current_location: str = Field(..., min_length=1, max_length=200)
    estimated_arrival: Optional[datetime] = None
    vessel_name: Optional[str] = Field(None, max_length=100)
    vessel_mmsi: Optional[str] = Field(None, max_length=20, alias="vesselMMSI")
    notes: Optional[str] = Field(None, max_length=1000)
    expected_version: Optional[int] = Field(None, ge=1)


class TrackingSettingsUpdate(BaseSchema):
    """Enable/disable external tracking and set identifiers."""

    enable_tracking: bool
    container_number: Optional[str] = None
    bl_number: Optional[str] = Field(None, max_length=30)
    booking_number: Optional[str] = Field(None, max_length=30)
    expected_version: Optional[int] = Field(None, ge=1)

    @field_validator("container_number")
    @classmethod
    def normalize_container(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_container(v)

    @field_validator("bl_number", "booking_number")
    @classmethod
    def normalize_reference(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_reference(v)


class WarehouseArrival(BaseSchema):
    """Mark a shipment as received at the warehouse."""

    warehouse_location: str = Field(..., min_length=1, max_length=200)
    condition: str = Field(..., min_length=1, max_length=50, description="e.g. excellent, good, damaged")
    notes: Optional[str] = Field(None, max_length=1000)
    disable_tracking: bool = Field(default=True)
    arrival_date: Optional[datetime] = None
    expected_version: Optional[int] = Field(None, ge=1)

    @field_validator("condition")
    @classmethod
    def lower_condition(cls, v: str) -> str:
        return v.lower()


class ShipmentResponse(TimestampMixin):
    """
    Shipment response with all fields.

    Used for admin GET responses.
    """

    id: str
    tracking_number: str
    client_id: str
    customer_account_id: Optional[str] = None
    description: Optional[str] = None
    type: Optional[ShipmentType] = None

    status: ShipmentStatus
    status_label: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    version: int = 1

    origin_port: Optional[str] = None
    destination_port: Optional[str] = None

    weight: Optional[Money] = None
    volume: Optional[Money] = None
    value: Optional[Money] = None
    currency: Currency = Currency.USD

    total_cost: Money
    additional_charges: Money = 0
    admin_amount_paid: Money = 0

    estimated_departure: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None

    container_number: Optional[str] = None
    bl_number: Optional[str] = None
    booking_number: Optional[str] = None
    enable_tracking: bool = False
    shipping_line: Optional[str] = None
    voyage: Optional[str] = None
    vessel_name: Optional[str] = None
    vessel_mmsi: Optional[str] = Field(None, alias="vesselMMSI")
    vessel_imo: Optional[str] = Field(None, alias="vesselIMO")

    current_location: Optional[str] = None
    warehouse_location: Optional[str] = None
    cargo_condition: Optional[str] = None

    notes: Optional[str] = None
    special_instructions: Optional[str] = None

    @model_validator(mode="after")
    def fill_status_label(self):
        if self.status_label is None:
            # validate_assignment would recurse through this validator
            object.__setattr__(self, "status_label", status_label(self.status))
        return self

    @property
    def amount_due(self):
        """Total cost plus additional charges."""
        return self.total_cost + (self.additional_charges or 0)

    @property
    def tracking_identifiers(self) -> list[tuple[str, str]]:
        """Available identifiers in provider priority order (container, bl, booking)."""
        candidates = [
            ("container", self.container_number),
            ("bl", self.bl_number),
            ("booking", self.booking_number),
        ]
        return [(kind, value) for kind, value in candidates if value]


class ShipmentListResponse(BaseSchema):
    """List of shipments with pagination."""

    shipments: list[ShipmentResponse]
    pagination: Pagination


class ShipmentPublicView(BaseSchema):
    """Shipment fields safe to show without authentication."""

    tracking_number: str
    description: Optional[str] = None
    status: ShipmentStatus
    status_label: str
    origin_port: Optional[str] = None
    destination_port: Optional[str] = None
    container_number: Optional[str] = None
    vessel_name: Optional[str] = None
    shipping_line: Optional[str] = None
    estimated_departure: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None

    @classmethod
    def from_shipment(cls, shipment: ShipmentResponse) -> "ShipmentPublicView":
        return cls(
            tracking_number=shipment.tracking_number,
            description=shipment.description,
            status=shipment.status,
            status_label=status_label(shipment.status),
            origin_port=shipment.origin_port,
            destination_port=shipment.destination_port,
            container_number=shipment.container_number,
            vessel_name=shipment.vessel_name,
            shipping_line=shipment.shipping_line,
            estimated_departure=shipment.estimated_departure,
            actual_departure=shipment.actual_departure,
            estimated_arrival=shipment.estimated_arrival,
            actual_arrival=shipment.actual_arrival,
        )


class TrackingLinkResponse(BaseSchema):
    """Shareable public tracking link."""

    tracking_number: str
    tracking_link: str


class ShipmentMutationResponse(BaseSchema):
    """Envelope for admin lifecycle actions."""

    message: str
    shipment: ShipmentResponse
