"""
Tracking schemas.

TrackingData mirrors the provider contract and keeps snake_case keys
(container_number, vessel_name, ...). The envelopes around it follow the
API's camelCase convention.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema
from models.shipment import ShipmentStatus, ShipmentPublicView


class IdentifierType(str, Enum):
    """Identifier kinds the provider can track by, in priority order."""
    CONTAINER = "container"
    BL = "bl"
    BOOKING = "booking"


class TrackingSource(str, Enum):
    PROVIDER = "shipsgo"
    MOCK = "mock"
    INTERNAL = "internal"


class Milestone(BaseModel):
    """One event in a shipment's tracking history."""
    event: str
    location: Optional[str] = None
    date: Optional[str] = None
    status: str
    description: Optional[str] = None


class TrackingLocation(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timestamp: Optional[str] = None


class TrackingData(BaseModel):
    """Normalized tracking payload (provider contract, snake_case)."""

    model_config = ConfigDict(extra="ignore")

    container_number: Optional[str] = None
    bl_number: Optional[str] = None
    booking_number: Optional[str] = None
    shipping_line: Optional[str] = None
    vessel_name: Optional[str] = None
    vessel_imo: Optional[str] = None
    voyage: Optional[str] = None
    port_of_loading: Optional[str] = None
    port_of_discharge: Optional[str] = None
    loading_country: Optional[str] = None
    discharge_country: Optional[str] = None
    estimated_departure: Optional[str] = None
    estimated_arrival: Optional[str] = None
    actual_departure: Optional[str] = None
    actual_arrival: Optional[str] = None
    status: str = "Unknown"
    status_id: Optional[int] = None
    eta: Optional[str] = None
    milestones: list[Milestone] = Field(default_factory=list)
    location: Optional[TrackingLocation] = None
    container_type: Optional[str] = None
    container_teu: Optional[str] = None
    transit_time: Optional[str] = None
    co2_emissions: Optional[float] = None
    live_map_url: Optional[str] = None
    bl_container_count: Optional[int] = None


class TrackingResult(BaseSchema):
    """
    Outcome of a tracking lookup.

    success=False is the degraded shape: message explains why, and data may
    still carry mock or internal data for display.
    """

    success: bool
    data: Optional[TrackingData] = None
    message: Optional[str] = None
    mock: bool = False
    source: TrackingSource = TrackingSource.PROVIDER
    identifier_type: Optional[IdentifierType] = None
    identifier: Optional[str] = None
    suggested_status: Optional[ShipmentStatus] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ProviderHealth(BaseSchema):
    """Provider availability as reported by /shipsgo-tracking/health."""

    status: str
    configured: bool
    mock_mode: bool
    degraded: bool
    rate_limit: int
    api_url: str
    fallback_enabled: bool
    timeout_seconds: float
    last_error: Optional[str] = None
    last_checked_at: Optional[datetime] = None


class ShipmentTrackingResponse(BaseSchema):
    """A shipment merged with its reconciliation result."""

    shipment: ShipmentPublicView
    tracking: TrackingResult
    tracking_enabled: bool
