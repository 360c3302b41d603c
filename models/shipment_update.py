"""
Shipment update history schemas.

History rows are written by the apply_shipment_change database function
in the same transaction as the change they describe; the API only reads them.
"""

from pydantic import Field
from typing import Any, Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin, Pagination


class UpdateType(str, Enum):
    """Kind of change recorded in the history log."""
    CREATED = "created"
    STATUS = "status"
    PAYMENT_STATUS = "payment_status"
    LOCATION = "location"
    TRACKING_SETTINGS = "tracking_settings"
    WAREHOUSE_ARRIVAL = "warehouse_arrival"
    DETAILS = "details"


class ShipmentUpdateCreate(BaseSchema):
    """
    History entry handed to apply_shipment_change.

    Sequence and timestamp are assigned by the database.
    """

    update_type: UpdateType
    content: str = Field(..., min_length=1, max_length=500)
    from_value: Optional[str] = None
    to_value: Optional[str] = None
    notes: Optional[str] = None
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_row(self) -> dict:
        return {
            "update_type": self.update_type.value,
            "content": self.content,
            "from_value": self.from_value,
            "to_value": self.to_value,
            "notes": self.notes,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "metadata": self.metadata,
        }


class ShipmentUpdateResponse(TimestampMixin):
    """History entry as stored."""

    id: str
    shipment_id: str
    sequence: int = Field(..., description="Shipment version produced by this change")
    update_type: UpdateType
    content: str
    from_value: Optional[str] = None
    to_value: Optional[str] = None
    notes: Optional[str] = None
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ShipmentRef(BaseSchema):
    id: str
    tracking_number: str
    status: str


class ShipmentUpdateListResponse(BaseSchema):
    """Paginated history, most recent first."""

    updates: list[ShipmentUpdateResponse]
    pagination: Pagination
    shipment: ShipmentRef
