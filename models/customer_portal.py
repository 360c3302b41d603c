"""
Customer portal schemas.

Customers see their own shipments with payment summaries but never
internal notes or other clients' data.
"""

from typing import Optional
from datetime import datetime

from models.base import BaseSchema, Money, Pagination
from models.shipment import ShipmentPublicView, Currency
from models.payment import PaymentRecordResponse, PaymentSummary


class CustomerShipment(ShipmentPublicView):
    """Public view plus the fields a customer may see about their own cargo."""

    id: str
    payment_status: str
    currency: Currency
    total_cost: Money
    enable_tracking: bool
    current_location: Optional[str] = None
    created_at: Optional[datetime] = None


class CustomerShipmentListResponse(BaseSchema):
    shipments: list[CustomerShipment]
    pagination: Pagination


class CustomerShipmentDetail(BaseSchema):
    shipment: CustomerShipment
    payments: list[PaymentRecordResponse]
    summary: PaymentSummary


class FinancialSummary(BaseSchema):
    """Totals across all of a customer's shipments, per currency."""

    currency: Currency
    total_due: Money
    total_paid: Money
    remaining: Money
    shipment_count: int
    status_counts: dict[str, int]


class CustomerFinancialSummaryResponse(BaseSchema):
    summaries: list[FinancialSummary]
