"""
Customer portal service.

Read-only views over a customer's own shipments. Shipments belonging to
another client are reported as not found.
"""

from typing import Optional
from collections import Counter, defaultdict
from decimal import Decimal
import structlog

from models.auth import Actor
from models.base import Pagination
from models.shipment import ShipmentResponse, ShipmentPublicView
from models.customer_portal import (
    CustomerShipment,
    CustomerShipmentListResponse,
    CustomerShipmentDetail,
    FinancialSummary,
    CustomerFinancialSummaryResponse,
)
from models.tracking import ShipmentTrackingResponse
from services.shipment_service import get_shipment_service
from services.payment_service import get_payment_service
from services.tracking_service import get_tracking_service
from exceptions import (
    ShipmentNotFoundError,
    PermissionDeniedError,
)

logger = structlog.get_logger(__name__)


class CustomerPortalService:
    """Customer-facing shipment and financial views."""

    def __init__(self):
        self.shipments = get_shipment_service()
        self.payments = get_payment_service()

    # ===================
    # SHIPMENTS
    # ===================

    def list_shipments(self, actor: Actor, page: int = 1, limit: int = 10) -> CustomerShipmentListResponse:
        client_id = self._client_id(actor)
        shipments, total = self.shipments.get_all(page=page, page_size=limit, client_id=client_id)

        logger.info(
            "customer_shipments_listed",
            actor_id=actor.id,
            count=len(shipments),
            total=total
        )

        return CustomerShipmentListResponse(
            shipments=[self._to_customer_view(s) for s in shipments],
            pagination=Pagination.create(page, limit, total),
        )

    def get_shipment(self, actor: Actor, shipment_id: str) -> CustomerShipmentDetail:
        shipment = self._owned_shipment(actor, shipment_id)
        records = self.payments.get_records(shipment.id)
        return CustomerShipmentDetail(
            shipment=self._to_customer_view(shipment),
            payments=records,
            summary=self.payments.summarize(shipment, records),
        )

    def get_tracking(self, actor: Actor, shipment_id: str) -> ShipmentTrackingResponse:
        """
        Reconciled tracking for one of the customer's shipments.

        Raises:
            PermissionDeniedError: If tracking is disabled for the shipment
        """
        shipment = self._owned_shipment(actor, shipment_id)
        if not shipment.enable_tracking:
            raise PermissionDeniedError(
                "Tracking is not enabled for this shipment",
                details={"id": shipment_id}
            )

        result = get_tracking_service().track_shipment(shipment)
        return ShipmentTrackingResponse(
            shipment=ShipmentPublicView.from_shipment(shipment),
            tracking=result,
            tracking_enabled=True,
        )

    # ===================
    # FINANCIALS
    # ===================

    def get_financial_summary(self, actor: Actor) -> CustomerFinancialSummaryResponse:
        """
        Totals across all of the customer's shipments.

        Amounts are grouped by currency; no conversion is attempted.
        """
        client_id = self._client_id(actor)

        shipments = self.shipments.get_for_client(client_id)
        paid_by_shipment = self.payments.get_amounts_by_shipment([s.id for s in shipments])

        by_currency: dict[str, list[ShipmentResponse]] = defaultdict(list)
        for shipment in shipments:
            by_currency[shipment.currency.value].append(shipment)

        summaries = []
        for currency, group in sorted(by_currency.items()):
            due = paid = remaining = Decimal("0")
            for shipment in group:
                summary = self.payments.summarize_amounts(shipment, paid_by_shipment.get(shipment.id, []))
                due += summary.amount_due
                paid += summary.total_paid
                remaining += summary.remaining

            summaries.append(FinancialSummary(
                currency=currency,
                total_due=due,
                total_paid=paid,
                remaining=remaining,
                shipment_count=len(group),
                status_counts=dict(Counter(s.status.value for s in group)),
            ))

        logger.info(
            "customer_financial_summary_computed",
            actor_id=actor.id,
            shipments=len(shipments),
            currencies=len(summaries)
        )

        return CustomerFinancialSummaryResponse(summaries=summaries)

    # ===================
    # HELPERS
    # ===================

    def _client_id(self, actor: Actor) -> str:
        if not actor.client_id:
            raise PermissionDeniedError("Customer account is not linked to a client")
        return actor.client_id

    def _owned_shipment(self, actor: Actor, shipment_id: str) -> ShipmentResponse:
        client_id = self._client_id(actor)
        shipment = self.shipments.get_by_id(shipment_id)
        if shipment.client_id != client_id:
            logger.warning(
                "customer_shipment_access_denied",
                actor_id=actor.id,
                shipment_id=shipment_id
            )
            raise ShipmentNotFoundError(shipment_id)
        return shipment

    @staticmethod
    def _to_customer_view(shipment: ShipmentResponse) -> CustomerShipment:
        public = ShipmentPublicView.from_shipment(shipment)
        return CustomerShipment(
            **public.model_dump(),
            id=shipment.id,
            payment_status=shipment.payment_status.value,
            currency=shipment.currency,
            total_cost=shipment.total_cost,
            enable_tracking=shipment.enable_tracking,
            current_location=shipment.current_location,
            created_at=shipment.created_at,
        )


# Singleton instance
_customer_portal_service: Optional[CustomerPortalService] = None


def get_customer_portal_service() -> CustomerPortalService:
    """Get or create CustomerPortalService instance."""
    global _customer_portal_service
    if _customer_portal_service is None:
        _customer_portal_service = CustomerPortalService()
    return _customer_portal_service
