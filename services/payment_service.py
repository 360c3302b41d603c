"""
Payment ledger service.

Records are append-only. The shipment's payment_status column is a cache
of the ledger-derived status, refreshed in the same transaction as every
new payment, and can be overridden by an admin.
"""

from typing import Optional
from decimal import Decimal
import structlog

from config import get_supabase_client, settings
from models.auth import Actor
from models.shipment import ShipmentResponse, parse_payment_status
from models.shipment_update import UpdateType
from models.payment import (
    PaymentRecordCreate,
    PaymentRecordResponse,
    PaymentSummary,
    PaymentListResponse,
    PaymentRecordedResponse,
    amount_due,
    total_paid,
    remaining_balance,
    derive_payment_status,
)
from services.shipment_service import get_shipment_service
from exceptions import (
    InvalidAmountError,
    CurrencyMismatchError,
    PaymentExceedsBalanceError,
    PaymentStatusMismatchError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)


class PaymentService:
    """Payment ledger business logic."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "payment_records"
        self.shipments = get_shipment_service()

    # ===================
    # READ OPERATIONS
    # ===================

    def get_records(self, shipment_id: str) -> list[PaymentRecordResponse]:
        """Ledger records for a shipment in creation order."""
        logger.debug("getting_payment_records", shipment_id=shipment_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("shipment_id", shipment_id)
                .order("created_at")
                .execute()
            )
            return [self._row_to_response(row) for row in result.data]

        except Exception as e:
            logger.error("get_payment_records_failed", shipment_id=shipment_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_amounts_by_shipment(self, shipment_ids: list[str]) -> dict[str, list[Decimal]]:
        """Ledger amounts for several shipments in one query."""
        if not shipment_ids:
            return {}

        try:
            result = (
                self.db.table(self.table)
                .select("shipment_id, amount")
                .in_("shipment_id", shipment_ids)
                .execute()
            )
        except Exception as e:
            logger.error("get_payment_amounts_failed", count=len(shipment_ids), error=str(e))
            raise DatabaseError("select", str(e))

        amounts: dict[str, list[Decimal]] = {}
        for row in result.data:
            amounts.setdefault(row["shipment_id"], []).append(Decimal(str(row["amount"])))
        return amounts

    def summarize(
        self,
        shipment: ShipmentResponse,
        records: Optional[list[PaymentRecordResponse]] = None,
    ) -> PaymentSummary:
        """Aggregate the ledger for an already loaded shipment."""
        if records is None:
            records = self.get_records(shipment.id)
        return self.summarize_amounts(shipment, [record.amount for record in records])

    def summarize_amounts(self, shipment: ShipmentResponse, amounts: list[Decimal]) -> PaymentSummary:
        return PaymentSummary.compute(
            total_cost=shipment.total_cost,
            additional_charges=shipment.additional_charges,
            admin_amount_paid=shipment.admin_amount_paid,
            amounts=amounts,
            stored_status=shipment.payment_status,
            currency=shipment.currency,
        )

    def list_payments(self, shipment_id: str) -> PaymentListResponse:
        """
        Ledger listing plus summary.

        Raises:
            ShipmentNotFoundError: If shipment doesn't exist
        """
        shipment = self.shipments.get_by_id(shipment_id)
        records = self.get_records(shipment_id)
        return PaymentListResponse(
            payments=records,
            summary=self.summarize(shipment, records),
        )

    def get_total_paid(self, shipment_id: str) -> Decimal:
        """Sum of ledger amounts plus the legacy lump sum."""
        shipment = self.shipments.get_by_id(shipment_id)
        return self.summarize(shipment).total_paid

    def get_remaining(self, shipment_id: str) -> Decimal:
        """max(total cost + additional charges - total paid, 0)"""
        shipment = self.shipments.get_by_id(shipment_id)
        return self.summarize(shipment).remaining

    # ===================
    # WRITE OPERATIONS
    # ===================

    def add_payment(
        self,
        shipment_id: str,
        data: PaymentRecordCreate,
        actor: Optional[Actor] = None,
        expected_version: Optional[int] = None,
    ) -> PaymentRecordedResponse:
        """
        Append a payment to the ledger.

        Raises:
            ShipmentNotFoundError: If shipment doesn't exist
            InvalidAmountError: If amount is not positive
            CurrencyMismatchError: If currency differs from the shipment's
            PaymentExceedsBalanceError: If the payment would overpay the shipment
            VersionConflictError: If the shipment changed concurrently
        """
        if data.amount <= 0:
            raise InvalidAmountError(data.amount)

        logger.info(
            "recording_payment",
            shipment_id=shipment_id,
            amount=str(data.amount),
            currency=data.currency.value,
            method=data.method.value
        )

        shipment = self.shipments.get_by_id(shipment_id)

        if data.currency != shipment.currency:
            raise CurrencyMismatchError(data.currency.value, shipment.currency.value)

        records = self.get_records(shipment_id)
        due = amount_due(shipment.total_cost, shipment.additional_charges)
        paid = total_paid([r.amount for r in records], shipment.admin_amount_paid)
        remaining = remaining_balance(due, paid)

        if data.amount > remaining:
            logger.warning(
                "payment_exceeds_balance",
                shipment_id=shipment_id,
                amount=str(data.amount),
                remaining=str(remaining)
            )
            raise PaymentExceedsBalanceError(data.amount, remaining)

        new_status = derive_payment_status(paid + data.amount, due)

        payment_row = {
            "amount": str(data.amount),
            "currency": data.currency.value,
            "method": data.method.value,
            "payment_date": data.payment_date.isoformat(),
            "reference_number": data.reference_number,
            "notes": data.notes,
            "recorded_by": actor.id if actor else None,
        }

        updated, row = self.shipments.apply_change_with_payment(
            shipment,
            {"payment_status": new_status.value},
            payment=payment_row,
            expected_version=expected_version or data.expected_version,
        )

        payment = self._row_to_response(row)

        logger.info(
            "payment_recorded",
            shipment_id=shipment_id,
            payment_id=payment.id,
            amount=str(payment.amount),
            payment_status=new_status.value
        )

        return PaymentRecordedResponse(
            payment=payment,
            summary=self.summarize(updated, records + [payment]),
        )

    def set_payment_status(
        self,
        shipment_id: str,
        payment_status: str,
        override: bool = False,
        notes: Optional[str] = None,
        actor: Optional[Actor] = None,
        expected_version: Optional[int] = None,
    ) -> tuple[ShipmentResponse, PaymentSummary]:
        """
        Set payment status directly.

        In strict mode a value that contradicts the ledger is rejected unless
        override is set. In manual mode any value is accepted. Either way the
        returned summary shows whether the stored value diverges.

        Raises:
            InvalidPaymentStatusError: If value is not a PaymentStatus
            PaymentStatusMismatchError: If strict and contradicting the ledger
            ShipmentNotFoundError: If shipment doesn't exist
        """
        requested = parse_payment_status(payment_status)

        logger.info(
            "updating_payment_status",
            shipment_id=shipment_id,
            payment_status=requested.value,
            override=override
        )

        shipment = self.shipments.get_by_id(shipment_id)
        records = self.get_records(shipment_id)
        derived = self.summarize(shipment, records).derived_payment_status

        diverges = requested != derived
        if diverges and settings.strict_payment_status and not override:
            logger.warning(
                "payment_status_rejected",
                shipment_id=shipment_id,
                requested=requested.value,
                derived=derived.value
            )
            raise PaymentStatusMismatchError(requested.value, derived.value)

        history = self.shipments.history_entry(
            UpdateType.PAYMENT_STATUS,
            f"Payment status updated to {requested.value}",
            actor=actor,
            from_value=shipment.payment_status.value,
            to_value=requested.value,
            notes=notes,
            metadata={
                "derived": derived.value,
                "override": bool(override and diverges),
                "mode": settings.payment_status_mode,
            },
        )

        updated = self.shipments.apply_change(
            shipment,
            {"payment_status": requested.value},
            history=history,
            expected_version=expected_version,
        )

        logger.info(
            "payment_status_updated",
            shipment_id=shipment_id,
            from_status=shipment.payment_status.value,
            to_status=requested.value,
            diverges=diverges
        )

        return updated, self.summarize(updated, records)

    def _row_to_response(self, row: dict) -> PaymentRecordResponse:
        """Convert database row to PaymentRecordResponse."""
        return PaymentRecordResponse(
            id=row["id"],
            shipment_id=row["shipment_id"],
            amount=Decimal(str(row["amount"])),
            currency=row["currency"],
            method=row["method"],
            payment_date=row["payment_date"],
            reference_number=row.get("reference_number"),
            notes=row.get("notes"),
            recorded_by=row.get("recorded_by"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )


# Singleton instance
_payment_service: Optional[PaymentService] = None


def get_payment_service() -> PaymentService:
    """Get or create PaymentService instance."""
    global _payment_service
    if _payment_service is None:
        _payment_service = PaymentService()
    return _payment_service
