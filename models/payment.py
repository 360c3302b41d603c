"""
Payment ledger schemas and aggregation helpers.

Payment records are append-only. Amounts are Decimal throughout.
"""

from decimal import Decimal
from pydantic import Field, field_validator
from typing import Optional, Iterable
from enum import Enum
from datetime import datetime

from models.base import BaseSchema, TimestampMixin, Money
from models.shipment import PaymentStatus, Currency, ShipmentResponse


ZERO = Decimal("0")


class PaymentMethod(str, Enum):
    """How a payment was made."""
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    CHECK = "check"
    OTHER = "other"


# ===================
# LEDGER MATH
# ===================

def derive_payment_status(total_paid: Decimal, amount_due: Decimal) -> PaymentStatus:
    """
    Derive payment status from the ledger.

    unpaid if nothing paid, paid once paid covers due, partial otherwise.
    """
    if total_paid <= ZERO:
        return PaymentStatus.UNPAID
    if total_paid >= amount_due:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


def amount_due(total_cost, additional_charges) -> Decimal:
    return Decimal(str(total_cost or 0)) + Decimal(str(additional_charges or 0))


def total_paid(amounts: Iterable, admin_amount_paid=0) -> Decimal:
    """Sum of ledger amounts plus the legacy lump-sum field."""
    total = Decimal(str(admin_amount_paid or 0))
    for amount in amounts:
        total += Decimal(str(amount))
    return total


def remaining_balance(due: Decimal, paid: Decimal) -> Decimal:
    """Never negative."""
    return max(due - paid, ZERO)


# ===================
# PAYMENT SCHEMAS
# ===================

class PaymentRecordCreate(BaseSchema):
    """
    Record a payment against a shipment.

    Required: amount, currency, method, payment_date
    """

    amount: Money = Field(..., gt=0, description="Payment amount")
    currency: Currency = Field(..., description="Must match the shipment currency")
    method: PaymentMethod = Field(..., description="Payment method")
    payment_date: datetime = Field(..., description="When the payment was made")
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)
    expected_version: Optional[int] = Field(None, ge=1)

    @field_validator("amount")
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        """Round to 2 decimal places."""
        return round(v, 2)


class PaymentRecordResponse(TimestampMixin):
    """Payment record as stored."""

    id: str
    shipment_id: str
    amount: Money
    currency: Currency
    method: PaymentMethod
    payment_date: datetime
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[str] = None


class PaymentSummary(BaseSchema):
    """Aggregate view of a shipment's ledger."""

    amount_due: Money
    total_paid: Money
    remaining: Money
    currency: Currency
    payment_status: PaymentStatus
    derived_payment_status: PaymentStatus
    diverges: bool

    @classmethod
    def compute(
        cls,
        total_cost,
        additional_charges,
        admin_amount_paid,
        amounts: Iterable,
        stored_status: PaymentStatus,
        currency: Currency,
    ) -> "PaymentSummary":
        due = amount_due(total_cost, additional_charges)
        paid = total_paid(amounts, admin_amount_paid)
        derived = derive_payment_status(paid, due)
        stored = PaymentStatus(stored_status)
        return cls(
            amount_due=due,
            total_paid=paid,
            remaining=remaining_balance(due, paid),
            currency=currency,
            payment_status=stored,
            derived_payment_status=derived,
            diverges=stored != derived,
        )


class PaymentListResponse(BaseSchema):
    """Ledger listing with its summary."""

    payments: list[PaymentRecordResponse]
    summary: PaymentSummary


class PaymentRecordedResponse(BaseSchema):
    """Returned after adding a payment."""

    payment: PaymentRecordResponse
    summary: PaymentSummary


class PaymentStatusChangeResponse(BaseSchema):
    """Returned after a manual payment status change."""

    message: str
    shipment: ShipmentResponse
    summary: PaymentSummary
