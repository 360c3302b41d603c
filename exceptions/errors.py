"""
Custom exception classes for the application.

Every error rendered to API callers inherits from AppError and is
serialized with to_dict(). ShipsGo errors never reach HTTP callers;
the tracking service turns them into degraded responses.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "SHIPMENT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Invalid argument (400)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            details=details
        )


class AuthenticationError(AppError):
    """Missing or invalid credentials (401)."""

    def __init__(self, message: str = "Invalid or missing token"):
        super().__init__(
            code="UNAUTHENTICATED",
            message=message,
            status_code=401
        )


class PermissionDeniedError(AppError):
    """Authenticated but not allowed (403)."""

    def __init__(self, message: str = "Insufficient permissions", details: Optional[dict] = None):
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class RateLimitExceededError(AppError):
    """Too many requests (429)."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            code="RATE_LIMIT_EXCEEDED",
            message="Rate limit exceeded. Please try again later.",
            status_code=429,
            details={"limit": limit, "window_seconds": window_seconds}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SHIPMENT ERRORS
# ===================

class ShipmentNotFoundError(NotFoundError):
    """Shipment not found."""

    def __init__(self, shipment_id: str):
        super().__init__(
            resource="Shipment",
            identifier=shipment_id,
            code="SHIPMENT_NOT_FOUND"
        )


class TrackingNumberNotFoundError(NotFoundError):
    """No shipment carries this tracking number."""

    def __init__(self, tracking_number: str):
        super().__init__(
            resource="Tracking number",
            identifier=tracking_number,
            code="TRACKING_NUMBER_NOT_FOUND"
        )


class ShipmentTrackingNumberExistsError(DuplicateError):
    """Shipment tracking number already exists."""

    def __init__(self, tracking_number: str):
        super().__init__(
            resource="Shipment",
            field="tracking_number",
            value=tracking_number
        )


class VersionConflictError(ConflictError):
    """Shipment was modified since the caller read it."""

    def __init__(self, shipment_id: str, expected_version: Optional[int], current_version: Optional[int] = None):
        super().__init__(
            code="VERSION_CONFLICT",
            message="Shipment was modified by another request",
            details={
                "id": shipment_id,
                "expected_version": expected_version,
                "current_version": current_version,
            }
        )


class InvalidStatusError(ValidationError):
    """Status value outside the shipment status vocabulary."""

    def __init__(self, status: str, valid: list[str]):
        super().__init__(
            code="INVALID_STATUS",
            message=f"Unknown shipment status: {status}",
            details={"provided": status, "valid": valid}
        )


class InvalidPaymentStatusError(ValidationError):
    """Payment status value outside the vocabulary."""

    def __init__(self, payment_status: str, valid: list[str]):
        super().__init__(
            code="INVALID_PAYMENT_STATUS",
            message=f"Unknown payment status: {payment_status}",
            details={"provided": payment_status, "valid": valid}
        )


class InvalidContainerNumberError(ValidationError):
    """Container number is not 4 letters followed by 7 digits."""

    def __init__(self, container_number: str):
        super().__init__(
            code="INVALID_CONTAINER_NUMBER",
            message="Invalid container number format. Expected ABCD1234567",
            details={"provided": container_number}
        )


class MissingTrackingIdentifierError(ValidationError):
    """No container, BL or booking number supplied."""

    def __init__(self):
        super().__init__(
            code="MISSING_TRACKING_IDENTIFIER",
            message="No tracking identifier provided. Provide container, bl, or booking."
        )


class ShipmentDeleteNotAllowedError(ValidationError):
    """Shipment cannot be deleted in its current status."""

    def __init__(self, shipment_id: str, status: str):
        super().__init__(
            code="SHIPMENT_DELETE_NOT_ALLOWED",
            message="Cannot delete shipment that is in transit",
            details={"id": shipment_id, "status": status}
        )


# ===================
# PAYMENT ERRORS
# ===================

class InvalidAmountError(ValidationError):
    """Amount must be positive."""

    def __init__(self, amount: Any):
        super().__init__(
            code="INVALID_AMOUNT",
            message="Amount must be greater than zero",
            details={"provided": str(amount)}
        )


class CurrencyMismatchError(ValidationError):
    """Payment currency differs from the shipment currency."""

    def __init__(self, payment_currency: str, shipment_currency: str):
        super().__init__(
            code="CURRENCY_MISMATCH",
            message=f"Payment currency {payment_currency} does not match shipment currency {shipment_currency}",
            details={
                "payment_currency": payment_currency,
                "shipment_currency": shipment_currency,
            }
        )


class PaymentExceedsBalanceError(ValidationError):
    """Payment would push total paid above the amount due."""

    def __init__(self, amount: Any, remaining: Any):
        super().__init__(
            code="PAYMENT_EXCEEDS_BALANCE",
            message="Payment exceeds the remaining balance",
            details={"amount": str(amount), "remaining": str(remaining)}
        )


class PaymentStatusMismatchError(ValidationError):
    """Manual payment status contradicts the ledger."""

    def __init__(self, requested: str, derived: str):
        super().__init__(
            code="PAYMENT_STATUS_MISMATCH",
            message=f"Payment status {requested} contradicts ledger-derived status {derived}",
            details={
                "requested": requested,
                "derived": derived,
                "hint": "Send override=true to persist a manual payment status",
            }
        )


class AmountDueBelowPaidError(ValidationError):
    """Cost change would leave the amount due below what was already paid."""

    def __init__(self, amount_due: Any, total_paid: Any):
        super().__init__(
            code="AMOUNT_DUE_BELOW_PAID",
            message="Total cost plus additional charges cannot be less than the amount already paid",
            details={"amount_due": str(amount_due), "total_paid": str(total_paid)}
        )


# ===================
# CLIENT ERRORS
# ===================

class ClientNotFoundError(NotFoundError):
    """Client not found."""

    def __init__(self, client_id: str):
        super().__init__(
            resource="Client",
            identifier=client_id,
            code="CLIENT_NOT_FOUND"
        )


# ===================
# SHIPSGO ERRORS
# ===================

class ShipsGoError(AppError):
    """ShipsGo API call failed."""

    def __init__(self, message: str, details: Optional[dict] = None, status_code: int = 503):
        super().__init__(
            code="SHIPSGO_ERROR",
            message=f"ShipsGo API Error: {message}",
            status_code=status_code,
            details={"service": "shipsgo", **(details or {})}
        )


class ShipsGoAuthError(ShipsGoError):
    """ShipsGo rejected the API key."""

    def __init__(self):
        super().__init__(
            "ShipsGo API authentication failed. Please check API key.",
            status_code=401
        )
        self.code = "SHIPSGO_AUTH_ERROR"


class ShipsGoRateLimitError(ShipsGoError):
    """ShipsGo rate limit hit."""

    def __init__(self):
        super().__init__(
            "ShipsGo API rate limit exceeded. Please try again later.",
            status_code=429
        )
        self.code = "SHIPSGO_RATE_LIMIT"


class ShipsGoNotFoundError(ShipsGoError):
    """ShipsGo has no record for the identifier."""

    def __init__(self, identifier: str):
        super().__init__(
            f"Shipment not found in ShipsGo API: {identifier}",
            details={"identifier": identifier},
            status_code=404
        )
        self.code = "SHIPSGO_NOT_FOUND"
