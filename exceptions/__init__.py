"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    PermissionDeniedError,
    ConflictError,
    DuplicateError,
    RateLimitExceededError,
    DatabaseError,

    # Shipments
    ShipmentNotFoundError,
    TrackingNumberNotFoundError,
    ShipmentTrackingNumberExistsError,
    VersionConflictError,
    InvalidStatusError,
    InvalidPaymentStatusError,
    InvalidContainerNumberError,
    MissingTrackingIdentifierError,
    ShipmentDeleteNotAllowedError,

    # Payments
    InvalidAmountError,
    CurrencyMismatchError,
    PaymentExceedsBalanceError,
    PaymentStatusMismatchError,
    AmountDueBelowPaidError,

    # Clients
    ClientNotFoundError,

    # ShipsGo
    ShipsGoError,
    ShipsGoAuthError,
    ShipsGoRateLimitError,
    ShipsGoNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "PermissionDeniedError",
    "ConflictError",
    "DuplicateError",
    "RateLimitExceededError",
    "DatabaseError",

    # Shipments
    "ShipmentNotFoundError",
    "TrackingNumberNotFoundError",
    "ShipmentTrackingNumberExistsError",
    "VersionConflictError",
    "InvalidStatusError",
    "InvalidPaymentStatusError",
    "InvalidContainerNumberError",
    "MissingTrackingIdentifierError",
    "ShipmentDeleteNotAllowedError",

    # Payments
    "InvalidAmountError",
    "CurrencyMismatchError",
    "PaymentExceedsBalanceError",
    "PaymentStatusMismatchError",
    "AmountDueBelowPaidError",

    # Clients
    "ClientNotFoundError",

    # ShipsGo
    "ShipsGoError",
    "ShipsGoAuthError",
    "ShipsGoRateLimitError",
    "ShipsGoNotFoundError",
]
