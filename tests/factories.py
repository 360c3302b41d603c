"""
Test data factories.

Build rows shaped like the database tables so they can be loaded into
the in-memory Supabase double.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4


class ClientFactory:
    """Factory for clients rows."""

    @classmethod
    def create(cls, id: Optional[str] = None, name: str = "Acme Imports", **overrides) -> dict:
        row = {
            "id": id or str(uuid4()),
            "name": name,
            "email": f"{(id or 'client')}@example.com",
            "created_at": "2025-01-01T10:00:00Z",
            "updated_at": None,
        }
        row.update(overrides)
        return row


class ShipmentFactory:
    """
    Factory for shipments rows.

    Usage:
        shipment = ShipmentFactory.create()
        shipment = ShipmentFactory.create(status="in_transit", container_number="MSCU1234567")
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        client_id: str = "client-1",
        status: str = "pending",
        payment_status: str = "unpaid",
        total_cost: str = "1000.00",
        currency: str = "USD",
        version: int = 1,
        **overrides
    ) -> dict:
        counter = cls._next_counter()
        row = {
            "id": id or str(uuid4()),
            "tracking_number": f"GHTEST{counter:06d}",
            "tracking_token": f"token-{counter}",
            "client_id": client_id,
            "customer_account_id": None,
            "description": f"Porcelain tiles lot {counter}",
            "type": "sea",
            "status": status,
            "payment_status": payment_status,
            "version": version,
            "origin_port": "Shanghai",
            "destination_port": "Misrata",
            "weight": "1200.000",
            "volume": "24.000",
            "value": "15000.00",
            "currency": currency,
            "total_cost": total_cost,
            "additional_charges": "0",
            "admin_amount_paid": "0",
            "estimated_departure": None,
            "actual_departure": None,
            "estimated_arrival": None,
            "actual_arrival": None,
            "container_number": None,
            "bl_number": None,
            "booking_number": None,
            "enable_tracking": False,
            "shipping_line": None,
            "voyage": None,
            "vessel_name": None,
            "vessel_mmsi": None,
            "vessel_imo": None,
            "current_location": None,
            "warehouse_location": None,
            "cargo_condition": None,
            "notes": None,
            "special_instructions": None,
            "created_at": datetime(2025, 1, 1, 10, 0, counter % 60).isoformat() + "Z",
            "updated_at": None,
        }
        row.update(overrides)
        return row

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list:
        return [cls.create(**overrides) for _ in range(count)]


class PaymentFactory:
    """Factory for payment_records rows."""

    @classmethod
    def create(
        cls,
        shipment_id: str,
        amount: str = "100.00",
        currency: str = "USD",
        **overrides
    ) -> dict:
        row = {
            "id": str(uuid4()),
            "shipment_id": shipment_id,
            "amount": amount,
            "currency": currency,
            "method": "bank_transfer",
            "payment_date": "2025-01-02T10:00:00Z",
            "reference_number": None,
            "notes": None,
            "recorded_by": "admin-1",
            "created_at": "2025-01-02T10:00:00Z",
            "updated_at": None,
        }
        row.update(overrides)
        return row


def shipment_create_payload(client_id: str = "client-1", **overrides) -> dict:
    """camelCase body for POST /api/shipments."""
    body = {
        "clientId": client_id,
        "description": "Porcelain tiles 60x60",
        "originPort": "Shanghai",
        "destinationPort": "Misrata",
        "weight": 1200,
        "value": 15000,
        "totalCost": 1000,
        "currency": "USD",
    }
    body.update(overrides)
    return body


def payment_payload(amount, currency: str = "USD", **overrides) -> dict:
    """camelCase body for POST /api/shipments/{id}/payments."""
    body = {
        "amount": amount,
        "currency": currency,
        "method": "bank_transfer",
        "paymentDate": "2025-01-05T09:00:00Z",
    }
    body.update(overrides)
    return body
