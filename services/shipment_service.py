"""
Shipment service for business logic operations.

Every change that must be recorded in the update history goes through
apply_change(), which calls the apply_shipment_change() database function:
the field change, the version bump and the history row commit together.
"""

from typing import Any, Optional
from decimal import Decimal
from datetime import datetime, timezone
from enum import Enum
import secrets
import time
import structlog

from config import get_supabase_client, settings
from models.auth import Actor
from models.shipment import (
    ShipmentCreate,
    ShipmentUpdate,
    ShipmentResponse,
    TrackingLinkResponse,
    ShipmentStatus,
    LocationUpdate,
    TrackingSettingsUpdate,
    WarehouseArrival,
    UNDELETABLE_STATUSES,
    parse_status,
    status_label,
    validate_container_number,
)
from models.shipment_update import ShipmentUpdateCreate, UpdateType
from models.payment import amount_due, total_paid, derive_payment_status
from exceptions import (
    ShipmentNotFoundError,
    TrackingNumberNotFoundError,
    ShipmentTrackingNumberExistsError,
    ClientNotFoundError,
    VersionConflictError,
    ShipmentDeleteNotAllowedError,
    AmountDueBelowPaidError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)

# Postgres error codes raised by the lifecycle functions
SERIALIZATION_FAILURE = "40001"
NO_DATA_FOUND = "P0002"
UNIQUE_VIOLATION = "23505"

BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
MAX_TRACKING_NUMBER_ATTEMPTS = 5

# PostgREST caps a single response at 1000 rows
CLIENT_PAGE_SIZE = 1000


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(BASE36[rem])
    return "".join(reversed(digits))


def generate_tracking_number(prefix: Optional[str] = None) -> str:
    """
    Build a public tracking number.

    Format: prefix + base36 millisecond timestamp + 6 random base36 chars,
    e.g. GHLX2K9QZ1A4F7KP.
    """
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(BASE36) for _ in range(6))
    return f"{prefix or settings.tracking_number_prefix}{stamp}{suffix}"


def _to_json(value: Any) -> Any:
    """Convert a value into something the RPC payload can carry."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _money(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def _error_code(error: Exception) -> Optional[str]:
    return getattr(error, "code", None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShipmentService:
    """
    Shipment business logic.

    Handles CRUD and lifecycle operations for shipments.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "shipments"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[ShipmentStatus] = None,
        client_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[ShipmentResponse], int]:
        """
        Get shipments with optional filters, newest first.

        Args:
            page: Page number (1-indexed)
            page_size: Items per page
            status: Filter by status
            client_id: Filter by owning client
            search: Case-insensitive match on tracking, container or description

        Returns:
            Tuple of (shipments list, total count)
        """
        logger.info(
            "getting_shipments",
            page=page,
            page_size=page_size,
            status=status,
            client_id=client_id
        )

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if status:
                query = query.eq("status", ShipmentStatus(status).value)
            if client_id:
                query = query.eq("client_id", client_id)
            if search:
                term = search.strip().replace(",", " ")
                query = query.or_(
                    f"tracking_number.ilike.%{term}%,"
                    f"container_number.ilike.%{term}%,"
                    f"description.ilike.%{term}%"
                )

            offset = (page - 1) * page_size
            query = query.order("created_at", desc=True).range(offset, offset + page_size - 1)

            result = query.execute()

            shipments = [self._row_to_response(row) for row in result.data]
            total = result.count or 0

            logger.info(
                "shipments_retrieved",
                count=len(shipments),
                total=total
            )

            return shipments, total

        except Exception as e:
            logger.error("get_shipments_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_for_client(self, client_id: str) -> list[ShipmentResponse]:
        """All shipments owned by a client, fetched page by page."""
        shipments: list[ShipmentResponse] = []
        page = 1
        while True:
            batch, total = self.get_all(page=page, page_size=CLIENT_PAGE_SIZE, client_id=client_id)
            shipments.extend(batch)
            if not batch or len(shipments) >= total:
                return shipments
            page += 1

    def get_by_id(self, shipment_id: str) -> ShipmentResponse:
        """
        Get a single shipment by ID.

        Raises:
            ShipmentNotFoundError: If shipment doesn't exist
        """
        logger.debug("getting_shipment", shipment_id=shipment_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", shipment_id)
                .execute()
            )

            if not result.data:
                raise ShipmentNotFoundError(shipment_id)

            return self._row_to_response(result.data[0])

        except ShipmentNotFoundError:
            raise
        except Exception as e:
            logger.error("get_shipment_failed", shipment_id=shipment_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_tracking_number(self, tracking_number: str, token: Optional[str] = None) -> Optional[ShipmentResponse]:
        """Get a shipment by its public tracking number, or None. A token must match when given."""
        logger.debug("getting_shipment_by_tracking_number", tracking_number=tracking_number)

        try:
            query = (
                self.db.table(self.table)
                .select("*")
                .eq("tracking_number", tracking_number.strip().upper())
            )
            if token is not None:
                query = query.eq("tracking_token", token)
            result = query.execute()

            if not result.data:
                return None

            return self._row_to_response(result.data[0])

        except Exception as e:
            logger.error(
                "get_shipment_by_tracking_number_failed",
                tracking_number=tracking_number,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def get_by_container_number(self, container_number: str) -> Optional[ShipmentResponse]:
        """Get the most recent shipment carrying a container, or None."""
        logger.debug("getting_shipment_by_container", container_number=container_number)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("container_number", container_number.strip().upper())
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )

            if not result.data:
                return None

            return self._row_to_response(result.data[0])

        except Exception as e:
            logger.error(
                "get_shipment_by_container_failed",
                container_number=container_number,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def find_for_public_tracking(self, reference: str, token: Optional[str] = None) -> ShipmentResponse:
        """
        Resolve a public tracking reference.

        Tracking number first, then container number. With a token only
        the tracking number whose token matches is accepted.

        Raises:
            TrackingNumberNotFoundError: If nothing matches
        """
        shipment = self.get_by_tracking_number(reference, token=token)
        if shipment is None and token is None:
            shipment = self.get_by_container_number(reference)
        if shipment is None:
            logger.info("public_tracking_reference_unknown", reference=reference)
            raise TrackingNumberNotFoundError(reference)
        return shipment

    def get_tracking_link(self, shipment_id: str) -> TrackingLinkResponse:
        """
        Public tracking link for a shipment: frontend URL, tracking number and secret token.

        Raises:
            ShipmentNotFoundError: If shipment doesn't exist
        """
        try:
            result = (
                self.db.table(self.table)
                .select("id, tracking_number, tracking_token")
                .eq("id", shipment_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_tracking_link_failed", shipment_id=shipment_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ShipmentNotFoundError(shipment_id)

        row = result.data[0]
        base_url = settings.frontend_url.rstrip("/")
        return TrackingLinkResponse(
            tracking_number=row["tracking_number"],
            tracking_link=f"{base_url}/tracking/{row['tracking_number']}?token={row['tracking_token']}",
        )

    def tracking_number_exists(self, tracking_number: str) -> bool:
        return self.get_by_tracking_number(tracking_number) is not None

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: ShipmentCreate, actor: Optional[Actor] = None) -> ShipmentResponse:
        """
        Create a new shipment with its initial history entry.

        Raises:
            ClientNotFoundError: If the owning client doesn't exist
            ShipmentTrackingNumberExistsError: If a supplied tracking number is taken
        """
        logger.info(
            "creating_shipment",
            client_id=data.client_id,
            tracking_number=data.tracking_number
        )

        self._ensure_client_exists(data.client_id)

        if data.tracking_number and self.tracking_number_exists(data.tracking_number):
            raise ShipmentTrackingNumberExistsError(data.tracking_number)

        shipment_data = {
            "client_id": data.client_id,
            "customer_account_id": data.customer_account_id,
            "description": data.description,
            "type": data.type.value,
            "status": ShipmentStatus.PENDING.value,
            "payment_status": "unpaid",
            "origin_port": data.origin_port,
            "destination_port": data.destination_port,
            "weight": _to_json(data.weight),
            "volume": _to_json(data.volume),
            "value": _to_json(data.value),
            "currency": data.currency.value,
            "total_cost": _to_json(data.total_cost),
            "additional_charges": _to_json(data.additional_charges),
            "admin_amount_paid": _to_json(data.admin_amount_paid),
            "estimated_departure": _to_json(data.estimated_departure),
            "estimated_arrival": _to_json(data.estimated_arrival),
            "container_number": data.container_number,
            "bl_number": data.bl_number,
            "booking_number": data.booking_number,
            "enable_tracking": data.enable_tracking,
            "shipping_line": data.shipping_line,
            "voyage": data.voyage,
            "vessel_name": data.vessel_name,
            "vessel_mmsi": data.vessel_mmsi,
            "vessel_imo": data.vessel_imo,
            "notes": data.notes,
            "special_instructions": data.special_instructions,
            "tracking_token": secrets.token_urlsafe(24),
        }

        for attempt in range(1, MAX_TRACKING_NUMBER_ATTEMPTS + 1):
            tracking_number = data.tracking_number or generate_tracking_number()
            shipment_data["tracking_number"] = tracking_number
            history = self.history_entry(
                UpdateType.CREATED,
                f"Shipment created with tracking number {tracking_number}",
                actor=actor,
                to_value=ShipmentStatus.PENDING.value,
            )

            try:
                result = self.db.rpc("create_shipment_with_history", {
                    "p_shipment": shipment_data,
                    "p_history": history.to_row(),
                }).execute()

            except Exception as e:
                if _error_code(e) == UNIQUE_VIOLATION:
                    if data.tracking_number:
                        raise ShipmentTrackingNumberExistsError(data.tracking_number)
                    logger.warning(
                        "tracking_number_collision",
                        tracking_number=tracking_number,
                        attempt=attempt
                    )
                    continue
                logger.error("create_shipment_failed", error=str(e))
                raise DatabaseError("insert", str(e))

            row = self._rpc_payload(result.data)["shipment"]

            logger.info(
                "shipment_created",
                shipment_id=row["id"],
                tracking_number=tracking_number,
                client_id=data.client_id
            )

            return self._row_to_response(row)

        raise DatabaseError("insert", "could not allocate a unique tracking number")

    def update(
        self,
        shipment_id: str,
        data: ShipmentUpdate,
        actor: Optional[Actor] = None,
        expected_version: Optional[int] = None,
    ) -> ShipmentResponse:
        """
        Update descriptive fields of a shipment.

        Changing total_cost or additional_charges re-checks the ledger and
        refreshes the cached payment_status unless it was set by hand.

        Raises:
            ShipmentNotFoundError: If shipment doesn't exist
            AmountDueBelowPaidError: If the new amount due is below total paid
            VersionConflictError: If the shipment changed since expected_version
        """
        logger.info("updating_shipment", shipment_id=shipment_id)

        existing = self.get_by_id(shipment_id)

        fields = data.model_dump(exclude_unset=True, exclude={"notes", "expected_version"})
        changes = {key: _to_json(value) for key, value in fields.items() if value is not None}

        if not changes:
            return existing

        fields_changed = sorted(changes)
        if "total_cost" in changes or "additional_charges" in changes:
            changes.update(self._payment_status_for_new_cost(existing, data))

        history = self.history_entry(
            UpdateType.DETAILS,
            "Shipment details updated: " + ", ".join(fields_changed),
            actor=actor,
            notes=data.notes,
            metadata={"fields": fields_changed},
        )

        updated = self.apply_change(
            existing,
            changes,
            history=history,
            expected_version=expected_version or data.expected_version,
        )

        logger.info(
            "shipment_updated",
            shipment_id=shipment_id,
            fields=sorted(changes)
        )

        return updated

    def update_status(
        self,
        shipment_id: str,
        status: str,
        notes: Optional[str] = None,
        actor: Optional[Actor] = None,
        expected_version: Optional[int] = None,
        actual_departure: Optional[datetime] = None,
        actual_arrival: Optional[datetime] = None,
    ) -> ShipmentResponse:
        """
        Set shipment status.

        Any status may follow any other. Moving to shipped stamps
        actual_departure and moving to delivered stamps actual_arrival
        unless they are already set.

        Raises:
            InvalidStatusError: If status is not a ShipmentStatus value
            ShipmentNotFoundError: If shipment doesn't exist
            VersionConflictError: If the shipment changed since expected_version
        """
        new_status = parse_status(status)

        logger.info("updating_shipment_status", shipment_id=shipment_id, new_status=new_status.value)

        existing = self.get_by_id(shipment_id)
        current_status = existing.status

        changes: dict[str, Any] = {"status": new_status.value}

        if actual_departure:
            changes["actual_departure"] = _to_json(actual_departure)
        elif new_status == ShipmentStatus.SHIPPED and not existing.actual_departure:
            changes["actual_departure"] = _to_json(_utcnow())

        if actual_arrival:
            changes["actual_arrival"] = _to_json(actual_arrival)
        elif new_status == ShipmentStatus.DELIVERED and not existing.actual_arrival:
            changes["actual_arrival"] = _to_json(_utcnow())

        history = self.history_entry(
            UpdateType.STATUS,
            f"Status updated to {status_label(new_status)}",
            actor=actor,
            from_value=current_status.value,
            to_value=new_status.value,
            notes=notes,
        )

        updated = self.apply_change(existing, changes, history=history, expected_version=expected_version)

        logger.info(
            "shipment_status_updated",
            shipment_id=shipment_id,
            from_status=current_status.value,
            to_status=new_status.value,
            version=updated.version
        )

        return updated

    def update_location(
        self,
        shipment_id: str,
        data: LocationUpdate,
        actor: Optional[Actor] = None,
        expected_version: Optional[int] = None,
    ) -> ShipmentResponse:
        """Record where a shipment currently is."""
        logger.info("updating_shipment_location", shipment_id=shipment_id)

        existing = self.get_by_id(shipment_id)

        changes: dict[str, Any] = {"current_location": data.current_location}
        if data.estimated_arrival:
            changes["estimated_arrival"] = _to_json(data.estimated_arrival)
        if data.vessel_name:
            changes["vessel_name"] = data.vessel_name
        if data.vessel_mmsi:
            changes["vessel_mmsi"] = data.vessel_mmsi

        history = self.history_entry(
            UpdateType.LOCATION,
            f"Location updated: {data.current_location}",
            actor=actor,
            from_value=existing.current_location,
            to_value=data.current_location,
            notes=data.notes,
        )

        updated = self.apply_change(
            existing,
            changes,
            history=history,
            expected_version=expected_version or data.expected_version,
        )

        logger.info(
            "shipment_location_updated",
            shipment_id=shipment_id,
            location=data.current_location
        )

        return updated

    def update_tracking_settings(
        self,
        shipment_id: str,
        data: TrackingSettingsUpdate,
        actor: Optional[Actor] = None,
        expected_version: Optional[int] = None,
    ) -> ShipmentResponse:
        """
        Enable or disable external tracking and set identifiers.

        Identifiers left out of the request keep their stored values.
        """
        logger.info(
            "updating_tracking_settings",
            shipment_id=shipment_id,
            enable_tracking=data.enable_tracking
        )

        existing = self.get_by_id(shipment_id)

        changes: dict[str, Any] = {"enable_tracking": data.enable_tracking}
        provided = data.model_fields_set
        if "container_number" in provided:
            changes["container_number"] = (
                validate_container_number(data.container_number) if data.container_number else None
            )
        if "bl_number" in provided:
            changes["bl_number"] = data.bl_number
        if "booking_number" in provided:
            changes["booking_number"] = data.booking_number

        history = self.history_entry(
            UpdateType.TRACKING_SETTINGS,
            f"Tracking {'enabled' if data.enable_tracking else 'disabled'}",
            actor=actor,
            from_value=str(existing.enable_tracking).lower(),
            to_value=str(data.enable_tracking).lower(),
            metadata={k: v for k, v in changes.items() if k != "enable_tracking"},
        )

        updated = self.apply_change(
            existing,
            changes,
            history=history,
            expected_version=expected_version or data.expected_version,
        )

        logger.info(
            "tracking_settings_updated",
            shipment_id=shipment_id,
            enable_tracking=updated.enable_tracking
        )

        return updated

    def mark_warehouse_arrival(
        self,
        shipment_id: str,
        data: WarehouseArrival,
        actor: Optional[Actor] = None,
        expected_version: Optional[int] = None,
    ) -> ShipmentResponse:
        """
        Mark a shipment as received at the warehouse.

        Sets status to delivered, records location and condition, stamps
        actual_arrival and by default switches external tracking off.
        Re-marking an already delivered shipment overwrites the previous
        arrival details.
        """
        logger.info("marking_warehouse_arrival", shipment_id=shipment_id)

        existing = self.get_by_id(shipment_id)
        arrival_date = data.arrival_date or _utcnow()

        changes: dict[str, Any] = {
            "status": ShipmentStatus.DELIVERED.value,
            "warehouse_location": data.warehouse_location,
            "cargo_condition": data.condition,
            "current_location": data.warehouse_location,
            "actual_arrival": _to_json(arrival_date),
        }
        if data.disable_tracking:
            changes["enable_tracking"] = False

        content = (
            f"Arrived at warehouse - Location: {data.warehouse_location}"
            f" - Condition: {data.condition}"
        )
        history = self.history_entry(
            UpdateType.WAREHOUSE_ARRIVAL,
            content,
            actor=actor,
            from_value=existing.status.value,
            to_value=ShipmentStatus.DELIVERED.value,
            notes=data.notes,
            metadata={
                "warehouse_location": data.warehouse_location,
                "condition": data.condition,
                "tracking_disabled": data.disable_tracking,
                "arrival_date": _to_json(arrival_date),
                "previously_delivered": existing.status == ShipmentStatus.DELIVERED,
            },
        )

        updated = self.apply_change(
            existing,
            changes,
            history=history,
            expected_version=expected_version or data.expected_version,
        )

        logger.info(
            "warehouse_arrival_recorded",
            shipment_id=shipment_id,
            warehouse_location=data.warehouse_location,
            tracking_enabled=updated.enable_tracking
        )

        return updated

    def delete(self, shipment_id: str) -> bool:
        """
        Delete a shipment. Payments and history go with it.

        Raises:
            ShipmentNotFoundError: If shipment doesn't exist
            ShipmentDeleteNotAllowedError: If the shipment is shipped or in transit
        """
        logger.info("deleting_shipment", shipment_id=shipment_id)

        existing = self.get_by_id(shipment_id)
        if existing.status in UNDELETABLE_STATUSES:
            raise ShipmentDeleteNotAllowedError(shipment_id, existing.status.value)

        try:
            self.db.table(self.table).delete().eq("id", shipment_id).execute()

            logger.info("shipment_deleted", shipment_id=shipment_id)

            return True

        except Exception as e:
            logger.error("delete_shipment_failed", shipment_id=shipment_id, error=str(e))
            raise DatabaseError("delete", str(e))

    # ===================
    # ATOMIC CHANGES
    # ===================

    def apply_change(
        self,
        existing: ShipmentResponse,
        changes: dict[str, Any],
        history: Optional[ShipmentUpdateCreate] = None,
        payment: Optional[dict[str, Any]] = None,
        expected_version: Optional[int] = None,
    ) -> ShipmentResponse:
        """
        Apply a change, its history entry and an optional payment in one transaction.

        The version read with existing is used when the caller does not pass
        one, so a write that lands between our read and this call is
        reported as a conflict instead of being overwritten.

        Raises:
            VersionConflictError: If the stored version differs
            ShipmentNotFoundError: If the shipment disappeared
        """
        return self._apply(existing, changes, history, payment, expected_version)[0]

    def apply_change_with_payment(
        self,
        existing: ShipmentResponse,
        changes: dict[str, Any],
        payment: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> tuple[ShipmentResponse, dict]:
        """Same as apply_change but also returns the inserted payment row."""
        return self._apply(existing, changes, None, payment, expected_version)

    def _apply(self, existing, changes, history, payment, expected_version):
        version = expected_version if expected_version is not None else existing.version
        if version != existing.version:
            raise VersionConflictError(existing.id, version, existing.version)

        try:
            result = self.db.rpc("apply_shipment_change", {
                "p_shipment_id": existing.id,
                "p_expected_version": version,
                "p_changes": {key: _to_json(value) for key, value in changes.items()},
                "p_history": history.to_row() if history else None,
                "p_payment": payment,
            }).execute()

        except Exception as e:
            code = _error_code(e)
            if code == SERIALIZATION_FAILURE:
                logger.warning(
                    "shipment_version_conflict",
                    shipment_id=existing.id,
                    expected_version=version
                )
                raise VersionConflictError(existing.id, version)
            if code == NO_DATA_FOUND:
                raise ShipmentNotFoundError(existing.id)
            logger.error("apply_shipment_change_failed", shipment_id=existing.id, error=str(e))
            raise DatabaseError("update", str(e))

        payload = self._rpc_payload(result.data)
        return self._row_to_response(payload["shipment"]), payload.get("payment")

    def history_entry(
        self,
        update_type: UpdateType,
        content: str,
        actor: Optional[Actor] = None,
        from_value: Optional[str] = None,
        to_value: Optional[str] = None,
        notes: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> ShipmentUpdateCreate:
        """Build the history row describing a change."""
        return ShipmentUpdateCreate(
            update_type=update_type,
            content=content,
            from_value=from_value,
            to_value=to_value,
            notes=notes,
            actor_id=actor.id if actor else None,
            actor_name=actor.username if actor else None,
            metadata={key: _to_json(value) for key, value in (metadata or {}).items()},
        )

    def _payment_status_for_new_cost(self, existing: ShipmentResponse, data: ShipmentUpdate) -> dict:
        """Validate a cost change against the ledger; returns the payment_status change, if any."""
        try:
            result = (
                self.db.table("payment_records")
                .select("amount")
                .eq("shipment_id", existing.id)
                .execute()
            )
        except Exception as e:
            logger.error("get_payment_amounts_failed", shipment_id=existing.id, error=str(e))
            raise DatabaseError("select", str(e))

        paid = total_paid([row["amount"] for row in result.data], existing.admin_amount_paid)
        old_due = amount_due(existing.total_cost, existing.additional_charges)
        new_due = amount_due(
            data.total_cost if data.total_cost is not None else existing.total_cost,
            data.additional_charges if data.additional_charges is not None else existing.additional_charges,
        )

        if paid > new_due:
            logger.warning(
                "amount_due_below_paid",
                shipment_id=existing.id,
                amount_due=str(new_due),
                total_paid=str(paid)
            )
            raise AmountDueBelowPaidError(new_due, paid)

        # Manual overrides stay put
        if existing.payment_status != derive_payment_status(paid, old_due):
            return {}

        new_status = derive_payment_status(paid, new_due)
        if new_status == existing.payment_status:
            return {}
        return {"payment_status": new_status.value}

    def _ensure_client_exists(self, client_id: str) -> None:
        try:
            result = self.db.table("clients").select("id").eq("id", client_id).execute()
        except Exception as e:
            logger.error("get_client_failed", client_id=client_id, error=str(e))
            raise DatabaseError("select", str(e))
        if not result.data:
            raise ClientNotFoundError(client_id)

    @staticmethod
    def _rpc_payload(data: Any) -> dict:
        if isinstance(data, list):
            data = data[0] if data else {}
        return data or {}

    def _row_to_response(self, row: dict) -> ShipmentResponse:
        """Convert database row to ShipmentResponse."""
        return ShipmentResponse(
            id=row["id"],
            tracking_number=row["tracking_number"],
            client_id=row["client_id"],
            customer_account_id=row.get("customer_account_id"),
            description=row.get("description"),
            type=row.get("type"),
            status=row["status"],
            payment_status=row.get("payment_status") or "unpaid",
            version=row.get("version") or 1,
            origin_port=row.get("origin_port"),
            destination_port=row.get("destination_port"),
            weight=_money(row.get("weight")),
            volume=_money(row.get("volume")),
            value=_money(row.get("value")),
            currency=row.get("currency") or "USD",
            total_cost=_money(row.get("total_cost")) or Decimal("0"),
            additional_charges=_money(row.get("additional_charges")) or Decimal("0"),
            admin_amount_paid=_money(row.get("admin_amount_paid")) or Decimal("0"),
            estimated_departure=row.get("estimated_departure"),
            actual_departure=row.get("actual_departure"),
            estimated_arrival=row.get("estimated_arrival"),
            actual_arrival=row.get("actual_arrival"),
            container_number=row.get("container_number"),
            bl_number=row.get("bl_number"),
            booking_number=row.get("booking_number"),
            enable_tracking=bool(row.get("enable_tracking")),
            shipping_line=row.get("shipping_line"),
            voyage=row.get("voyage"),
            vessel_name=row.get("vessel_name"),
            vessel_mmsi=row.get("vessel_mmsi"),
            vessel_imo=row.get("vessel_imo"),
            current_location=row.get("current_location"),
            warehouse_location=row.get("warehouse_location"),
            cargo_condition=row.get("cargo_condition"),
            notes=row.get("notes"),
            special_instructions=row.get("special_instructions"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )


# Singleton instance
_shipment_service: Optional[ShipmentService] = None


def get_shipment_service() -> ShipmentService:
    """Get or create ShipmentService instance."""
    global _shipment_service
    if _shipment_service is None:
        _shipment_service = ShipmentService()
    return _shipment_service
