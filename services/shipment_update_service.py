"""
Shipment update history service.

History rows are read-only from the API. They are written by
apply_shipment_change() together with the change they describe.
"""

import structlog
from typing import Optional

from config import get_supabase_client
from models.base import Pagination
from models.shipment_update import (
    ShipmentUpdateResponse,
    ShipmentUpdateListResponse,
    ShipmentRef,
)
from services.shipment_service import get_shipment_service
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class ShipmentUpdateService:
    """Service for reading shipment history."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "shipment_updates"

    def get_history(
        self,
        shipment_id: str,
        page: int = 1,
        limit: int = 20
    ) -> ShipmentUpdateListResponse:
        """
        Get a page of history for a shipment, most recent first.

        Entries are ordered by sequence, the shipment version each change
        produced, so the order always matches the order writes were accepted.

        Raises:
            ShipmentNotFoundError: If shipment doesn't exist
        """
        logger.info("getting_shipment_history", shipment_id=shipment_id, page=page)

        shipment = get_shipment_service().get_by_id(shipment_id)

        try:
            offset = (page - 1) * limit
            result = (
                self.db.table(self.table)
                .select("*", count="exact")
                .eq("shipment_id", shipment_id)
                .order("sequence", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )

            updates = [ShipmentUpdateResponse(**row) for row in result.data]

            logger.info(
                "shipment_history_retrieved",
                shipment_id=shipment_id,
                count=len(updates),
                total=result.count
            )

            return ShipmentUpdateListResponse(
                updates=updates,
                pagination=Pagination.create(page, limit, result.count or 0),
                shipment=ShipmentRef(
                    id=shipment.id,
                    tracking_number=shipment.tracking_number,
                    status=shipment.status.value,
                ),
            )

        except Exception as e:
            logger.error(
                "shipment_history_retrieval_failed",
                shipment_id=shipment_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def count(self, shipment_id: str) -> int:
        """Number of history entries for a shipment."""
        try:
            result = (
                self.db.table(self.table)
                .select("id", count="exact")
                .eq("shipment_id", shipment_id)
                .execute()
            )
            return result.count or 0
        except Exception as e:
            logger.error("count_shipment_history_failed", shipment_id=shipment_id, error=str(e))
            raise DatabaseError("count", str(e))


# Singleton instance
_shipment_update_service: Optional[ShipmentUpdateService] = None


def get_shipment_update_service() -> ShipmentUpdateService:
    """Get the singleton shipment update service instance."""
    global _shipment_update_service
    if _shipment_update_service is None:
        _shipment_update_service = ShipmentUpdateService()
    return _shipment_update_service
