"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.shipments import router as shipments_router
from routes.shipsgo_tracking import router as shipsgo_tracking_router
from routes.customer_portal import router as customer_portal_router

__all__ = [
    "shipments_router",
    "shipsgo_tracking_router",
    "customer_portal_router",
]
