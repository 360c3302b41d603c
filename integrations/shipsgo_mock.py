"""
Mock ShipsGo payloads.

Served when no API key is configured, and attached to degraded
responses when fallback is enabled.
"""

from models.tracking import IdentifierType, TrackingData


def mock_tracking_data(identifier: str, identifier_type: IdentifierType = IdentifierType.CONTAINER) -> TrackingData:
    """Build a plausible in-transit payload echoing the requested identifier."""
    identifier = identifier.upper()
    return TrackingData(
        container_number=identifier if identifier_type == IdentifierType.CONTAINER else "MOCK1234567",
        bl_number=identifier if identifier_type == IdentifierType.BL else "BL123456789",
        booking_number=identifier if identifier_type == IdentifierType.BOOKING else "BK123456789",
        shipping_line="MSC",
        vessel_name="MSC OSCAR",
        voyage="MSC001E",
        port_of_loading="Shanghai, China",
        port_of_discharge="Misrata, Libya",
        estimated_departure="2024-01-15T10:00:00Z",
        estimated_arrival="2024-02-01T14:00:00Z",
        actual_departure="2024-01-15T12:30:00Z",
        actual_arrival=None,
        status="In Transit",
        milestones=[
            {
                "event": "Container loaded",
                "location": "Shanghai, China",
                "date": "2024-01-15T12:30:00Z",
                "status": "completed",
                "description": "Container loaded onto vessel",
            },
            {
                "event": "Vessel departed",
                "location": "Shanghai, China",
                "date": "2024-01-15T14:00:00Z",
                "status": "completed",
                "description": "Vessel departed from port",
            },
            {
                "event": "In transit",
                "location": "Indian Ocean",
                "date": "2024-01-20T08:00:00Z",
                "status": "in_progress",
                "description": "Container in transit",
            },
            {
                "event": "Arrival at destination",
                "location": "Misrata, Libya",
                "date": "2024-02-01T14:00:00Z",
                "status": "pending",
                "description": "Expected arrival at destination port",
            },
        ],
        location={
            "latitude": 12.5862,
            "longitude": 53.1872,
            "timestamp": "2024-01-25T10:00:00Z",
        },
        co2_emissions=1250,
        transit_time="17 days",
    )
