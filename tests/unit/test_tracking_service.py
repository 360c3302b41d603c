"""
Unit tests for tracking reconciliation and the ShipsGo client.

Run: pytest tests/unit/test_tracking_service.py -v
"""

import pytest
import requests
from datetime import timedelta
from unittest.mock import MagicMock, patch

from config import settings
from integrations.shipsgo import ShipsGoClient, normalize_response
from services.tracking_service import (
    TrackingService,
    suggest_status,
    internal_milestones,
)
from models.shipment import ShipmentResponse, ShipmentStatus
from models.tracking import IdentifierType, TrackingData, TrackingSource
from exceptions import (
    ShipsGoError,
    ShipsGoAuthError,
    ShipsGoNotFoundError,
    ShipsGoRateLimitError,
)
from tests.factories import ShipmentFactory


V2_PAYLOAD = {
    "success": True,
    "data": {
        "containerNumber": "MSCU1234567",
        "shippingLine": "MSC",
        "vesselName": "MSC OSCAR",
        "portOfLoading": "Shanghai",
        "portOfDischarge": "Misrata",
        "estimatedArrival": "2025-02-01T14:00:00Z",
        "status": "Sailing",
        "statusId": 3,
        "teu": 2,
        "milestones": [
            {"event": "Loaded", "location": "Shanghai", "date": "2025-01-15", "status": "completed"},
            {"event": "Discharged", "location": "Misrata", "status": "pending"},
        ],
        "currentPosition": {"latitude": 12.5, "longitude": 53.1},
    },
}

LEGACY_PAYLOAD = [{
    "ContainerNumber": "MSCU1234567",
    "BLReferenceNo": "MEDU123456",
    "ShippingLine": "MSC",
    "Vessel": "MSC OSCAR",
    "Pol": "Shanghai",
    "Pod": "Misrata",
    "DepartureDate": {"Date": "2025-01-15", "IsActual": True},
    "ArrivalDate": {"Date": "2025-02-01", "IsActual": False},
    "Status": "Discharged",
    "VesselLatitude": "Not Supported",
    "TSPorts": [{"Port": "Port Said", "ArrivalDate": {"Date": "2025-01-25", "IsActual": True}}],
}]


def make_shipment(**overrides) -> ShipmentResponse:
    row = ShipmentFactory.create(id="shipment-1", **overrides)
    return ShipmentResponse(**row)


def response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


def configured_client(session) -> ShipsGoClient:
    return ShipsGoClient(api_url="https://shipsgo.test/v2", api_key="secret", timeout=2, session=session)


# ===================
# SHIPSGO CLIENT
# ===================

class TestShipsGoClient:

    def test_sends_token_and_timeout(self):
        session = MagicMock()
        session.get.return_value = response(payload=V2_PAYLOAD)

        configured_client(session).track(IdentifierType.CONTAINER, "MSCU1234567")

        args, kwargs = session.get.call_args
        assert args[0] == "https://shipsgo.test/v2/track"
        assert kwargs["headers"]["X-Shipsgo-User-Token"] == "secret"
        assert kwargs["params"]["container_number"] == "MSCU1234567"
        assert kwargs["timeout"] == 2

    def test_bl_uses_bl_number_param(self):
        session = MagicMock()
        session.get.return_value = response(payload=V2_PAYLOAD)

        configured_client(session).track(IdentifierType.BL, "MEDU123456")

        assert session.get.call_args.kwargs["params"] == {"bl_number": "MEDU123456"}

    @pytest.mark.parametrize("status_code,error", [
        (401, ShipsGoAuthError),
        (404, ShipsGoNotFoundError),
        (429, ShipsGoRateLimitError),
        (502, ShipsGoError),
    ])
    def test_http_errors(self, status_code, error):
        session = MagicMock()
        session.get.return_value = response(status_code=status_code)

        with pytest.raises(error):
            configured_client(session).track(IdentifierType.CONTAINER, "MSCU1234567")

    def test_timeout_raises_provider_error(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ReadTimeout()

        with pytest.raises(ShipsGoError):
            configured_client(session).track(IdentifierType.CONTAINER, "MSCU1234567")

    def test_unconfigured_client_refuses(self):
        client = ShipsGoClient(api_key="", session=MagicMock())
        assert client.configured is False
        with pytest.raises(ShipsGoAuthError):
            client.track(IdentifierType.CONTAINER, "MSCU1234567")


class TestNormalizeResponse:

    def test_v2_shape(self):
        data = normalize_response(V2_PAYLOAD)

        assert data.container_number == "MSCU1234567"
        assert data.vessel_name == "MSC OSCAR"
        assert data.status == "Sailing"
        assert data.container_teu == "2"
        assert len(data.milestones) == 2
        assert data.location.latitude == 12.5

    def test_legacy_shape(self):
        data = normalize_response(LEGACY_PAYLOAD)

        assert data.bl_number == "MEDU123456"
        assert data.port_of_loading == "Shanghai"
        assert data.actual_departure == "2025-01-15"
        assert data.actual_arrival is None
        assert data.milestones[0].location == "Port Said"
        assert data.location is None or data.location.latitude is None

    def test_v2_failure_flag(self):
        with pytest.raises(ShipsGoError):
            normalize_response({"success": False, "data": {}, "message": "quota"})

    def test_unknown_shape(self):
        with pytest.raises(ShipsGoError):
            normalize_response({"foo": "bar"})


# ===================
# STATUS SUGGESTION
# ===================

class TestSuggestStatus:

    @pytest.mark.parametrize("provider_status,expected", [
        ("Sailing", ShipmentStatus.IN_TRANSIT),
        ("Discharged", ShipmentStatus.AT_PORT),
        ("Gate out", ShipmentStatus.DELIVERED),
        ("Customs hold", ShipmentStatus.CUSTOMS_CLEARANCE),
        ("Loaded", ShipmentStatus.SHIPPED),
    ])
    def test_maps_provider_terms(self, provider_status, expected):
        assert suggest_status(TrackingData(status=provider_status)) == expected

    def test_ignores_pending_milestones(self):
        data = TrackingData(
            status="Unknown",
            milestones=[
                {"event": "Loaded", "status": "completed"},
                {"event": "Discharged", "status": "pending"},
            ],
        )
        assert suggest_status(data) == ShipmentStatus.SHIPPED

    def test_nothing_matches(self):
        assert suggest_status(TrackingData(status="Unknown")) is None
        assert suggest_status(None) is None


class TestInternalMilestones:

    def test_pending_has_none(self):
        assert internal_milestones(make_shipment(status="pending")) == []

    def test_delivered_has_full_path(self):
        events = [m.event for m in internal_milestones(make_shipment(status="delivered"))]
        assert events == ["Booking Confirmed", "Departed", "In Transit", "Arrived at Port", "Delivered"]

    def test_delayed_only_confirms_booking(self):
        events = [m.event for m in internal_milestones(make_shipment(status="delayed"))]
        assert events == ["Booking Confirmed"]


# ===================
# TRACKING SERVICE
# ===================

class TestTrackingServiceTrack:

    def test_mock_mode_when_unconfigured(self):
        service = TrackingService(client=ShipsGoClient(api_key="", session=MagicMock()))

        result = service.track(IdentifierType.CONTAINER, "mscu1234567")

        assert result.success is True
        assert result.mock is True
        assert result.source == TrackingSource.MOCK
        assert result.data.container_number == "MSCU1234567"
        assert service.health().mock_mode is True
        assert service.health().status == "mock"

    def test_provider_success(self):
        session = MagicMock()
        session.get.return_value = response(payload=V2_PAYLOAD)
        service = TrackingService(client=configured_client(session))

        result = service.track(IdentifierType.CONTAINER, "MSCU1234567")

        assert result.success is True
        assert result.mock is False
        assert result.suggested_status == ShipmentStatus.IN_TRANSIT
        assert service.health().status == "operational"
        assert service.health().mock_mode is False

    def test_timeout_degrades_instead_of_raising(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectTimeout()
        service = TrackingService(client=configured_client(session))

        result = service.track(IdentifierType.CONTAINER, "MSCU1234567")

        assert result.success is False
        assert "timed out" in result.message
        assert result.data is None

        health = service.health()
        assert health.mock_mode is True
        assert health.degraded is True
        assert health.status == "degraded"
        assert health.last_error == result.message
        assert health.last_checked_at.utcoffset() == timedelta(0)

    def test_fallback_attaches_mock_data(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        service = TrackingService(client=configured_client(session))

        with patch.object(settings, "shipsgo_fallback_to_mock", True):
            result = service.track(IdentifierType.BL, "MEDU123456")

        assert result.success is False
        assert result.mock is True
        assert result.data.bl_number == "MEDU123456"

    def test_recovers_after_success(self):
        session = MagicMock()
        session.get.side_effect = [requests.exceptions.ReadTimeout(), response(payload=V2_PAYLOAD)]
        service = TrackingService(client=configured_client(session))

        service.track(IdentifierType.CONTAINER, "MSCU1234567")
        assert service.health().degraded is True

        service.track(IdentifierType.CONTAINER, "MSCU1234567")
        assert service.health().degraded is False
        assert service.health().last_error is None


class TestTrackShipment:

    def test_disabled_tracking_never_calls_provider(self):
        session = MagicMock()
        service = TrackingService(client=configured_client(session))
        shipment = make_shipment(status="delivered", enable_tracking=False, container_number="MSCU1234567")

        result = service.track_shipment(shipment)

        session.get.assert_not_called()
        assert result.success is True
        assert result.source == TrackingSource.INTERNAL
        assert result.data.milestones[-1].event == "Delivered"

    def test_no_identifier_never_calls_provider(self):
        session = MagicMock()
        service = TrackingService(client=configured_client(session))

        result = service.track_shipment(make_shipment(enable_tracking=True))

        session.get.assert_not_called()
        assert result.source == TrackingSource.INTERNAL

    def test_prefers_container_then_bl(self):
        session = MagicMock()
        session.get.return_value = response(payload=V2_PAYLOAD)
        service = TrackingService(client=configured_client(session))
        shipment = make_shipment(enable_tracking=True, bl_number="MEDU123456", booking_number="BK1234")

        result = service.track_shipment(shipment)

        assert result.identifier_type == IdentifierType.BL
        assert session.get.call_args.kwargs["params"] == {"bl_number": "MEDU123456"}

    def test_failure_attaches_internal_projection(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ReadTimeout()
        service = TrackingService(client=configured_client(session))
        shipment = make_shipment(status="in_transit", enable_tracking=True, container_number="MSCU1234567")

        result = service.track_shipment(shipment)

        assert result.success is False
        assert result.source == TrackingSource.INTERNAL
        assert result.data.port_of_loading == "Shanghai"

    def test_suggestion_dropped_when_already_current(self):
        session = MagicMock()
        session.get.return_value = response(payload=V2_PAYLOAD)
        service = TrackingService(client=configured_client(session))
        shipment = make_shipment(status="in_transit", enable_tracking=True, container_number="MSCU1234567")

        result = service.track_shipment(shipment)

        assert result.success is True
        assert result.suggested_status is None
