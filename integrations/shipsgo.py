"""
ShipsGo API client.

Looks up container, bill of lading and booking numbers and normalizes the
provider's answer into TrackingData. Failures raise ShipsGoError
subclasses; callers decide how to degrade.
"""

from typing import Any, Optional
import requests
import structlog

from config import settings
from models.tracking import IdentifierType, TrackingData
from exceptions import (
    ShipsGoError,
    ShipsGoAuthError,
    ShipsGoRateLimitError,
    ShipsGoNotFoundError,
)

logger = structlog.get_logger(__name__)


# Query parameter used for each identifier type
IDENTIFIER_PARAMS = {
    IdentifierType.CONTAINER: "container_number",
    IdentifierType.BL: "bl_number",
    IdentifierType.BOOKING: "booking_number",
}

# Legacy payloads use this string for fields they cannot provide
NOT_SUPPORTED = "Not Supported"


class ShipsGoClient:
    """Thin synchronous client for the ShipsGo tracking endpoint."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = (api_url or settings.shipsgo_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.shipsgo_api_key
        self.timeout = timeout or settings.shipsgo_timeout_seconds
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def track(self, identifier_type: IdentifierType, identifier: str) -> TrackingData:
        """
        Track one identifier.

        Raises:
            ShipsGoAuthError: Missing or rejected API key
            ShipsGoNotFoundError: Provider has no record
            ShipsGoRateLimitError: Provider rate limit hit
            ShipsGoError: Timeout, connection or payload problems
        """
        if not self.configured:
            raise ShipsGoAuthError()

        params = {IDENTIFIER_PARAMS[identifier_type]: identifier}
        if identifier_type == IdentifierType.CONTAINER:
            params.update({
                "include_map": "true",
                "include_route": "true",
                "include_milestones": "true",
            })

        logger.info(
            "shipsgo_request",
            identifier_type=identifier_type.value,
            identifier=identifier
        )

        try:
            response = self.session.get(
                f"{self.api_url}/track",
                params=params,
                headers={
                    "X-Shipsgo-User-Token": self.api_key,
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning("shipsgo_request_timeout", identifier=identifier, timeout=self.timeout)
            raise ShipsGoError(
                f"request timed out after {self.timeout}s",
                details={"identifier": identifier}
            )
        except requests.exceptions.RequestException as e:
            logger.warning("shipsgo_request_failed", identifier=identifier, error=str(e))
            raise ShipsGoError(str(e), details={"identifier": identifier})

        if response.status_code == 401:
            raise ShipsGoAuthError()
        if response.status_code == 404:
            raise ShipsGoNotFoundError(identifier)
        if response.status_code == 429:
            raise ShipsGoRateLimitError()
        if response.status_code >= 400:
            raise ShipsGoError(
                f"unexpected status {response.status_code}",
                details={"identifier": identifier, "status": response.status_code}
            )

        try:
            payload = response.json()
        except ValueError:
            raise ShipsGoError("response is not JSON", details={"identifier": identifier})

        data = normalize_response(payload)

        logger.info(
            "shipsgo_tracking_retrieved",
            identifier=identifier,
            status=data.status,
            milestones=len(data.milestones)
        )

        return data


# ===================
# RESPONSE NORMALIZATION
# ===================

def normalize_response(payload: Any) -> TrackingData:
    """
    Normalize either provider payload shape into TrackingData.

    v2 responses wrap camelCase fields in {"success", "data"}; legacy
    responses are a PascalCase object (or a list of them).

    Raises:
        ShipsGoError: If the payload matches neither shape
    """
    if isinstance(payload, list):
        if not payload:
            raise ShipsGoError("empty response")
        payload = payload[0]

    if not isinstance(payload, dict):
        raise ShipsGoError("unexpected response shape")

    if isinstance(payload.get("data"), dict):
        if payload.get("success") is False:
            raise ShipsGoError(payload.get("message") or "provider reported failure")
        return _from_v2(payload["data"])

    if "ContainerNumber" in payload or "BLReferenceNo" in payload or "Status" in payload:
        return _from_legacy(payload)

    raise ShipsGoError("unexpected response shape")


def _from_v2(data: dict) -> TrackingData:
    position = data.get("currentPosition") or {}
    teu = data.get("teu")
    return TrackingData(
        container_number=data.get("containerNumber"),
        bl_number=data.get("blNumber"),
        booking_number=data.get("bookingNumber"),
        shipping_line=data.get("shippingLine"),
        vessel_name=data.get("vesselName"),
        vessel_imo=data.get("vesselImo"),
        voyage=data.get("voyage"),
        port_of_loading=data.get("portOfLoading"),
        port_of_discharge=data.get("portOfDischarge"),
        estimated_departure=data.get("estimatedDeparture"),
        estimated_arrival=data.get("estimatedArrival"),
        actual_departure=data.get("actualDeparture"),
        actual_arrival=data.get("actualArrival"),
        status=data.get("status") or "Unknown",
        status_id=data.get("statusId"),
        eta=data.get("estimatedArrival"),
        milestones=[
            {
                "event": m.get("event") or "",
                "location": m.get("location"),
                "date": m.get("date"),
                "status": m.get("status") or "pending",
                "description": m.get("description"),
            }
            for m in data.get("milestones") or []
        ],
        location={
            "latitude": position.get("latitude"),
            "longitude": position.get("longitude"),
            "timestamp": position.get("timestamp"),
        } if position else None,
        container_type=data.get("containerType"),
        container_teu=str(teu) if teu is not None else None,
        transit_time=data.get("transitTime"),
        co2_emissions=data.get("co2Emissions"),
        live_map_url=data.get("mapUrl"),
        bl_container_count=1,
    )


def _number(value: Any) -> Optional[float]:
    if value in (None, "", NOT_SUPPORTED):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _date(block: Any) -> Optional[str]:
    if isinstance(block, dict):
        return block.get("Date")
    return None


def _from_legacy(data: dict) -> TrackingData:
    departure = data.get("DepartureDate") or {}
    arrival = data.get("ArrivalDate") or {}

    milestones = []
    for port in data.get("TSPorts") or []:
        port_arrival = port.get("ArrivalDate") or {}
        milestones.append({
            "event": f"Transshipment at {port.get('Port') or 'unknown port'}",
            "location": port.get("Port"),
            "date": _date(port_arrival),
            "status": "completed" if port_arrival.get("IsActual") else "pending",
            "description": port.get("Vessel"),
        })

    latitude = _number(data.get("VesselLatitude"))
    longitude = _number(data.get("VesselLongitude"))

    return TrackingData(
        container_number=data.get("ContainerNumber") or data.get("BLReferenceNo"),
        bl_number=data.get("BLReferenceNo"),
        booking_number=data.get("ReferenceNo"),
        shipping_line=data.get("ShippingLine"),
        vessel_name=data.get("Vessel"),
        vessel_imo=data.get("VesselIMO"),
        voyage=data.get("Voyage"),
        port_of_loading=data.get("Pol"),
        port_of_discharge=data.get("Pod"),
        loading_country=data.get("FromCountry"),
        discharge_country=data.get("ToCountry"),
        estimated_departure=_date(departure),
        estimated_arrival=_date(arrival),
        actual_departure=_date(departure) if departure.get("IsActual") else None,
        actual_arrival=_date(arrival) if arrival.get("IsActual") else None,
        status=data.get("Status") or "Unknown",
        status_id=data.get("StatusId"),
        eta=data.get("ETA"),
        milestones=milestones,
        location={"latitude": latitude, "longitude": longitude}
        if latitude is not None and longitude is not None else None,
        container_type=data.get("ContainerType"),
        container_teu=str(data["ContainerTEU"]) if data.get("ContainerTEU") else None,
        transit_time=data.get("FormatedTransitTime"),
        co2_emissions=_number(data.get("Co2Emission")),
        live_map_url=data.get("LiveMapUrl"),
        bl_container_count=data.get("BLContainerCount") or 1,
    )
