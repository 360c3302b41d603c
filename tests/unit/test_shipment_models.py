"""
Unit tests for shipment vocabulary and validation helpers.

Run: pytest tests/unit/test_shipment_models.py -v
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from models.shipment import (
    ShipmentStatus,
    STATUS_LABELS,
    STATUS_ORDER,
    EXCEPTIONAL_STATUSES,
    ShipmentResponse,
    TrackingSettingsUpdate,
    WarehouseArrival,
    has_reached,
    is_valid_container_number,
    validate_container_number,
    parse_status,
)
from exceptions import InvalidContainerNumberError, InvalidStatusError
from tests.factories import ShipmentFactory


class TestStatusVocabulary:

    def test_nine_statuses_all_labelled(self):
        assert len(ShipmentStatus) == 9
        assert set(STATUS_LABELS) == set(ShipmentStatus)

    def test_forward_order_excludes_exceptional(self):
        assert set(STATUS_ORDER) | EXCEPTIONAL_STATUSES == set(ShipmentStatus)
        assert not set(STATUS_ORDER) & EXCEPTIONAL_STATUSES

    def test_has_reached(self):
        assert has_reached(ShipmentStatus.AT_PORT, ShipmentStatus.SHIPPED) is True
        assert has_reached(ShipmentStatus.PROCESSING, ShipmentStatus.SHIPPED) is False
        assert has_reached(ShipmentStatus.DELAYED, ShipmentStatus.PENDING) is False

    def test_parse_status_error_lists_valid_values(self):
        with pytest.raises(InvalidStatusError) as exc:
            parse_status("lost")
        assert "in_transit" in exc.value.details["valid"]


class TestContainerNumbers:

    @pytest.mark.parametrize("value", ["ABCD1234567", "abcd1234567", " MSCU7654321 "])
    def test_valid(self, value):
        assert is_valid_container_number(value) is True

    @pytest.mark.parametrize("value", ["AB1234567", "ABCD123456", "ABCD12345678", "1234ABCDEFG", ""])
    def test_invalid(self, value):
        assert is_valid_container_number(value) is False
        with pytest.raises(InvalidContainerNumberError):
            validate_container_number(value)

    def test_validate_normalizes(self):
        assert validate_container_number(" abcd1234567") == "ABCD1234567"

    def test_schema_rejects_bad_container(self):
        with pytest.raises(PydanticValidationError):
            TrackingSettingsUpdate(enable_tracking=True, container_number="ABCD123456")


class TestSchemas:

    def test_response_fills_label_and_identifiers(self):
        row = ShipmentFactory.create(status="customs_clearance", bl_number="MEDU123456", booking_number="BK1")
        shipment = ShipmentResponse(**row)

        assert shipment.status_label == "Customs Clearance"
        assert shipment.tracking_identifiers == [("bl", "MEDU123456"), ("booking", "BK1")]

    def test_warehouse_arrival_defaults(self):
        arrival = WarehouseArrival.model_validate({"warehouseLocation": "A1", "condition": "Excellent"})
        assert arrival.disable_tracking is True
        assert arrival.condition == "excellent"
