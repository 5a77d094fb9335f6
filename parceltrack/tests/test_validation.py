"""
Tests for explicit input validation.
"""

from decimal import Decimal

import pytest

from parceltrack.app.core.exceptions import ValidationFailedError
from parceltrack.app.models.parcel_enums import ParcelPriority
from parceltrack.app.schemas.parcel import ParcelCreate, ParcelUpdate
from parceltrack.app.services.validation import (
    validate_parcel_create, validate_parcel_update, raise_if_invalid
)


def _valid_create(**overrides) -> ParcelCreate:
    data = {
        "weight": Decimal("1.00"),
        "priority": ParcelPriority.NORMAL,
        "destination_city": "Agadir",
        "sender_client_id": "sender-1",
        "recipient_id": "recipient-1",
        "products": [{"product_id": "product-book", "quantity": 1, "price": "12.50"}],
    }
    data.update(overrides)
    return ParcelCreate(**data)


def _fields(violations):
    return [violation["field"] for violation in violations]


def test_valid_create_has_no_violations():
    assert validate_parcel_create(_valid_create()) == []


def test_at_least_one_product_is_required():
    assert _fields(validate_parcel_create(_valid_create(products=[]))) == ["products"]


@pytest.mark.parametrize("weight", ["0.01", "999.99"])
def test_weight_bounds_are_inclusive(weight):
    assert validate_parcel_create(_valid_create(weight=Decimal(weight))) == []


@pytest.mark.parametrize("weight", ["2.50", "2.500", "12"])
def test_weight_trailing_zeros_are_not_extra_precision(weight):
    assert validate_parcel_create(_valid_create(weight=Decimal(weight))) == []


@pytest.mark.parametrize("weight", ["0.00", "1000.00", "2.555", "0.001"])
def test_weight_out_of_range_or_too_precise(weight):
    assert _fields(validate_parcel_create(_valid_create(weight=Decimal(weight)))) == ["weight"]


def test_empty_create_reports_every_required_field():
    fields = _fields(validate_parcel_create(ParcelCreate()))

    assert set(fields) == {
        "weight", "destination_city", "priority", "sender_client_id", "recipient_id", "products"
    }


def test_length_limits():
    fields = _fields(validate_parcel_create(_valid_create(
        description="d" * 256,
        destination_city="c" * 101,
    )))

    assert set(fields) == {"description", "destination_city"}


def test_line_item_violations_are_indexed():
    payload = _valid_create(products=[
        {"product_id": "product-book", "quantity": 1, "price": "0"},
        {"product_id": None, "quantity": None, "price": None},
    ])

    assert _fields(validate_parcel_create(payload)) == [
        "products[1].product_id", "products[1].quantity", "products[1].price"
    ]


def test_update_validates_only_present_fields():
    assert validate_parcel_update(ParcelUpdate()) == []
    assert validate_parcel_update(ParcelUpdate(delivery_person_id=None, zone_id=None)) == []
    assert _fields(validate_parcel_update(ParcelUpdate(destination_city=""))) == ["destination_city"]
    assert _fields(validate_parcel_update(ParcelUpdate(priority=None))) == ["priority"]


def test_raise_if_invalid_carries_all_violations():
    violations = validate_parcel_create(ParcelCreate(weight=Decimal("-1")))

    with pytest.raises(ValidationFailedError) as exc_info:
        raise_if_invalid(violations)

    assert exc_info.value.status_code == 422
    assert exc_info.value.details["errors"] == violations
    raise_if_invalid([])


def test_line_item_price_precision_is_limited_to_cents():
    payload = _valid_create(products=[{"product_id": "product-book", "quantity": 1, "price": "12.505"}])

    assert _fields(validate_parcel_create(payload)) == ["products[0].price"]


def test_update_rejects_weight_with_more_than_two_decimals():
    assert _fields(validate_parcel_update(ParcelUpdate(weight=Decimal("2.555")))) == ["weight"]
