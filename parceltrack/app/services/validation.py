"""
Explicit input validation for parcel, line item and history writes.

Each validator returns the full list of violations as ``{"field", "message"}``
dicts. Nothing here touches the database; existence of referenced entities is
checked by the services.
"""

from decimal import Decimal
from typing import Any, Dict, List

from parceltrack.app.core.exceptions import ValidationFailedError
from parceltrack.app.schemas.parcel import ParcelCreate, ParcelUpdate
from parceltrack.app.schemas.delivery_history import DeliveryHistoryCreate
from parceltrack.app.schemas.parcel_product import ParcelProductCreate, ParcelProductUpdate

MIN_WEIGHT = Decimal("0.01")
MAX_WEIGHT = Decimal("999.99")
DESCRIPTION_MAX_LENGTH = 255
CITY_MAX_LENGTH = 100
COMMENT_MAX_LENGTH = 1000
MAX_DECIMAL_PLACES = 2

Violation = Dict[str, str]


def _violation(field: str, message: str) -> Violation:
    return {"field": field, "message": message}


def _decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return -exponent if exponent < 0 else 0


def _check_weight(weight: Any, violations: List[Violation]) -> None:
    if weight is None:
        violations.append(_violation("weight", "Weight is required"))
    elif weight < MIN_WEIGHT:
        violations.append(_violation("weight", f"Weight must be at least {MIN_WEIGHT} kg"))
    elif weight > MAX_WEIGHT:
        violations.append(_violation("weight", f"Weight must not exceed {MAX_WEIGHT} kg"))
    elif _decimal_places(weight) > MAX_DECIMAL_PLACES:
        violations.append(_violation("weight", f"Weight must have at most {MAX_DECIMAL_PLACES} decimal places"))


def _check_city(city: Any, violations: List[Violation]) -> None:
    if city is None or not city.strip():
        violations.append(_violation("destination_city", "Destination city is required"))
    elif len(city) > CITY_MAX_LENGTH:
        violations.append(_violation(
            "destination_city", f"Destination city must not exceed {CITY_MAX_LENGTH} characters"
        ))


def _check_description(description: Any, violations: List[Violation]) -> None:
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        violations.append(_violation(
            "description", f"Description must not exceed {DESCRIPTION_MAX_LENGTH} characters"
        ))


def _check_quantity(quantity: Any, field: str, violations: List[Violation]) -> None:
    if quantity is None:
        violations.append(_violation(field, "Quantity is required"))
    elif quantity < 1:
        violations.append(_violation(field, "Quantity must be at least 1"))


def _check_price(price: Any, field: str, violations: List[Violation]) -> None:
    if price is None:
        violations.append(_violation(field, "Price is required"))
    elif price < 0:
        violations.append(_violation(field, "Price must not be negative"))
    elif _decimal_places(price) > MAX_DECIMAL_PLACES:
        violations.append(_violation(field, f"Price must have at most {MAX_DECIMAL_PLACES} decimal places"))


def _check_line_item(item: Any, prefix: str, violations: List[Violation]) -> None:
    if not item.product_id:
        violations.append(_violation(f"{prefix}product_id", "Product ID is required"))
    _check_quantity(item.quantity, f"{prefix}quantity", violations)
    _check_price(item.price, f"{prefix}price", violations)


def validate_parcel_create(payload: ParcelCreate) -> List[Violation]:
    violations: List[Violation] = []

    _check_description(payload.description, violations)
    _check_weight(payload.weight, violations)
    _check_city(payload.destination_city, violations)

    if payload.priority is None:
        violations.append(_violation("priority", "Priority is required"))
    if not payload.sender_client_id:
        violations.append(_violation("sender_client_id", "Sender client ID is required"))
    if not payload.recipient_id:
        violations.append(_violation("recipient_id", "Recipient ID is required"))

    if not payload.products:
        violations.append(_violation("products", "At least one product is required"))
    for index, item in enumerate(payload.products):
        _check_line_item(item, f"products[{index}].", violations)

    return violations


def validate_parcel_update(payload: ParcelUpdate) -> List[Violation]:
    """Validate only the fields present in the request."""
    violations: List[Violation] = []
    present = payload.model_fields_set

    if "description" in present:
        _check_description(payload.description, violations)
    if "weight" in present:
        _check_weight(payload.weight, violations)
    if "destination_city" in present:
        _check_city(payload.destination_city, violations)
    for field in ("priority", "status"):
        if field in present and getattr(payload, field) is None:
            violations.append(_violation(field, f"{field.capitalize()} must not be null"))

    return violations


def validate_item_create(payload: ParcelProductCreate) -> List[Violation]:
    violations: List[Violation] = []

    if not payload.parcel_id:
        violations.append(_violation("parcel_id", "Parcel ID is required"))
    _check_line_item(payload, "", violations)

    return violations


def validate_item_update(payload: ParcelProductUpdate) -> List[Violation]:
    """Validate only the fields present in the request."""
    violations: List[Violation] = []
    present = payload.model_fields_set

    if "quantity" in present:
        _check_quantity(payload.quantity, "quantity", violations)
    if "price" in present:
        _check_price(payload.price, "price", violations)

    return violations


def validate_history_create(payload: DeliveryHistoryCreate) -> List[Violation]:
    violations: List[Violation] = []

    if not payload.parcel_id:
        violations.append(_violation("parcel_id", "Parcel ID is required"))
    if payload.status is None:
        violations.append(_violation("status", "Status is required"))
    if payload.comment is not None and len(payload.comment) > COMMENT_MAX_LENGTH:
        violations.append(_violation(
            "comment", f"Comment must not exceed {COMMENT_MAX_LENGTH} characters"
        ))

    return violations


def raise_if_invalid(violations: List[Violation]) -> None:
    if violations:
        raise ValidationFailedError(violations)
