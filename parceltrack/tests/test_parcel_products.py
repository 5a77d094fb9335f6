"""
Tests for line item maintenance and line item analytics.
"""

from decimal import Decimal

import pytest

from parceltrack.app.core.exceptions import BadRequestError, ResourceNotFoundError, ValidationFailedError
from parceltrack.app.schemas.parcel_product import ParcelProductCreate, ParcelProductUpdate
from parceltrack.app.services.parcel_lifecycle import ParcelLifecycleService
from parceltrack.app.services.parcel_products import ParcelProductService


@pytest.fixture
async def shipments(make_parcel, directory):
    """
    mixed: 2 x Laptop at 850.00 (catalog 899.99), 1 x Book at 12.50
    books: 12 x Book at 12.50
    """
    mixed = await make_parcel(products=[
        {"product_id": directory.laptop, "quantity": 2, "price": "850.00"},
        {"product_id": directory.book, "quantity": 1, "price": "12.50"},
    ])
    books = await make_parcel(products=[
        {"product_id": directory.book, "quantity": 12, "price": "12.50"},
    ])
    return {"mixed": mixed, "books": books}


@pytest.mark.asyncio
async def test_parcel_total_value_and_count(db_session, shipments):
    mixed = shipments["mixed"]

    assert await ParcelProductService.parcel_total_value(db_session, mixed.id) == Decimal("1712.50")
    assert await ParcelProductService.count_in_parcel(db_session, mixed.id) == 2
    assert mixed.total_value == Decimal("1712.50")

    with pytest.raises(ResourceNotFoundError):
        await ParcelProductService.parcel_total_value(db_session, "missing")


@pytest.mark.asyncio
async def test_product_sales_use_captured_prices(db_session, shipments, directory):
    laptop = await ParcelProductService.product_sales(db_session, directory.laptop)
    book = await ParcelProductService.product_sales(db_session, directory.book)

    assert laptop.catalog_price == Decimal("899.99")
    assert laptop.line_count == 1
    assert laptop.total_quantity == 2
    assert laptop.revenue == Decimal("1700.00")
    assert laptop.average_price == Decimal("850.00")

    assert book.line_count == 2
    assert book.total_quantity == 13
    assert book.revenue == Decimal("162.50")
    assert book.average_price == Decimal("12.50")


@pytest.mark.asyncio
async def test_product_never_shipped(db_session, directory):
    sales = await ParcelProductService.product_sales(db_session, directory.laptop)

    assert sales.line_count == 0
    assert sales.total_quantity == 0
    assert sales.revenue == Decimal("0.00")
    assert sales.average_price == Decimal("0.00")
    assert await ParcelProductService.items_for_product(db_session, directory.laptop) == []

    with pytest.raises(ResourceNotFoundError):
        await ParcelProductService.product_sales(db_session, "missing-product")


@pytest.mark.asyncio
async def test_items_for_product(db_session, shipments, directory):
    items = await ParcelProductService.items_for_product(db_session, directory.book)

    assert {item.parcel_id for item in items} == {shipments["mixed"].id, shipments["books"].id}
    assert all(item.product_name == "Book" for item in items)


@pytest.mark.asyncio
async def test_bulk_orders(db_session, shipments):
    bulk = await ParcelProductService.bulk_orders(db_session, 2)

    assert [(item.product_name, item.quantity) for item in bulk] == [("Book", 12), ("Laptop", 2)]
    assert await ParcelProductService.bulk_orders(db_session, 13) == []

    with pytest.raises(BadRequestError):
        await ParcelProductService.bulk_orders(db_session, 0)


@pytest.mark.asyncio
async def test_discounted_items_compare_with_catalog_price(db_session, shipments):
    discounted = await ParcelProductService.discounted_items(db_session)

    assert [(item.product_name, item.price) for item in discounted] == [("Laptop", Decimal("850.00"))]


@pytest.mark.asyncio
async def test_totals(db_session, shipments):
    totals = await ParcelProductService.totals(db_session)

    assert totals.total_revenue == Decimal("1862.50")
    assert totals.total_items_shipped == 15
    assert totals.distinct_products_shipped == 2


@pytest.mark.asyncio
async def test_totals_on_empty_store(db_session, directory):
    totals = await ParcelProductService.totals(db_session)

    assert totals.total_revenue == Decimal("0.00")
    assert totals.total_items_shipped == 0
    assert totals.distinct_products_shipped == 0


@pytest.mark.asyncio
async def test_add_update_and_remove_item(db_session, shipments, directory):
    books = shipments["books"]

    added = await ParcelProductService.add_item(db_session, ParcelProductCreate(
        parcel_id=books.id, product_id=directory.laptop, quantity=1, price=Decimal("899.99")
    ))
    assert added.product_name == "Laptop"
    assert added.line_total == Decimal("899.99")
    assert (await ParcelLifecycleService.get(db_session, books.id)).product_count == 2

    updated = await ParcelProductService.update_item(db_session, added.id, ParcelProductUpdate(price=Decimal("799.99")))
    assert updated.quantity == 1
    assert updated.price == Decimal("799.99")
    assert len(await ParcelProductService.discounted_items(db_session)) == 2

    await ParcelProductService.remove_item(db_session, added.id)
    assert await ParcelProductService.count_in_parcel(db_session, books.id) == 1
    with pytest.raises(ResourceNotFoundError):
        await ParcelProductService.get_item(db_session, added.id)


@pytest.mark.asyncio
async def test_last_item_of_a_parcel_cannot_be_removed(db_session, shipments):
    books = shipments["books"]
    [only_item] = await ParcelLifecycleService.items(db_session, books.id)

    with pytest.raises(BadRequestError):
        await ParcelProductService.remove_item(db_session, only_item.id)

    assert await ParcelProductService.count_in_parcel(db_session, books.id) == 1


@pytest.mark.asyncio
async def test_add_item_validation_and_references(db_session, shipments, directory):
    with pytest.raises(ValidationFailedError) as exc_info:
        await ParcelProductService.add_item(db_session, ParcelProductCreate(
            parcel_id=shipments["books"].id, product_id=directory.book, quantity=0, price=Decimal("11.999")
        ))
    assert {v["field"] for v in exc_info.value.violations} == {"quantity", "price"}

    with pytest.raises(ResourceNotFoundError) as exc_info:
        await ParcelProductService.add_item(db_session, ParcelProductCreate(
            parcel_id="missing", product_id=directory.book, quantity=1, price=Decimal("12.50")
        ))
    assert exc_info.value.details["resource"] == "Parcel"

    with pytest.raises(ResourceNotFoundError) as exc_info:
        await ParcelProductService.add_item(db_session, ParcelProductCreate(
            parcel_id=shipments["books"].id, product_id="missing-product", quantity=1, price=Decimal("12.50")
        ))
    assert exc_info.value.details["resource"] == "Product"


@pytest.mark.asyncio
async def test_update_item_rejects_null_quantity(db_session, shipments):
    [item] = await ParcelLifecycleService.items(db_session, shipments["books"].id)

    with pytest.raises(ValidationFailedError):
        await ParcelProductService.update_item(db_session, item.id, ParcelProductUpdate(quantity=None))
