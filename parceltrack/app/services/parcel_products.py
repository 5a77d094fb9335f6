"""
Parcel line item service.

Maintains the line items of existing parcels and analyses them. Every figure
is computed from the unit price captured on the line item, never from the
current catalog price, so past shipments keep their value when the catalog
changes. Amounts are Decimal, rounded HALF_UP to 0.01.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.core.exceptions import ResourceNotFoundError, BadRequestError
from parceltrack.app.models.parcel_product import ParcelProduct
from parceltrack.app.models.product import Product
from parceltrack.app.schemas.parcel import ParcelProductResponse
from parceltrack.app.schemas.parcel_product import (
    ParcelProductCreate, ParcelProductUpdate, ProductSalesResponse, LineItemTotalsResponse
)
from parceltrack.app.services.directory import EntityDirectory, EntityKind
from parceltrack.app.services.parcel_lifecycle import get_parcel_or_404
from parceltrack.app.services.parcel_views import build_item_views
from parceltrack.app.services.statistics import TWO_PLACES, average
from parceltrack.app.services.validation import (
    validate_item_create, validate_item_update, raise_if_invalid
)

logger = logging.getLogger(__name__)

_LINE_VALUE = ParcelProduct.quantity * ParcelProduct.price


def _money(value) -> Decimal:
    """SQL sums come back as Decimal or float depending on the backend."""
    return Decimal(str(value or 0)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


async def _item_or_404(db: AsyncSession, item_id: str) -> ParcelProduct:
    item = await db.get(ParcelProduct, item_id)
    if item is None:
        raise ResourceNotFoundError("ParcelProduct", item_id)
    return item


async def _scalar(db: AsyncSession, statement):
    return (await db.execute(statement)).scalar()


async def _views(db: AsyncSession, statement) -> List[ParcelProductResponse]:
    result = await db.execute(statement)
    return await build_item_views(db, result.scalars().all())


class ParcelProductService:

    # Line item maintenance

    @staticmethod
    async def add_item(db: AsyncSession, payload: ParcelProductCreate) -> ParcelProductResponse:
        """
        Add a line item to an existing parcel.

        Validates:
        - Quantity of at least 1 and a non-negative price in cents
        - Parcel and product exist
        """
        raise_if_invalid(validate_item_create(payload))
        await get_parcel_or_404(db, payload.parcel_id)
        await EntityDirectory(db).require(EntityKind.PRODUCT, payload.product_id)

        try:
            item = ParcelProduct(
                parcel_id=payload.parcel_id,
                product_id=payload.product_id,
                quantity=payload.quantity,
                price=payload.price,
            )
            db.add(item)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Line item %s added to parcel %s: %d x %s",
            item.id, item.parcel_id, item.quantity, item.product_id
        )
        return (await build_item_views(db, [item]))[0]

    @staticmethod
    async def get_item(db: AsyncSession, item_id: str) -> ParcelProductResponse:
        item = await _item_or_404(db, item_id)
        return (await build_item_views(db, [item]))[0]

    @staticmethod
    async def list_items(db: AsyncSession) -> List[ParcelProductResponse]:
        return await _views(db, select(ParcelProduct).order_by(ParcelProduct.parcel_id, ParcelProduct.id))

    @staticmethod
    async def update_item(db: AsyncSession, item_id: str, payload: ParcelProductUpdate) -> ParcelProductResponse:
        """Change the quantity or the captured unit price of a line item."""
        raise_if_invalid(validate_item_update(payload))
        item = await _item_or_404(db, item_id)

        try:
            for field, value in payload.model_dump(exclude_unset=True).items():
                setattr(item, field, value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Line item %s updated (fields: %s)", item_id, sorted(payload.model_fields_set))
        return (await build_item_views(db, [item]))[0]

    @staticmethod
    async def remove_item(db: AsyncSession, item_id: str) -> None:
        """
        Remove a line item.

        Raises:
            ResourceNotFoundError: unknown line item
            BadRequestError: the item is the last one of its parcel
        """
        item = await _item_or_404(db, item_id)
        parcel_id = item.parcel_id

        remaining = await _scalar(
            db, select(func.count(ParcelProduct.id)).where(ParcelProduct.parcel_id == parcel_id)
        )
        if remaining <= 1:
            raise BadRequestError(
                "A parcel must keep at least one product",
                details={"parcel_id": parcel_id, "item_id": item_id}
            )

        try:
            await db.delete(item)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Line item %s removed from parcel %s", item_id, parcel_id)

    # Per parcel

    @staticmethod
    async def parcel_total_value(db: AsyncSession, parcel_id: str) -> Decimal:
        await get_parcel_or_404(db, parcel_id)
        return _money(await _scalar(
            db, select(func.sum(_LINE_VALUE)).where(ParcelProduct.parcel_id == parcel_id)
        ))

    @staticmethod
    async def count_in_parcel(db: AsyncSession, parcel_id: str) -> int:
        await get_parcel_or_404(db, parcel_id)
        return await _scalar(
            db, select(func.count(ParcelProduct.id)).where(ParcelProduct.parcel_id == parcel_id)
        ) or 0

    # Per product

    @staticmethod
    async def items_for_product(db: AsyncSession, product_id: str) -> List[ParcelProductResponse]:
        await EntityDirectory(db).require(EntityKind.PRODUCT, product_id)
        return await _views(
            db,
            select(ParcelProduct)
            .where(ParcelProduct.product_id == product_id)
            .order_by(ParcelProduct.parcel_id, ParcelProduct.id)
        )

    @staticmethod
    async def product_sales(db: AsyncSession, product_id: str) -> ProductSalesResponse:
        """
        Shipping figures for one product.

        ``average_price`` is the mean captured unit price over its line items,
        not weighted by quantity; zero when the product was never shipped.
        """
        product = await EntityDirectory(db).get(EntityKind.PRODUCT, product_id)

        result = await db.execute(
            select(
                func.count(ParcelProduct.id),
                func.sum(ParcelProduct.quantity),
                func.sum(_LINE_VALUE),
                func.sum(ParcelProduct.price),
            ).where(ParcelProduct.product_id == product_id)
        )
        line_count, total_quantity, revenue, price_sum = result.one()

        return ProductSalesResponse(
            product_id=product.id,
            product_name=product.name,
            catalog_price=Decimal(product.price),
            line_count=line_count or 0,
            total_quantity=total_quantity or 0,
            revenue=_money(revenue),
            average_price=average(_money(price_sum), line_count or 0),
        )

    # Across all parcels

    @staticmethod
    async def bulk_orders(db: AsyncSession, min_quantity: int) -> List[ParcelProductResponse]:
        """Line items with ``quantity >= min_quantity``, largest first."""
        if min_quantity < 1:
            raise BadRequestError("Minimum quantity must be at least 1", details={"min_quantity": min_quantity})
        return await _views(
            db,
            select(ParcelProduct)
            .where(ParcelProduct.quantity >= min_quantity)
            .order_by(ParcelProduct.quantity.desc(), ParcelProduct.id)
        )

    @staticmethod
    async def discounted_items(db: AsyncSession) -> List[ParcelProductResponse]:
        """Line items captured below the product's current catalog price."""
        return await _views(
            db,
            select(ParcelProduct)
            .join(Product, Product.id == ParcelProduct.product_id)
            .where(ParcelProduct.price < Product.price)
            .order_by(ParcelProduct.parcel_id, ParcelProduct.id)
        )

    @staticmethod
    async def totals(db: AsyncSession) -> LineItemTotalsResponse:
        result = await db.execute(
            select(
                func.sum(_LINE_VALUE),
                func.sum(ParcelProduct.quantity),
                func.count(func.distinct(ParcelProduct.product_id)),
            )
        )
        revenue, items_shipped, distinct_products = result.one()

        return LineItemTotalsResponse(
            total_revenue=_money(revenue),
            total_items_shipped=items_shipped or 0,
            distinct_products_shipped=distinct_products or 0,
        )
