"""
Parcel line item API Endpoints (Manager only).

Line item maintenance on existing parcels and shipping figures computed from
captured unit prices.
"""

from typing import List

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.db.session import get_db
from parceltrack.app.models.enums import UserRole
from parceltrack.app.core.guards import require_role
from parceltrack.app.schemas.parcel import ParcelProductResponse
from parceltrack.app.schemas.parcel_product import (
    ParcelProductCreate, ParcelProductUpdate, AmountResponse, ProductSalesResponse, LineItemTotalsResponse
)
from parceltrack.app.schemas.delivery_history import CountResponse
from parceltrack.app.services.parcel_lifecycle import ParcelLifecycleService
from parceltrack.app.services.parcel_products import ParcelProductService

router = APIRouter(prefix="/parcel-products", tags=["Parcel Products"])

manager_only = require_role([UserRole.MANAGER])


@router.post("", response_model=ParcelProductResponse, status_code=status.HTTP_201_CREATED)
async def add_line_item(
    item_data: ParcelProductCreate,
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelProductService.add_item(db, item_data)


@router.get("", response_model=List[ParcelProductResponse])
async def list_line_items(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelProductService.list_items(db)


@router.get("/totals", response_model=LineItemTotalsResponse)
async def line_item_totals(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Total revenue, items shipped and distinct products shipped."""
    return await ParcelProductService.totals(db)


@router.get("/bulk", response_model=List[ParcelProductResponse])
async def bulk_orders(
    min_quantity: int = Query(10, description="Minimum quantity per line item"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelProductService.bulk_orders(db, min_quantity)


@router.get("/discounted", response_model=List[ParcelProductResponse])
async def discounted_line_items(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Line items captured below the current catalog price."""
    return await ParcelProductService.discounted_items(db)


@router.get("/parcel/{parcel_id}", response_model=List[ParcelProductResponse])
async def parcel_line_items(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelLifecycleService.items(db, parcel_id)


@router.get("/parcel/{parcel_id}/total-value", response_model=AmountResponse)
async def parcel_total_value(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return AmountResponse(amount=await ParcelProductService.parcel_total_value(db, parcel_id))


@router.get("/parcel/{parcel_id}/count", response_model=CountResponse)
async def parcel_line_item_count(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return CountResponse(count=await ParcelProductService.count_in_parcel(db, parcel_id))


@router.get("/product/{product_id}", response_model=List[ParcelProductResponse])
async def product_line_items(
    product_id: str = Path(..., description="Product ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelProductService.items_for_product(db, product_id)


@router.get("/product/{product_id}/sales", response_model=ProductSalesResponse)
async def product_sales(
    product_id: str = Path(..., description="Product ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Quantity shipped, revenue and average captured price of a product."""
    return await ParcelProductService.product_sales(db, product_id)


@router.get("/{item_id}", response_model=ParcelProductResponse)
async def get_line_item(
    item_id: str = Path(..., description="Line item ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelProductService.get_item(db, item_id)


@router.patch("/{item_id}", response_model=ParcelProductResponse)
async def update_line_item(
    item_id: str = Path(..., description="Line item ID"),
    item_data: ParcelProductUpdate = ...,
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelProductService.update_item(db, item_id, item_data)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_line_item(
    item_id: str = Path(..., description="Line item ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Remove a line item; the last item of a parcel cannot be removed."""
    await ParcelProductService.remove_item(db, item_id)
