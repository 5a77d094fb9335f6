"""
Delivery History API Endpoints.

Administrative access to the status ledger (Manager only), plus the history of
their own parcels for delivery persons. Regular history entries are written by
the parcel lifecycle; the endpoints here are for reading and for corrections.
"""

from typing import List

from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.db.session import get_db
from parceltrack.app.models.enums import UserRole
from parceltrack.app.core.guards import require_role, require_linked_entity
from parceltrack.app.schemas.delivery_history import (
    DeliveryHistoryCreate, DeliveryHistoryResponse, CountResponse
)
from parceltrack.app.services import history_ledger

router = APIRouter(prefix="/delivery-history", tags=["Delivery History"])

manager_only = require_role([UserRole.MANAGER])


@router.post("", response_model=DeliveryHistoryResponse, status_code=status.HTTP_201_CREATED)
async def create_history_entry(
    entry_data: DeliveryHistoryCreate,
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Record a corrective entry; it becomes the parcel's current status."""
    return await history_ledger.create_entry(db, entry_data)


@router.get("", response_model=List[DeliveryHistoryResponse])
async def list_history_entries(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await history_ledger.list_entries(db)


@router.get("/my", response_model=List[DeliveryHistoryResponse])
async def my_history_entries(
    current_user: dict = Depends(require_role([UserRole.DELIVERY_PERSON])),
    db: AsyncSession = Depends(get_db)
):
    """History of the parcels assigned to the calling delivery person."""
    delivery_person_id = require_linked_entity(current_user, "delivery_person_id")
    return await history_ledger.for_delivery_person(db, delivery_person_id)


@router.get("/today/count", response_model=CountResponse)
async def count_deliveries_today(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Number of DELIVERED entries recorded today (server time)."""
    return CountResponse(count=await history_ledger.count_today(db))


@router.get("/with-comments", response_model=List[DeliveryHistoryResponse])
async def history_entries_with_comments(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await history_ledger.with_comments(db)


@router.get("/parcel/{parcel_id}", response_model=List[DeliveryHistoryResponse])
async def parcel_timeline(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await history_ledger.timeline(db, parcel_id)


@router.get("/parcel/{parcel_id}/latest", response_model=DeliveryHistoryResponse)
async def parcel_latest_entry(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await history_ledger.latest(db, parcel_id)


@router.get("/parcel/{parcel_id}/count", response_model=CountResponse)
async def parcel_entry_count(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return CountResponse(count=await history_ledger.count_by_parcel(db, parcel_id))


@router.get("/{entry_id}", response_model=DeliveryHistoryResponse)
async def get_history_entry(
    entry_id: str = Path(..., description="History entry ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await history_ledger.get_entry(db, entry_id)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_history_entry(
    entry_id: str = Path(..., description="History entry ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a history entry.

    This rewrites the audit trail. Use only to correct erroneous entries.
    """
    await history_ledger.delete_entry(db, entry_id)
