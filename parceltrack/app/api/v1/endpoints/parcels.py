"""
Parcel API Endpoints.

Managers run the full lifecycle and every search view. Delivery persons and
clients see the parcels linked to their token; delivery persons move the
status of parcels assigned to them.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.db.session import get_db
from parceltrack.app.models.enums import UserRole
from parceltrack.app.models.parcel_enums import ParcelStatus, ParcelPriority
from parceltrack.app.core.config import settings
from parceltrack.app.core.guards import require_role, require_linked_entity
from parceltrack.app.schemas.parcel import (
    ParcelCreate, ParcelUpdate, ParcelStatusUpdate, ParcelSearchCriteria,
    ParcelResponse, ParcelListResponse, ParcelProductResponse
)
from parceltrack.app.schemas.delivery_history import DeliveryHistoryResponse, CountResponse
from parceltrack.app.services.parcel_lifecycle import ParcelLifecycleService
from parceltrack.app.services.parcel_search import ParcelSearchService

router = APIRouter(prefix="/parcels", tags=["Parcels"])

manager_only = require_role([UserRole.MANAGER])
any_role = require_role([UserRole.MANAGER, UserRole.DELIVERY_PERSON, UserRole.CLIENT])


def _ensure_can_view(parcel: ParcelResponse, current_user: dict) -> None:
    """Delivery persons see their assignments, clients the parcels they sent."""
    role = UserRole(current_user["role"])
    if role == UserRole.MANAGER:
        return
    if role == UserRole.DELIVERY_PERSON:
        linked_id, owner_id = current_user.get("delivery_person_id"), parcel.delivery_person_id
    else:
        linked_id, owner_id = current_user.get("sender_client_id"), parcel.sender_client_id
    if linked_id is None or owner_id != linked_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. This parcel is not linked to your account"
        )


@router.post("", response_model=ParcelResponse, status_code=status.HTTP_201_CREATED)
async def create_parcel(
    parcel_data: ParcelCreate,
    current_user: dict = Depends(require_role([UserRole.MANAGER, UserRole.CLIENT])),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a parcel with its product lines.

    A CLIENT always sends as itself: the sender id comes from the token.
    """
    if current_user["role"] == UserRole.CLIENT.value:
        parcel_data.sender_client_id = require_linked_entity(current_user, "sender_client_id")
    return await ParcelLifecycleService.create(db, parcel_data)


@router.get("", response_model=ParcelListResponse)
async def list_parcels(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    sort: Optional[str] = Query(None, description="field,asc|desc"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelLifecycleService.list_page(db, page, size, sort)


@router.get("/search", response_model=ParcelListResponse)
async def search_parcels(
    status_filter: Optional[ParcelStatus] = Query(None, alias="status"),
    priority: Optional[ParcelPriority] = Query(None),
    zone_id: Optional[str] = Query(None),
    destination_city: Optional[str] = Query(None),
    delivery_person_id: Optional[str] = Query(None),
    sender_client_id: Optional[str] = Query(None),
    recipient_id: Optional[str] = Query(None),
    unassigned_only: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    sort: Optional[str] = Query(None, description="field,asc|desc"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Multi-criteria search. Every filter is optional; filters combine with AND."""
    criteria = ParcelSearchCriteria(
        status=status_filter,
        priority=priority,
        zone_id=zone_id,
        destination_city=destination_city,
        delivery_person_id=delivery_person_id,
        sender_client_id=sender_client_id,
        recipient_id=recipient_id,
        unassigned_only=unassigned_only,
    )
    return await ParcelSearchService.search(db, criteria, page, size, sort)


@router.get("/my", response_model=List[ParcelResponse])
async def my_parcels(
    current_user: dict = Depends(require_role([UserRole.DELIVERY_PERSON, UserRole.CLIENT])),
    db: AsyncSession = Depends(get_db)
):
    """Assigned parcels for a delivery person, sent parcels for a client."""
    if current_user["role"] == UserRole.DELIVERY_PERSON.value:
        delivery_person_id = require_linked_entity(current_user, "delivery_person_id")
        return await ParcelSearchService.find_by_delivery_person(db, delivery_person_id)

    sender_client_id = require_linked_entity(current_user, "sender_client_id")
    return await ParcelSearchService.find_by_sender(db, sender_client_id)


@router.get("/count", response_model=CountResponse)
async def count_parcels(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return CountResponse(count=await ParcelSearchService.count_all(db))


@router.get("/unassigned", response_model=List[ParcelResponse])
async def unassigned_parcels(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_unassigned(db)


@router.get("/high-priority-pending", response_model=List[ParcelResponse])
async def high_priority_pending_parcels(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """URGENT and EXPRESS parcels that are not delivered yet."""
    return await ParcelSearchService.find_high_priority_pending(db)


@router.get("/status/{parcel_status}", response_model=List[ParcelResponse])
async def parcels_by_status(
    parcel_status: ParcelStatus = Path(..., description="Parcel status"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_by_status(db, parcel_status)


@router.get("/priority/{priority}", response_model=List[ParcelResponse])
async def parcels_by_priority(
    priority: ParcelPriority = Path(..., description="Parcel priority"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_by_priority(db, priority)


@router.get("/city/{city}", response_model=List[ParcelResponse])
async def parcels_by_city(
    city: str = Path(..., description="Destination city (partial, case-insensitive)"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_by_city(db, city)


@router.get("/zone/{zone_id}", response_model=List[ParcelResponse])
async def parcels_by_zone(
    zone_id: str = Path(..., description="Zone ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_by_zone(db, zone_id)


@router.get("/sender/{sender_client_id}", response_model=List[ParcelResponse])
async def parcels_by_sender(
    sender_client_id: str = Path(..., description="Sender client ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_by_sender(db, sender_client_id)


@router.get("/sender/{sender_client_id}/in-progress", response_model=List[ParcelResponse])
async def in_progress_parcels_by_sender(
    sender_client_id: str = Path(..., description="Sender client ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_in_progress_by_sender(db, sender_client_id)


@router.get("/sender/{sender_client_id}/delivered", response_model=List[ParcelResponse])
async def delivered_parcels_by_sender(
    sender_client_id: str = Path(..., description="Sender client ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_delivered_by_sender(db, sender_client_id)


@router.get("/recipient/{recipient_id}", response_model=List[ParcelResponse])
async def parcels_by_recipient(
    recipient_id: str = Path(..., description="Recipient ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_by_recipient(db, recipient_id)


@router.get("/delivery-person/{delivery_person_id}", response_model=List[ParcelResponse])
async def parcels_by_delivery_person(
    delivery_person_id: str = Path(..., description="Delivery person ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.find_by_delivery_person(db, delivery_person_id)


@router.get("/group-by/status", response_model=Dict[str, int])
async def group_by_status(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.group_by_status(db)


@router.get("/group-by/priority", response_model=Dict[str, int])
async def group_by_priority(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.group_by_priority(db)


@router.get("/group-by/zone", response_model=Dict[str, int])
async def group_by_zone(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.group_by_zone(db)


@router.get("/group-by/city", response_model=Dict[str, int])
async def group_by_city(
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelSearchService.group_by_city(db)


@router.get("/{parcel_id}", response_model=ParcelResponse)
async def get_parcel(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(any_role),
    db: AsyncSession = Depends(get_db)
):
    parcel = await ParcelLifecycleService.get(db, parcel_id)
    _ensure_can_view(parcel, current_user)
    return parcel


@router.patch("/{parcel_id}", response_model=ParcelResponse)
async def update_parcel(
    parcel_id: str = Path(..., description="Parcel ID"),
    parcel_data: ParcelUpdate = ...,
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Partially update a parcel (Manager only).

    Send ``null`` for ``delivery_person_id`` or ``zone_id`` to clear the
    assignment. A new status is recorded in the parcel's history.
    """
    return await ParcelLifecycleService.update(db, parcel_id, parcel_data)


@router.patch("/{parcel_id}/status", response_model=ParcelResponse)
async def update_parcel_status(
    parcel_id: str = Path(..., description="Parcel ID"),
    status_data: ParcelStatusUpdate = ...,
    current_user: dict = Depends(require_role([UserRole.DELIVERY_PERSON])),
    db: AsyncSession = Depends(get_db)
):
    """Status change by the delivery person the parcel is assigned to."""
    delivery_person_id = require_linked_entity(current_user, "delivery_person_id")
    return await ParcelLifecycleService.update_status_for_assignee(
        db, parcel_id, status_data.status, delivery_person_id
    )


@router.delete("/{parcel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_parcel(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Delete a parcel with its product lines and history (irreversible)."""
    await ParcelLifecycleService.delete(db, parcel_id)


@router.get("/{parcel_id}/history", response_model=List[DeliveryHistoryResponse])
async def get_parcel_history(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(any_role),
    db: AsyncSession = Depends(get_db)
):
    """Status timeline of a parcel, oldest first."""
    _ensure_can_view(await ParcelLifecycleService.get(db, parcel_id), current_user)
    return await ParcelLifecycleService.history(db, parcel_id)


@router.get("/{parcel_id}/products", response_model=List[ParcelProductResponse])
async def get_parcel_products(
    parcel_id: str = Path(..., description="Parcel ID"),
    current_user: dict = Depends(any_role),
    db: AsyncSession = Depends(get_db)
):
    _ensure_can_view(await ParcelLifecycleService.get(db, parcel_id), current_user)
    return await ParcelLifecycleService.items(db, parcel_id)
