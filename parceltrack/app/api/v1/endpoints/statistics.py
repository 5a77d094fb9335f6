"""
Statistics API Endpoints.

Read-only dashboard data for managers.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from parceltrack.app.db.session import get_db
from parceltrack.app.models.enums import UserRole
from parceltrack.app.core.guards import require_role
from parceltrack.app.services.statistics import StatisticsService
from parceltrack.app.schemas.statistics import (
    GlobalStatistics, DeliveryPersonStatistics, ZoneStatistics
)

router = APIRouter(prefix="/statistics", tags=["Statistics"])


@router.get("/global", response_model=GlobalStatistics)
async def get_global_statistics(
    current_user: dict = Depends(require_role([UserRole.MANAGER])),
    db: AsyncSession = Depends(get_db)
):
    """System-wide parcel totals and distributions."""
    return await StatisticsService.global_stats(db)


@router.get("/delivery-persons", response_model=List[DeliveryPersonStatistics])
async def get_all_delivery_person_statistics(
    current_user: dict = Depends(require_role([UserRole.MANAGER])),
    db: AsyncSession = Depends(get_db)
):
    return await StatisticsService.all_delivery_person_stats(db)


@router.get("/delivery-persons/{delivery_person_id}", response_model=DeliveryPersonStatistics)
async def get_delivery_person_statistics(
    delivery_person_id: str = Path(..., description="Delivery person ID"),
    current_user: dict = Depends(require_role([UserRole.MANAGER])),
    db: AsyncSession = Depends(get_db)
):
    """Workload and delivery rate of one delivery person."""
    return await StatisticsService.delivery_person_stats(db, delivery_person_id)


@router.get("/zones", response_model=List[ZoneStatistics])
async def get_all_zone_statistics(
    current_user: dict = Depends(require_role([UserRole.MANAGER])),
    db: AsyncSession = Depends(get_db)
):
    return await StatisticsService.all_zone_stats(db)


@router.get("/zones/{zone_id}", response_model=ZoneStatistics)
async def get_zone_statistics(
    zone_id: str = Path(..., description="Zone ID"),
    current_user: dict = Depends(require_role([UserRole.MANAGER])),
    db: AsyncSession = Depends(get_db)
):
    return await StatisticsService.zone_stats(db, zone_id)
