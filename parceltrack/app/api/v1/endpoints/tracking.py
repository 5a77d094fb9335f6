"""
Public Tracking Endpoint.

No authentication: the caller proves the right to see a parcel by knowing
both its id and the recipient's email address.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.db.session import get_db
from parceltrack.app.schemas.parcel import TrackingRequest, TrackingResponse
from parceltrack.app.services.parcel_lifecycle import ParcelLifecycleService

router = APIRouter(prefix="/public/tracking", tags=["Public - Tracking"])


@router.post("", response_model=TrackingResponse)
async def track_parcel(
    request: TrackingRequest,
    db: AsyncSession = Depends(get_db)
):
    """Return status and timeline when the email matches the recipient's."""
    return await ParcelLifecycleService.track(db, request.parcel_id, request.email)
