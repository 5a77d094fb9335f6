"""
Delivery History Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from parceltrack.app.models.parcel_enums import ParcelStatus


class DeliveryHistoryCreate(BaseModel):
    """Corrective history entry. It becomes the parcel's latest status."""
    parcel_id: Optional[str] = None
    status: Optional[ParcelStatus] = None
    comment: Optional[str] = None


class DeliveryHistoryResponse(BaseModel):
    """Schema for history entry response."""
    id: str
    parcel_id: str
    status: ParcelStatus
    sequence_number: int
    changed_at: datetime
    comment: Optional[str]

    class Config:
        from_attributes = True


class CountResponse(BaseModel):
    count: int
