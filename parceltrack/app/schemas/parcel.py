"""
Parcel Pydantic schemas.

Request models only parse types; field constraints are checked explicitly by
``parceltrack.app.services.validation`` so that every violation is reported
together.
"""

from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from parceltrack.app.models.parcel_enums import ParcelStatus, ParcelPriority
from parceltrack.app.schemas.delivery_history import DeliveryHistoryResponse


class ParcelProductItem(BaseModel):
    """A line item supplied when creating a parcel."""
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[Decimal] = Field(None, description="Unit price at time of adding")


class ParcelCreate(BaseModel):
    """Schema for creating a new parcel."""
    description: Optional[str] = None
    weight: Optional[Decimal] = Field(None, description="Weight in kilograms (0.01 - 999.99)")
    priority: Optional[ParcelPriority] = None
    destination_city: Optional[str] = None
    sender_client_id: Optional[str] = Field(None, description="Filled from the token for CLIENT callers")
    recipient_id: Optional[str] = None
    products: List[ParcelProductItem] = Field(default_factory=list)


class ParcelUpdate(BaseModel):
    """
    Schema for partially updating a parcel.

    Only fields present in the request are applied. An explicit ``null`` for
    ``delivery_person_id`` or ``zone_id`` clears the assignment.
    """
    description: Optional[str] = None
    weight: Optional[Decimal] = None
    priority: Optional[ParcelPriority] = None
    destination_city: Optional[str] = None
    status: Optional[ParcelStatus] = None
    delivery_person_id: Optional[str] = None
    zone_id: Optional[str] = None


class ParcelStatusUpdate(BaseModel):
    """Status change requested by the assigned delivery person."""
    status: ParcelStatus


class ParcelSearchCriteria(BaseModel):
    """Optional search filters; absent filters impose no constraint."""
    status: Optional[ParcelStatus] = None
    priority: Optional[ParcelPriority] = None
    zone_id: Optional[str] = None
    destination_city: Optional[str] = None
    delivery_person_id: Optional[str] = None
    sender_client_id: Optional[str] = None
    recipient_id: Optional[str] = None
    unassigned_only: Optional[bool] = None


class ParcelResponse(BaseModel):
    """Display view of a parcel with its references resolved."""
    id: str
    description: Optional[str]
    weight: Decimal
    formatted_weight: str
    status: ParcelStatus
    status_display: str
    priority: ParcelPriority
    priority_display: str
    destination_city: str
    created_at: datetime

    sender_client_id: str
    sender_client_name: Optional[str] = None
    recipient_id: str
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None
    recipient_email: Optional[str] = None
    recipient_address: Optional[str] = None
    delivery_person_id: Optional[str] = None
    delivery_person_name: Optional[str] = None
    zone_id: Optional[str] = None
    zone_name: Optional[str] = None

    total_value: Decimal
    product_count: int

    is_delivered: bool
    is_in_progress: bool
    is_high_priority: bool
    is_assigned: bool


class ParcelListResponse(BaseModel):
    """Schema for paginated parcel list."""
    parcels: List[ParcelResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ParcelProductResponse(BaseModel):
    """Line item with the product name resolved."""
    id: str
    parcel_id: str
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    price: Decimal
    line_total: Decimal


class TrackingRequest(BaseModel):
    """Public tracking request: parcel id plus the recipient's email."""
    parcel_id: str = Field(..., min_length=1)
    email: EmailStr


class TrackingResponse(BaseModel):
    """Public tracking view. No contact details are released."""
    parcel_id: str
    description: Optional[str]
    status: ParcelStatus
    status_display: str
    priority: ParcelPriority
    priority_display: str
    weight: Decimal
    destination_city: str
    recipient_name: Optional[str]
    sender_name: Optional[str]
    created_at: datetime
    history: List[DeliveryHistoryResponse]
