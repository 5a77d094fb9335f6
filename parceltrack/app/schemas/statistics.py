"""
Statistics Schemas.

Weights are exact decimals; rates and per-person averages are floats rounded
to two places.
"""

from decimal import Decimal
from pydantic import BaseModel
from typing import Dict, Optional


class GlobalStatistics(BaseModel):
    """System-wide parcel statistics."""
    total_parcels: int
    total_weight: Decimal
    average_weight: Decimal
    parcels_by_status: Dict[str, int]
    parcels_by_priority: Dict[str, int]
    unassigned_parcels: int
    high_priority_pending: int
    average_parcels_per_delivery_person: float

    total_zones: int
    total_delivery_persons: int
    total_sender_clients: int
    total_recipients: int
    total_products: int


class DeliveryPersonStatistics(BaseModel):
    """Workload of a single delivery person."""
    delivery_person_id: str
    delivery_person_name: str
    zone_name: str
    total_parcels: int
    total_weight: Decimal
    average_weight: Decimal
    parcels_by_status: Dict[str, int]
    delivery_rate: float


class ZoneStatistics(BaseModel):
    """Parcel volume of a single zone."""
    zone_id: str
    zone_name: str
    postal_code: Optional[str]
    total_parcels: int
    total_weight: Decimal
    average_weight: Decimal
    parcels_by_status: Dict[str, int]
    parcels_by_priority: Dict[str, int]
    delivery_person_count: int
    average_parcels_per_delivery_person: float
