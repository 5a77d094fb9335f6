"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from parceltrack.app.api.v1.endpoints import (
    parcels, parcel_products, delivery_history, statistics, tracking
)

router = APIRouter()

router.include_router(parcels.router)
router.include_router(parcel_products.router)
router.include_router(delivery_history.router)
router.include_router(statistics.router)

# Public, unauthenticated
router.include_router(tracking.router)
