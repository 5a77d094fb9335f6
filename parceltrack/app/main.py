"""
FastAPI Application Entry Point.

This is the main application file for the Parcel Tracking Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from parceltrack.app.core.config import settings
from parceltrack.app.api.v1.router import router as api_v1_router
from parceltrack.app.db.session import engine, Base
from parceltrack.app.core.observability import ObservabilityMiddleware, configure_logging
from parceltrack.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from parceltrack.app.models.zone import Zone
from parceltrack.app.models.delivery_person import DeliveryPerson
from parceltrack.app.models.sender_client import SenderClient
from parceltrack.app.models.recipient import Recipient
from parceltrack.app.models.product import Product
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_product import ParcelProduct
from parceltrack.app.models.delivery_history import DeliveryHistory

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup and disposes of the engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Parcel lifecycle, delivery history, search and statistics API",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to Parcel Tracking Backend API",
        "docs": "/docs",
        "health": "/health",
    }
