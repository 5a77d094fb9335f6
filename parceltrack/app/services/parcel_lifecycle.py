"""
Parcel Lifecycle service.

The only writer of parcel state and the only regular trigger of history
ledger appends. Every mutating operation runs as one transaction: the parcel
row, its line items and its history entries are committed together or rolled
back together, which keeps ``parcel.status`` equal to the latest ledger entry.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.core.exceptions import ResourceNotFoundError, OwnershipMismatchError, ConflictError
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_product import ParcelProduct
from parceltrack.app.models.delivery_history import DeliveryHistory
from parceltrack.app.models.parcel_enums import ParcelStatus
from parceltrack.app.schemas.parcel import (
    ParcelCreate, ParcelUpdate, ParcelResponse, ParcelListResponse, ParcelProductResponse,
    ParcelSearchCriteria, TrackingResponse
)
from parceltrack.app.schemas.delivery_history import DeliveryHistoryResponse
from parceltrack.app.services import history_ledger
from parceltrack.app.services.directory import EntityDirectory, EntityKind, display_name
from parceltrack.app.services.parcel_search import ParcelSearchService
from parceltrack.app.services.parcel_views import build_parcel_view, build_item_views
from parceltrack.app.services.validation import (
    validate_parcel_create, validate_parcel_update, raise_if_invalid
)

logger = logging.getLogger(__name__)


async def get_parcel_or_404(db: AsyncSession, parcel_id: str) -> Parcel:
    parcel = await db.get(Parcel, parcel_id)
    if parcel is None:
        raise ResourceNotFoundError("Parcel", parcel_id)
    return parcel


async def _change_status(db: AsyncSession, parcel: Parcel, new_status: ParcelStatus) -> bool:
    """
    Set a new status and record it in the ledger.

    Any status may follow any other. Returns False, and appends nothing,
    when the status is unchanged.
    """
    if new_status == parcel.status:
        return False

    old_status = parcel.status
    parcel.status = new_status
    await history_ledger.append(db, parcel.id, new_status)
    logger.info("Parcel %s status changed: %s -> %s", parcel.id, old_status.value, new_status.value)
    return True


def _history_conflict(parcel_id: str) -> ConflictError:
    logger.warning("Concurrent status change on parcel %s rejected", parcel_id)
    return ConflictError(
        "The parcel was changed concurrently, reload it and retry",
        details={"parcel_id": parcel_id}
    )


class ParcelLifecycleService:

    @staticmethod
    async def create(db: AsyncSession, payload: ParcelCreate) -> ParcelResponse:
        """
        Create a parcel with its line items and its first history entry.

        Validates:
        - Field constraints (all violations reported together)
        - Sender, recipient and every product exist
        """
        raise_if_invalid(validate_parcel_create(payload))

        directory = EntityDirectory(db)
        await directory.require(EntityKind.SENDER_CLIENT, payload.sender_client_id)
        await directory.require(EntityKind.RECIPIENT, payload.recipient_id)
        for item in payload.products:
            await directory.require(EntityKind.PRODUCT, item.product_id)

        try:
            parcel = Parcel(
                description=payload.description,
                weight=payload.weight,
                priority=payload.priority,
                destination_city=payload.destination_city,
                sender_client_id=payload.sender_client_id,
                recipient_id=payload.recipient_id,
                status=ParcelStatus.CREATED,
            )
            db.add(parcel)
            await db.flush()

            for item in payload.products:
                db.add(ParcelProduct(
                    parcel_id=parcel.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=item.price,
                ))

            await history_ledger.append(db, parcel.id, ParcelStatus.CREATED)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Parcel %s created for sender %s to recipient %s with %d product line(s)",
            parcel.id, parcel.sender_client_id, parcel.recipient_id, len(payload.products)
        )
        return await build_parcel_view(db, parcel)

    @staticmethod
    async def get(db: AsyncSession, parcel_id: str) -> ParcelResponse:
        parcel = await get_parcel_or_404(db, parcel_id)
        return await build_parcel_view(db, parcel)

    @staticmethod
    async def list_page(
        db: AsyncSession,
        page: int = 1,
        size: Optional[int] = None,
        sort: Optional[str] = None
    ) -> ParcelListResponse:
        """Unfiltered paginated listing; same paging and sort rules as search."""
        return await ParcelSearchService.search(db, ParcelSearchCriteria(), page, size, sort)

    @staticmethod
    async def update(db: AsyncSession, parcel_id: str, payload: ParcelUpdate) -> ParcelResponse:
        """
        Apply a partial update.

        Only fields present in the payload are touched. A status that differs
        from the current one is accepted as-is and appended to the ledger.
        """
        raise_if_invalid(validate_parcel_update(payload))
        parcel = await get_parcel_or_404(db, parcel_id)

        changes = payload.model_dump(exclude_unset=True)
        new_status: Optional[ParcelStatus] = changes.pop("status", None)

        directory = EntityDirectory(db)
        if changes.get("delivery_person_id") is not None:
            await directory.require(EntityKind.DELIVERY_PERSON, changes["delivery_person_id"])
        if changes.get("zone_id") is not None:
            await directory.require(EntityKind.ZONE, changes["zone_id"])

        try:
            for field, value in changes.items():
                setattr(parcel, field, value)
            if new_status is not None:
                await _change_status(db, parcel, new_status)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise _history_conflict(parcel_id)
        except Exception:
            await db.rollback()
            raise

        logger.info("Parcel %s updated (fields: %s)", parcel.id, sorted(payload.model_fields_set))
        return await build_parcel_view(db, parcel)

    @staticmethod
    async def update_status_for_assignee(
        db: AsyncSession,
        parcel_id: str,
        new_status: ParcelStatus,
        acting_delivery_person_id: str
    ) -> ParcelResponse:
        """
        Status change restricted to the parcel's assigned delivery person.

        Raises:
            ResourceNotFoundError: unknown parcel
            OwnershipMismatchError: parcel not assigned to the acting person
            ConflictError: a concurrent status change took the same history position
        """
        parcel = await get_parcel_or_404(db, parcel_id)

        if parcel.delivery_person_id is None or parcel.delivery_person_id != acting_delivery_person_id:
            raise OwnershipMismatchError(
                "You can only update status for parcels assigned to you",
                details={"parcel_id": parcel_id, "delivery_person_id": acting_delivery_person_id}
            )

        try:
            await _change_status(db, parcel, new_status)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise _history_conflict(parcel_id)
        except Exception:
            await db.rollback()
            raise

        return await build_parcel_view(db, parcel)

    @staticmethod
    async def delete(db: AsyncSession, parcel_id: str) -> None:
        """Delete a parcel with its line items and its whole history."""
        parcel = await get_parcel_or_404(db, parcel_id)

        try:
            await db.execute(delete(ParcelProduct).where(ParcelProduct.parcel_id == parcel_id))
            await db.execute(delete(DeliveryHistory).where(DeliveryHistory.parcel_id == parcel_id))
            await db.delete(parcel)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Parcel %s deleted (line items and history removed)", parcel_id)

    @staticmethod
    async def history(db: AsyncSession, parcel_id: str) -> List[DeliveryHistoryResponse]:
        entries = await history_ledger.timeline(db, parcel_id)
        return [DeliveryHistoryResponse.model_validate(entry) for entry in entries]

    @staticmethod
    async def items(db: AsyncSession, parcel_id: str) -> List[ParcelProductResponse]:
        await get_parcel_or_404(db, parcel_id)
        result = await db.execute(
            select(ParcelProduct).where(ParcelProduct.parcel_id == parcel_id).order_by(ParcelProduct.id)
        )
        return await build_item_views(db, result.scalars().all())

    @staticmethod
    async def track(db: AsyncSession, parcel_id: str, email: str) -> TrackingResponse:
        """
        Public tracking by parcel id and recipient email.

        The supplied email must match the recipient's email (case-insensitive)
        before any parcel data is released.
        """
        parcel = await get_parcel_or_404(db, parcel_id)

        directory = EntityDirectory(db)
        recipient = await directory.get(EntityKind.RECIPIENT, parcel.recipient_id)
        if not recipient.email or recipient.email.strip().lower() != email.strip().lower():
            logger.warning("Public tracking refused for parcel %s: email mismatch", parcel_id)
            raise OwnershipMismatchError("Email does not match the recipient of this parcel")

        sender = await directory.get(EntityKind.SENDER_CLIENT, parcel.sender_client_id)
        entries = await history_ledger.timeline(db, parcel_id)

        return TrackingResponse(
            parcel_id=parcel.id,
            description=parcel.description,
            status=parcel.status,
            status_display=parcel.status.display_name,
            priority=parcel.priority,
            priority_display=parcel.priority.display_name,
            weight=parcel.weight,
            destination_city=parcel.destination_city,
            recipient_name=display_name(recipient),
            sender_name=display_name(sender),
            created_at=parcel.created_at,
            history=[DeliveryHistoryResponse.model_validate(entry) for entry in entries],
        )
