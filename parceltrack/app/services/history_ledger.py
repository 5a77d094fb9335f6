"""
History Ledger service.

Append-only log of parcel status changes. The lifecycle service is the only
regular writer; corrective entries and deletions are administrative actions.
"""

import logging
from datetime import datetime, date, time, timedelta
from typing import Optional, List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.core.exceptions import ResourceNotFoundError, ConflictError
from parceltrack.app.models.delivery_history import DeliveryHistory
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_enums import ParcelStatus
from parceltrack.app.schemas.delivery_history import DeliveryHistoryCreate
from parceltrack.app.services.directory import EntityDirectory, EntityKind
from parceltrack.app.services.validation import validate_history_create, raise_if_invalid

logger = logging.getLogger(__name__)

_NEWEST_FIRST = (DeliveryHistory.changed_at.desc(), DeliveryHistory.sequence_number.desc())
_OLDEST_FIRST = (DeliveryHistory.changed_at.asc(), DeliveryHistory.sequence_number.asc())


async def _require_parcel(db: AsyncSession, parcel_id: str) -> Parcel:
    parcel = await db.get(Parcel, parcel_id)
    if parcel is None:
        raise ResourceNotFoundError("Parcel", parcel_id)
    return parcel


async def _latest_or_none(db: AsyncSession, parcel_id: str) -> Optional[DeliveryHistory]:
    result = await db.execute(
        select(DeliveryHistory)
        .where(DeliveryHistory.parcel_id == parcel_id)
        .order_by(*_NEWEST_FIRST)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def append(
    db: AsyncSession,
    parcel_id: str,
    status: ParcelStatus,
    comment: Optional[str] = None
) -> DeliveryHistory:
    """
    Append a status entry for a parcel.

    The entry is flushed but not committed: the caller owns the transaction,
    so the parcel write and its history entry land together or not at all.

    Args:
        db: Database session
        parcel_id: Parcel the entry belongs to (must already be flushed)
        status: Status recorded by this entry
        comment: Optional free text

    Returns:
        The new DeliveryHistory entry
    """
    previous = await _latest_or_none(db, parcel_id)

    changed_at = datetime.now()
    sequence_number = 1
    if previous is not None:
        # Timestamps never go backwards within a parcel's timeline
        changed_at = max(changed_at, previous.changed_at)
        sequence_number = previous.sequence_number + 1

    entry = DeliveryHistory(
        parcel_id=parcel_id,
        status=status,
        comment=comment,
        changed_at=changed_at,
        sequence_number=sequence_number,
    )
    db.add(entry)
    await db.flush()

    logger.info("History entry #%s appended for parcel %s: %s", sequence_number, parcel_id, status.value)
    return entry


async def timeline(db: AsyncSession, parcel_id: str) -> List[DeliveryHistory]:
    """All entries of a parcel, oldest first."""
    await _require_parcel(db, parcel_id)

    result = await db.execute(
        select(DeliveryHistory)
        .where(DeliveryHistory.parcel_id == parcel_id)
        .order_by(*_OLDEST_FIRST)
    )
    return list(result.scalars().all())


async def latest(db: AsyncSession, parcel_id: str) -> DeliveryHistory:
    """Most recent entry of a parcel."""
    await _require_parcel(db, parcel_id)

    entry = await _latest_or_none(db, parcel_id)
    if entry is None:
        raise ResourceNotFoundError("DeliveryHistory", parcel_id, field="parcel_id")
    return entry


async def count_today(db: AsyncSession) -> int:
    """Count DELIVERED entries recorded during the current server-local day."""
    start_of_day = datetime.combine(date.today(), time.min)
    end_of_day = start_of_day + timedelta(days=1)

    result = await db.execute(
        select(func.count(DeliveryHistory.id)).where(
            DeliveryHistory.status == ParcelStatus.DELIVERED,
            DeliveryHistory.changed_at >= start_of_day,
            DeliveryHistory.changed_at < end_of_day,
        )
    )
    return result.scalar() or 0


async def with_comments(db: AsyncSession) -> List[DeliveryHistory]:
    """Entries carrying a non-blank comment, newest first."""
    result = await db.execute(
        select(DeliveryHistory)
        .where(
            DeliveryHistory.comment.is_not(None),
            func.trim(DeliveryHistory.comment) != "",
        )
        .order_by(*_NEWEST_FIRST)
    )
    return list(result.scalars().all())


async def count_by_parcel(db: AsyncSession, parcel_id: str) -> int:
    await _require_parcel(db, parcel_id)

    result = await db.execute(
        select(func.count(DeliveryHistory.id)).where(DeliveryHistory.parcel_id == parcel_id)
    )
    return result.scalar() or 0


async def for_delivery_person(db: AsyncSession, delivery_person_id: str) -> List[DeliveryHistory]:
    """
    Timelines of every parcel currently assigned to a delivery person.

    Grouped by parcel (oldest parcel first), each timeline oldest first.
    """
    await EntityDirectory(db).require(EntityKind.DELIVERY_PERSON, delivery_person_id)

    result = await db.execute(
        select(DeliveryHistory)
        .join(Parcel, Parcel.id == DeliveryHistory.parcel_id)
        .where(Parcel.delivery_person_id == delivery_person_id)
        .order_by(Parcel.created_at.asc(), Parcel.id.asc(), *_OLDEST_FIRST)
    )
    entries = list(result.scalars().all())
    logger.debug("Found %d history entries for delivery person %s", len(entries), delivery_person_id)
    return entries


async def get_entry(db: AsyncSession, entry_id: str) -> DeliveryHistory:
    entry = await db.get(DeliveryHistory, entry_id)
    if entry is None:
        raise ResourceNotFoundError("DeliveryHistory", entry_id)
    return entry


async def list_entries(db: AsyncSession) -> List[DeliveryHistory]:
    result = await db.execute(select(DeliveryHistory).order_by(*_NEWEST_FIRST))
    return list(result.scalars().all())


async def create_entry(db: AsyncSession, payload: DeliveryHistoryCreate) -> DeliveryHistory:
    """
    Record a corrective entry.

    The new entry becomes the parcel's latest, so the parcel's cached status
    follows it.
    """
    raise_if_invalid(validate_history_create(payload))

    try:
        parcel = await _require_parcel(db, payload.parcel_id)
        entry = await append(db, parcel.id, payload.status, payload.comment)
        parcel.status = payload.status
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(
            "The parcel history was changed concurrently, retry the correction",
            details={"parcel_id": payload.parcel_id}
        )
    except Exception:
        await db.rollback()
        raise

    logger.warning(
        "Corrective history entry %s recorded for parcel %s (%s)",
        entry.id, parcel.id, payload.status.value
    )
    return entry


async def delete_entry(db: AsyncSession, entry_id: str) -> None:
    """
    Delete a history entry.

    This rewrites the audit trail; callers restrict it to managers. When
    entries remain, the parcel's cached status is re-aligned with the new
    latest entry.
    """
    logger.warning("DELETING delivery history entry %s - this affects the audit trail", entry_id)

    try:
        entry = await get_entry(db, entry_id)
        parcel_id = entry.parcel_id
        await db.delete(entry)
        await db.flush()

        remaining = await _latest_or_none(db, parcel_id)
        if remaining is not None:
            parcel = await db.get(Parcel, parcel_id)
            parcel.status = remaining.status
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.warning("Delivery history entry %s deleted (parcel %s)", entry_id, parcel_id)
