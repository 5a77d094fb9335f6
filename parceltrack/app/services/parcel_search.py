"""
Parcel Search service.

Multi-criteria search is built from small filter functions, each turning one
optional criterion into a SQL condition (or ``None`` when the criterion is
absent). Active conditions are ANDed onto a match-all predicate, so an empty
criteria object returns every parcel.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import select, func, and_, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from parceltrack.app.core.config import settings
from parceltrack.app.core.exceptions import BadRequestError
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.zone import Zone
from parceltrack.app.models.parcel_enums import (
    ParcelStatus, ParcelPriority, HIGH_PRIORITIES, IN_PROGRESS_STATUSES
)
from parceltrack.app.schemas.parcel import ParcelSearchCriteria, ParcelResponse, ParcelListResponse
from parceltrack.app.services.directory import EntityDirectory, EntityKind
from parceltrack.app.services.parcel_views import build_parcel_views

logger = logging.getLogger(__name__)

UNASSIGNED_ZONE = "Unassigned"
DEFAULT_SORT = "created_at,desc"

SORTABLE_FIELDS = {
    "created_at": Parcel.created_at,
    "weight": Parcel.weight,
    "priority": Parcel.priority,
    "status": Parcel.status,
    "destination_city": Parcel.destination_city,
}

Condition = Optional[ColumnElement]


def _status_filter(criteria: ParcelSearchCriteria) -> Condition:
    if criteria.status is None:
        return None
    return Parcel.status == criteria.status


def _priority_filter(criteria: ParcelSearchCriteria) -> Condition:
    if criteria.priority is None:
        return None
    return Parcel.priority == criteria.priority


def _zone_filter(criteria: ParcelSearchCriteria) -> Condition:
    if criteria.zone_id is None:
        return None
    return Parcel.zone_id == criteria.zone_id


def _city_filter(criteria: ParcelSearchCriteria) -> Condition:
    city = criteria.destination_city
    if city is None or not city.strip():
        return None
    return Parcel.destination_city.icontains(city.strip(), autoescape=True)


def _delivery_person_filter(criteria: ParcelSearchCriteria) -> Condition:
    if criteria.delivery_person_id is None:
        return None
    return Parcel.delivery_person_id == criteria.delivery_person_id


def _sender_filter(criteria: ParcelSearchCriteria) -> Condition:
    if criteria.sender_client_id is None:
        return None
    return Parcel.sender_client_id == criteria.sender_client_id


def _recipient_filter(criteria: ParcelSearchCriteria) -> Condition:
    if criteria.recipient_id is None:
        return None
    return Parcel.recipient_id == criteria.recipient_id


def _unassigned_filter(criteria: ParcelSearchCriteria) -> Condition:
    if not criteria.unassigned_only:
        return None
    return Parcel.delivery_person_id.is_(None)


FILTERS: Tuple[Callable[[ParcelSearchCriteria], Condition], ...] = (
    _status_filter,
    _priority_filter,
    _zone_filter,
    _city_filter,
    _delivery_person_filter,
    _sender_filter,
    _recipient_filter,
    _unassigned_filter,
)


def build_predicate(criteria: ParcelSearchCriteria) -> ColumnElement:
    """AND of every active filter; match-all when none is active."""
    conditions = [condition for condition in (f(criteria) for f in FILTERS) if condition is not None]
    return and_(true(), *conditions)


def parse_sort(sort: Optional[str]) -> Tuple[ColumnElement, ColumnElement]:
    """
    Turn ``"field,direction"`` into ORDER BY clauses.

    The parcel id is always appended as a tie-breaker so that pages are
    stable when the sort key repeats.
    """
    field, _, direction = (sort or DEFAULT_SORT).partition(",")
    field = field.strip()
    direction = (direction.strip() or "asc").lower()

    column = SORTABLE_FIELDS.get(field)
    if column is None:
        raise BadRequestError(
            f"Unsupported sort field '{field}'",
            details={"allowed_fields": sorted(SORTABLE_FIELDS)}
        )
    if direction not in ("asc", "desc"):
        raise BadRequestError(
            f"Unsupported sort direction '{direction}'",
            details={"allowed_directions": ["asc", "desc"]}
        )

    if direction == "asc":
        return column.asc(), Parcel.id.asc()
    return column.desc(), Parcel.id.desc()


def _check_paging(page: int, size: int) -> None:
    if page < 1:
        raise BadRequestError("Page must be at least 1", details={"page": page})
    if size < 1 or size > settings.max_page_size:
        raise BadRequestError(
            f"Page size must be between 1 and {settings.max_page_size}",
            details={"size": size}
        )


class ParcelSearchService:

    @staticmethod
    async def search(
        db: AsyncSession,
        criteria: ParcelSearchCriteria,
        page: int = 1,
        size: Optional[int] = None,
        sort: Optional[str] = None
    ) -> ParcelListResponse:
        """
        Paginated multi-criteria search.

        Args:
            db: Database session
            criteria: Optional filters, combined with AND
            page: 1-based page number
            size: Page size (defaults to ``settings.default_page_size``)
            sort: ``"field,asc|desc"``, defaults to newest first

        Raises:
            BadRequestError: invalid paging or sort
        """
        if size is None:
            size = settings.default_page_size
        _check_paging(page, size)
        order_by = parse_sort(sort)
        predicate = build_predicate(criteria)

        total = (await db.execute(select(func.count(Parcel.id)).where(predicate))).scalar() or 0

        result = await db.execute(
            select(Parcel)
            .where(predicate)
            .order_by(*order_by)
            .offset((page - 1) * size)
            .limit(size)
        )
        parcels = result.scalars().all()

        logger.debug(
            "Parcel search %s matched %d (page %d, size %d)",
            criteria.model_dump(exclude_none=True), total, page, size
        )

        return ParcelListResponse(
            parcels=await build_parcel_views(db, parcels),
            total=total,
            page=page,
            page_size=size,
            total_pages=(total + size - 1) // size,
        )

    @staticmethod
    async def _find(db: AsyncSession, *conditions: ColumnElement) -> List[ParcelResponse]:
        result = await db.execute(
            select(Parcel)
            .where(and_(true(), *conditions))
            .order_by(Parcel.created_at.desc(), Parcel.id.desc())
        )
        return await build_parcel_views(db, result.scalars().all())

    @staticmethod
    async def find_by_status(db: AsyncSession, status: ParcelStatus) -> List[ParcelResponse]:
        return await ParcelSearchService._find(db, Parcel.status == status)

    @staticmethod
    async def find_by_priority(db: AsyncSession, priority: ParcelPriority) -> List[ParcelResponse]:
        return await ParcelSearchService._find(db, Parcel.priority == priority)

    @staticmethod
    async def find_by_city(db: AsyncSession, city: str) -> List[ParcelResponse]:
        condition = _city_filter(ParcelSearchCriteria(destination_city=city))
        if condition is None:
            raise BadRequestError("City must not be blank")
        return await ParcelSearchService._find(db, condition)

    @staticmethod
    async def find_by_zone(db: AsyncSession, zone_id: str) -> List[ParcelResponse]:
        await EntityDirectory(db).require(EntityKind.ZONE, zone_id)
        return await ParcelSearchService._find(db, Parcel.zone_id == zone_id)

    @staticmethod
    async def find_by_sender(db: AsyncSession, sender_client_id: str) -> List[ParcelResponse]:
        await EntityDirectory(db).require(EntityKind.SENDER_CLIENT, sender_client_id)
        return await ParcelSearchService._find(db, Parcel.sender_client_id == sender_client_id)

    @staticmethod
    async def find_by_recipient(db: AsyncSession, recipient_id: str) -> List[ParcelResponse]:
        await EntityDirectory(db).require(EntityKind.RECIPIENT, recipient_id)
        return await ParcelSearchService._find(db, Parcel.recipient_id == recipient_id)

    @staticmethod
    async def find_by_delivery_person(db: AsyncSession, delivery_person_id: str) -> List[ParcelResponse]:
        await EntityDirectory(db).require(EntityKind.DELIVERY_PERSON, delivery_person_id)
        return await ParcelSearchService._find(db, Parcel.delivery_person_id == delivery_person_id)

    @staticmethod
    async def find_unassigned(db: AsyncSession) -> List[ParcelResponse]:
        return await ParcelSearchService._find(db, Parcel.delivery_person_id.is_(None))

    @staticmethod
    async def find_high_priority_pending(db: AsyncSession) -> List[ParcelResponse]:
        """URGENT or EXPRESS parcels not yet delivered."""
        return await ParcelSearchService._find(
            db,
            Parcel.priority.in_(HIGH_PRIORITIES),
            Parcel.status != ParcelStatus.DELIVERED,
        )

    @staticmethod
    async def find_in_progress_by_sender(db: AsyncSession, sender_client_id: str) -> List[ParcelResponse]:
        await EntityDirectory(db).require(EntityKind.SENDER_CLIENT, sender_client_id)
        return await ParcelSearchService._find(
            db,
            Parcel.sender_client_id == sender_client_id,
            Parcel.status.in_(IN_PROGRESS_STATUSES),
        )

    @staticmethod
    async def find_delivered_by_sender(db: AsyncSession, sender_client_id: str) -> List[ParcelResponse]:
        await EntityDirectory(db).require(EntityKind.SENDER_CLIENT, sender_client_id)
        return await ParcelSearchService._find(
            db,
            Parcel.sender_client_id == sender_client_id,
            Parcel.status == ParcelStatus.DELIVERED,
        )

    @staticmethod
    async def group_by_status(db: AsyncSession) -> Dict[str, int]:
        """Parcel count per status. Every status is present, zero included."""
        counts = {status.value: 0 for status in ParcelStatus}
        result = await db.execute(select(Parcel.status, func.count(Parcel.id)).group_by(Parcel.status))
        for status, count in result.all():
            counts[status.value] = count
        return counts

    @staticmethod
    async def group_by_priority(db: AsyncSession) -> Dict[str, int]:
        counts = {priority.value: 0 for priority in ParcelPriority}
        result = await db.execute(select(Parcel.priority, func.count(Parcel.id)).group_by(Parcel.priority))
        for priority, count in result.all():
            counts[priority.value] = count
        return counts

    @staticmethod
    async def group_by_zone(db: AsyncSession) -> Dict[str, int]:
        """Parcel count per zone name; parcels without a zone count as ``Unassigned``."""
        zone_name = func.coalesce(Zone.name, UNASSIGNED_ZONE).label("zone_name")
        result = await db.execute(
            select(zone_name, func.count(Parcel.id))
            .select_from(Parcel)
            .outerjoin(Zone, Zone.id == Parcel.zone_id)
            .group_by(zone_name)
        )
        return {name: count for name, count in result.all()}

    @staticmethod
    async def group_by_city(db: AsyncSession) -> Dict[str, int]:
        result = await db.execute(
            select(Parcel.destination_city, func.count(Parcel.id)).group_by(Parcel.destination_city)
        )
        return {city: count for city, count in result.all()}

    @staticmethod
    async def count_all(db: AsyncSession) -> int:
        return (await db.execute(select(func.count(Parcel.id)))).scalar() or 0
