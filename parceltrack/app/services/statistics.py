"""
Statistics service.

Read-only aggregation over the parcel set. Sums are exact Decimals; averages
are computed from the unrounded sums and rounded once, HALF_UP, to two places.
"""

import logging
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.delivery_person import DeliveryPerson
from parceltrack.app.models.zone import Zone
from parceltrack.app.models.parcel_enums import ParcelStatus, ParcelPriority
from parceltrack.app.schemas.statistics import (
    GlobalStatistics, DeliveryPersonStatistics, ZoneStatistics
)
from parceltrack.app.services.directory import EntityDirectory, EntityKind, display_name

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
UNASSIGNED_ZONE = "Unassigned"


class ParcelFacts(NamedTuple):
    """The parcel columns the aggregations need."""
    weight: Decimal
    status: ParcelStatus
    priority: ParcelPriority
    delivery_person_id: Optional[str]
    zone_id: Optional[str]


class Summary(NamedTuple):
    total_parcels: int
    total_weight: Decimal
    average_weight: Decimal
    by_status: Dict[str, int]
    by_priority: Dict[str, int]


def average(total: Decimal, count: int) -> Decimal:
    """``total / count`` rounded HALF_UP to 0.01; zero when count is zero."""
    if count == 0:
        return Decimal("0.00")
    return (total / count).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def ratio(numerator: int, denominator: int, scale: int = 1) -> float:
    """``numerator / denominator * scale`` rounded HALF_UP to two places; 0.0 on a zero divisor."""
    if denominator == 0:
        return 0.0
    value = Decimal(numerator) * scale / Decimal(denominator)
    return float(value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def summarize(parcels: Iterable[ParcelFacts]) -> Summary:
    by_status = {status.value: 0 for status in ParcelStatus}
    by_priority = {priority.value: 0 for priority in ParcelPriority}
    total_weight = Decimal("0")
    count = 0

    for parcel in parcels:
        count += 1
        total_weight += Decimal(parcel.weight)
        by_status[parcel.status.value] += 1
        by_priority[parcel.priority.value] += 1

    return Summary(count, total_weight, average(total_weight, count), by_status, by_priority)


async def _load_facts(db: AsyncSession, *conditions) -> List[ParcelFacts]:
    result = await db.execute(
        select(
            Parcel.weight, Parcel.status, Parcel.priority,
            Parcel.delivery_person_id, Parcel.zone_id
        ).where(*conditions)
    )
    return [ParcelFacts(*row) for row in result.all()]


def _delivery_person_stats(
    person: DeliveryPerson,
    zone_name: str,
    parcels: List[ParcelFacts]
) -> DeliveryPersonStatistics:
    summary = summarize(parcels)
    delivered = summary.by_status[ParcelStatus.DELIVERED.value]
    return DeliveryPersonStatistics(
        delivery_person_id=person.id,
        delivery_person_name=display_name(person),
        zone_name=zone_name,
        total_parcels=summary.total_parcels,
        total_weight=summary.total_weight,
        average_weight=summary.average_weight,
        parcels_by_status=summary.by_status,
        delivery_rate=ratio(delivered, summary.total_parcels, scale=100),
    )


def _zone_stats(zone: Zone, courier_count: int, parcels: List[ParcelFacts]) -> ZoneStatistics:
    summary = summarize(parcels)
    return ZoneStatistics(
        zone_id=zone.id,
        zone_name=zone.name,
        postal_code=zone.postal_code,
        total_parcels=summary.total_parcels,
        total_weight=summary.total_weight,
        average_weight=summary.average_weight,
        parcels_by_status=summary.by_status,
        parcels_by_priority=summary.by_priority,
        delivery_person_count=courier_count,
        average_parcels_per_delivery_person=ratio(summary.total_parcels, courier_count),
    )


class StatisticsService:

    @staticmethod
    async def global_stats(db: AsyncSession) -> GlobalStatistics:
        """System-wide totals, distributions and directory counts."""
        logger.info("Calculating global statistics")
        parcels = await _load_facts(db)
        summary = summarize(parcels)

        directory = EntityDirectory(db)
        total_delivery_persons = await directory.count_all(EntityKind.DELIVERY_PERSON)

        return GlobalStatistics(
            total_parcels=summary.total_parcels,
            total_weight=summary.total_weight,
            average_weight=summary.average_weight,
            parcels_by_status=summary.by_status,
            parcels_by_priority=summary.by_priority,
            unassigned_parcels=sum(1 for p in parcels if p.delivery_person_id is None),
            high_priority_pending=sum(
                1 for p in parcels
                if p.priority.is_high_priority and p.status != ParcelStatus.DELIVERED
            ),
            average_parcels_per_delivery_person=ratio(summary.total_parcels, total_delivery_persons),
            total_zones=await directory.count_all(EntityKind.ZONE),
            total_delivery_persons=total_delivery_persons,
            total_sender_clients=await directory.count_all(EntityKind.SENDER_CLIENT),
            total_recipients=await directory.count_all(EntityKind.RECIPIENT),
            total_products=await directory.count_all(EntityKind.PRODUCT),
        )

    @staticmethod
    async def delivery_person_stats(db: AsyncSession, delivery_person_id: str) -> DeliveryPersonStatistics:
        logger.info("Calculating statistics for delivery person %s", delivery_person_id)
        directory = EntityDirectory(db)
        person = await directory.get(EntityKind.DELIVERY_PERSON, delivery_person_id)

        zone_name = UNASSIGNED_ZONE
        if person.assigned_zone_id is not None:
            zones = await directory.get_many(EntityKind.ZONE, [person.assigned_zone_id])
            if person.assigned_zone_id in zones:
                zone_name = zones[person.assigned_zone_id].name

        parcels = await _load_facts(db, Parcel.delivery_person_id == delivery_person_id)
        return _delivery_person_stats(person, zone_name, parcels)

    @staticmethod
    async def zone_stats(db: AsyncSession, zone_id: str) -> ZoneStatistics:
        logger.info("Calculating statistics for zone %s", zone_id)
        directory = EntityDirectory(db)
        zone = await directory.get(EntityKind.ZONE, zone_id)
        courier_count = await directory.count_delivery_persons_in_zone(zone_id)
        parcels = await _load_facts(db, Parcel.zone_id == zone_id)
        return _zone_stats(zone, courier_count, parcels)

    @staticmethod
    async def all_delivery_person_stats(db: AsyncSession) -> List[DeliveryPersonStatistics]:
        """Per-person statistics for every delivery person, from one read of the parcels."""
        logger.info("Calculating statistics for all delivery persons")
        directory = EntityDirectory(db)
        persons = await directory.list_all(EntityKind.DELIVERY_PERSON)
        zones = await directory.get_many(EntityKind.ZONE, (p.assigned_zone_id for p in persons))

        by_person: Dict[str, List[ParcelFacts]] = defaultdict(list)
        for parcel in await _load_facts(db, Parcel.delivery_person_id.is_not(None)):
            by_person[parcel.delivery_person_id].append(parcel)

        return [
            _delivery_person_stats(
                person,
                zones[person.assigned_zone_id].name if person.assigned_zone_id in zones else UNASSIGNED_ZONE,
                by_person[person.id],
            )
            for person in persons
        ]

    @staticmethod
    async def all_zone_stats(db: AsyncSession) -> List[ZoneStatistics]:
        logger.info("Calculating statistics for all zones")
        directory = EntityDirectory(db)
        zones = await directory.list_all(EntityKind.ZONE)

        couriers: Dict[str, int] = defaultdict(int)
        for person in await directory.list_all(EntityKind.DELIVERY_PERSON):
            if person.assigned_zone_id is not None:
                couriers[person.assigned_zone_id] += 1

        by_zone: Dict[str, List[ParcelFacts]] = defaultdict(list)
        for parcel in await _load_facts(db, Parcel.zone_id.is_not(None)):
            by_zone[parcel.zone_id].append(parcel)

        return [_zone_stats(zone, couriers[zone.id], by_zone[zone.id]) for zone in zones]
