"""
Display views for parcels.

Resolves the id references of a batch of parcels through the entity directory
in one query per entity kind, instead of walking relationships row by row.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_product import ParcelProduct
from parceltrack.app.schemas.parcel import ParcelResponse, ParcelProductResponse
from parceltrack.app.services.directory import EntityDirectory, EntityKind, display_name


async def _item_totals(db: AsyncSession, parcel_ids: Sequence[str]) -> Dict[str, Tuple[int, Decimal]]:
    """Line item count and total value per parcel, summed as Decimal."""
    totals: Dict[str, Tuple[int, Decimal]] = defaultdict(lambda: (0, Decimal("0.00")))
    if not parcel_ids:
        return totals

    result = await db.execute(
        select(ParcelProduct.parcel_id, ParcelProduct.quantity, ParcelProduct.price)
        .where(ParcelProduct.parcel_id.in_(parcel_ids))
    )
    for parcel_id, quantity, price in result.all():
        count, value = totals[parcel_id]
        totals[parcel_id] = (count + 1, value + Decimal(price) * quantity)
    return totals


async def build_parcel_views(db: AsyncSession, parcels: Sequence[Parcel]) -> List[ParcelResponse]:
    """Build display views for parcels, preserving their order."""
    if not parcels:
        return []

    directory = EntityDirectory(db)
    senders = await directory.get_many(EntityKind.SENDER_CLIENT, (p.sender_client_id for p in parcels))
    recipients = await directory.get_many(EntityKind.RECIPIENT, (p.recipient_id for p in parcels))
    couriers = await directory.get_many(EntityKind.DELIVERY_PERSON, (p.delivery_person_id for p in parcels))
    zones = await directory.get_many(EntityKind.ZONE, (p.zone_id for p in parcels))
    totals = await _item_totals(db, [p.id for p in parcels])

    views = []
    for parcel in parcels:
        sender = senders.get(parcel.sender_client_id)
        recipient = recipients.get(parcel.recipient_id)
        courier = couriers.get(parcel.delivery_person_id)
        zone = zones.get(parcel.zone_id)
        product_count, total_value = totals[parcel.id]
        weight = Decimal(parcel.weight)

        views.append(ParcelResponse(
            id=parcel.id,
            description=parcel.description,
            weight=weight,
            formatted_weight=f"{weight:.2f} kg",
            status=parcel.status,
            status_display=parcel.status.display_name,
            priority=parcel.priority,
            priority_display=parcel.priority.display_name,
            destination_city=parcel.destination_city,
            created_at=parcel.created_at,
            sender_client_id=parcel.sender_client_id,
            sender_client_name=display_name(sender) if sender else None,
            recipient_id=parcel.recipient_id,
            recipient_name=display_name(recipient) if recipient else None,
            recipient_phone=recipient.phone if recipient else None,
            recipient_email=recipient.email if recipient else None,
            recipient_address=recipient.address if recipient else None,
            delivery_person_id=parcel.delivery_person_id,
            delivery_person_name=display_name(courier) if courier else None,
            zone_id=parcel.zone_id,
            zone_name=zone.name if zone else None,
            total_value=total_value,
            product_count=product_count,
            is_delivered=parcel.status.is_completed,
            is_in_progress=parcel.status.is_in_progress,
            is_high_priority=parcel.priority.is_high_priority,
            is_assigned=parcel.delivery_person_id is not None,
        ))
    return views


async def build_parcel_view(db: AsyncSession, parcel: Parcel) -> ParcelResponse:
    return (await build_parcel_views(db, [parcel]))[0]


async def build_item_views(db: AsyncSession, items: Sequence[ParcelProduct]) -> List[ParcelProductResponse]:
    products = await EntityDirectory(db).get_many(EntityKind.PRODUCT, (i.product_id for i in items))
    return [
        ParcelProductResponse(
            id=item.id,
            parcel_id=item.parcel_id,
            product_id=item.product_id,
            product_name=products[item.product_id].name if item.product_id in products else None,
            quantity=item.quantity,
            price=Decimal(item.price),
            line_total=Decimal(item.price) * item.quantity,
        )
        for item in items
    ]
