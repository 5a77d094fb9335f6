"""
Entity Directory.

Read-only lookups over the directory entities (zones, delivery persons, sender
clients, recipients, products). Their CRUD is owned by the back office; the
parcel core only needs existence checks, names and counts.
"""

import enum
from typing import Any, Dict, Iterable, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from parceltrack.app.core.exceptions import ResourceNotFoundError
from parceltrack.app.models.zone import Zone
from parceltrack.app.models.delivery_person import DeliveryPerson
from parceltrack.app.models.sender_client import SenderClient
from parceltrack.app.models.recipient import Recipient
from parceltrack.app.models.product import Product


class EntityKind(str, enum.Enum):
    ZONE = "Zone"
    DELIVERY_PERSON = "DeliveryPerson"
    SENDER_CLIENT = "SenderClient"
    RECIPIENT = "Recipient"
    PRODUCT = "Product"


_MODELS = {
    EntityKind.ZONE: Zone,
    EntityKind.DELIVERY_PERSON: DeliveryPerson,
    EntityKind.SENDER_CLIENT: SenderClient,
    EntityKind.RECIPIENT: Recipient,
    EntityKind.PRODUCT: Product,
}


def display_name(entity: Any) -> str:
    """Full name for people, ``name`` for everything else."""
    full_name = getattr(entity, "full_name", None)
    if full_name is not None:
        return full_name
    return entity.name


class EntityDirectory:
    """
    Directory lookups bound to the caller's session.

    Usage:
        directory = EntityDirectory(db)
        sender = await directory.get(EntityKind.SENDER_CLIENT, sender_id)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, kind: EntityKind, entity_id: str) -> bool:
        model = _MODELS[kind]
        result = await self.db.execute(select(model.id).where(model.id == entity_id))
        return result.scalar_one_or_none() is not None

    async def require(self, kind: EntityKind, entity_id: str) -> None:
        """Raise ResourceNotFoundError unless the entity exists."""
        if not await self.exists(kind, entity_id):
            raise ResourceNotFoundError(kind.value, entity_id)

    async def get(self, kind: EntityKind, entity_id: str) -> Any:
        model = _MODELS[kind]
        entity = await self.db.get(model, entity_id)
        if entity is None:
            raise ResourceNotFoundError(kind.value, entity_id)
        return entity

    async def get_many(self, kind: EntityKind, entity_ids: Iterable[str]) -> Dict[str, Any]:
        """Batch lookup keyed by id. Unknown ids are simply absent."""
        ids = {entity_id for entity_id in entity_ids if entity_id is not None}
        if not ids:
            return {}
        model = _MODELS[kind]
        result = await self.db.execute(select(model).where(model.id.in_(ids)))
        return {entity.id: entity for entity in result.scalars().all()}

    async def list_all(self, kind: EntityKind) -> List[Any]:
        model = _MODELS[kind]
        result = await self.db.execute(select(model).order_by(model.id))
        return list(result.scalars().all())

    async def count_all(self, kind: EntityKind) -> int:
        model = _MODELS[kind]
        return (await self.db.execute(select(func.count(model.id)))).scalar() or 0

    async def count_delivery_persons_in_zone(self, zone_id: str) -> int:
        result = await self.db.execute(
            select(func.count(DeliveryPerson.id)).where(DeliveryPerson.assigned_zone_id == zone_id)
        )
        return result.scalar() or 0
