"""
Parcel database model.

The parcel is the shipped unit tracked through the delivery pipeline.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Enum
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel_enums import ParcelStatus, ParcelPriority


def generate_id() -> str:
    return str(uuid.uuid4())


class Parcel(Base):
    """
    Parcel model.

    Sender, recipient, delivery person and zone are plain id references;
    names are resolved through the entity directory when a display view is
    requested. ``status`` mirrors the latest delivery history entry.
    """
    __tablename__ = "parcels"

    id = Column(String(36), primary_key=True, default=generate_id)

    description = Column(String(255), nullable=True)
    weight = Column(Numeric(6, 2), nullable=False)
    status = Column(Enum(ParcelStatus), default=ParcelStatus.CREATED, nullable=False, index=True)
    priority = Column(Enum(ParcelPriority), nullable=False, index=True)
    destination_city = Column(String(100), nullable=False, index=True)

    # Immutable after creation
    sender_client_id = Column(String(36), ForeignKey('sender_clients.id'), nullable=False, index=True)
    recipient_id = Column(String(36), ForeignKey('recipients.id'), nullable=False, index=True)

    # Assignment
    delivery_person_id = Column(String(36), ForeignKey('delivery_persons.id'), nullable=True, index=True)
    zone_id = Column(String(36), ForeignKey('zones.id'), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    def __repr__(self):
        return f"<Parcel(id={self.id}, status='{self.status.value}', city='{self.destination_city}')>"
