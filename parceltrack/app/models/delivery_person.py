"""
Delivery Person database model.
"""

from sqlalchemy import Column, String, ForeignKey
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel import generate_id


class DeliveryPerson(Base):
    """
    Courier who carries parcels. Optionally attached to one zone.
    """
    __tablename__ = "delivery_persons"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    vehicle = Column(String(50), nullable=True)

    assigned_zone_id = Column(String(36), ForeignKey('zones.id'), nullable=True, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<DeliveryPerson(id={self.id}, name='{self.full_name}', zone_id={self.assigned_zone_id})>"
