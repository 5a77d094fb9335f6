"""
Delivery History database model.

Append-only audit trail of parcel status changes.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, UniqueConstraint
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel import generate_id
from parceltrack.app.models.parcel_enums import ParcelStatus


class DeliveryHistory(Base):
    """
    Delivery history entry.

    One row per status change. Entries are never updated; they are only
    removed with their parcel or by an explicit corrective delete.
    Timestamps are non-decreasing per parcel and ``sequence_number`` keeps
    insertion order when two entries share a timestamp.
    """
    __tablename__ = "delivery_history"
    __table_args__ = (
        UniqueConstraint("parcel_id", "sequence_number", name="uq_delivery_history_parcel_seq"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)

    parcel_id = Column(String(36), ForeignKey('parcels.id', ondelete="CASCADE"), nullable=False, index=True)

    status = Column(Enum(ParcelStatus), nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False)

    # Immutable - no updated_at
    changed_at = Column(DateTime, nullable=False, index=True)

    comment = Column(Text, nullable=True)

    def __repr__(self):
        return f"<DeliveryHistory(id={self.id}, parcel_id={self.parcel_id}, status='{self.status.value}', seq={self.sequence_number})>"
