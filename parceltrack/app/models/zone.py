"""
Zone database model.

Geographic delivery area. Managed by the directory service.
"""

from sqlalchemy import Column, String
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel import generate_id


class Zone(Base):
    __tablename__ = "zones"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    postal_code = Column(String(10), nullable=False)

    def __repr__(self):
        return f"<Zone(id={self.id}, name='{self.name}')>"
