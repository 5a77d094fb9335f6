"""
Recipient database model.

The recipient's email doubles as the secret for public parcel tracking.
"""

from sqlalchemy import Column, String
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel import generate_id


class Recipient(Base):
    __tablename__ = "recipients"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(150), nullable=True)
    phone = Column(String(20), nullable=False)
    address = Column(String(255), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Recipient(id={self.id}, name='{self.full_name}')>"
