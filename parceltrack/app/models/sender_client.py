"""
Sender Client database model.
"""

from sqlalchemy import Column, String
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel import generate_id


class SenderClient(Base):
    __tablename__ = "sender_clients"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(150), unique=True, nullable=False)
    phone = Column(String(20), nullable=False)
    address = Column(String(255), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<SenderClient(id={self.id}, email='{self.email}')>"
