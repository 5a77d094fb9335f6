"""
Product catalog database model.
"""

from sqlalchemy import Column, String, Numeric
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel import generate_id


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(150), nullable=False)
    category = Column(String(100), nullable=True)
    weight = Column(Numeric(6, 2), nullable=False)
    # Current catalog price; parcel line items keep their own copy
    price = Column(Numeric(10, 2), nullable=False)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"
