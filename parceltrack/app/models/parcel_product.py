"""
Parcel line item database model.
"""

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey
from parceltrack.app.db.session import Base
from parceltrack.app.models.parcel import generate_id


class ParcelProduct(Base):
    """
    A product carried in a parcel.

    ``price`` is the unit price captured when the item was added and does not
    follow later catalog price changes.
    """
    __tablename__ = "parcel_products"

    id = Column(String(36), primary_key=True, default=generate_id)

    parcel_id = Column(String(36), ForeignKey('parcels.id', ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    def __repr__(self):
        return f"<ParcelProduct(parcel_id={self.parcel_id}, product_id={self.product_id}, qty={self.quantity})>"
