"""
Parcel line item Pydantic schemas.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional


class ParcelProductCreate(BaseModel):
    """A line item added to an existing parcel."""
    parcel_id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[Decimal] = Field(None, description="Unit price at time of adding")


class ParcelProductUpdate(BaseModel):
    """Partial line item update; only fields present in the request are applied."""
    quantity: Optional[int] = None
    price: Optional[Decimal] = None


class AmountResponse(BaseModel):
    amount: Decimal


class ProductSalesResponse(BaseModel):
    """Shipping figures for one catalog product, from captured line item prices."""
    product_id: str
    product_name: str
    catalog_price: Decimal
    line_count: int
    total_quantity: int
    revenue: Decimal
    average_price: Decimal


class LineItemTotalsResponse(BaseModel):
    """Line item figures across every parcel."""
    total_revenue: Decimal
    total_items_shipped: int
    distinct_products_shipped: int
