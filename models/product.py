# purvita/models/product.py
"""
Product model - catalog items.
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, JSON

from core.utils import new_id
from models.base import Base, AuditMixin


class Product(Base, AuditMixin):
    __tablename__ = 'products'

    productID = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    priceCents = Column(Integer, nullable=False, default=0)

    discountType = Column(String, nullable=True)  # amount, percentage
    discountValue = Column(Numeric(10, 2), nullable=True)
    discountLabel = Column(String, nullable=True)

    stockQuantity = Column(Integer, nullable=False, default=0)
    images = Column(JSON, nullable=True)
    isFeatured = Column(Boolean, nullable=False, default=False)

    # ISO country codes where the product can be added to cart; empty = everywhere
    cartVisibilityCountries = Column(JSON, nullable=True)
    relatedProductIDs = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<Product(productID={self.productID}, slug={self.slug})>"
