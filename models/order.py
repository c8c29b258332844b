# purvita/models/order.py
"""
Order models - storefront orders and their line items.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, JSON
from sqlalchemy.orm import relationship

from core.utils import new_id
from models.base import Base, AuditMixin


class Order(Base, AuditMixin):
    __tablename__ = 'orders'

    orderID = Column(String(36), primary_key=True, default=new_id)
    userID = Column(String(36), ForeignKey('profiles.userID'), nullable=False, index=True)

    status = Column(String, nullable=False, default='pending')  # pending, paid, canceled, refunded
    totalCents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default='USD')

    # affiliateId, saleChannel ('affiliate_store' or absent)
    meta = Column(JSON, nullable=True)

    items = relationship('OrderItem', backref='order', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Order(orderID={self.orderID}, status={self.status}, totalCents={self.totalCents})>"


class OrderItem(Base):
    __tablename__ = 'order_items'

    itemID = Column(String(36), primary_key=True, default=new_id)
    orderID = Column(String(36), ForeignKey('orders.orderID'), nullable=False, index=True)
    productID = Column(String(36), ForeignKey('products.productID'), nullable=False, index=True)

    qty = Column(Integer, nullable=False, default=1)
    priceCents = Column(Integer, nullable=False, default=0)
