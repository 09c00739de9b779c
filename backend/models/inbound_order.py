# backend/models/inbound_order.py
import enum
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Text, Enum, ForeignKey,
    CheckConstraint, func,
)
from sqlalchemy.orm import relationship
from database import Base

# Lifecycle of a supplier delivery document
class InboundOrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    RECEIVING = "RECEIVING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

# Expected delivery from a supplier; stock is booked line by line on receipt
class InboundOrder(Base):
    __tablename__ = "inbound_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)  # IN-YYYYMMDD-HHMMSS
    supplier_name = Column(String, nullable=False)
    expected_date = Column(Date, nullable=True)
    status = Column(Enum(InboundOrderStatus), nullable=False, default=InboundOrderStatus.PENDING)
    notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "InboundOrderItem", back_populates="order",
        cascade="all, delete-orphan", order_by="InboundOrderItem.id",
    )

    __mapper_args__ = {"version_id_col": version}

class InboundOrderItem(Base):
    __tablename__ = "inbound_order_items"
    __table_args__ = (
        CheckConstraint("expected_quantity > 0", name="ck_inbound_item_expected_positive"),
        CheckConstraint("received_quantity >= 0", name="ck_inbound_item_received_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    inbound_order_id = Column(Integer, ForeignKey("inbound_orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    expected_quantity = Column(Integer, nullable=False)
    received_quantity = Column(Integer, nullable=False, default=0)
    lot_number = Column(String, nullable=True)
    expiry_date = Column(Date, nullable=True)

    order = relationship("InboundOrder", back_populates="items")
    product = relationship("Product")
