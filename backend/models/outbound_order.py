# backend/models/outbound_order.py
import enum
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Text, Enum, ForeignKey,
    CheckConstraint, func,
)
from sqlalchemy.orm import relationship
from database import Base

# Lifecycle of a customer shipment document
class OutboundOrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PICKING = "PICKING"
    PACKING = "PACKING"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"

# Customer order to pick, pack and ship; priority 1 is the most urgent
class OutboundOrder(Base):
    __tablename__ = "outbound_orders"
    __table_args__ = (
        CheckConstraint("priority BETWEEN 1 AND 5", name="ck_outbound_priority_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)  # OUT-YYYYMMDD-HHMMSS
    customer_name = Column(String, nullable=False)
    delivery_address = Column(Text, nullable=True)
    ship_date = Column(Date, nullable=True)
    status = Column(Enum(OutboundOrderStatus), nullable=False, default=OutboundOrderStatus.PENDING)
    priority = Column(Integer, nullable=False, default=3)
    notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "OutboundOrderItem", back_populates="order",
        cascade="all, delete-orphan", order_by="OutboundOrderItem.id",
    )

    __mapper_args__ = {"version_id_col": version}

# Per-line progress: requested >= picked >= shipped
class OutboundOrderItem(Base):
    __tablename__ = "outbound_order_items"
    __table_args__ = (
        CheckConstraint("requested_quantity > 0", name="ck_outbound_item_requested_positive"),
        CheckConstraint("picked_quantity <= requested_quantity", name="ck_outbound_item_no_overpick"),
    )

    id = Column(Integer, primary_key=True, index=True)
    outbound_order_id = Column(Integer, ForeignKey("outbound_orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    requested_quantity = Column(Integer, nullable=False)
    allocated_quantity = Column(Integer, nullable=False, default=0)
    picked_quantity = Column(Integer, nullable=False, default=0)
    shipped_quantity = Column(Integer, nullable=False, default=0)

    order = relationship("OutboundOrder", back_populates="items")
    product = relationship("Product")
