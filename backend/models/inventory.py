# backend/models/inventory.py
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship
from database import Base

# Current quantity of one product at one location for one lot.
#
# - at most one row per (product_id, location_id, lot_number); the no-lot
#   bucket is stored as "" so the unique constraint covers it as well
# - a row never holds 0 units, it is deleted instead
# - `version` is checked by every UPDATE/DELETE (optimistic locking)
class InventoryBalance(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("product_id", "location_id", "lot_number", name="uq_inventory_product_location_lot"),
        CheckConstraint("quantity > 0", name="ck_inventory_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    lot_number = Column(String, nullable=False, default="")

    quantity = Column(Integer, nullable=False)
    expiry_date = Column(Date, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product")
    location = relationship("Location")

    __mapper_args__ = {"version_id_col": version}
