# backend/models/movement.py
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Enum, event, func
from sqlalchemy.orm import relationship
from database import Base
from services.errors import InvalidArgument

# Movement classification
class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    TRANSFER = "TRANSFER"
    ADJUST = "ADJUST"

# Append-only audit trail of every quantity change.
# from/to locations are optional: IN has only a destination, OUT only a source.
class InventoryMovement(Base):
    __tablename__ = "inventory_movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_movements_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    from_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True, index=True)
    to_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True, index=True)
    lot_number = Column(String, nullable=False, default="")

    quantity = Column(Integer, nullable=False)
    movement_type = Column(Enum(MovementType), nullable=False, index=True)
    reason = Column(String, nullable=True)
    performed_by = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    product = relationship("Product")
    from_location = relationship("Location", foreign_keys=[from_location_id])
    to_location = relationship("Location", foreign_keys=[to_location_id])


@event.listens_for(InventoryMovement, "before_update")
def _refuse_movement_update(mapper, connection, target):
    raise InvalidArgument(f"Inventory movement {target.id} is immutable")


@event.listens_for(InventoryMovement, "before_delete")
def _refuse_movement_delete(mapper, connection, target):
    raise InvalidArgument(f"Inventory movement {target.id} cannot be deleted")
