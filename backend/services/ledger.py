# backend/services/ledger.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from models.movement import InventoryMovement, MovementType
from models.product import Product
from services.balance_store import normalize_lot
from services.errors import InvalidArgument
from config import settings

logger = logging.getLogger(__name__)


class MovementLedger:
    """Append-only writer for inventory movements. Flushes, never commits."""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        product_id: int,
        quantity: int,
        movement_type,
        *,
        from_location_id: Optional[int] = None,
        to_location_id: Optional[int] = None,
        lot: Optional[str] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> InventoryMovement:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidArgument(f"Movement quantity must be a positive integer: {quantity!r}")
        try:
            movement_type = MovementType(movement_type)
        except ValueError:
            raise InvalidArgument(f"Unknown movement type: {movement_type!r}")
        if self.db.get(Product, product_id) is None:
            raise InvalidArgument(f"Unknown product: {product_id}")

        movement = InventoryMovement(
            product_id=product_id,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            lot_number=normalize_lot(lot),
            quantity=quantity,
            movement_type=movement_type,
            reason=reason,
            performed_by=actor or settings.DEFAULT_ACTOR,
        )
        self.db.add(movement)
        self.db.flush()
        logger.debug(
            "Movement %s %s qty=%s product=%s from=%s to=%s",
            movement.id, movement_type.value, quantity, product_id,
            from_location_id, to_location_id,
        )
        return movement

    def list(
        self,
        product_id: Optional[int] = None,
        location_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ):
        """Newest-first page of movements. Returns (items, total)."""
        query = self.db.query(InventoryMovement)
        if product_id is not None:
            query = query.filter(InventoryMovement.product_id == product_id)
        if location_id is not None:
            query = query.filter(
                (InventoryMovement.from_location_id == location_id)
                | (InventoryMovement.to_location_id == location_id)
            )
        if movement_type:
            try:
                query = query.filter(InventoryMovement.movement_type == MovementType(movement_type.upper()))
            except ValueError:
                raise InvalidArgument(f"Unknown movement type: {movement_type!r}")

        total = query.count()
        items = (
            query.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total
