# backend/services/balance_store.py
"""
Row-level access to inventory balances keyed by (product, location, lot).

The store never commits: callers own the transaction. Every write is flushed
immediately so that conflicts surface at the call site:

- a version mismatch on UPDATE/DELETE (another writer got there first)
  is raised as ``ConcurrentModification``
- an INSERT for a triple that already exists is raised as
  ``ConstraintViolation``; any other integrity error (foreign key, check)
  propagates unchanged
"""
import logging
from datetime import date
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from models.inventory import InventoryBalance
from services.errors import (
    ConcurrentModification,
    ConstraintViolation,
    InvalidArgument,
    NotFound,
)

logger = logging.getLogger(__name__)

BALANCE_UNIQUE_CONSTRAINT = "uq_inventory_product_location_lot"
# PostgreSQL unique_violation
UNIQUE_VIOLATION_PGCODE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the INSERT collided with an existing (product, location, lot) row."""
    if getattr(exc.orig, "pgcode", None) == UNIQUE_VIOLATION_PGCODE:
        return True
    text = str(exc.orig)
    return BALANCE_UNIQUE_CONSTRAINT in text or "UNIQUE constraint failed" in text


def normalize_lot(lot: Optional[str]) -> str:
    """Missing and blank lot numbers share the empty-lot bucket."""
    if lot is None:
        return ""
    return str(lot).strip()


class BalanceStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, balance_id: int) -> Optional[InventoryBalance]:
        return self.db.get(InventoryBalance, balance_id)

    def find(
        self,
        product_id: int,
        location_id: int,
        lot: Optional[str] = None,
        *,
        for_update: bool = False,
    ) -> Optional[InventoryBalance]:
        query = (
            self.db.query(InventoryBalance)
            .filter(
                InventoryBalance.product_id == product_id,
                InventoryBalance.location_id == location_id,
                InventoryBalance.lot_number == normalize_lot(lot),
            )
            .populate_existing()
        )
        if for_update:
            # Ignored by SQLite; there the version check on write does the job
            query = query.with_for_update()
        return query.first()

    def set_quantity(
        self, balance: Union[InventoryBalance, int], new_quantity: int
    ) -> Optional[InventoryBalance]:
        """Update a balance in place, or delete it when it drops to zero.

        Returns the updated row, or None when the row was deleted.
        """
        if isinstance(balance, int):
            row = self.get(balance)
            if row is None:
                raise NotFound(f"Inventory balance {balance} not found")
            balance = row
        if new_quantity < 0:
            raise InvalidArgument(f"Quantity cannot be negative: {new_quantity}")

        if new_quantity == 0:
            self.db.delete(balance)
            self._flush(f"delete balance {balance.id}")
            return None

        balance.quantity = new_quantity
        self._flush(f"update balance {balance.id}")
        return balance

    def create(
        self,
        product_id: int,
        location_id: int,
        quantity: int,
        lot: Optional[str] = None,
        expiry_date: Optional[date] = None,
    ) -> InventoryBalance:
        if quantity <= 0:
            raise InvalidArgument(f"Quantity must be positive: {quantity}")

        balance = InventoryBalance(
            product_id=product_id,
            location_id=location_id,
            lot_number=normalize_lot(lot),
            quantity=quantity,
            expiry_date=expiry_date,
        )
        self.db.add(balance)
        try:
            self.db.flush()
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            logger.info(
                "Balance create conflict product=%s location=%s lot=%r",
                product_id, location_id, balance.lot_number,
            )
            raise ConstraintViolation(
                f"Inventory for product {product_id} at location {location_id} "
                f"(lot '{balance.lot_number}') already exists"
            ) from exc
        return balance

    def delete_by_id(self, balance_id: int) -> None:
        row = self.get(balance_id)
        if row is None:
            raise NotFound(f"Inventory balance {balance_id} not found")
        self.db.delete(row)
        self._flush(f"delete balance {balance_id}")

    def _flush(self, what: str) -> None:
        try:
            self.db.flush()
        except StaleDataError as exc:
            logger.info("Stale balance row on %s", what)
            raise ConcurrentModification(f"Inventory changed concurrently ({what})") from exc
