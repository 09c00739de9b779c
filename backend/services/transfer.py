# backend/services/transfer.py
"""
Stock movements that change balances: transfer, receive, issue, adjust.

Each operation runs as one database transaction covering the balance
writes and the ledger entry, so a failure at any step leaves nothing behind.
Concurrent writers are detected rather than prevented up front:

- the rows involved are read with SELECT ... FOR UPDATE where the backend
  supports it (locked in location-id order so two opposite transfers cannot
  deadlock each other)
- every UPDATE/DELETE of a balance is version-checked, so a writer that read
  a row before someone else changed it fails instead of overwriting
- creating a balance that a concurrent writer created first trips the
  unique (product, location, lot) constraint

A conflict rolls the transaction back and the whole operation is re-run
from a fresh read, up to ``TRANSFER_MAX_RETRIES`` times.
"""
import logging
import random
import time
from datetime import date
from typing import Any, Callable, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from models.location import Location
from models.movement import MovementType
from models.product import Product
from services.balance_store import BalanceStore, normalize_lot
from services.errors import (
    ConcurrentModification,
    ConstraintViolation,
    InsufficientStock,
    InvalidArgument,
    NotFound,
    SourceNotFound,
    StorageUnavailable,
)
from services.ledger import MovementLedger

logger = logging.getLogger(__name__)

DEFAULT_RECEIVE_REASON = "Goods receipt"
DEFAULT_ISSUE_REASON = "Goods issue"
DEFAULT_ADJUST_REASON = "Stock count adjustment"

# PostgreSQL serialization_failure / deadlock_detected
RETRYABLE_PGCODES = {"40001", "40P01"}


def require_id(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgument(f"{name} must be a positive integer identifier, got {value!r}")
    return value


def require_quantity(value, name: str = "quantity", allow_zero: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidArgument(f"{name} must be {'non-negative' if allow_zero else 'positive'}, got {value}")
    return value


def _is_retryable(exc: DBAPIError) -> bool:
    return getattr(exc.orig, "pgcode", None) in RETRYABLE_PGCODES


class TransferService:
    def __init__(
        self,
        db: Session,
        *,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
    ):
        self.db = db
        self.balances = BalanceStore(db)
        self.ledger = MovementLedger(db)
        self.max_retries = settings.TRANSFER_MAX_RETRIES if max_retries is None else max_retries
        self.backoff = settings.TRANSFER_RETRY_BACKOFF if backoff is None else backoff

    # ------------------------------------------------------------------
    # Transfer between two locations
    # ------------------------------------------------------------------
    def transfer(
        self,
        product_id: int,
        from_location_id: int,
        to_location_id: int,
        quantity: int,
        lot: Optional[str] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict:
        """Move ``quantity`` units of a product/lot from one location to another.

        Raises InvalidArgument, NotFound, SourceNotFound, InsufficientStock,
        ConcurrentModification or StorageUnavailable. On success the source
        balance is decreased (deleted at zero), the destination is increased
        or created with the source expiry date, and one TRANSFER movement is
        recorded.
        """
        require_id(product_id, "product_id")
        require_id(from_location_id, "from_location_id")
        require_id(to_location_id, "to_location_id")
        require_quantity(quantity)
        if from_location_id == to_location_id:
            raise InvalidArgument("Source and destination locations must be different")

        lot = normalize_lot(lot)
        reason = reason or settings.DEFAULT_TRANSFER_REASON
        actor = actor or settings.DEFAULT_ACTOR

        def work() -> dict:
            source_location = self._require_location(from_location_id)
            destination_location = self._require_location(to_location_id, active=True)
            source, destination = self._lock_pair(product_id, from_location_id, to_location_id, lot)

            if source is None:
                raise SourceNotFound(product_id, from_location_id, lot)
            remaining = source.quantity - quantity
            if remaining < 0:
                raise InsufficientStock(available=source.quantity, requested=quantity)

            expiry_date = source.expiry_date
            self.balances.set_quantity(source, remaining)

            if destination is not None:
                self.balances.set_quantity(destination, destination.quantity + quantity)
            else:
                self.balances.create(product_id, to_location_id, quantity, lot, expiry_date)

            movement = self.ledger.append(
                product_id, quantity, MovementType.TRANSFER,
                from_location_id=from_location_id, to_location_id=to_location_id,
                lot=lot, reason=reason, actor=actor,
            )
            return {
                "success": True,
                "message": (
                    f"Transferred {quantity} units from {source_location.code} "
                    f"to {destination_location.code}"
                ),
                "movement_id": movement.id,
            }

        result = self.run_atomic("transfer", work)
        logger.info(
            "Transfer product=%s lot=%r qty=%s %s->%s by %s",
            product_id, lot, quantity, from_location_id, to_location_id, actor,
        )
        return result

    # ------------------------------------------------------------------
    # Single-location operations
    # ------------------------------------------------------------------
    def receive(
        self,
        product_id: int,
        location_id: int,
        quantity: int,
        lot: Optional[str] = None,
        expiry_date: Optional[date] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict:
        """Book inbound stock at a location (IN movement)."""
        require_id(product_id, "product_id")
        require_id(location_id, "location_id")
        require_quantity(quantity)

        result = self.run_atomic(
            "receive",
            lambda: self.book_receipt(product_id, location_id, quantity, lot, expiry_date, reason, actor),
        )
        logger.info("Receive product=%s lot=%r qty=%s at %s by %s", product_id, lot, quantity, location_id, actor)
        return result

    def issue(
        self,
        product_id: int,
        location_id: int,
        quantity: int,
        lot: Optional[str] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict:
        """Take stock out of a location (OUT movement)."""
        require_id(product_id, "product_id")
        require_id(location_id, "location_id")
        require_quantity(quantity)

        result = self.run_atomic(
            "issue",
            lambda: self.book_issue(product_id, location_id, quantity, lot, reason, actor),
        )
        logger.info("Issue product=%s lot=%r qty=%s from %s by %s", product_id, lot, quantity, location_id, actor)
        return result

    # ------------------------------------------------------------------
    # Booking steps without commit, for callers that group several of them
    # (order documents) into one ``run_atomic`` unit
    # ------------------------------------------------------------------
    def book_receipt(
        self,
        product_id: int,
        location_id: int,
        quantity: int,
        lot: Optional[str] = None,
        expiry_date: Optional[date] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict:
        require_id(product_id, "product_id")
        require_id(location_id, "location_id")
        require_quantity(quantity)
        lot = normalize_lot(lot)

        self._require_product(product_id, active=True)
        location = self._require_location(location_id, active=True)
        balance = self.balances.find(product_id, location_id, lot, for_update=True)
        if balance is not None:
            self.balances.set_quantity(balance, balance.quantity + quantity)
        else:
            self.balances.create(product_id, location_id, quantity, lot, expiry_date)

        movement = self.ledger.append(
            product_id, quantity, MovementType.IN,
            to_location_id=location_id, lot=lot,
            reason=reason or DEFAULT_RECEIVE_REASON, actor=actor or settings.DEFAULT_ACTOR,
        )
        return {
            "success": True,
            "message": f"Received {quantity} units at {location.code}",
            "movement_id": movement.id,
        }

    def book_issue(
        self,
        product_id: int,
        location_id: int,
        quantity: int,
        lot: Optional[str] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict:
        require_id(product_id, "product_id")
        require_id(location_id, "location_id")
        require_quantity(quantity)
        lot = normalize_lot(lot)

        location = self._require_location(location_id)
        balance = self.balances.find(product_id, location_id, lot, for_update=True)
        if balance is None:
            raise SourceNotFound(product_id, location_id, lot)
        remaining = balance.quantity - quantity
        if remaining < 0:
            raise InsufficientStock(available=balance.quantity, requested=quantity)
        self.balances.set_quantity(balance, remaining)

        movement = self.ledger.append(
            product_id, quantity, MovementType.OUT,
            from_location_id=location_id, lot=lot,
            reason=reason or DEFAULT_ISSUE_REASON, actor=actor or settings.DEFAULT_ACTOR,
        )
        return {
            "success": True,
            "message": f"Issued {quantity} units from {location.code}",
            "movement_id": movement.id,
        }

    def adjust(
        self,
        product_id: int,
        location_id: int,
        counted_quantity: int,
        lot: Optional[str] = None,
        expiry_date: Optional[date] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict:
        """Set a balance to a counted quantity and log the difference (ADJUST).

        A count equal to the current balance changes nothing and logs nothing.
        Counting up needs an active location; counting down does not, so a
        deactivated bin can still be corrected to empty.
        """
        require_id(product_id, "product_id")
        require_id(location_id, "location_id")
        require_quantity(counted_quantity, "counted_quantity", allow_zero=True)
        lot = normalize_lot(lot)
        reason = reason or DEFAULT_ADJUST_REASON
        actor = actor or settings.DEFAULT_ACTOR

        def work() -> dict:
            self._require_product(product_id)
            location = self._require_location(location_id)
            balance = self.balances.find(product_id, location_id, lot, for_update=True)
            current = balance.quantity if balance is not None else 0
            delta = counted_quantity - current
            if delta == 0:
                return {
                    "success": True,
                    "message": f"No change at {location.code}",
                    "movement_id": None,
                }
            if delta > 0 and not location.is_active:
                raise InvalidArgument(f"Location {location.code} is inactive")

            if balance is None:
                self.balances.create(product_id, location_id, counted_quantity, lot, expiry_date)
            else:
                self.balances.set_quantity(balance, counted_quantity)

            movement = self.ledger.append(
                product_id, abs(delta), MovementType.ADJUST,
                from_location_id=location_id if delta < 0 else None,
                to_location_id=location_id if delta > 0 else None,
                lot=lot, reason=reason, actor=actor,
            )
            return {
                "success": True,
                "message": f"Adjusted {location.code} from {current} to {counted_quantity}",
                "movement_id": movement.id,
            }

        result = self.run_atomic("adjust", work)
        logger.info(
            "Adjust product=%s lot=%r at %s to %s by %s",
            product_id, lot, location_id, counted_quantity, actor,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_location(self, location_id: int, active: bool = False) -> Location:
        location = self.db.get(Location, location_id)
        if location is None:
            raise NotFound(f"Location {location_id} not found")
        if active and not location.is_active:
            raise InvalidArgument(f"Location {location.code} is inactive")
        return location

    def _require_product(self, product_id: int, active: bool = False) -> Product:
        product = self.db.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found")
        if active and not product.is_active:
            raise InvalidArgument(f"Product {product.sku} is inactive")
        return product

    def _lock_pair(self, product_id: int, from_location_id: int, to_location_id: int, lot: str):
        rows = {}
        for location_id in sorted((from_location_id, to_location_id)):
            rows[location_id] = self.balances.find(product_id, location_id, lot, for_update=True)
        return rows[from_location_id], rows[to_location_id]

    def run_atomic(self, operation: str, work: Callable[[], Any]) -> Any:
        """Run ``work`` in one transaction, re-running it from scratch on conflicts."""
        attempt = 0
        while True:
            attempt += 1
            try:
                result = work()
                self.db.commit()
                return result
            except (ConcurrentModification, ConstraintViolation, StaleDataError) as exc:
                self.db.rollback()
                conflict = exc
            except IntegrityError as exc:
                self.db.rollback()
                raise ConstraintViolation(f"{operation} violated a constraint: {exc.orig}") from exc
            except DBAPIError as exc:
                self.db.rollback()
                if not _is_retryable(exc):
                    logger.error("Storage failure during %s: %s", operation, exc.orig)
                    raise StorageUnavailable(f"Storage unavailable during {operation}: {exc.orig}") from exc
                conflict = exc
            except Exception:
                self.db.rollback()
                raise

            if attempt > self.max_retries:
                logger.warning("%s gave up after %s attempts: %s", operation, attempt, conflict)
                raise ConcurrentModification(
                    f"{operation} could not complete due to concurrent changes, please retry",
                    attempts=attempt,
                ) from conflict
            logger.info("%s conflict on attempt %s, retrying: %s", operation, attempt, conflict)
            if self.backoff:
                time.sleep(self.backoff * random.uniform(0.5, 1.5))
