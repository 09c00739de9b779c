# backend/services/orders.py
"""
Inbound and outbound order documents.

Orders never write balances themselves. Receipts and picks are booked with
``TransferService.book_receipt`` / ``book_issue`` inside a single
``run_atomic`` unit per request, so all lines of one receipt or pick land in
the movement ledger together with the order progress, or none of them do.
Every change to an order bumps its version, so two clerks working the same
order at once cannot both book against the same outstanding quantity.

Inbound:  PENDING -> RECEIVING -> COMPLETED, CANCELLED before completion
Outbound: PENDING -> PICKING -> PACKING -> SHIPPED, CANCELLED before picking
"""
import logging
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.inbound_order import InboundOrder, InboundOrderItem, InboundOrderStatus
from models.outbound_order import OutboundOrder, OutboundOrderItem, OutboundOrderStatus
from models.product import Product
from services.balance_store import normalize_lot
from services.errors import ConstraintViolation, InvalidArgument, NotFound
from services.stock_query import StockQueryService
from services.transfer import TransferService, require_id, require_quantity

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 3


def _require_text(value: Optional[str], what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidArgument(f"{what} is required")
    return text


def _require_priority(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise InvalidArgument(f"priority must be between 1 and 5, got {value!r}")
    return value


def _active_product(db: Session, product_id) -> Product:
    require_id(product_id, "product_id")
    product = db.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found")
    if not product.is_active:
        raise InvalidArgument(f"Product {product.sku} is inactive")
    return product


def _order_number(db: Session, model, prefix: str, requested: Optional[str]) -> str:
    if requested and requested.strip():
        number = requested.strip().upper()
        if db.query(model.id).filter(model.order_number == number).first() is not None:
            raise ConstraintViolation(f"Order number {number} already exists")
        return number

    base = f"{prefix}-{datetime.now():%Y%m%d-%H%M%S}"
    number, n = base, 1
    while db.query(model.id).filter(model.order_number == number).first() is not None:
        n += 1
        number = f"{base}-{n}"
    return number


def _save_new(db: Session, order):
    number = order.order_number
    db.add(order)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConstraintViolation(f"Order number {number} already exists") from exc
    db.refresh(order)
    return order


def _check_status(order, allowed: Iterable, action: str) -> None:
    if order.status not in allowed:
        raise InvalidArgument(f"Cannot {action} order {order.order_number} in status {order.status.value}")


def _touch(order) -> None:
    # Always emit an UPDATE so the version check covers line-only changes
    order.updated_at = datetime.now(timezone.utc)


def _lock(db: Session, model, order_id: int, label: str):
    order = (
        db.query(model)
        .filter(model.id == order_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if order is None:
        raise NotFound(f"{label} {order_id} not found")
    return order


def _line_item(items: dict, line: dict, order):
    item = items.get(line.get("item_id"))
    if item is None:
        raise NotFound(f"Line {line.get('item_id')} is not part of order {order.order_number}")
    return item


def _paginate(query, order_by, page: int, page_size: int) -> Tuple[List, int]:
    total = query.count()
    items = query.order_by(*order_by).offset((page - 1) * page_size).limit(page_size).all()
    return items, total


class InboundOrderService:
    """Supplier deliveries: create, receive into a location, cancel."""

    def __init__(self, db: Session, transfers: Optional[TransferService] = None):
        self.db = db
        self.transfers = transfers or TransferService(db)

    def get(self, order_id: int) -> InboundOrder:
        order = self.db.get(InboundOrder, order_id)
        if order is None:
            raise NotFound(f"Inbound order {order_id} not found")
        return order

    def list(
        self,
        status: Optional[str] = None,
        q: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[InboundOrder], int]:
        """Newest first."""
        query = self.db.query(InboundOrder)
        if status:
            try:
                query = query.filter(InboundOrder.status == InboundOrderStatus(status.strip().upper()))
            except ValueError as exc:
                raise InvalidArgument(f"Unknown inbound order status: {status}") from exc
        if q:
            like = f"%{q}%"
            query = query.filter(InboundOrder.order_number.ilike(like) | InboundOrder.supplier_name.ilike(like))
        return _paginate(query, (InboundOrder.created_at.desc(), InboundOrder.id.desc()), page, page_size)

    def create(
        self,
        supplier_name: str,
        items: List[dict],
        expected_date: Optional[date] = None,
        notes: Optional[str] = None,
        order_number: Optional[str] = None,
    ) -> InboundOrder:
        supplier_name = _require_text(supplier_name, "Supplier name")
        if not items:
            raise InvalidArgument("At least one item is required")

        lines = []
        for item in items:
            product = _active_product(self.db, item.get("product_id"))
            lines.append(InboundOrderItem(
                product_id=product.id,
                expected_quantity=require_quantity(item.get("expected_quantity"), "expected_quantity"),
                received_quantity=0,
                lot_number=normalize_lot(item.get("lot_number")) or None,
                expiry_date=item.get("expiry_date"),
            ))

        order = InboundOrder(
            order_number=_order_number(self.db, InboundOrder, "IN", order_number),
            supplier_name=supplier_name,
            expected_date=expected_date,
            status=InboundOrderStatus.PENDING,
            notes=notes,
            items=lines,
        )
        order = _save_new(self.db, order)
        logger.info("Inbound order %s created with %s lines", order.order_number, len(lines))
        return order

    def receive(
        self,
        order_id: int,
        location_id: int,
        lines: Optional[List[dict]] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict:
        """Book received quantities at ``location_id`` (one IN movement per line).

        Without ``lines`` everything still outstanding is received. Receiving
        more than is outstanding on a line is refused. The order moves to
        RECEIVING, or COMPLETED once every line is fully received.
        """
        require_id(location_id, "location_id")

        def work() -> dict:
            order = _lock(self.db, InboundOrder, order_id, "Inbound order")
            _check_status(order, (InboundOrderStatus.PENDING, InboundOrderStatus.RECEIVING), "receive")
            items = {item.id: item for item in order.items}
            wanted = lines
            if wanted is None:
                wanted = [
                    {"item_id": item.id, "quantity": item.expected_quantity - item.received_quantity}
                    for item in order.items
                    if item.received_quantity < item.expected_quantity
                ]
            if not wanted:
                raise InvalidArgument(f"Nothing to receive on order {order.order_number}")

            movement_ids, total = [], 0
            for line in wanted:
                item = _line_item(items, line, order)
                quantity = require_quantity(line.get("quantity"))
                outstanding = item.expected_quantity - item.received_quantity
                if quantity > outstanding:
                    raise InvalidArgument(
                        f"Cannot receive {quantity} of {item.product.sku} on {order.order_number}: "
                        f"{outstanding} outstanding"
                    )
                booked = self.transfers.book_receipt(
                    item.product_id, location_id, quantity,
                    lot=line.get("lot_number") or item.lot_number,
                    expiry_date=line.get("expiry_date") or item.expiry_date,
                    reason=reason or f"Receipt {order.order_number}",
                    actor=actor,
                )
                item.received_quantity += quantity
                movement_ids.append(booked["movement_id"])
                total += quantity

            if all(i.received_quantity >= i.expected_quantity for i in order.items):
                order.status = InboundOrderStatus.COMPLETED
            else:
                order.status = InboundOrderStatus.RECEIVING
            _touch(order)
            self.db.flush()
            return {
                "success": True,
                "message": f"Received {total} units for {order.order_number}",
                "order_id": order.id,
                "status": order.status.value,
                "movement_ids": movement_ids,
            }

        result = self.transfers.run_atomic("inbound receipt", work)
        logger.info("Inbound order %s received at %s by %s: %s", order_id, location_id, actor, result["message"])
        return result

    def cancel(self, order_id: int) -> InboundOrder:
        """Stop expecting the rest of a delivery. Stock already received stays booked."""

        def work() -> InboundOrder:
            order = _lock(self.db, InboundOrder, order_id, "Inbound order")
            _check_status(order, (InboundOrderStatus.PENDING, InboundOrderStatus.RECEIVING), "cancel")
            order.status = InboundOrderStatus.CANCELLED
            _touch(order)
            self.db.flush()
            return order

        order = self.transfers.run_atomic("inbound cancel", work)
        logger.info("Inbound order %s cancelled", order.order_number)
        return order


class OutboundOrderService:
    """Customer orders: create, allocate, pick from locations, ship, cancel."""

    def __init__(self, db: Session, transfers: Optional[TransferService] = None):
        self.db = db
        self.transfers = transfers or TransferService(db)

    def get(self, order_id: int) -> OutboundOrder:
        order = self.db.get(OutboundOrder, order_id)
        if order is None:
            raise NotFound(f"Outbound order {order_id} not found")
        return order

    def list(
        self,
        status: Optional[str] = None,
        q: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[OutboundOrder], int]:
        """Most urgent first (priority 1), newest first within a priority."""
        query = self.db.query(OutboundOrder)
        if status:
            try:
                query = query.filter(OutboundOrder.status == OutboundOrderStatus(status.strip().upper()))
            except ValueError as exc:
                raise InvalidArgument(f"Unknown outbound order status: {status}") from exc
        if q:
            like = f"%{q}%"
            query = query.filter(OutboundOrder.order_number.ilike(like) | OutboundOrder.customer_name.ilike(like))
        return _paginate(
            query,
            (OutboundOrder.priority.asc(), OutboundOrder.created_at.desc(), OutboundOrder.id.desc()),
            page, page_size,
        )

    def create(
        self,
        customer_name: str,
        items: List[dict],
        delivery_address: Optional[str] = None,
        ship_date: Optional[date] = None,
        priority: int = DEFAULT_PRIORITY,
        notes: Optional[str] = None,
        order_number: Optional[str] = None,
    ) -> OutboundOrder:
        customer_name = _require_text(customer_name, "Customer name")
        priority = _require_priority(priority)
        if not items:
            raise InvalidArgument("At least one item is required")

        lines = []
        for item in items:
            product = _active_product(self.db, item.get("product_id"))
            lines.append(OutboundOrderItem(
                product_id=product.id,
                requested_quantity=require_quantity(item.get("requested_quantity"), "requested_quantity"),
                allocated_quantity=0,
                picked_quantity=0,
                shipped_quantity=0,
            ))

        order = OutboundOrder(
            order_number=_order_number(self.db, OutboundOrder, "OUT", order_number),
            customer_name=customer_name,
            delivery_address=delivery_address,
            ship_date=ship_date,
            status=OutboundOrderStatus.PENDING,
            priority=priority,
            notes=notes,
            items=lines,
        )
        order = _save_new(self.db, order)
        logger.info("Outbound order %s created with %s lines, priority %s", order.order_number, len(lines), priority)
        return order

    def allocate(self, order_id: int) -> OutboundOrder:
        """Record how much of each line current stock can cover.

        Allocation is advisory: it does not reserve balances, so another
        order picking first can still take the stock.
        """

        def work() -> OutboundOrder:
            order = _lock(self.db, OutboundOrder, order_id, "Outbound order")
            _check_status(order, (OutboundOrderStatus.PENDING, OutboundOrderStatus.PICKING), "allocate")
            stock = StockQueryService(self.db)
            free = {}
            for item in order.items:
                if item.product_id not in free:
                    free[item.product_id] = stock.total_quantity(item.product_id)
                share = min(item.requested_quantity - item.picked_quantity, free[item.product_id])
                item.allocated_quantity = item.picked_quantity + share
                free[item.product_id] -= share
            _touch(order)
            self.db.flush()
            return order

        order = self.transfers.run_atomic("outbound allocate", work)
        logger.info("Outbound order %s allocated", order.order_number)
        return order

    def pick(
        self,
        order_id: int,
        lines: List[dict],
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> dict:
        """Take picked quantities out of their locations (one OUT movement per line).

        Picking more than a line still needs is refused. The order moves to
        PICKING, or PACKING once every line is fully picked.
        """

        def work() -> dict:
            order = _lock(self.db, OutboundOrder, order_id, "Outbound order")
            _check_status(order, (OutboundOrderStatus.PENDING, OutboundOrderStatus.PICKING), "pick")
            if not lines:
                raise InvalidArgument(f"Nothing to pick on order {order.order_number}")
            items = {item.id: item for item in order.items}

            movement_ids, total = [], 0
            for line in lines:
                item = _line_item(items, line, order)
                quantity = require_quantity(line.get("quantity"))
                left = item.requested_quantity - item.picked_quantity
                if quantity > left:
                    raise InvalidArgument(
                        f"Cannot pick {quantity} of {item.product.sku} on {order.order_number}: "
                        f"{left} left to pick"
                    )
                booked = self.transfers.book_issue(
                    item.product_id, line.get("location_id"), quantity,
                    lot=line.get("lot_number"),
                    reason=reason or f"Pick {order.order_number}",
                    actor=actor,
                )
                item.picked_quantity += quantity
                item.allocated_quantity = max(item.allocated_quantity, item.picked_quantity)
                movement_ids.append(booked["movement_id"])
                total += quantity

            if all(i.picked_quantity >= i.requested_quantity for i in order.items):
                order.status = OutboundOrderStatus.PACKING
            else:
                order.status = OutboundOrderStatus.PICKING
            _touch(order)
            self.db.flush()
            return {
                "success": True,
                "message": f"Picked {total} units for {order.order_number}",
                "order_id": order.id,
                "status": order.status.value,
                "movement_ids": movement_ids,
            }

        result = self.transfers.run_atomic("outbound pick", work)
        logger.info("Outbound order %s picked by %s: %s", order_id, actor, result["message"])
        return result

    def ship(self, order_id: int) -> OutboundOrder:
        """Hand a fully picked order to the carrier; ship date defaults to today."""

        def work() -> OutboundOrder:
            order = _lock(self.db, OutboundOrder, order_id, "Outbound order")
            _check_status(order, (OutboundOrderStatus.PACKING,), "ship")
            for item in order.items:
                item.shipped_quantity = item.picked_quantity
            order.status = OutboundOrderStatus.SHIPPED
            if order.ship_date is None:
                order.ship_date = date.today()
            _touch(order)
            self.db.flush()
            return order

        order = self.transfers.run_atomic("outbound ship", work)
        logger.info("Outbound order %s shipped", order.order_number)
        return order

    def cancel(self, order_id: int) -> OutboundOrder:
        """Only orders with nothing picked yet can be cancelled."""

        def work() -> OutboundOrder:
            order = _lock(self.db, OutboundOrder, order_id, "Outbound order")
            _check_status(order, (OutboundOrderStatus.PENDING,), "cancel")
            order.status = OutboundOrderStatus.CANCELLED
            _touch(order)
            self.db.flush()
            return order

        order = self.transfers.run_atomic("outbound cancel", work)
        logger.info("Outbound order %s cancelled", order.order_number)
        return order
