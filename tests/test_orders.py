"""Inbound and outbound order documents: lifecycle, ledger bookings, atomicity."""
import re
from datetime import date

import pytest

from models.inbound_order import InboundOrderStatus
from models.inventory import InventoryBalance
from models.movement import InventoryMovement, MovementType
from models.outbound_order import OutboundOrderStatus
from services.errors import (
    ConstraintViolation,
    InsufficientStock,
    InvalidArgument,
    NotFound,
)
from services.orders import InboundOrderService, OutboundOrderService
from services.transfer import TransferService


def _balances(db):
    """{(product_id, location_id, lot): quantity}, read fresh."""
    db.expire_all()
    return {(r.product_id, r.location_id, r.lot_number): r.quantity for r in db.query(InventoryBalance).all()}


def _movements(db):
    db.expire_all()
    return db.query(InventoryMovement).order_by(InventoryMovement.id).all()


@pytest.fixture
def delivery(db, product, other_product):
    """Inbound order: 10 x BOLT-M8 and 4 x GLUE-500 (lot L1)."""
    return InboundOrderService(db).create(
        supplier_name="Fasteners Ltd",
        items=[
            {"product_id": product.id, "expected_quantity": 10},
            {"product_id": other_product.id, "expected_quantity": 4,
             "lot_number": "L1", "expiry_date": date(2027, 9, 30)},
        ],
        expected_date=date(2026, 11, 2),
    )


@pytest.fixture
def shipment(db, product, other_product):
    """Outbound order: 6 x BOLT-M8 and 2 x GLUE-500."""
    return OutboundOrderService(db).create(
        customer_name="Acme Builders",
        items=[
            {"product_id": product.id, "requested_quantity": 6},
            {"product_id": other_product.id, "requested_quantity": 2},
        ],
        delivery_address="Harbour Rd 5",
    )


class TestInboundCreate:

    def test_new_order_is_pending_with_generated_number(self, delivery):
        assert re.fullmatch(r"IN-\d{8}-\d{6}", delivery.order_number)
        assert delivery.status == InboundOrderStatus.PENDING
        assert delivery.supplier_name == "Fasteners Ltd"
        assert [(i.expected_quantity, i.received_quantity) for i in delivery.items] == [(10, 0), (4, 0)]
        assert delivery.items[0].lot_number is None
        assert delivery.items[1].lot_number == "L1"

    def test_numbers_stay_unique_within_one_second(self, db, product, delivery):
        second = InboundOrderService(db).create("Other supplier", [{"product_id": product.id, "expected_quantity": 1}])

        assert second.order_number != delivery.order_number
        assert second.order_number.startswith("IN-")

    def test_explicit_number_must_be_unique(self, db, product):
        service = InboundOrderService(db)
        service.create("Supplier", [{"product_id": product.id, "expected_quantity": 1}], order_number="po-77")

        with pytest.raises(ConstraintViolation):
            service.create("Supplier", [{"product_id": product.id, "expected_quantity": 1}], order_number="PO-77")

    def test_supplier_and_items_are_required(self, db, product):
        service = InboundOrderService(db)

        with pytest.raises(InvalidArgument):
            service.create("  ", [{"product_id": product.id, "expected_quantity": 1}])
        with pytest.raises(InvalidArgument):
            service.create("Supplier", [])
        with pytest.raises(InvalidArgument):
            service.create("Supplier", [{"product_id": product.id, "expected_quantity": 0}])
        with pytest.raises(NotFound):
            service.create("Supplier", [{"product_id": 4242, "expected_quantity": 1}])


class TestInboundReceive:

    def test_partial_receipt_books_in_movement(self, db, locations, product, delivery):
        line = delivery.items[0]

        result = InboundOrderService(db).receive(
            delivery.id, locations["A"].id, lines=[{"item_id": line.id, "quantity": 6}], actor="clerk@example.com",
        )

        assert result["status"] == "RECEIVING"
        assert len(result["movement_ids"]) == 1
        assert _balances(db) == {(product.id, locations["A"].id, ""): 6}
        m = _movements(db)[0]
        assert m.movement_type == MovementType.IN
        assert m.reason == f"Receipt {delivery.order_number}"
        assert m.performed_by == "clerk@example.com"

    def test_receiving_the_rest_completes_the_order(self, db, locations, product, other_product, delivery):
        service = InboundOrderService(db)
        a = locations["A"].id
        service.receive(delivery.id, a, lines=[{"item_id": delivery.items[0].id, "quantity": 6}])

        result = service.receive(delivery.id, a)

        assert result["status"] == "COMPLETED"
        assert result["message"] == f"Received 8 units for {delivery.order_number}"
        assert _balances(db) == {(product.id, a, ""): 10, (other_product.id, a, "L1"): 4}
        db.expire_all()
        glue = db.query(InventoryBalance).filter_by(product_id=other_product.id).one()
        assert glue.expiry_date == date(2027, 9, 30)
        assert [i.received_quantity for i in service.get(delivery.id).items] == [10, 4]
        assert len(_movements(db)) == 3

    def test_over_receipt_rolls_back_every_line(self, db, locations, delivery):
        lines = [
            {"item_id": delivery.items[0].id, "quantity": 5},
            {"item_id": delivery.items[1].id, "quantity": 99},
        ]

        with pytest.raises(InvalidArgument):
            InboundOrderService(db).receive(delivery.id, locations["A"].id, lines=lines)

        assert _balances(db) == {}
        assert _movements(db) == []
        db.expire_all()
        order = InboundOrderService(db).get(delivery.id)
        assert order.status == InboundOrderStatus.PENDING
        assert [i.received_quantity for i in order.items] == [0, 0]

    def test_inactive_location_is_rejected(self, db, locations, delivery):
        with pytest.raises(InvalidArgument):
            InboundOrderService(db).receive(delivery.id, locations["C"].id)

        assert _movements(db) == []

    def test_foreign_line_is_not_found(self, db, locations, product, delivery):
        other = InboundOrderService(db).create("Other", [{"product_id": product.id, "expected_quantity": 3}])

        with pytest.raises(NotFound):
            InboundOrderService(db).receive(
                delivery.id, locations["A"].id, lines=[{"item_id": other.items[0].id, "quantity": 1}],
            )

    def test_unknown_order(self, db, locations):
        with pytest.raises(NotFound):
            InboundOrderService(db).receive(999, locations["A"].id)

    def test_concurrent_receipt_is_not_booked_twice(self, db, session_factory, locations, delivery, monkeypatch):
        order_id, a_id = delivery.id, locations["A"].id
        real_book = TransferService.book_receipt
        calls = []

        def book_after_rival(service, *args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                # A second clerk receives the whole order after our read
                rival = session_factory()
                try:
                    InboundOrderService(rival).receive(order_id, a_id)
                finally:
                    rival.close()
            return real_book(service, *args, **kwargs)

        monkeypatch.setattr(TransferService, "book_receipt", book_after_rival)

        with pytest.raises(InvalidArgument):
            InboundOrderService(db, TransferService(db, backoff=0)).receive(order_id, a_id)

        assert sum(_balances(db).values()) == 14
        assert len(_movements(db)) == 2
        assert InboundOrderService(db).get(order_id).status == InboundOrderStatus.COMPLETED


class TestInboundStatus:

    def test_cancel_pending(self, db, delivery):
        order = InboundOrderService(db).cancel(delivery.id)

        assert order.status == InboundOrderStatus.CANCELLED

    def test_cancelled_and_completed_orders_are_closed(self, db, locations, product, delivery):
        service = InboundOrderService(db)
        service.cancel(delivery.id)
        with pytest.raises(InvalidArgument):
            service.receive(delivery.id, locations["A"].id)

        done = service.create("Supplier", [{"product_id": product.id, "expected_quantity": 2}])
        service.receive(done.id, locations["A"].id)
        with pytest.raises(InvalidArgument):
            service.cancel(done.id)
        with pytest.raises(InvalidArgument):
            service.receive(done.id, locations["A"].id)

    def test_list_newest_first_with_filters(self, db, product, delivery):
        service = InboundOrderService(db)
        later = service.create("Bolt World", [{"product_id": product.id, "expected_quantity": 1}])
        service.cancel(later.id)

        items, total = service.list()
        assert total == 2
        assert [o.id for o in items] == [later.id, delivery.id]

        items, total = service.list(status="pending")
        assert [o.id for o in items] == [delivery.id]

        items, total = service.list(q="bolt")
        assert [o.id for o in items] == [later.id]

        with pytest.raises(InvalidArgument):
            service.list(status="LOST")


class TestOutboundCreate:

    def test_defaults(self, shipment):
        assert re.fullmatch(r"OUT-\d{8}-\d{6}", shipment.order_number)
        assert shipment.status == OutboundOrderStatus.PENDING
        assert shipment.priority == 3
        assert [
            (i.requested_quantity, i.allocated_quantity, i.picked_quantity, i.shipped_quantity)
            for i in shipment.items
        ] == [(6, 0, 0, 0), (2, 0, 0, 0)]

    @pytest.mark.parametrize("priority", [0, 6, "1", True])
    def test_priority_must_be_1_to_5(self, db, product, priority):
        with pytest.raises(InvalidArgument):
            OutboundOrderService(db).create(
                "Acme", [{"product_id": product.id, "requested_quantity": 1}], priority=priority,
            )

    def test_customer_is_required(self, db, product):
        with pytest.raises(InvalidArgument):
            OutboundOrderService(db).create("", [{"product_id": product.id, "requested_quantity": 1}])

    def test_list_by_priority(self, db, product, shipment):
        service = OutboundOrderService(db)
        urgent = service.create("Rush Co", [{"product_id": product.id, "requested_quantity": 1}], priority=1)
        relaxed = service.create("Slow Co", [{"product_id": product.id, "requested_quantity": 1}], priority=5)

        items, total = service.list()

        assert total == 3
        assert [o.id for o in items] == [urgent.id, shipment.id, relaxed.id]


class TestOutboundFlow:

    def test_allocate_splits_available_stock(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 10)
        service = OutboundOrderService(db)
        order = service.create("Acme", [
            {"product_id": product.id, "requested_quantity": 8},
            {"product_id": product.id, "requested_quantity": 8},
        ])

        order = service.allocate(order.id)

        assert [i.allocated_quantity for i in order.items] == [8, 2]
        assert order.status == OutboundOrderStatus.PENDING
        assert _balances(db) == {(product.id, locations["A"].id, ""): 10}

    def test_pick_pack_ship(self, db, locations, product, other_product, put_stock, shipment):
        a, b = locations["A"].id, locations["B"].id
        put_stock(product, locations["A"], 10)
        put_stock(other_product, locations["B"], 5)
        service = OutboundOrderService(db)
        bolts, glue = shipment.items[0].id, shipment.items[1].id

        result = service.pick(shipment.id, [{"item_id": bolts, "location_id": a, "quantity": 6}], actor="picker")
        assert result["status"] == "PICKING"

        result = service.pick(shipment.id, [{"item_id": glue, "location_id": b, "quantity": 2}])
        assert result["status"] == "PACKING"
        assert _balances(db) == {(product.id, a, ""): 4, (other_product.id, b, ""): 3}

        movements = _movements(db)
        assert [m.movement_type for m in movements] == [MovementType.OUT, MovementType.OUT]
        assert movements[0].reason == f"Pick {shipment.order_number}"
        assert movements[0].performed_by == "picker"

        order = service.ship(shipment.id)
        assert order.status == OutboundOrderStatus.SHIPPED
        assert order.ship_date == date.today()
        assert [(i.picked_quantity, i.shipped_quantity) for i in order.items] == [(6, 6), (2, 2)]
        # Shipping closes the document; the stock left at pick time
        assert len(_movements(db)) == 2

    def test_failed_line_rolls_back_the_whole_pick(self, db, locations, product, other_product, put_stock, shipment):
        put_stock(product, locations["A"], 10)
        put_stock(other_product, locations["B"], 1)
        lines = [
            {"item_id": shipment.items[0].id, "location_id": locations["A"].id, "quantity": 6},
            {"item_id": shipment.items[1].id, "location_id": locations["B"].id, "quantity": 2},
        ]

        with pytest.raises(InsufficientStock):
            OutboundOrderService(db).pick(shipment.id, lines)

        assert _balances(db) == {
            (product.id, locations["A"].id, ""): 10,
            (other_product.id, locations["B"].id, ""): 1,
        }
        assert _movements(db) == []
        assert OutboundOrderService(db).get(shipment.id).status == OutboundOrderStatus.PENDING

    def test_over_pick_is_rejected(self, db, locations, product, put_stock, shipment):
        put_stock(product, locations["A"], 10)

        with pytest.raises(InvalidArgument):
            OutboundOrderService(db).pick(
                shipment.id, [{"item_id": shipment.items[0].id, "location_id": locations["A"].id, "quantity": 7}],
            )

        assert _movements(db) == []

    def test_ship_requires_packing(self, db, shipment):
        with pytest.raises(InvalidArgument):
            OutboundOrderService(db).ship(shipment.id)

    def test_cancel_only_before_picking(self, db, locations, product, put_stock, shipment):
        put_stock(product, locations["A"], 10)
        service = OutboundOrderService(db)
        service.pick(shipment.id, [{"item_id": shipment.items[0].id, "location_id": locations["A"].id, "quantity": 1}])

        with pytest.raises(InvalidArgument):
            service.cancel(shipment.id)

        fresh = service.create("Acme", [{"product_id": product.id, "requested_quantity": 1}])
        assert service.cancel(fresh.id).status == OutboundOrderStatus.CANCELLED
        with pytest.raises(InvalidArgument):
            service.pick(fresh.id, [{"item_id": fresh.items[0].id, "location_id": locations["A"].id, "quantity": 1}])
