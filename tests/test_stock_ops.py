"""Single-location operations: receive (IN), issue (OUT), adjust (ADJUST)."""
from datetime import date

import pytest

from models.inventory import InventoryBalance
from models.movement import InventoryMovement, MovementType
from models.product import Product
from services.errors import InsufficientStock, InvalidArgument, NotFound, SourceNotFound
from services.transfer import TransferService


def _quantity(db, product_id, location_id, lot=""):
    db.expire_all()
    row = (
        db.query(InventoryBalance)
        .filter_by(product_id=product_id, location_id=location_id, lot_number=lot)
        .first()
    )
    return row.quantity if row else None


def _last_movement(db):
    db.expire_all()
    return db.query(InventoryMovement).order_by(InventoryMovement.id.desc()).first()


class TestReceive:

    def test_creates_balance_and_in_movement(self, db, locations, product):
        a = locations["A"]

        result = TransferService(db).receive(
            product.id, a.id, 12, lot="L1", expiry_date=date(2027, 5, 1), actor="clerk@example.com",
        )

        assert result["message"] == "Received 12 units at A-01-01"
        assert _quantity(db, product.id, a.id, "L1") == 12
        m = _last_movement(db)
        assert m.movement_type == MovementType.IN
        assert (m.from_location_id, m.to_location_id) == (None, a.id)
        assert m.reason == "Goods receipt"
        assert m.performed_by == "clerk@example.com"

    def test_adds_to_existing_balance(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 3)

        TransferService(db).receive(product.id, locations["A"].id, 4)

        assert _quantity(db, product.id, locations["A"].id) == 7

    def test_inactive_location_is_rejected(self, db, locations, product):
        with pytest.raises(InvalidArgument):
            TransferService(db).receive(product.id, locations["C"].id, 4)

    def test_inactive_product_is_rejected(self, db, locations):
        p = Product(sku="OLD-1", name="Retired", is_active=False)
        db.add(p)
        db.commit()

        with pytest.raises(InvalidArgument):
            TransferService(db).receive(p.id, locations["A"].id, 4)

    def test_unknown_product(self, db, locations):
        with pytest.raises(NotFound):
            TransferService(db).receive(4242, locations["A"].id, 4)

    def test_zero_quantity(self, db, locations, product):
        with pytest.raises(InvalidArgument):
            TransferService(db).receive(product.id, locations["A"].id, 0)


class TestIssue:

    def test_decrements_and_logs_out(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 10)

        TransferService(db).issue(product.id, locations["A"].id, 4, reason="Order 1001")

        assert _quantity(db, product.id, locations["A"].id) == 6
        m = _last_movement(db)
        assert m.movement_type == MovementType.OUT
        assert (m.from_location_id, m.to_location_id) == (locations["A"].id, None)
        assert m.reason == "Order 1001"

    def test_issuing_everything_removes_the_row(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 10)

        TransferService(db).issue(product.id, locations["A"].id, 10)

        assert _quantity(db, product.id, locations["A"].id) is None

    def test_more_than_available(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 2)

        with pytest.raises(InsufficientStock) as exc_info:
            TransferService(db).issue(product.id, locations["A"].id, 3)

        assert exc_info.value.available == 2
        assert _quantity(db, product.id, locations["A"].id) == 2
        assert _last_movement(db) is None

    def test_nothing_to_issue(self, db, locations, product):
        with pytest.raises(SourceNotFound):
            TransferService(db).issue(product.id, locations["A"].id, 1)


class TestAdjust:

    def test_count_down_logs_difference_from_location(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 10)

        result = TransferService(db).adjust(product.id, locations["A"].id, 7)

        assert result["message"] == "Adjusted A-01-01 from 10 to 7"
        assert _quantity(db, product.id, locations["A"].id) == 7
        m = _last_movement(db)
        assert m.movement_type == MovementType.ADJUST
        assert m.quantity == 3
        assert (m.from_location_id, m.to_location_id) == (locations["A"].id, None)
        assert m.reason == "Stock count adjustment"

    def test_count_up_logs_difference_to_location(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 10)

        TransferService(db).adjust(product.id, locations["A"].id, 15)

        m = _last_movement(db)
        assert m.quantity == 5
        assert (m.from_location_id, m.to_location_id) == (None, locations["A"].id)

    def test_count_on_empty_location_creates_balance(self, db, locations, product):
        TransferService(db).adjust(product.id, locations["B"].id, 4, lot="L7", expiry_date=date(2027, 2, 2))

        db.expire_all()
        row = db.query(InventoryBalance).filter_by(location_id=locations["B"].id).one()
        assert (row.quantity, row.lot_number, row.expiry_date) == (4, "L7", date(2027, 2, 2))

    def test_count_of_zero_removes_the_row(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 10)

        TransferService(db).adjust(product.id, locations["A"].id, 0)

        assert _quantity(db, product.id, locations["A"].id) is None
        assert _last_movement(db).quantity == 10

    def test_unchanged_count_records_nothing(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 10)

        result = TransferService(db).adjust(product.id, locations["A"].id, 10)

        assert result["movement_id"] is None
        assert _last_movement(db) is None

    def test_negative_count(self, db, locations, product):
        with pytest.raises(InvalidArgument):
            TransferService(db).adjust(product.id, locations["A"].id, -1)

    def test_count_up_at_inactive_location_is_rejected(self, db, locations, product, put_stock):
        put_stock(product, locations["C"], 2)

        with pytest.raises(InvalidArgument):
            TransferService(db).adjust(product.id, locations["C"].id, 9)

        assert _quantity(db, product.id, locations["C"].id) == 2
        assert _last_movement(db) is None

    def test_new_stock_at_inactive_location_is_rejected(self, db, locations, product):
        with pytest.raises(InvalidArgument):
            TransferService(db).adjust(product.id, locations["C"].id, 3)

        assert _quantity(db, product.id, locations["C"].id) is None

    def test_count_down_at_inactive_location_is_allowed(self, db, locations, product, put_stock):
        put_stock(product, locations["C"], 6)

        TransferService(db).adjust(product.id, locations["C"].id, 0)

        assert _quantity(db, product.id, locations["C"].id) is None
        assert _last_movement(db).from_location_id == locations["C"].id
