"""Movement ledger: append validation, immutability, history queries."""
import pytest

from models.movement import InventoryMovement, MovementType
from services.errors import InvalidArgument
from services.ledger import MovementLedger


class TestAppend:

    def test_append_stores_normalized_row(self, db, locations, product):
        m = MovementLedger(db).append(
            product.id, 4, "TRANSFER",
            from_location_id=locations["A"].id, to_location_id=locations["B"].id,
            lot=None, reason="Manual transfer", actor="clerk@example.com",
        )
        db.commit()

        assert m.id is not None
        assert m.movement_type == MovementType.TRANSFER
        assert m.lot_number == ""
        assert m.created_at is not None

    @pytest.mark.parametrize("quantity", [0, -2, True, 1.5])
    def test_quantity_must_be_positive_integer(self, db, product, quantity):
        with pytest.raises(InvalidArgument):
            MovementLedger(db).append(product.id, quantity, MovementType.IN)

    def test_unknown_type(self, db, product):
        with pytest.raises(InvalidArgument):
            MovementLedger(db).append(product.id, 1, "LOAN")

    def test_unknown_product(self, db):
        with pytest.raises(InvalidArgument):
            MovementLedger(db).append(777, 1, MovementType.IN)

    def test_actor_defaults(self, db, product):
        m = MovementLedger(db).append(product.id, 1, MovementType.IN)

        assert m.performed_by == "User"


class TestImmutability:

    def test_update_is_refused(self, db, product):
        m = MovementLedger(db).append(product.id, 1, MovementType.IN)
        db.commit()

        m.quantity = 99
        with pytest.raises(InvalidArgument):
            db.flush()
        db.rollback()

    def test_delete_is_refused(self, db, product):
        m = MovementLedger(db).append(product.id, 1, MovementType.IN)
        db.commit()

        db.delete(m)
        with pytest.raises(InvalidArgument):
            db.flush()
        db.rollback()


class TestList:

    @pytest.fixture
    def history(self, db, locations, product, other_product):
        ledger = MovementLedger(db)
        a, b = locations["A"].id, locations["B"].id
        ledger.append(product.id, 10, MovementType.IN, to_location_id=a)
        ledger.append(product.id, 4, MovementType.TRANSFER, from_location_id=a, to_location_id=b)
        ledger.append(other_product.id, 3, MovementType.IN, to_location_id=b)
        ledger.append(product.id, 1, MovementType.OUT, from_location_id=b)
        db.commit()
        return a, b

    def test_newest_first(self, db, history):
        items, total = MovementLedger(db).list()

        assert total == 4
        assert [m.movement_type for m in items] == [
            MovementType.OUT, MovementType.IN, MovementType.TRANSFER, MovementType.IN,
        ]

    def test_location_filter_matches_either_side(self, db, history):
        a, b = history

        items, total = MovementLedger(db).list(location_id=a)

        assert total == 2
        assert all(a in (m.from_location_id, m.to_location_id) for m in items)

    def test_filters_combine(self, db, history, product):
        items, total = MovementLedger(db).list(product_id=product.id, movement_type="in")

        assert total == 1
        assert items[0].quantity == 10

    def test_pagination(self, db, history):
        items, total = MovementLedger(db).list(page=2, page_size=3)

        assert total == 4
        assert len(items) == 1

    def test_unknown_type_filter(self, db, history):
        with pytest.raises(InvalidArgument):
            MovementLedger(db).list(movement_type="LOAN")


def test_every_movement_row_is_positive(db, locations, product):
    MovementLedger(db).append(product.id, 2, MovementType.IN, to_location_id=locations["A"].id)
    db.commit()

    assert all(m.quantity > 0 for m in db.query(InventoryMovement))
