"""
Pytest fixtures for the inventory test suite.

Every test gets its own file-backed SQLite database under tmp_path, so
threads in the concurrency tests can open independent connections to it.

Provides:
- ``engine`` / ``session_factory`` / ``db`` bound to that database
- a seeded warehouse with three locations (one inactive) and two products
- ``put_stock`` to place opening balances without going through the ledger
- ``client`` (FastAPI TestClient with ``get_db`` overridden) and
  ``auth_headers`` for an existing user
"""
from datetime import date
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import Base, get_db, make_engine
from models.users import User
from models.log import Log  # noqa: F401
from models.warehouse import Warehouse
from models.location import Location
from models.product import Product
from models.inventory import InventoryBalance
from models.movement import InventoryMovement  # noqa: F401
from models.inbound_order import InboundOrder  # noqa: F401
from models.outbound_order import OutboundOrder  # noqa: F401
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'inventory_test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------------

@pytest.fixture
def warehouse(db):
    wh = Warehouse(code="WH-MAIN", name="Main Warehouse", address="Industrial St 12", is_active=True)
    db.add(wh)
    db.commit()
    return wh


@pytest.fixture
def locations(db, warehouse):
    """Three locations: A and B active, C inactive."""
    rows = {
        "A": Location(warehouse_id=warehouse.id, code="A-01-01", zone="A", capacity=100, is_active=True),
        "B": Location(warehouse_id=warehouse.id, code="B-02-01", zone="B", capacity=100, is_active=True),
        "C": Location(warehouse_id=warehouse.id, code="C-03-01", zone="C", capacity=100, is_active=False),
    }
    db.add_all(rows.values())
    db.commit()
    return rows


@pytest.fixture
def product(db):
    p = Product(sku="BOLT-M8", name="Hex bolt M8x40", unit="PCS", min_stock=5, max_stock=100, is_active=True)
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def other_product(db):
    p = Product(sku="GLUE-500", name="Wood glue 500ml", unit="PCS", min_stock=10, max_stock=50, is_active=True)
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def put_stock(db):
    """Create a balance row directly (opening stock, no movement)."""

    def _put(product: Product, location: Location, quantity: int,
             lot: str = "", expiry_date: Optional[date] = None) -> InventoryBalance:
        balance = InventoryBalance(
            product_id=product.id,
            location_id=location.id,
            lot_number=lot,
            quantity=quantity,
            expiry_date=expiry_date,
        )
        db.add(balance)
        db.commit()
        return balance

    return _put


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def user(db):
    u = User(email="clerk@example.com", password_hash=get_password_hash("secret123"),
             first_name="Stock", last_name="Clerk")
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def auth_headers(user):
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session_factory):
    # Imported here so collecting service-level tests does not build the app
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan would create tables in the default database
    yield TestClient(app)
    app.dependency_overrides.clear()
