"""
Concurrent transfers against one source balance.

Each worker opens its own session (and so its own SQLite connection) and
waits on a barrier so the transfers start together. Lost races are retried
by the service, so every transfer must eventually apply exactly once.
"""
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from models.inventory import InventoryBalance
from models.movement import InventoryMovement, MovementType
from services.errors import InsufficientStock, SourceNotFound
from services.transfer import TransferService

NUM_THREADS = 8
QTY = 5


def _run_parallel(session_factory, num_threads, job):
    barrier = Barrier(num_threads, timeout=30)

    def worker(i):
        barrier.wait()
        session = session_factory()
        try:
            return job(session, i)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=num_threads) as executor:
        futures = [executor.submit(worker, i) for i in range(num_threads)]
        # future.result() re-raises if a worker hit an unexpected exception
        return [f.result() for f in futures]


def test_parallel_transfers_drain_source_exactly(session_factory, db, locations, product, put_stock):
    a, b = locations["A"], locations["B"]
    put_stock(product, a, NUM_THREADS * QTY)
    product_id, a_id, b_id = product.id, a.id, b.id

    def job(session, i):
        return TransferService(session, max_retries=50, backoff=0.005).transfer(
            product_id, a_id, b_id, QTY, actor=f"worker-{i}",
        )

    results = _run_parallel(session_factory, NUM_THREADS, job)

    assert all(r["success"] for r in results)
    db.expire_all()
    rows = db.query(InventoryBalance).filter(InventoryBalance.product_id == product_id).all()
    assert [(r.location_id, r.quantity) for r in rows] == [(b_id, NUM_THREADS * QTY)]

    movements = db.query(InventoryMovement).all()
    assert len(movements) == NUM_THREADS
    assert all(m.movement_type == MovementType.TRANSFER and m.quantity == QTY for m in movements)
    assert {m.performed_by for m in movements} == {f"worker-{i}" for i in range(NUM_THREADS)}


def test_oversubscribed_source_never_goes_negative(session_factory, db, locations, product, put_stock):
    """More demand than stock: the winners take it all, the rest are refused."""
    a, b = locations["A"], locations["B"]
    available_transfers = 3
    put_stock(product, a, available_transfers * QTY)
    product_id, a_id, b_id = product.id, a.id, b.id

    def job(session, i):
        try:
            return TransferService(session, max_retries=50, backoff=0.005).transfer(
                product_id, a_id, b_id, QTY,
            )
        except (InsufficientStock, SourceNotFound) as exc:
            return exc

    results = _run_parallel(session_factory, NUM_THREADS, job)

    succeeded = [r for r in results if isinstance(r, dict)]
    refused = [r for r in results if not isinstance(r, dict)]
    assert len(succeeded) == available_transfers
    assert len(refused) == NUM_THREADS - available_transfers

    db.expire_all()
    rows = db.query(InventoryBalance).filter(InventoryBalance.product_id == product_id).all()
    assert [(r.location_id, r.quantity) for r in rows] == [(b_id, available_transfers * QTY)]
    assert db.query(InventoryMovement).count() == available_transfers


@pytest.mark.parametrize("num_threads", [4])
def test_opposite_transfers_do_not_deadlock(session_factory, db, locations, product, put_stock, num_threads):
    a, b = locations["A"], locations["B"]
    put_stock(product, a, 100)
    put_stock(product, b, 100)
    product_id, a_id, b_id = product.id, a.id, b.id

    def job(session, i):
        src, dst = (a_id, b_id) if i % 2 == 0 else (b_id, a_id)
        return TransferService(session, max_retries=50, backoff=0.005).transfer(product_id, src, dst, 10)

    results = _run_parallel(session_factory, num_threads, job)

    assert all(r["success"] for r in results)
    db.expire_all()
    total = sum(r.quantity for r in db.query(InventoryBalance).filter_by(product_id=product_id))
    assert total == 200
