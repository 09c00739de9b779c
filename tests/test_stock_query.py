"""Inventory check views over balances."""
from datetime import date

from services.stock_query import StockQueryService


def test_summary_rows(db, locations, product, put_stock):
    put_stock(product, locations["A"], 10)
    put_stock(product, locations["B"], 4, lot="L1", expiry_date=date(2027, 3, 1))

    rows = StockQueryService(db).list()

    assert rows == [
        {"product_sku": "BOLT-M8", "location_code": "A-01-01", "quantity": 10,
         "lot_number": None, "expiry_date": None},
        {"product_sku": "BOLT-M8", "location_code": "B-02-01", "quantity": 4,
         "lot_number": "L1", "expiry_date": date(2027, 3, 1)},
    ]


def test_filters(db, locations, product, other_product, put_stock):
    put_stock(product, locations["A"], 10)
    put_stock(other_product, locations["A"], 3)
    put_stock(other_product, locations["B"], 8)
    service = StockQueryService(db)

    assert [r["quantity"] for r in service.list(product_id=other_product.id)] == [3, 8]
    assert [r["product_sku"] for r in service.list(location_id=locations["A"].id)] == ["BOLT-M8", "GLUE-500"]
    assert [r["quantity"] for r in service.list(sku=" glue-500 ")] == [3, 8]
    assert service.list(product_id=other_product.id, location_id=locations["B"].id)[0]["quantity"] == 8
    assert service.list(sku="NOPE") == []


def test_details_include_product_and_location(db, locations, product, put_stock):
    balance = put_stock(product, locations["A"], 10)

    row = StockQueryService(db).list(include_details=True)[0]

    assert row["id"] == balance.id
    assert row["product_id"] == product.id
    assert row["location_id"] == locations["A"].id
    assert row["lot_number"] is None
    assert row["product"]["sku"] == "BOLT-M8"
    assert row["product"]["min_stock"] == 5
    assert row["location"]["code"] == "A-01-01"
    assert row["location"]["warehouse_id"] == locations["A"].warehouse_id


def test_totals(db, locations, product, other_product, put_stock):
    put_stock(product, locations["A"], 10)
    put_stock(product, locations["B"], 5, lot="L1")
    service = StockQueryService(db)

    assert service.total_quantity(product.id) == 15
    assert service.total_quantity(other_product.id) == 0

    totals = {t["product"].sku: (t["total_quantity"], t["location_count"]) for t in service.product_totals()}
    assert totals == {"BOLT-M8": (15, 2), "GLUE-500": (0, 0)}
