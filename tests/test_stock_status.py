"""Stock status classification and the stock report built on it."""
import pytest

from models.product import Product
from services.stock_status import StockStatus, build_stock_report, classify


class TestClassify:

    @pytest.mark.parametrize(
        "total, expected",
        [
            (0, StockStatus.OUT_OF_STOCK),
            (4, StockStatus.LOW),
            (5, StockStatus.NORMAL),
            (50, StockStatus.NORMAL),
            (100, StockStatus.NORMAL),
            (101, StockStatus.OVERSTOCK),
        ],
    )
    def test_boundaries_min_5_max_100(self, total, expected):
        assert classify(total, 5, 100) == expected

    def test_zero_is_out_of_stock_even_with_zero_minimum(self):
        assert classify(0, 0, 100) == StockStatus.OUT_OF_STOCK

    def test_status_values_are_wire_strings(self):
        assert StockStatus.OUT_OF_STOCK.value == "out_of_stock"
        assert classify(101, 5, 100) == "overstock"


class TestStockReport:

    def test_aggregates_across_locations_and_lots(self, db, locations, product, put_stock):
        # 3 + 3 is low per row but 6 >= 5 in total
        put_stock(product, locations["A"], 3, lot="L1")
        put_stock(product, locations["B"], 3)

        report = build_stock_report(db)

        item = next(i for i in report["items"] if i["product_id"] == product.id)
        assert item["total_quantity"] == 6
        assert item["location_count"] == 2
        assert item["status"] == "normal"

    def test_product_without_balance_is_out_of_stock(self, db, locations, product):
        report = build_stock_report(db)

        item = next(i for i in report["items"] if i["product_id"] == product.id)
        assert item["total_quantity"] == 0
        assert item["status"] == "out_of_stock"
        assert report["summary"]["out_of_stock_products"] == 1

    def test_summary_counts(self, db, locations, product, other_product, put_stock):
        put_stock(product, locations["A"], 2)          # low (min 5)
        put_stock(other_product, locations["B"], 60)   # overstock (max 50)

        summary = build_stock_report(db)["summary"]

        assert summary["total_warehouses"] == 1
        assert summary["total_locations"] == 2  # C is inactive
        assert summary["total_products"] == 2
        assert summary["total_inventory_items"] == 2
        assert summary["low_stock_products"] == 1
        assert summary["out_of_stock_products"] == 0

    def test_items_sorted_by_name_and_inactive_products_skipped(self, db, locations, product, other_product):
        db.add(Product(sku="OLD-1", name="Aaa retired item", is_active=False))
        db.commit()

        names = [i["product_name"] for i in build_stock_report(db)["items"]]

        assert names == ["Hex bolt M8x40", "Wood glue 500ml"]

    def test_location_utilization(self, db, locations, product, put_stock):
        put_stock(product, locations["A"], 10)
        put_stock(product, locations["A"], 5, lot="L2")

        util = build_stock_report(db)["location_utilization"]

        assert util == [{
            "warehouse_name": "Main Warehouse",
            "total_locations": 2,
            "occupied_locations": 1,
            "utilization_rate": 50.0,
        }]
