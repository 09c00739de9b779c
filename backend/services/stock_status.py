# backend/services/stock_status.py
import enum
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.inventory import InventoryBalance
from models.location import Location
from models.product import Product
from models.warehouse import Warehouse
from services.stock_query import StockQueryService


class StockStatus(str, enum.Enum):
    NORMAL = "normal"
    LOW = "low"
    OUT_OF_STOCK = "out_of_stock"
    OVERSTOCK = "overstock"


def classify(total_quantity: int, min_stock: int, max_stock: int) -> StockStatus:
    """Classify a product's aggregate quantity against its thresholds.

    Pass the sum over all locations and lots, not a single balance row.
    """
    if total_quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if total_quantity < min_stock:
        return StockStatus.LOW
    if total_quantity > max_stock:
        return StockStatus.OVERSTOCK
    return StockStatus.NORMAL


def _location_utilization(db: Session) -> List[dict]:
    occupied = (
        db.query(InventoryBalance.location_id)
        .distinct()
        .subquery()
    )
    rows = (
        db.query(
            Warehouse.name,
            func.count(Location.id).label("total"),
            func.count(occupied.c.location_id).label("occupied"),
        )
        .outerjoin(Location, (Location.warehouse_id == Warehouse.id) & (Location.is_active.is_(True)))
        .outerjoin(occupied, occupied.c.location_id == Location.id)
        .group_by(Warehouse.id, Warehouse.name)
        .order_by(Warehouse.name.asc())
        .all()
    )
    result = []
    for name, total, occ in rows:
        result.append({
            "warehouse_name": name,
            "total_locations": int(total),
            "occupied_locations": int(occ),
            "utilization_rate": round(occ / total * 100, 2) if total else 0.0,
        })
    return result


def build_stock_report(db: Session) -> dict:
    """Stock status summary used by the reports screen and its PDF export."""
    items = []
    for row in StockQueryService(db).product_totals():
        p = row["product"]
        items.append({
            "product_id": p.id,
            "product_name": p.name,
            "product_sku": p.sku,
            "total_quantity": row["total_quantity"],
            "min_stock": p.min_stock,
            "max_stock": p.max_stock,
            "location_count": row["location_count"],
            "status": classify(row["total_quantity"], p.min_stock, p.max_stock).value,
        })
    items.sort(key=lambda i: i["product_name"].lower())

    summary = {
        "total_warehouses": db.query(func.count(Warehouse.id)).scalar() or 0,
        "total_locations": db.query(func.count(Location.id)).filter(Location.is_active.is_(True)).scalar() or 0,
        "total_products": len(items),
        "total_inventory_items": db.query(func.count(InventoryBalance.id)).scalar() or 0,
        "low_stock_products": sum(1 for i in items if i["status"] == StockStatus.LOW),
        "out_of_stock_products": sum(1 for i in items if i["status"] == StockStatus.OUT_OF_STOCK),
    }
    return {
        "summary": summary,
        "items": items,
        "location_utilization": _location_utilization(db),
    }
