# backend/services/stock_query.py
from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.orm import Session, contains_eager

from models.inventory import InventoryBalance
from models.location import Location
from models.product import Product


def _lot_out(lot_number: Optional[str]) -> Optional[str]:
    return lot_number or None


def _product_dict(p: Product) -> dict:
    return {
        "id": p.id, "sku": p.sku, "name": p.name, "description": p.description,
        "category": p.category, "unit": p.unit, "weight": p.weight, "volume": p.volume,
        "barcode": p.barcode, "min_stock": p.min_stock, "max_stock": p.max_stock,
        "is_active": p.is_active, "image_url": p.image_url,
    }


def _location_dict(loc: Location) -> dict:
    return {
        "id": loc.id, "warehouse_id": loc.warehouse_id, "code": loc.code,
        "zone": loc.zone, "aisle": loc.aisle, "rack": loc.rack,
        "level": loc.level, "bin": loc.bin, "capacity": loc.capacity,
        "is_active": loc.is_active,
    }


class StockQueryService:
    """Read-only views over inventory balances."""

    def __init__(self, db: Session):
        self.db = db

    def list(
        self,
        product_id: Optional[int] = None,
        location_id: Optional[int] = None,
        sku: Optional[str] = None,
        include_details: bool = False,
    ) -> List[dict]:
        query = (
            self.db.query(InventoryBalance)
            .join(InventoryBalance.product)
            .join(InventoryBalance.location)
            .options(contains_eager(InventoryBalance.product), contains_eager(InventoryBalance.location))
        )
        if product_id is not None:
            query = query.filter(InventoryBalance.product_id == product_id)
        if location_id is not None:
            query = query.filter(InventoryBalance.location_id == location_id)
        if sku:
            query = query.filter(Product.sku == sku.strip().upper())

        rows = query.order_by(InventoryBalance.id.asc()).all()

        if not include_details:
            return [
                {
                    "product_sku": b.product.sku,
                    "location_code": b.location.code,
                    "quantity": b.quantity,
                    "lot_number": _lot_out(b.lot_number),
                    "expiry_date": b.expiry_date,
                }
                for b in rows
            ]

        return [
            {
                "id": b.id,
                "product_id": b.product_id,
                "location_id": b.location_id,
                "quantity": b.quantity,
                "lot_number": _lot_out(b.lot_number),
                "expiry_date": b.expiry_date,
                "created_at": b.created_at,
                "updated_at": b.updated_at,
                "product": _product_dict(b.product),
                "location": _location_dict(b.location),
            }
            for b in rows
        ]

    def total_quantity(self, product_id: int) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(InventoryBalance.quantity), 0))
            .filter(InventoryBalance.product_id == product_id)
            .scalar()
        )
        return int(total)

    def product_totals(self) -> List[dict]:
        """Per active product: quantity summed over all locations and lots."""
        rows = (
            self.db.query(
                Product,
                func.coalesce(func.sum(InventoryBalance.quantity), 0).label("total_quantity"),
                func.count(InventoryBalance.id).label("location_count"),
            )
            .outerjoin(InventoryBalance, InventoryBalance.product_id == Product.id)
            .filter(Product.is_active.is_(True))
            .group_by(Product.id)
            .all()
        )
        return [
            {
                "product": p,
                "total_quantity": int(total_quantity),
                "location_count": int(location_count),
            }
            for p, total_quantity, location_count in rows
        ]
