# backend/services/products.py
import logging
from typing import Optional, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.product import Product
from services.errors import ConstraintViolation, InvalidArgument, NotFound

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name", "description", "category", "unit", "weight", "volume",
    "barcode", "min_stock", "max_stock", "image_url",
)


def norm_sku(sku: Optional[str]) -> Optional[str]:
    if sku is None:
        return None
    s = sku.strip().upper()
    return s if s else None


class ProductService:
    """Product master data: create, update, soft delete, list."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found")
        return product

    def create(self, data: dict) -> Product:
        sku = norm_sku(data.get("sku"))
        if not sku:
            raise InvalidArgument("SKU is required")
        if not (data.get("name") or "").strip():
            raise InvalidArgument("Product name is required")
        if self.db.query(Product).filter(Product.sku == sku).first():
            raise ConstraintViolation(f"Product SKU {sku} already exists")

        fields = {k: data[k] for k in UPDATABLE_FIELDS if data.get(k) is not None}
        product = Product(sku=sku, is_active=True, **fields)
        self.db.add(product)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConstraintViolation(f"Product SKU {sku} already exists") from exc
        self.db.refresh(product)
        logger.info("Product created id=%s sku=%s", product.id, product.sku)
        return product

    def update(self, product_id: int, data: dict) -> Product:
        product = self.get(product_id)
        if "sku" in data and data["sku"] is not None:
            sku = norm_sku(data["sku"])
            if not sku:
                raise InvalidArgument("SKU cannot be empty")
            clash = self.db.query(Product).filter(Product.sku == sku, Product.id != product_id).first()
            if clash:
                raise ConstraintViolation(f"Product SKU {sku} already exists")
            product.sku = sku
        for key in UPDATABLE_FIELDS:
            if key in data and data[key] is not None:
                setattr(product, key, data[key])
        if "is_active" in data and data["is_active"] is not None:
            product.is_active = bool(data["is_active"])
        self.db.commit()
        self.db.refresh(product)
        logger.info("Product updated id=%s", product.id)
        return product

    def deactivate(self, product_id: int) -> Product:
        product = self.get(product_id)
        product.is_active = False
        self.db.commit()
        logger.info("Product deactivated id=%s", product.id)
        return product

    def list_active(self) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(Product.is_active.is_(True))
            .order_by(Product.name.asc())
            .all()
        )
