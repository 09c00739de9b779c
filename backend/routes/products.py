# backend/routes/products.py
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from sqlalchemy.sql.expression import ColumnElement

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from models.users import User
from models.product import Product
from services.products import ProductService
import schemas.product as product_schemas

router = APIRouter(tags=["Products"])


def _get_unique_values(db: Session, column: ColumnElement) -> List[str]:
    values = db.query(column).distinct().filter(column.isnot(None), column != "").all()
    return [v[0] for v in values]


# =========================
# PRODUCT LIST
# =========================
@router.get("/products", response_model=product_schemas.ProductListPage)
def list_products(
    name: Optional[str] = Query(None),
    sku: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=10000),
    sort_by: str = Query("name"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Product)

    if not include_inactive: query = query.filter(Product.is_active.is_(True))
    if name: query = query.filter(Product.name.ilike(f"%{name}%"))
    if sku: query = query.filter(Product.sku.ilike(f"%{sku}%"))
    if category: query = query.filter(Product.category.ilike(f"%{category}%"))

    allowed = {
        "id": Product.id, "sku": Product.sku, "name": Product.name,
        "category": Product.category, "created_at": Product.created_at,
    }
    sort_col = allowed.get(sort_by.lower(), Product.name)
    query = query.order_by(sort_col.asc() if order == "asc" else sort_col.desc())

    total = query.count()
    items: List[Product] = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/products/unique/categories", response_model=List[str])
def get_product_categories(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _get_unique_values(db, Product.category)


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/products/{product_id}", response_model=product_schemas.ProductOut)
def get_product(
    product_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    return ProductService(db).get(product_id)


@router.post("/products", response_model=product_schemas.ProductOut, status_code=201)
def add_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product = ProductService(db).create(payload.model_dump())
    write_log(db, user_id=current_user.id, actor=current_user.email, action="PRODUCT_CREATE",
              resource="products", request=request, meta={"id": product.id, "sku": product.sku})
    return product


@router.patch("/products/{product_id}", response_model=product_schemas.ProductOut)
def edit_product(
    product_id: int,
    payload: product_schemas.ProductEditRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = payload.model_dump(exclude_unset=True)
    product = ProductService(db).update(product_id, data)
    write_log(db, user_id=current_user.id, actor=current_user.email, action="PRODUCT_UPDATE",
              resource="products", request=request, meta={"id": product.id, "fields": list(data.keys())})
    return product


# Soft delete: balances and movements keep referring to the product
@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product = ProductService(db).deactivate(product_id)
    write_log(db, user_id=current_user.id, actor=current_user.email, action="PRODUCT_DELETE",
              resource="products", request=request, meta={"id": product.id})
    return {"message": "Product deactivated"}
