# backend/routes/warehouses.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from models.warehouse import Warehouse
from utils.tokenJWT import get_current_user
from utils.audit import write_log
import schemas.warehouse as warehouse_schemas

router = APIRouter(prefix="/warehouses", tags=["Warehouses"])


def _norm_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    c = code.strip().upper()
    return c if c else None


def _get_or_404(db: Session, warehouse_id: int) -> Warehouse:
    wh = db.get(Warehouse, warehouse_id)
    if not wh:
        raise HTTPException(status_code=404, detail="Warehouse not found")
    return wh


@router.get("", response_model=warehouse_schemas.WarehousePage)
def list_warehouses(
    q: Optional[str] = Query(None, description="Search by code or name"),
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Warehouse)
    if not include_inactive:
        query = query.filter(Warehouse.is_active.is_(True))
    if q:
        like = f"%{q}%"
        query = query.filter((Warehouse.code.ilike(like)) | (Warehouse.name.ilike(like)))

    total = query.count()
    items = query.order_by(Warehouse.code.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{warehouse_id}", response_model=warehouse_schemas.WarehouseOut)
def get_warehouse(
    warehouse_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    return _get_or_404(db, warehouse_id)


@router.post("", response_model=warehouse_schemas.WarehouseOut, status_code=201)
def create_warehouse(
    payload: warehouse_schemas.WarehouseCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    code = _norm_code(payload.code)
    if not code:
        raise HTTPException(status_code=400, detail="Warehouse code is required")
    if db.query(Warehouse).filter(Warehouse.code == code).first():
        raise HTTPException(status_code=409, detail="Warehouse code already exists")

    wh = Warehouse(code=code, name=payload.name, address=payload.address, is_active=True)
    db.add(wh)
    db.commit()
    db.refresh(wh)
    write_log(db, user_id=current_user.id, actor=current_user.email, action="WAREHOUSE_CREATE",
              resource="warehouses", request=request, meta={"id": wh.id, "code": wh.code})
    return wh


@router.patch("/{warehouse_id}", response_model=warehouse_schemas.WarehouseOut)
def update_warehouse(
    warehouse_id: int,
    payload: warehouse_schemas.WarehouseUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    wh = _get_or_404(db, warehouse_id)
    data = payload.model_dump(exclude_unset=True)

    if "code" in data:
        code = _norm_code(data.pop("code"))
        if not code:
            raise HTTPException(status_code=400, detail="Warehouse code cannot be empty")
        clash = db.query(Warehouse).filter(Warehouse.code == code, Warehouse.id != warehouse_id).first()
        if clash:
            raise HTTPException(status_code=409, detail="Warehouse code already exists")
        wh.code = code
    for key, value in data.items():
        if value is not None:
            setattr(wh, key, value)

    db.commit()
    db.refresh(wh)
    write_log(db, user_id=current_user.id, actor=current_user.email, action="WAREHOUSE_UPDATE",
              resource="warehouses", request=request, meta={"id": wh.id, "fields": list(data.keys())})
    return wh


@router.delete("/{warehouse_id}")
def delete_warehouse(
    warehouse_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    wh = _get_or_404(db, warehouse_id)
    wh.is_active = False
    db.commit()
    write_log(db, user_id=current_user.id, actor=current_user.email, action="WAREHOUSE_DELETE",
              resource="warehouses", request=request, meta={"id": wh.id})
    return {"message": "Warehouse deactivated"}
