# backend/routes/locations.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from models.location import Location
from models.warehouse import Warehouse
from utils.tokenJWT import get_current_user
from utils.audit import write_log
import schemas.location as location_schemas

router = APIRouter(prefix="/locations", tags=["Locations"])


def _norm_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    c = code.strip().upper()
    return c if c else None


def _get_or_404(db: Session, location_id: int) -> Location:
    loc = db.get(Location, location_id)
    if not loc:
        raise HTTPException(status_code=404, detail="Location not found")
    return loc


def _check_warehouse(db: Session, warehouse_id: int) -> None:
    if not db.get(Warehouse, warehouse_id):
        raise HTTPException(status_code=404, detail="Warehouse not found")


def _check_code_free(db: Session, warehouse_id: int, code: str, exclude_id: Optional[int] = None) -> None:
    q = db.query(Location).filter(Location.warehouse_id == warehouse_id, Location.code == code)
    if exclude_id is not None:
        q = q.filter(Location.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=409, detail="Location code already exists in this warehouse")


@router.get("", response_model=location_schemas.LocationPage)
def list_locations(
    warehouse_id: Optional[int] = Query(None),
    q: Optional[str] = Query(None, description="Search by code or zone"),
    include_inactive: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Location)
    if warehouse_id is not None:
        query = query.filter(Location.warehouse_id == warehouse_id)
    if not include_inactive:
        query = query.filter(Location.is_active.is_(True))
    if q:
        like = f"%{q}%"
        query = query.filter((Location.code.ilike(like)) | (Location.zone.ilike(like)))

    total = query.count()
    items = query.order_by(Location.code.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{location_id}", response_model=location_schemas.LocationOut)
def get_location(
    location_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    return _get_or_404(db, location_id)


@router.post("", response_model=location_schemas.LocationOut, status_code=201)
def create_location(
    payload: location_schemas.LocationCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _check_warehouse(db, payload.warehouse_id)
    code = _norm_code(payload.code)
    if not code:
        raise HTTPException(status_code=400, detail="Location code is required")
    _check_code_free(db, payload.warehouse_id, code)

    data = payload.model_dump()
    data["code"] = code
    loc = Location(**data, is_active=True)
    db.add(loc)
    db.commit()
    db.refresh(loc)
    write_log(db, user_id=current_user.id, actor=current_user.email, action="LOCATION_CREATE",
              resource="locations", request=request, meta={"id": loc.id, "code": loc.code})
    return loc


@router.patch("/{location_id}", response_model=location_schemas.LocationOut)
def update_location(
    location_id: int,
    payload: location_schemas.LocationUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    loc = _get_or_404(db, location_id)
    data = payload.model_dump(exclude_unset=True)

    warehouse_id = data.get("warehouse_id") or loc.warehouse_id
    if "warehouse_id" in data and data["warehouse_id"] is not None:
        _check_warehouse(db, data["warehouse_id"])
    if "code" in data:
        code = _norm_code(data["code"])
        if not code:
            raise HTTPException(status_code=400, detail="Location code cannot be empty")
        data["code"] = code
    if "code" in data or "warehouse_id" in data:
        _check_code_free(db, warehouse_id, data.get("code") or loc.code, exclude_id=location_id)

    for key, value in data.items():
        if value is not None or key in {"zone", "aisle", "rack", "level", "bin"}:
            setattr(loc, key, value)

    db.commit()
    db.refresh(loc)
    write_log(db, user_id=current_user.id, actor=current_user.email, action="LOCATION_UPDATE",
              resource="locations", request=request, meta={"id": loc.id, "fields": list(data.keys())})
    return loc


@router.delete("/{location_id}")
def delete_location(
    location_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    loc = _get_or_404(db, location_id)
    loc.is_active = False
    db.commit()
    write_log(db, user_id=current_user.id, actor=current_user.email, action="LOCATION_DELETE",
              resource="locations", request=request, meta={"id": loc.id})
    return {"message": "Location deactivated"}
