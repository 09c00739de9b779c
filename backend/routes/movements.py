# backend/routes/movements.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db
from models.users import User
from utils.tokenJWT import get_current_user
from services.ledger import MovementLedger
import schemas.movement as movement_schemas

router = APIRouter(prefix="/movements", tags=["Movements"])


@router.get("", response_model=movement_schemas.MovementPage)
def list_movements(
    product_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None, description="Matches source or destination"),
    type: Optional[str] = Query(None, description="IN / OUT / TRANSFER / ADJUST"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = MovementLedger(db).list(
        product_id=product_id, location_id=location_id, movement_type=type,
        page=page, page_size=page_size,
    )

    results = []
    for m in items:
        results.append({
            "id": m.id,
            "created_at": m.created_at,
            "product_id": m.product_id,
            "product_sku": m.product.sku if m.product else None,
            "product_name": m.product.name if m.product else None,
            "from_location_id": m.from_location_id,
            "from_location_code": m.from_location.code if m.from_location else None,
            "to_location_id": m.to_location_id,
            "to_location_code": m.to_location.code if m.to_location else None,
            "lot_number": m.lot_number or None,
            "quantity": m.quantity,
            "movement_type": m.movement_type.value,
            "reason": m.reason,
            "performed_by": m.performed_by,
        })

    return {"items": results, "total": total, "page": page, "page_size": page_size}
