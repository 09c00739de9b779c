# backend/routes/inventory.py
from typing import Callable, List, Optional, Union

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from utils.tokenJWT import get_current_user
from utils.audit import audited
from services.stock_query import StockQueryService
from services.transfer import TransferService
import schemas.inventory as inventory_schemas

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _logged(
    db: Session, request: Request, user: User, action: str, params: dict, run: Callable[[], dict]
) -> dict:
    return audited(
        db, user=user, action=action, resource="inventory", request=request, meta=params, run=run,
        result_meta=lambda result: {"movement_id": result.get("movement_id")},
    )


@router.get(
    "",
    response_model=Union[List[inventory_schemas.BalanceDetail], List[inventory_schemas.BalanceSummary]],
)
def check_inventory(
    product_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    sku: Optional[str] = Query(None),
    include_details: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return StockQueryService(db).list(
        product_id=product_id, location_id=location_id, sku=sku, include_details=include_details,
    )


@router.post("/transfer", response_model=inventory_schemas.OperationResult)
def transfer_stock(
    payload: inventory_schemas.TransferRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _logged(
        db, request, current_user, "STOCK_TRANSFER", payload.model_dump(mode="json"),
        lambda: TransferService(db).transfer(
            product_id=payload.product_id,
            from_location_id=payload.from_location_id,
            to_location_id=payload.to_location_id,
            quantity=payload.quantity,
            lot=payload.lot_number,
            reason=payload.reason,
            actor=current_user.email,
        ),
    )


@router.post("/receive", response_model=inventory_schemas.OperationResult)
def receive_stock(
    payload: inventory_schemas.ReceiveRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _logged(
        db, request, current_user, "STOCK_RECEIVE", payload.model_dump(mode="json"),
        lambda: TransferService(db).receive(
            product_id=payload.product_id,
            location_id=payload.location_id,
            quantity=payload.quantity,
            lot=payload.lot_number,
            expiry_date=payload.expiry_date,
            reason=payload.reason,
            actor=current_user.email,
        ),
    )


@router.post("/issue", response_model=inventory_schemas.OperationResult)
def issue_stock(
    payload: inventory_schemas.IssueRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _logged(
        db, request, current_user, "STOCK_ISSUE", payload.model_dump(mode="json"),
        lambda: TransferService(db).issue(
            product_id=payload.product_id,
            location_id=payload.location_id,
            quantity=payload.quantity,
            lot=payload.lot_number,
            reason=payload.reason,
            actor=current_user.email,
        ),
    )


@router.post("/adjust", response_model=inventory_schemas.OperationResult)
def adjust_stock(
    payload: inventory_schemas.AdjustRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _logged(
        db, request, current_user, "STOCK_ADJUSTMENT", payload.model_dump(mode="json"),
        lambda: TransferService(db).adjust(
            product_id=payload.product_id,
            location_id=payload.location_id,
            counted_quantity=payload.counted_quantity,
            lot=payload.lot_number,
            expiry_date=payload.expiry_date,
            reason=payload.reason,
            actor=current_user.email,
        ),
    )
