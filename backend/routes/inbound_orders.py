# backend/routes/inbound_orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from models.inbound_order import InboundOrder
from utils.tokenJWT import get_current_user
from utils.audit import audited
from services.orders import InboundOrderService
import schemas.orders as order_schemas

router = APIRouter(prefix="/inbound-orders", tags=["Inbound orders"])


# Map InboundOrder model to InboundOrderOut schema
def _order_to_out(order: InboundOrder) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "supplier_name": order.supplier_name,
        "expected_date": order.expected_date,
        "status": order.status.value,
        "notes": order.notes,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "items": [
            {
                "id": it.id,
                "product_id": it.product_id,
                "product_sku": it.product.sku if it.product else None,
                "product_name": it.product.name if it.product else None,
                "expected_quantity": it.expected_quantity,
                "received_quantity": it.received_quantity,
                "lot_number": it.lot_number,
                "expiry_date": it.expiry_date,
            }
            for it in order.items
        ],
    }


@router.get("", response_model=order_schemas.InboundOrderPage)
def list_inbound_orders(
    status: Optional[str] = Query(None, description="PENDING / RECEIVING / COMPLETED / CANCELLED"),
    q: Optional[str] = Query(None, description="Search by order number or supplier"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = InboundOrderService(db).list(status=status, q=q, page=page, page_size=page_size)
    return {"items": [_order_to_out(o) for o in items], "total": total, "page": page, "page_size": page_size}


@router.get("/{order_id}", response_model=order_schemas.InboundOrderOut)
def get_inbound_order(
    order_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    return _order_to_out(InboundOrderService(db).get(order_id))


@router.post("", response_model=order_schemas.InboundOrderOut, status_code=201)
def create_inbound_order(
    payload: order_schemas.InboundOrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = audited(
        db, user=current_user, action="INBOUND_CREATE", resource="inbound_orders", request=request,
        meta={"supplier_name": payload.supplier_name, "lines": len(payload.items)},
        run=lambda: InboundOrderService(db).create(
            supplier_name=payload.supplier_name,
            items=[item.model_dump() for item in payload.items],
            expected_date=payload.expected_date,
            notes=payload.notes,
            order_number=payload.order_number,
        ),
        result_meta=lambda o: {"order_id": o.id, "order_number": o.order_number},
    )
    return _order_to_out(order)


@router.post("/{order_id}/receive", response_model=order_schemas.OrderBookingResult)
def receive_inbound_order(
    order_id: int,
    payload: order_schemas.InboundReceiveRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return audited(
        db, user=current_user, action="INBOUND_RECEIVE", resource="inbound_orders", request=request,
        meta={"order_id": order_id, **payload.model_dump(mode="json")},
        run=lambda: InboundOrderService(db).receive(
            order_id,
            location_id=payload.location_id,
            lines=[line.model_dump() for line in payload.lines] if payload.lines is not None else None,
            reason=payload.reason,
            actor=current_user.email,
        ),
        result_meta=lambda r: {"status": r["status"], "movement_ids": r["movement_ids"]},
    )


@router.post("/{order_id}/cancel", response_model=order_schemas.InboundOrderOut)
def cancel_inbound_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = audited(
        db, user=current_user, action="INBOUND_CANCEL", resource="inbound_orders", request=request,
        meta={"order_id": order_id},
        run=lambda: InboundOrderService(db).cancel(order_id),
    )
    return _order_to_out(order)
