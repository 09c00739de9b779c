# backend/routes/outbound_orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from models.outbound_order import OutboundOrder
from utils.tokenJWT import get_current_user
from utils.audit import audited
from services.orders import OutboundOrderService
import schemas.orders as order_schemas

router = APIRouter(prefix="/outbound-orders", tags=["Outbound orders"])


# Map OutboundOrder model to OutboundOrderOut schema
def _order_to_out(order: OutboundOrder) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "delivery_address": order.delivery_address,
        "ship_date": order.ship_date,
        "status": order.status.value,
        "priority": order.priority,
        "notes": order.notes,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "items": [
            {
                "id": it.id,
                "product_id": it.product_id,
                "product_sku": it.product.sku if it.product else None,
                "product_name": it.product.name if it.product else None,
                "requested_quantity": it.requested_quantity,
                "allocated_quantity": it.allocated_quantity,
                "picked_quantity": it.picked_quantity,
                "shipped_quantity": it.shipped_quantity,
            }
            for it in order.items
        ],
    }


def _status_change(db: Session, request: Request, user: User, order_id: int, action: str, run) -> dict:
    order = audited(
        db, user=user, action=action, resource="outbound_orders", request=request,
        meta={"order_id": order_id}, run=run,
        result_meta=lambda o: {"status": o.status.value},
    )
    return _order_to_out(order)


@router.get("", response_model=order_schemas.OutboundOrderPage)
def list_outbound_orders(
    status: Optional[str] = Query(None, description="PENDING / PICKING / PACKING / SHIPPED / CANCELLED"),
    q: Optional[str] = Query(None, description="Search by order number or customer"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = OutboundOrderService(db).list(status=status, q=q, page=page, page_size=page_size)
    return {"items": [_order_to_out(o) for o in items], "total": total, "page": page, "page_size": page_size}


@router.get("/{order_id}", response_model=order_schemas.OutboundOrderOut)
def get_outbound_order(
    order_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    return _order_to_out(OutboundOrderService(db).get(order_id))


@router.post("", response_model=order_schemas.OutboundOrderOut, status_code=201)
def create_outbound_order(
    payload: order_schemas.OutboundOrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = audited(
        db, user=current_user, action="OUTBOUND_CREATE", resource="outbound_orders", request=request,
        meta={"customer_name": payload.customer_name, "lines": len(payload.items), "priority": payload.priority},
        run=lambda: OutboundOrderService(db).create(
            customer_name=payload.customer_name,
            items=[item.model_dump() for item in payload.items],
            delivery_address=payload.delivery_address,
            ship_date=payload.ship_date,
            priority=payload.priority,
            notes=payload.notes,
            order_number=payload.order_number,
        ),
        result_meta=lambda o: {"order_id": o.id, "order_number": o.order_number},
    )
    return _order_to_out(order)


@router.post("/{order_id}/allocate", response_model=order_schemas.OutboundOrderOut)
def allocate_outbound_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _status_change(
        db, request, current_user, order_id, "OUTBOUND_ALLOCATE",
        lambda: OutboundOrderService(db).allocate(order_id),
    )


@router.post("/{order_id}/pick", response_model=order_schemas.OrderBookingResult)
def pick_outbound_order(
    order_id: int,
    payload: order_schemas.OutboundPickRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return audited(
        db, user=current_user, action="OUTBOUND_PICK", resource="outbound_orders", request=request,
        meta={"order_id": order_id, **payload.model_dump(mode="json")},
        run=lambda: OutboundOrderService(db).pick(
            order_id,
            lines=[line.model_dump() for line in payload.lines],
            reason=payload.reason,
            actor=current_user.email,
        ),
        result_meta=lambda r: {"status": r["status"], "movement_ids": r["movement_ids"]},
    )


@router.post("/{order_id}/ship", response_model=order_schemas.OutboundOrderOut)
def ship_outbound_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _status_change(
        db, request, current_user, order_id, "OUTBOUND_SHIP",
        lambda: OutboundOrderService(db).ship(order_id),
    )


@router.post("/{order_id}/cancel", response_model=order_schemas.OutboundOrderOut)
def cancel_outbound_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _status_change(
        db, request, current_user, order_id, "OUTBOUND_CANCEL",
        lambda: OutboundOrderService(db).cancel(order_id),
    )
