# backend/schemas/orders.py
from pydantic import BaseModel, ConfigDict
from datetime import date, datetime
from typing import List, Optional, Literal

InboundStatusLiteral = Literal["PENDING", "RECEIVING", "COMPLETED", "CANCELLED"]
OutboundStatusLiteral = Literal["PENDING", "PICKING", "PACKING", "SHIPPED", "CANCELLED"]

# Quantities, priority and required names are checked by the order services (400 on violation)


# ---------------------------------------------------------------------------
# Inbound (supplier deliveries)
# ---------------------------------------------------------------------------

class InboundItemCreate(BaseModel):
    product_id: int
    expected_quantity: int
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None


class InboundOrderCreate(BaseModel):
    supplier_name: str
    order_number: Optional[str] = None  # generated as IN-YYYYMMDD-HHMMSS when omitted
    expected_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[InboundItemCreate]


# One received line; lot and expiry default to what the order line says
class ReceiptLine(BaseModel):
    item_id: int
    quantity: int
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None


# Omitting lines receives everything still outstanding
class InboundReceiveRequest(BaseModel):
    location_id: int
    lines: Optional[List[ReceiptLine]] = None
    reason: Optional[str] = None


class InboundItemOut(BaseModel):
    id: int
    product_id: int
    product_sku: Optional[str] = None
    product_name: Optional[str] = None
    expected_quantity: int
    received_quantity: int
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class InboundOrderOut(BaseModel):
    id: int
    order_number: str
    supplier_name: str
    expected_date: Optional[date] = None
    status: InboundStatusLiteral
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[InboundItemOut]


class InboundOrderPage(BaseModel):
    items: List[InboundOrderOut]
    total: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Outbound (customer shipments)
# ---------------------------------------------------------------------------

class OutboundItemCreate(BaseModel):
    product_id: int
    requested_quantity: int


class OutboundOrderCreate(BaseModel):
    customer_name: str
    order_number: Optional[str] = None  # generated as OUT-YYYYMMDD-HHMMSS when omitted
    delivery_address: Optional[str] = None
    ship_date: Optional[date] = None
    priority: int = 3
    notes: Optional[str] = None
    items: List[OutboundItemCreate]


# Stock taken from one location for one order line
class PickLine(BaseModel):
    item_id: int
    location_id: int
    quantity: int
    lot_number: Optional[str] = None


class OutboundPickRequest(BaseModel):
    lines: List[PickLine]
    reason: Optional[str] = None


class OutboundItemOut(BaseModel):
    id: int
    product_id: int
    product_sku: Optional[str] = None
    product_name: Optional[str] = None
    requested_quantity: int
    allocated_quantity: int
    picked_quantity: int
    shipped_quantity: int

    model_config = ConfigDict(from_attributes=True)


class OutboundOrderOut(BaseModel):
    id: int
    order_number: str
    customer_name: str
    delivery_address: Optional[str] = None
    ship_date: Optional[date] = None
    status: OutboundStatusLiteral
    priority: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OutboundItemOut]


class OutboundOrderPage(BaseModel):
    items: List[OutboundOrderOut]
    total: int
    page: int
    page_size: int


# Result of a receipt or pick: the order after the booking plus the ledger rows written
class OrderBookingResult(BaseModel):
    success: bool
    message: str
    order_id: int
    status: str
    movement_ids: List[int]
