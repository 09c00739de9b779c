# backend/schemas/inventory.py
from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional

from schemas.product import ProductOut
from schemas.location import LocationOut


# Quantities are range-checked by the stock services (400 on violation)

# Request to move stock between two locations
class TransferRequest(BaseModel):
    product_id: int
    from_location_id: int
    to_location_id: int
    quantity: int
    lot_number: Optional[str] = None
    reason: Optional[str] = None


# Inbound booking at a single location
class ReceiveRequest(BaseModel):
    product_id: int
    location_id: int
    quantity: int
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None
    reason: Optional[str] = None


# Outbound booking from a single location
class IssueRequest(BaseModel):
    product_id: int
    location_id: int
    quantity: int
    lot_number: Optional[str] = None
    reason: Optional[str] = None


# Stock count: sets the balance to the counted quantity
class AdjustRequest(BaseModel):
    product_id: int
    location_id: int
    counted_quantity: int
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None
    reason: Optional[str] = None


class OperationResult(BaseModel):
    success: bool
    message: str
    movement_id: Optional[int] = None


# Compact balance row (inventory check without details)
class BalanceSummary(BaseModel):
    product_sku: str
    location_code: str
    quantity: int
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None


# Balance row joined with product and location
class BalanceDetail(BaseModel):
    id: int
    product_id: int
    location_id: int
    quantity: int
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    product: ProductOut
    location: LocationOut
