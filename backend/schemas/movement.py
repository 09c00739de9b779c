# backend/schemas/movement.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

# Define allowed types for inventory movements
MovementTypeLiteral = Literal["IN", "OUT", "TRANSFER", "ADJUST"]

# Schema for returning movement details
class MovementResponse(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    product_id: int
    product_sku: Optional[str] = None
    product_name: Optional[str] = None
    from_location_id: Optional[int] = None
    from_location_code: Optional[str] = None
    to_location_id: Optional[int] = None
    to_location_code: Optional[str] = None
    lot_number: Optional[str] = None
    quantity: int
    movement_type: MovementTypeLiteral
    reason: Optional[str] = None
    performed_by: str

    model_config = ConfigDict(from_attributes=True)

# Paginated response for movement history
class MovementPage(BaseModel):
    items: List[MovementResponse]
    total: int
    page: int
    page_size: int
