# backend/schemas/warehouse.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List


class WarehouseCreate(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    address: Optional[str] = None


class WarehouseUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None


class WarehouseOut(BaseModel):
    id: int
    code: str
    name: str
    address: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WarehousePage(BaseModel):
    items: List[WarehouseOut]
    total: int
    page: int
    page_size: int
