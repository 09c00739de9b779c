# backend/schemas/location.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List


# Address parts shared by create/update/output
class LocationAddress(BaseModel):
    zone: Optional[str] = None
    aisle: Optional[str] = None
    rack: Optional[str] = None
    level: Optional[str] = None
    bin: Optional[str] = None


class LocationCreate(LocationAddress):
    warehouse_id: int
    code: str = Field(..., min_length=1)
    capacity: int = Field(default=100, ge=0)


class LocationUpdate(LocationAddress):
    warehouse_id: Optional[int] = None
    code: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class LocationOut(LocationAddress):
    id: int
    warehouse_id: int
    code: str
    capacity: int
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LocationPage(BaseModel):
    items: List[LocationOut]
    total: int
    page: int
    page_size: int
