# backend/schemas/tools.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional


# Arguments use the camelCase names of the agent protocol
class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")


class InventoryCheckArgs(ToolArgs):
    productId: Optional[int] = None
    locationId: Optional[int] = None
    sku: Optional[str] = None
    includeDetails: bool = False


class InventoryTransferArgs(ToolArgs):
    productId: int
    fromLocationId: int
    toLocationId: int
    quantity: int
    lotNumber: Optional[str] = None
    reason: Optional[str] = None


class ProductCreateArgs(ToolArgs):
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    unit: str = "PCS"
    weight: Optional[float] = None
    volume: Optional[float] = None
    barcode: Optional[str] = None
    minStock: int = 0
    maxStock: int = 999999


class ProductUpdateArgs(ToolArgs):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    weight: Optional[float] = None
    volume: Optional[float] = None
    barcode: Optional[str] = None
    minStock: Optional[int] = None
    maxStock: Optional[int] = None


class ProductManageArgs(ToolArgs):
    action: Literal["create", "update", "delete", "list"]
    productId: Optional[int] = None
    data: Optional[Dict[str, Any]] = None


# Request/response envelope of the tool endpoint
class ToolCall(BaseModel):
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ToolContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    content: List[ToolContent]
    isError: bool = False


class ToolDescription(BaseModel):
    name: str
    description: str
    inputSchema: Dict[str, Any]
