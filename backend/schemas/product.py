# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Shared base attributes for product entities
class ProductBase(ORMBase):
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    unit: str = "PCS"
    weight: Optional[float] = Field(default=None, ge=0)
    volume: Optional[float] = Field(default=None, ge=0)
    barcode: Optional[str] = None
    min_stock: int = Field(default=0, ge=0)
    max_stock: int = Field(default=999999, ge=0)
    image_url: Optional[str] = None


# Schema for creating a new product
class ProductCreate(ProductBase):
    pass


# Schema for partial product updates
class ProductEditRequest(ORMBase):
    """Schema for PATCH requests - all fields optional."""
    sku: Optional[str] = Field(None, description="Product SKU")
    name: Optional[str] = Field(None, description="Product name")
    description: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    weight: Optional[float] = Field(None, ge=0)
    volume: Optional[float] = Field(None, ge=0)
    barcode: Optional[str] = None
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


# Full product representation including ID
class ProductOut(ProductBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Paginated response for product listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int
