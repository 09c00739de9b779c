# schemas/reports.py
from typing import List, Literal
from pydantic import BaseModel

StockStatusLiteral = Literal["normal", "low", "out_of_stock", "overstock"]

# Per-product stock status row
class StockStatusItem(BaseModel):
    product_id: int
    product_name: str
    product_sku: str
    total_quantity: int
    min_stock: int
    max_stock: int
    location_count: int
    status: StockStatusLiteral

class StockSummary(BaseModel):
    total_warehouses: int
    total_locations: int
    total_products: int
    total_inventory_items: int
    low_stock_products: int
    out_of_stock_products: int

class LocationUtilization(BaseModel):
    warehouse_name: str
    total_locations: int
    occupied_locations: int
    utilization_rate: float

class StockReport(BaseModel):
    summary: StockSummary
    items: List[StockStatusItem]
    location_utilization: List[LocationUtilization]
