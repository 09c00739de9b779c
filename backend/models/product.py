from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, func
from database import Base

# Product master data.
# The SKU is the human-facing key (stored upper-case). min_stock/max_stock
# drive the stock status classification; min <= max is a convention only.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)

    description = Column(String)
    category = Column(String)
    unit = Column(String, nullable=False, default="PCS")
    weight = Column(Float, nullable=True)
    volume = Column(Float, nullable=True)
    barcode = Column(String, nullable=True)

    min_stock = Column(Integer, nullable=False, default=0)
    max_stock = Column(Integer, nullable=False, default=999999)

    is_active = Column(Boolean, nullable=False, default=True)

    # Optional product image URL
    image_url = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
