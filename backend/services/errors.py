# backend/services/errors.py
"""
Typed errors raised by the inventory services.

Every error carries a machine-readable ``code`` next to its message so that
routes and the tool adapter can map it without parsing text:

    InventoryError
    +-- InvalidArgument          bad quantity, identifiers, same-location transfer
    +-- NotFound                 unknown product/location
    |   +-- SourceNotFound       no balance for (product, location, lot)
    +-- InsufficientStock        requested more than available
    +-- ConstraintViolation      balance row for the triple already exists
    +-- ConcurrentModification   lost an optimistic-locking race too many times
    +-- StorageUnavailable       database transport/transaction failure
"""
from typing import Optional


class InventoryError(Exception):
    code = "INVENTORY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(InventoryError):
    code = "INVALID_ARGUMENT"


class NotFound(InventoryError):
    code = "NOT_FOUND"


class SourceNotFound(NotFound):
    code = "SOURCE_NOT_FOUND"

    def __init__(self, product_id: int, location_id: int, lot: str = ""):
        super().__init__("Source inventory not found")
        self.product_id = product_id
        self.location_id = location_id
        self.lot = lot


class InsufficientStock(InventoryError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, available: int, requested: int):
        super().__init__(f"Insufficient inventory. Available: {available}")
        self.available = available
        self.requested = requested


class ConstraintViolation(InventoryError):
    code = "CONSTRAINT_VIOLATION"


class ConcurrentModification(InventoryError):
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, message: str = "Inventory was modified concurrently", attempts: Optional[int] = None):
        super().__init__(message)
        self.attempts = attempts


class StorageUnavailable(InventoryError):
    code = "STORAGE_UNAVAILABLE"
