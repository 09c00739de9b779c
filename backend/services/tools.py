# backend/services/tools.py
"""
Tool adapter for the external agent protocol.

Exposes three tools over the same services the HTTP routes use:
``inventory_check``, ``inventory_transfer`` and ``product_manage``.
Results are returned as a single JSON text block; any error raised by a
handler is returned as ``Error: <message>`` with ``isError`` set.
Summary rows of ``inventory_check`` use the protocol's camelCase keys
(``productSku``, ``locationCode``, ...), unlike the HTTP ``/inventory`` view.
"""
import json
import logging
from typing import Any, Callable, Dict

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import settings
from schemas.product import ProductOut
from schemas.tools import (
    InventoryCheckArgs,
    InventoryTransferArgs,
    ProductCreateArgs,
    ProductManageArgs,
    ProductUpdateArgs,
)
from services.errors import InvalidArgument, InventoryError, NotFound
from services.products import ProductService
from services.stock_query import StockQueryService
from services.transfer import TransferService

logger = logging.getLogger(__name__)

TOOLS = [
    {
        "name": "inventory_check",
        "description": "Check current inventory levels by product, location, or SKU",
        "inputSchema": {
            "type": "object",
            "properties": {
                "productId": {"type": "integer", "description": "Product ID"},
                "locationId": {"type": "integer", "description": "Location ID"},
                "sku": {"type": "string", "description": "Product SKU"},
                "includeDetails": {"type": "boolean", "description": "Include product and location details"},
            },
        },
    },
    {
        "name": "inventory_transfer",
        "description": "Transfer inventory between locations",
        "inputSchema": {
            "type": "object",
            "properties": {
                "productId": {"type": "integer", "description": "Product ID"},
                "fromLocationId": {"type": "integer", "description": "Source location ID"},
                "toLocationId": {"type": "integer", "description": "Destination location ID"},
                "quantity": {"type": "integer", "description": "Quantity to transfer"},
                "lotNumber": {"type": "string", "description": "Lot number (optional)"},
                "reason": {"type": "string", "description": "Reason for transfer (optional)"},
            },
            "required": ["productId", "fromLocationId", "toLocationId", "quantity"],
        },
    },
    {
        "name": "product_manage",
        "description": "Create, update, or delete products",
        "inputSchema": {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["create", "update", "delete", "list"],
                    "description": "Action to perform",
                },
                "productId": {"type": "integer", "description": "Product ID (for update/delete)"},
                "data": {
                    "type": "object",
                    "properties": {
                        "sku": {"type": "string"},
                        "name": {"type": "string"},
                        "description": {"type": "string"},
                        "category": {"type": "string"},
                        "unit": {"type": "string"},
                        "weight": {"type": "number"},
                        "volume": {"type": "number"},
                        "barcode": {"type": "string"},
                        "minStock": {"type": "integer"},
                        "maxStock": {"type": "integer"},
                    },
                },
            },
            "required": ["action"],
        },
    },
]


def _product_out(product) -> dict:
    return ProductOut.model_validate(product).model_dump()


def _summary_row(row: dict) -> dict:
    return {
        "productSku": row["product_sku"],
        "locationCode": row["location_code"],
        "quantity": row["quantity"],
        "lotNumber": row["lot_number"],
        "expiryDate": row["expiry_date"],
    }


def handle_inventory_check(db: Session, args: Dict[str, Any]):
    params = InventoryCheckArgs.model_validate(args)
    rows = StockQueryService(db).list(
        product_id=params.productId,
        location_id=params.locationId,
        sku=params.sku,
        include_details=params.includeDetails,
    )
    if params.includeDetails:
        return rows
    return [_summary_row(row) for row in rows]


def handle_inventory_transfer(db: Session, args: Dict[str, Any]):
    params = InventoryTransferArgs.model_validate(args)
    result = TransferService(db).transfer(
        product_id=params.productId,
        from_location_id=params.fromLocationId,
        to_location_id=params.toLocationId,
        quantity=params.quantity,
        lot=params.lotNumber,
        reason=params.reason,
        actor=settings.TOOL_ACTOR,
    )
    return {"success": result["success"], "message": result["message"]}


def handle_product_manage(db: Session, args: Dict[str, Any]):
    params = ProductManageArgs.model_validate(args)
    service = ProductService(db)

    if params.action == "create":
        data = ProductCreateArgs.model_validate(params.data or {})
        product = service.create({
            "sku": data.sku, "name": data.name, "description": data.description,
            "category": data.category, "unit": data.unit, "weight": data.weight,
            "volume": data.volume, "barcode": data.barcode,
            "min_stock": data.minStock, "max_stock": data.maxStock,
        })
        return {"success": True, "product": _product_out(product)}

    if params.action == "update":
        if params.productId is None:
            raise InvalidArgument("Product ID is required for update")
        data = ProductUpdateArgs.model_validate(params.data or {})
        product = service.update(params.productId, {
            "name": data.name, "description": data.description,
            "category": data.category, "unit": data.unit, "weight": data.weight,
            "volume": data.volume, "barcode": data.barcode,
            "min_stock": data.minStock, "max_stock": data.maxStock,
        })
        return {"success": True, "product": _product_out(product)}

    if params.action == "delete":
        if params.productId is None:
            raise InvalidArgument("Product ID is required for delete")
        service.deactivate(params.productId)
        return {"success": True, "message": "Product deactivated"}

    products = service.list_active()
    return {"success": True, "products": [_product_out(p) for p in products]}


TOOL_HANDLERS: Dict[str, Callable[[Session, Dict[str, Any]], Any]] = {
    "inventory_check": handle_inventory_check,
    "inventory_transfer": handle_inventory_transfer,
    "product_manage": handle_product_manage,
}


def _text(text: str, is_error: bool = False) -> dict:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


def call_tool(db: Session, name: str, arguments: Dict[str, Any]) -> dict:
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        raise NotFound(f"Unknown tool: {name}")

    try:
        result = handler(db, arguments or {})
    except InventoryError as exc:
        logger.info("Tool %s failed: %s", name, exc.message)
        return _text(f"Error: {exc.message}", is_error=True)
    except ValidationError as exc:
        logger.info("Tool %s got invalid arguments: %s", name, exc)
        return _text(f"Error: Invalid arguments: {exc}", is_error=True)
    except Exception as exc:
        logger.exception("Tool %s crashed", name)
        # The caller audits the call on this session afterwards
        db.rollback()
        return _text(f"Error: {exc or 'Unknown error'}", is_error=True)

    return _text(json.dumps(jsonable_encoder(result), indent=2))
