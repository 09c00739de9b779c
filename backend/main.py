# backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from config import settings
from database import init_db
from services.errors import (
    ConcurrentModification,
    ConstraintViolation,
    InsufficientStock,
    InvalidArgument,
    InventoryError,
    NotFound,
    StorageUnavailable,
)

load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Routers
from routes.auth import router as auth_router
from routes.logs import router as logs_router
from routes.warehouses import router as warehouses_router
from routes.locations import router as locations_router
from routes.products import router as products_router
from routes.inventory import router as inventory_router
from routes.movements import router as movements_router
from routes.reports import router as reports_router
from routes.tools import router as tools_router
from routes.inbound_orders import router as inbound_orders_router
from routes.outbound_orders import router as outbound_orders_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Warehouse inventory API started")
    yield


app = FastAPI(title="Warehouse Inventory API", version="1.0.0", lifespan=lifespan)

# CORS Configuration
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Order matters: subclasses before their bases
ERROR_STATUS = [
    (InsufficientStock, 409),
    (NotFound, 404),
    (InvalidArgument, 400),
    (ConstraintViolation, 409),
    (ConcurrentModification, 409),
    (StorageUnavailable, 503),
]


def error_status(exc: InventoryError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 400


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    body = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, InsufficientStock):
        body["available"] = exc.available
    return JSONResponse(status_code=error_status(exc), content=body)


# Router registration
app.include_router(auth_router)
app.include_router(logs_router)
app.include_router(warehouses_router)
app.include_router(locations_router)
app.include_router(products_router)
app.include_router(inventory_router)
app.include_router(movements_router)
app.include_router(reports_router)
app.include_router(tools_router)
app.include_router(inbound_orders_router)
app.include_router(outbound_orders_router)

@app.get("/")
def read_root():
    return {"message": "Warehouse Inventory API is running"}
