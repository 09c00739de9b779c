import os
import logging
import pandas as pd

# Add 'backend' folder to Python path
import sys
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

# Database models and setup
from models.warehouse import Warehouse
from models.location import Location
from models.product import Product
from models.inventory import InventoryBalance
from models.movement import InventoryMovement
from models.inbound_order import InboundOrder, InboundOrderItem
from models.outbound_order import OutboundOrder, OutboundOrderItem
from database import SessionLocal, init_db
from services.products import norm_sku
from services.transfer import TransferService
from services.errors import InventoryError

logger = logging.getLogger(__name__)

# Configuration
DATA_DIR = os.path.join(os.path.dirname(__file__), "data_source")
WAREHOUSES_CSV = "warehouses.csv"  # code,name,address
LOCATIONS_CSV = "locations.csv"    # warehouse_code,code,zone,aisle,rack,level,bin,capacity
PRODUCTS_CSV = "products.csv"      # sku,name,description,category,unit,weight,volume,barcode,min_stock,max_stock
STOCK_CSV = "stock.csv"            # sku,location_code,quantity,lot_number,expiry_date
SEED_ACTOR = "Seed import"
# End Configuration


def _clean(value):
    """NaN from pandas becomes None, strings are stripped."""
    if pd.isna(value):
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _read(name: str, text_columns) -> pd.DataFrame:
    # Codes, SKUs and lots are identifiers, keep leading zeros
    return pd.read_csv(os.path.join(DATA_DIR, name), dtype={c: str for c in text_columns})


def load_all_data():
    """Loads warehouses, locations, products and opening stock from CSV files."""
    session = SessionLocal()

    # Load CSV datasets
    try:
        warehouses_df = _read(WAREHOUSES_CSV, ["code"])
        locations_df = _read(LOCATIONS_CSV, ["warehouse_code", "code", "aisle", "rack", "level", "bin"])
        products_df = _read(PRODUCTS_CSV, ["sku", "barcode"])
        stock_df = _read(STOCK_CSV, ["sku", "location_code", "lot_number"])
    except FileNotFoundError:
        print(f"Error: CSV files not found in {DATA_DIR}. Make sure they are there.")
        session.close()
        return

    # Normalize keys and drop incomplete rows
    warehouses_df.dropna(subset=["code", "name"], inplace=True)
    locations_df.dropna(subset=["warehouse_code", "code"], inplace=True)
    products_df.dropna(subset=["sku", "name"], inplace=True)
    products_df["sku"] = products_df["sku"].apply(norm_sku)
    products_df.drop_duplicates(subset=["sku"], keep="first", inplace=True)
    stock_df.dropna(subset=["sku", "location_code", "quantity"], inplace=True)
    stock_df["sku"] = stock_df["sku"].apply(norm_sku)
    stock_df["quantity"] = stock_df["quantity"].astype(int)
    if "expiry_date" in stock_df.columns:
        stock_df["expiry_date"] = pd.to_datetime(stock_df["expiry_date"], errors="coerce")

    # Insert warehouses
    warehouse_map = {}  # code -> id
    print(f"Inserting {len(warehouses_df)} warehouses...")
    for _, row in warehouses_df.iterrows():
        warehouse = Warehouse(
            code=str(row["code"]).strip(),
            name=str(row["name"]).strip(),
            address=_clean(row.get("address")),
            is_active=True,
        )
        session.add(warehouse)
        session.flush()
        warehouse_map[warehouse.code] = warehouse.id

    # Insert locations
    location_map = {}  # location code -> id
    print(f"Inserting {len(locations_df)} locations...")
    for _, row in locations_df.iterrows():
        warehouse_id = warehouse_map.get(str(row["warehouse_code"]).strip())
        if warehouse_id is None:
            logger.warning("Skipping location %s: unknown warehouse %s", row["code"], row["warehouse_code"])
            continue
        capacity = _clean(row.get("capacity"))
        location = Location(
            warehouse_id=warehouse_id,
            code=str(row["code"]).strip(),
            zone=_clean(row.get("zone")),
            aisle=_clean(row.get("aisle")),
            rack=_clean(row.get("rack")),
            level=_clean(row.get("level")),
            bin=_clean(row.get("bin")),
            capacity=int(capacity) if capacity is not None else 100,
            is_active=True,
        )
        session.add(location)
        session.flush()
        location_map[location.code] = location.id

    # Insert products
    product_map = {}  # sku -> id
    print(f"Inserting {len(products_df)} products...")
    for _, row in products_df.iterrows():
        min_stock = _clean(row.get("min_stock"))
        max_stock = _clean(row.get("max_stock"))
        product = Product(
            sku=row["sku"],
            name=str(row["name"]).strip(),
            description=_clean(row.get("description")),
            category=_clean(row.get("category")),
            unit=_clean(row.get("unit")) or "PCS",
            weight=_clean(row.get("weight")),
            volume=_clean(row.get("volume")),
            barcode=_clean(row.get("barcode")),
            min_stock=int(min_stock) if min_stock is not None else 0,
            max_stock=int(max_stock) if max_stock is not None else 999999,
            is_active=True,
        )
        session.add(product)
        session.flush()
        product_map[product.sku] = product.id

    session.commit()
    print("Master data inserted. Booking opening stock...")

    # Opening stock goes through receive() so every unit has an IN movement
    service = TransferService(session)
    booked = 0
    for _, row in stock_df.iterrows():
        product_id = product_map.get(row["sku"])
        location_id = location_map.get(str(row["location_code"]).strip())
        if product_id is None or location_id is None:
            logger.warning("Skipping stock row %s @ %s: unknown product or location", row["sku"], row["location_code"])
            continue
        expiry = _clean(row.get("expiry_date"))
        try:
            service.receive(
                product_id=product_id,
                location_id=location_id,
                quantity=int(row["quantity"]),
                lot=_clean(row.get("lot_number")),
                expiry_date=expiry.date() if expiry is not None else None,
                reason="Opening balance",
                actor=SEED_ACTOR,
            )
            booked += 1
        except InventoryError as exc:
            logger.warning("Skipping stock row %s @ %s: %s", row["sku"], row["location_code"], exc.message)

    print(f"Successfully booked {booked} opening balances.")
    session.close()


def populate_database():
    """Main execution function to populate database."""
    init_db()

    # Clean existing stock and master data
    # Users and audit logs are preserved
    session = SessionLocal()
    session.query(InboundOrderItem).delete()
    session.query(InboundOrder).delete()
    session.query(OutboundOrderItem).delete()
    session.query(OutboundOrder).delete()
    session.query(InventoryBalance).delete()
    # Bulk delete bypasses the ORM listeners that guard single movements
    session.query(InventoryMovement).delete(synchronize_session=False)
    session.query(Location).delete()
    session.query(Warehouse).delete()
    session.query(Product).delete()
    session.commit()
    session.close()

    load_all_data()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    populate_database()
