# backend/utils/pdf.py
import io
import logging
from datetime import datetime
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

FONT_DIR = Path(__file__).resolve().parents[1] / "assets" / "fonts"
FONT_REGULAR_PATH = FONT_DIR / "DejaVuSans.ttf"
FONT_BOLD_PATH = FONT_DIR / "DejaVuSans-Bold.ttf"

FONT_REGULAR_NAME = "Helvetica"
FONT_BOLD_NAME = "Helvetica-Bold"

STATUS_LABELS = {
    "normal": "Normal",
    "low": "Low",
    "out_of_stock": "Out of stock",
    "overstock": "Overstock",
}

_fonts_inited = False
def _init_fonts():
    """Registers DejaVu fonts when they are shipped, otherwise keeps Helvetica."""
    global _fonts_inited, FONT_REGULAR_NAME, FONT_BOLD_NAME
    if _fonts_inited:
        return
    _fonts_inited = True

    if not FONT_REGULAR_PATH.exists():
        return
    pdfmetrics.registerFont(TTFont("DejaVuSans", str(FONT_REGULAR_PATH)))
    FONT_REGULAR_NAME = "DejaVuSans"
    if FONT_BOLD_PATH.exists():
        pdfmetrics.registerFont(TTFont("DejaVuSans-Bold", str(FONT_BOLD_PATH)))
        FONT_BOLD_NAME = "DejaVuSans-Bold"
    else:
        FONT_BOLD_NAME = FONT_REGULAR_NAME


def generate_stock_report_pdf(report: dict) -> bytes:
    """
    Renders the stock status report:
    - header with generation time
    - summary counts
    - per-product table (total, min-max, locations, status)
    - location utilization per warehouse
    """
    _init_fonts()

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    height = A4[1]
    y = height - 25 * mm

    def new_page_if_needed(current_y, min_y=25 * mm):
        if current_y >= min_y:
            return current_y
        c.showPage()
        c.setFont(FONT_REGULAR_NAME, 9)
        return height - 20 * mm

    # --- Header ---
    c.setFont(FONT_BOLD_NAME, 16)
    c.drawString(20 * mm, y, "Stock status report")
    y -= 7 * mm
    c.setFont(FONT_REGULAR_NAME, 9)
    c.drawString(20 * mm, y, f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    y -= 5 * mm
    c.setLineWidth(0.5)
    c.line(20 * mm, y, 190 * mm, y)
    y -= 8 * mm

    # --- Summary ---
    summary = report["summary"]
    rows = [
        ("Warehouses", summary["total_warehouses"]),
        ("Active locations", summary["total_locations"]),
        ("Active products", summary["total_products"]),
        ("Inventory rows", summary["total_inventory_items"]),
        ("Low stock products", summary["low_stock_products"]),
        ("Out of stock products", summary["out_of_stock_products"]),
    ]
    c.setFont(FONT_REGULAR_NAME, 10)
    for label, value in rows:
        c.drawString(20 * mm, y, f"{label}:")
        c.drawRightString(90 * mm, y, str(value))
        y -= 5 * mm
    y -= 6 * mm

    # --- Products table ---
    c.setFillColorRGB(0.95, 0.95, 0.95)
    c.rect(20 * mm, y - 2 * mm, 170 * mm, 8 * mm, fill=1, stroke=0)
    c.setFillColorRGB(0, 0, 0)
    c.setFont(FONT_BOLD_NAME, 9)
    c.drawString(22 * mm, y, "SKU")
    c.drawString(55 * mm, y, "Product")
    c.drawRightString(130 * mm, y, "Total")
    c.drawRightString(155 * mm, y, "Min-Max")
    c.drawString(160 * mm, y, "Status")
    y -= 8 * mm

    c.setFont(FONT_REGULAR_NAME, 9)
    for item in report["items"]:
        status = item["status"]
        c.drawString(22 * mm, y, str(item["product_sku"])[:18])
        c.drawString(55 * mm, y, str(item["product_name"])[:40])
        c.drawRightString(130 * mm, y, str(item["total_quantity"]))
        c.drawRightString(155 * mm, y, f"{item['min_stock']}-{item['max_stock']}")
        c.drawString(160 * mm, y, STATUS_LABELS.get(status, status))
        y -= 6 * mm
        y = new_page_if_needed(y)

    # --- Location utilization ---
    y -= 6 * mm
    y = new_page_if_needed(y, 40 * mm)
    c.setFont(FONT_BOLD_NAME, 10)
    c.drawString(20 * mm, y, "Location utilization")
    y -= 7 * mm
    c.setFont(FONT_REGULAR_NAME, 9)
    for row in report["location_utilization"]:
        c.drawString(22 * mm, y, str(row["warehouse_name"])[:40])
        c.drawRightString(130 * mm, y, f"{row['occupied_locations']}/{row['total_locations']}")
        c.drawRightString(155 * mm, y, f"{row['utilization_rate']:.1f}%")
        y -= 6 * mm
        y = new_page_if_needed(y)

    c.showPage()
    c.save()
    logger.debug("Stock report PDF rendered (%s products)", len(report["items"]))
    return buf.getvalue()
