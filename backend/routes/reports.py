# routes/reports.py
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.pdf import generate_stock_report_pdf
from models.users import User
from services.stock_status import build_stock_report
from schemas.reports import StockReport

router = APIRouter(prefix="/reports", tags=["Reports"])


# -----------------------------
# Stock status per product
# -----------------------------
@router.get("/stock-status", response_model=StockReport)
def report_stock_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return build_stock_report(db)


@router.get("/stock-status/pdf")
def report_stock_status_pdf(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pdf = generate_stock_report_pdf(build_stock_report(db))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="stock-status.pdf"'},
    )
