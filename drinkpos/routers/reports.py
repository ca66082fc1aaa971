from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from drinkpos.db import get_db
from drinkpos.deps import require_admin
from drinkpos.schemas.reports import BestsellersOut, DashboardOut, PeriodLiteral, SalesReportOut
from drinkpos.services import reports

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db), sub: str = Depends(require_admin)):
    """Today vs. yesterday: sales, orders, glasses; latest orders; today's top sellers."""
    return reports.dashboard(db)


@router.get("/sales", response_model=SalesReportOut)
def sales(period: PeriodLiteral = "week", db: Session = Depends(get_db), sub: str = Depends(require_admin)):
    return reports.sales_report(db, period)


@router.get("/bestsellers", response_model=BestsellersOut)
def bestsellers(period: PeriodLiteral = "week", db: Session = Depends(get_db), sub: str = Depends(require_admin)):
    return reports.bestsellers(db, period)
