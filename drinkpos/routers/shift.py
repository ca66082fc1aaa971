from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from drinkpos.db import get_db
from drinkpos.deps import require_auth
from drinkpos.schemas.shift import ShiftCloseIn, ShiftOpenIn, ShiftOut, ShiftSummaryOut
from drinkpos.services import shifts

router = APIRouter(prefix="/shift", tags=["shift"])

@router.post("/open", response_model=ShiftOut, status_code=201)
def open_shift(body: ShiftOpenIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    s = shifts.open_shift(db, body.staff_id, body.starting_cash, actor_staff_id=sub)
    return shifts.shift_payload(s)

@router.get("/current")
def current_shift(staff_id: str | None = None, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    """The staff member's OPEN shift with its live summary, or nulls."""
    s = shifts.current_shift(db, staff_id or sub)
    if not s:
        return {"shift": None, "summary": None}
    return {"shift": shifts.shift_payload(s), "summary": shifts.shift_summary(db, s.id)}

@router.get("/{shift_id}", response_model=ShiftOut)
def get_shift(shift_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return shifts.shift_payload(shifts.get_shift(db, shift_id))

@router.get("/{shift_id}/summary", response_model=ShiftSummaryOut)
def shift_summary(shift_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return shifts.shift_summary(db, shift_id)

@router.post("/{shift_id}/close", response_model=ShiftOut)
def close_shift(shift_id: str, body: ShiftCloseIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    s = shifts.close_shift(
        db, shift_id, body.ending_cash,
        cash_sales=body.cash_sales, qr_sales=body.qr_sales, note=body.note,
        actor_staff_id=sub,
    )
    return shifts.shift_payload(s)
