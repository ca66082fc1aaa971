"""Cash-drawer shifts: open, live summary, and close with reconciliation."""
import logging
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from drinkpos.db import atomic
from drinkpos.errors import Forbidden, InvalidRequest, NotFound, PreconditionFailed
from drinkpos.models.common import utcnow
from drinkpos.models.core import Order, OrderStatus, PaymentMethod, Shift, ShiftStatus, Staff, StaffRole
from drinkpos.services.pricing import money, to_float
from drinkpos.util.audit import log_audit

logger = logging.getLogger(__name__)


def get_shift(db: Session, shift_id: str) -> Shift:
    s = db.get(Shift, shift_id)
    if not s:
        raise NotFound("shift not found")
    return s


def current_shift(db: Session, staff_id: str) -> Shift | None:
    return (
        db.query(Shift)
          .filter(Shift.staff_id == staff_id, Shift.status == ShiftStatus.OPEN)
          .first()
    )


def open_shift(db: Session, staff_id: str, starting_cash, actor_staff_id: str | None = None) -> Shift:
    """Open a drawer for ``staff_id``. Only admins may open one for someone else."""
    if actor_staff_id and actor_staff_id != staff_id:
        actor = db.get(Staff, actor_staff_id)
        if not actor or actor.role != StaffRole.ADMIN:
            raise Forbidden("only an admin can open a shift for another staff member")

    try:
        with atomic(db):
            staff = db.get(Staff, staff_id)
            if not staff:
                raise NotFound("staff not found")
            if not staff.active:
                raise PreconditionFailed("staff is inactive")
            if current_shift(db, staff_id):
                raise PreconditionFailed("staff already has an open shift")

            s = Shift(
                staff_id=staff_id,
                status=ShiftStatus.OPEN,
                opened_at=utcnow(),
                starting_cash=money(starting_cash),
            )
            db.add(s)
            db.flush()
            log_audit(db, actor_staff_id or staff_id, "shift", s.id, "OPEN",
                      after={"starting_cash": str(s.starting_cash)})
    except IntegrityError:
        # lost the race against a concurrent open; the partial unique index caught it
        raise PreconditionFailed("staff already has an open shift")

    logger.info("Shift %s opened by staff %s with float %s", s.id, staff_id, s.starting_cash)
    return s


def sales_totals(db: Session, shift_id: str) -> dict:
    """Sum COMPLETED orders of a shift, split by payment method."""
    rows = (
        db.query(Order.payment_method, func.count(Order.id), func.coalesce(func.sum(Order.total_price), 0))
          .filter(Order.shift_id == shift_id, Order.status == OrderStatus.COMPLETED)
          .group_by(Order.payment_method)
          .all()
    )
    cash = qr = Decimal("0")
    count = 0
    for method, n, amount in rows:
        count += int(n)
        if method == PaymentMethod.CASH:
            cash += money(amount)
        else:
            qr += money(amount)
    return {
        "total_sales": money(cash + qr),
        "total_orders": count,
        "cash_sales": money(cash),
        "qr_sales": money(qr),
    }


def expected_cash(starting_cash, cash_sales) -> Decimal:
    return money(money(starting_cash) + money(cash_sales))


def shift_summary(db: Session, shift_id: str) -> dict:
    s = get_shift(db, shift_id)
    totals = sales_totals(db, s.id)
    return {
        "shift_id": s.id,
        "total_sales": to_float(totals["total_sales"]),
        "total_orders": totals["total_orders"],
        "cash_sales": to_float(totals["cash_sales"]),
        "qr_sales": to_float(totals["qr_sales"]),
        "expected_cash": to_float(expected_cash(s.starting_cash, totals["cash_sales"])),
    }


def close_shift(db: Session, shift_id: str, ending_cash, cash_sales=None, qr_sales=None,
                note: str | None = None, actor_staff_id: str | None = None) -> Shift:
    """Close an OPEN shift. A note is mandatory when the drawer count is off."""
    with atomic(db):
        s = db.query(Shift).filter(Shift.id == shift_id).with_for_update().first()
        if not s:
            raise NotFound("shift not found")
        if s.status == ShiftStatus.CLOSED:
            raise PreconditionFailed("shift is already closed")

        if cash_sales is None or qr_sales is None:
            live = sales_totals(db, s.id)
            cash_sales = live["cash_sales"] if cash_sales is None else cash_sales
            qr_sales = live["qr_sales"] if qr_sales is None else qr_sales

        ending = money(ending_cash)
        cash = money(cash_sales)
        qr = money(qr_sales)
        expected = expected_cash(s.starting_cash, cash)
        note = (note or "").strip() or None
        if ending != expected and not note:
            raise InvalidRequest(
                f"counted cash {ending} differs from expected {expected}; a note is required"
            )

        s.status = ShiftStatus.CLOSED
        s.closed_at = utcnow()
        s.ending_cash = ending
        s.cash_sales = cash
        s.qr_sales = qr
        s.total_sales = money(cash + qr)
        s.note = note
        log_audit(db, actor_staff_id, "shift", s.id, "CLOSE",
                  after={"ending_cash": str(ending), "expected_cash": str(expected),
                         "cash_sales": str(cash), "qr_sales": str(qr)},
                  reason=note)

    if ending != expected:
        logger.warning("Shift %s closed with cash difference %s (expected %s, counted %s): %s",
                       s.id, ending - expected, expected, ending, note)
    else:
        logger.info("Shift %s closed; total sales %s", s.id, s.total_sales)
    return s


def shift_payload(s: Shift) -> dict:
    out = {
        "id": s.id,
        "staff_id": s.staff_id,
        "status": s.status.value,
        "opened_at": s.opened_at.isoformat() if s.opened_at else None,
        "starting_cash": to_float(s.starting_cash),
        "closed_at": s.closed_at.isoformat() if s.closed_at else None,
        "ending_cash": to_float(s.ending_cash),
        "cash_sales": to_float(s.cash_sales),
        "qr_sales": to_float(s.qr_sales),
        "total_sales": to_float(s.total_sales),
        "note": s.note,
        "expected_cash": None,
        "difference": None,
    }
    if s.status == ShiftStatus.CLOSED and s.cash_sales is not None:
        exp = expected_cash(s.starting_cash, s.cash_sales)
        out["expected_cash"] = to_float(exp)
        out["difference"] = to_float(money(s.ending_cash) - exp)
    return out
