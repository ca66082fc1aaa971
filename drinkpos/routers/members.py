import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from drinkpos.db import get_db
from drinkpos.deps import require_auth
from drinkpos.errors import Conflict, InvalidRequest, NotFound
from drinkpos.models.core import Member, MemberTier, Order
from drinkpos.schemas.members import MemberIn, MemberOut, MemberDiscountOut
from drinkpos.services import membership, points
from drinkpos.services.pricing import money, to_float
from drinkpos.services.settlement import order_payload

router = APIRouter(prefix="/members", tags=["members"])
logger = logging.getLogger(__name__)


def _out(m: Member) -> MemberOut:
    return MemberOut(id=m.id, name=m.name, phone=m.phone, email=m.email, points=m.points, tier=m.tier.value)


def _get(db: Session, member_id: str) -> Member:
    m = db.get(Member, member_id)
    if not m:
        raise NotFound("member not found")
    return m


@router.post("/", response_model=MemberOut)
def register_member(body: MemberIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    phone = body.phone.strip()
    name = body.name.strip()
    if not phone or not name:
        raise InvalidRequest("name and phone are required")
    if db.query(Member).filter(Member.phone == phone).first():
        raise Conflict("phone number is already registered")
    m = Member(name=name, phone=phone, email=(body.email or "").strip() or None,
               points=body.points, tier=MemberTier.BRONZE)
    try:
        db.add(m); db.commit(); db.refresh(m)
    except IntegrityError:
        db.rollback()
        raise Conflict("phone number is already registered")
    logger.info("Member %s registered", m.id)
    return _out(m)

@router.get("/lookup", response_model=MemberOut)
def lookup_member(phone: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    m = db.query(Member).filter(Member.phone == phone.strip()).first()
    if not m:
        raise NotFound("member not found")
    return _out(m)

@router.get("/{member_id}", response_model=MemberOut)
def get_member(member_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return _out(_get(db, member_id))

@router.get("/{member_id}/discount", response_model=MemberDiscountOut)
def member_discount(member_id: str, subtotal: float | None = Query(default=None, ge=0),
                    db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    """Tier, discount and redeemable points; redemption cap needs a subtotal."""
    m = _get(db, member_id)
    out = MemberDiscountOut(
        member_id=m.id,
        tier=m.tier.value,
        discount_percent=membership.discount_percent(m.tier),
        points=m.points,
        glasses=membership.completed_glasses(db, m.id),
    )
    if subtotal is not None:
        disc = membership.tier_discount(subtotal, m.tier)
        out.subtotal = to_float(subtotal)
        out.tier_discount = to_float(disc)
        out.max_redeemable_points = points.max_redeemable(m.points, money(subtotal) - disc)
    return out

@router.get("/{member_id}/orders")
def member_orders(member_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    m = _get(db, member_id)
    rows = db.query(Order).filter(Order.member_id == m.id).order_by(Order.created_at.desc()).all()
    return [order_payload(db, o, with_member=False) for o in rows]

@router.get("/{member_id}/redemptions")
def member_redemptions(member_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    """Orders on which the member spent points, newest first."""
    m = _get(db, member_id)
    rows = (
        db.query(Order)
          .filter(Order.member_id == m.id, Order.points_used > 0)
          .order_by(Order.created_at.desc())
          .all()
    )
    return [order_payload(db, o, with_member=False) for o in rows]
