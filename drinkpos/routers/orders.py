from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from drinkpos.config import settings
from drinkpos.db import get_db
from drinkpos.deps import require_auth
from drinkpos.errors import InvalidRequest, NotFound
from drinkpos.models.core import Order, OrderStatus
from drinkpos.schemas.orders import OrderIn, OrderOut, StatusIn
from drinkpos.services.settlement import change_status, order_payload, settle_order

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/")
def list_orders(
    status: str | None = None,
    day: date | None = None,
    page: int = 1,
    size: int = 20,
    db: Session = Depends(get_db),
    sub: str = Depends(require_auth),
):
    """
    List orders (paged), newest first.

    Query params:
      - status: "PENDING", "COMPLETED", ... (optional)
      - day:    local calendar date, YYYY-MM-DD (optional)
      - page:   1-based page index
      - size:   page size
    """
    q = db.query(Order)

    if status:
        try:
            wanted = OrderStatus(status.upper())
        except ValueError:
            raise InvalidRequest("invalid status")
        q = q.filter(Order.status == wanted)

    if day:
        tz = ZoneInfo(settings.SHOP_TZ)
        start = datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)
        q = q.filter(Order.created_at >= start, Order.created_at < start + timedelta(days=1))

    if page < 1:
        page = 1
    if size < 1:
        size = 20

    total = q.count()
    rows = (
        q.order_by(Order.created_at.desc(), Order.id.desc())
         .offset((page - 1) * size)
         .limit(size)
         .all()
    )
    return {"items": [order_payload(db, o) for o in rows], "total": total}


@router.post("/", response_model=OrderOut)
def create_order(body: OrderIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    o = settle_order(db, body, actor_staff_id=sub)
    return order_payload(db, o)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    o = db.get(Order, order_id)
    if not o:
        raise NotFound("order not found")
    return order_payload(db, o)


@router.post("/{order_id}/status", response_model=OrderOut)
def update_status(order_id: str, body: StatusIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    """Advance or cancel/refund an order; cancelling reverses member points."""
    o = change_status(db, order_id, body.status, note=body.note, actor_staff_id=sub)
    return order_payload(db, o)
