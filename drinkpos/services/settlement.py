"""Order settlement: quote, persist, and move orders through their lifecycle.

Every write path here runs inside one ``atomic`` block so the order rows and
the member's points/tier either commit together or not at all.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from drinkpos.db import atomic
from drinkpos.errors import InvalidRequest, NotFound, PreconditionFailed, TotalsMismatch
from drinkpos.models.common import utcnow
from drinkpos.models.core import (
    Category, Member, MemberTier, MenuItem, Order, OrderItem, OrderItemTopping,
    OrderStatus, PaymentMethod, Shift, ShiftStatus, Staff, Sweetness, Topping,
)
from drinkpos.schemas.orders import LineItemIn, OrderIn
from drinkpos.services import membership, points
from drinkpos.services.pricing import Cart, CartLine, money, to_float
from drinkpos.util.audit import log_audit

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class Quote:
    cart: Cart
    tier: MemberTier | None
    discount_percent: int
    tier_discount: Decimal
    max_redeemable: int
    points_used: int
    points_discount: Decimal
    points_earned: int

    @property
    def subtotal(self) -> Decimal:
        return self.cart.subtotal

    @property
    def glasses(self) -> int:
        return self.cart.glasses

    @property
    def after_tier(self) -> Decimal:
        return self.subtotal - self.tier_discount

    @property
    def discount_amount(self) -> Decimal:
        return money(self.tier_discount + self.points_discount)

    @property
    def total(self) -> Decimal:
        return money(self.subtotal - self.discount_amount)

    def as_dict(self) -> dict:
        return {
            "lines": [
                {
                    "menu_id": l.menu_id,
                    "menu_name": l.menu_name,
                    "quantity": l.quantity,
                    "unit_price": to_float(l.unit_price),
                    "line_total": to_float(l.line_total),
                }
                for l in self.cart.lines
            ],
            "subtotal": to_float(self.subtotal),
            "glasses": self.glasses,
            "tier": self.tier.value if self.tier else None,
            "discount_percent": self.discount_percent,
            "tier_discount": to_float(self.tier_discount),
            "max_redeemable_points": self.max_redeemable,
            "points_used": self.points_used,
            "points_discount": to_float(self.points_discount),
            "discount_amount": to_float(self.discount_amount),
            "total": to_float(self.total),
            "points_earned": self.points_earned,
        }


def resolve_lines(db: Session, items: list[LineItemIn]) -> Cart:
    """Price the requested lines from the live catalog."""
    menu_ids = {i.menu_id for i in items}
    topping_ids = {t for i in items for t in i.topping_ids}
    menus = {m.id: m for m in db.query(MenuItem).filter(MenuItem.id.in_(menu_ids)).all()}
    toppings = (
        {t.id: t for t in db.query(Topping).filter(Topping.id.in_(topping_ids)).all()}
        if topping_ids else {}
    )

    cart = Cart()
    for item in items:
        menu = menus.get(item.menu_id)
        if not menu:
            raise NotFound(f"menu item {item.menu_id} not found")
        if not menu.available:
            raise PreconditionFailed(f"menu item {menu.name} is not available")
        picked = []
        for tid in dict.fromkeys(item.topping_ids):  # a topping counts once per glass
            t = toppings.get(tid)
            if not t:
                raise NotFound(f"topping {tid} not found")
            if not t.available:
                raise PreconditionFailed(f"topping {t.name} is not available")
            picked.append(t)
        cart.add(CartLine(
            menu_id=menu.id,
            menu_name=menu.name,
            menu_price=money(menu.price),
            quantity=item.quantity,
            topping_ids=tuple(t.id for t in picked),
            topping_prices=tuple(money(t.price) for t in picked),
            sweetness=item.sweetness,
            note=item.note,
        ))
    return cart


def build_quote(cart: Cart, member: Member | None, points_used: int = 0) -> Quote:
    tier = member.tier if member else None
    pct = membership.discount_percent(tier)
    tier_disc = membership.tier_discount(cart.subtotal, tier)
    after_tier = cart.subtotal - tier_disc

    if member is None:
        if points_used:
            raise InvalidRequest("points can only be redeemed by a member")
        cap = 0
    else:
        cap = points.max_redeemable(int(member.points or 0), after_tier)
        points.check_redemption(points_used, int(member.points or 0), after_tier)

    points_disc = points.points_value(points_used)
    earned = points.points_earned(cart.glasses, points_disc) if member else 0
    return Quote(
        cart=cart,
        tier=tier,
        discount_percent=pct,
        tier_discount=money(tier_disc),
        max_redeemable=cap,
        points_used=points_used,
        points_discount=money(points_disc),
        points_earned=earned,
    )


def lock_member(db: Session, member_id: str) -> Member:
    """Load a member row for update; serializes points and tier changes per member."""
    m = db.query(Member).filter(Member.id == member_id).with_for_update().first()
    if not m:
        raise NotFound("member not found")
    return m


def _verify_client_totals(body: OrderIn, q: Quote) -> None:
    mismatched = []
    if body.total_price is not None and money(body.total_price) != q.total:
        mismatched.append(f"total_price {body.total_price} != {q.total}")
    if body.discount_amount is not None and money(body.discount_amount) != q.discount_amount:
        mismatched.append(f"discount_amount {body.discount_amount} != {q.discount_amount}")
    if body.points_earned is not None and body.points_earned != q.points_earned:
        mismatched.append(f"points_earned {body.points_earned} != {q.points_earned}")
    if mismatched:
        raise TotalsMismatch("submitted totals do not match: " + "; ".join(mismatched))


def _payment(body: OrderIn, total: Decimal) -> tuple[Decimal, Decimal]:
    """Return (amount_received, change)."""
    if body.payment_method == PaymentMethod.BANK_TRANSFER.value:
        return total, Decimal("0")
    if body.amount_received is None:
        raise InvalidRequest("amount_received is required for cash payments")
    received = money(body.amount_received)
    if received < total:
        raise InvalidRequest(f"amount received {received} is less than total {total}")
    return received, money(received - total)


def settle_order(db: Session, body: OrderIn, actor_staff_id: str | None = None) -> Order:
    """Persist an order, its lines and the member's points/tier as one unit."""
    with atomic(db):
        cart = resolve_lines(db, body.items)

        staff_id = body.staff_id or actor_staff_id
        if staff_id and not db.get(Staff, staff_id):
            raise NotFound("staff not found")
        if body.shift_id:
            shift = db.get(Shift, body.shift_id)
            if not shift:
                raise NotFound("shift not found")
            if shift.status != ShiftStatus.OPEN:
                raise PreconditionFailed("shift is closed")

        member = lock_member(db, body.member_id) if body.member_id else None
        q = build_quote(cart, member, body.points_used)
        _verify_client_totals(body, q)
        received, change = _payment(body, q.total)

        o = Order(
            member_id=member.id if member else None,
            staff_id=staff_id,
            shift_id=body.shift_id,
            status=OrderStatus(body.status),
            payment_method=PaymentMethod(body.payment_method),
            subtotal=q.subtotal,
            tier_discount=q.tier_discount,
            points_discount=q.points_discount,
            discount_amount=q.discount_amount,
            total_price=q.total,
            points_earned=q.points_earned,
            points_used=q.points_used,
            amount_received=received,
            change=change,
            note=body.note,
        )
        db.add(o)
        db.flush()

        for line in cart.lines:
            oi = OrderItem(
                order_id=o.id,
                menu_id=line.menu_id,
                quantity=line.quantity,
                sweetness=Sweetness(line.sweetness),
                note=line.note,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            db.add(oi)
            db.flush()
            for tid in line.topping_ids:
                db.add(OrderItemTopping(order_item_id=oi.id, topping_id=tid))

        if member:
            before = member.points
            points.apply_settlement(member, q.points_earned, q.points_used)
            db.flush()
            membership.refresh_tier(db, member)
            logger.info("Member %s points %d -> %d (earned %d, used %d) on order %s",
                        member.id, before, member.points, q.points_earned, q.points_used, o.id)

        log_audit(db, actor_staff_id, "order", o.id, "CREATE",
                  after={"status": o.status.value, "total_price": str(q.total),
                         "points_earned": q.points_earned, "points_used": q.points_used})

    logger.info("Order %s settled: %s total=%s via %s",
                o.id, o.status.value, o.total_price, o.payment_method.value)
    return o


def change_status(db: Session, order_id: str, status: str, note: str | None = None,
                  actor_staff_id: str | None = None) -> Order:
    """Apply one state-machine step; cancellation reverses member points exactly once."""
    target = OrderStatus(status)
    with atomic(db):
        o = db.get(Order, order_id)
        if not o:
            raise NotFound("order not found")
        current = o.status
        if current == OrderStatus.CANCELLED:
            raise PreconditionFailed("order is already cancelled")
        if target not in ALLOWED_TRANSITIONS[current]:
            raise PreconditionFailed(f"cannot move order from {current.value} to {target.value}")

        member = lock_member(db, o.member_id) if o.member_id else None

        # compare-and-set: a concurrent transition makes this match zero rows
        res = db.execute(
            update(Order)
            .where(Order.id == o.id, Order.status == current)
            .values(status=target, note=note or o.note, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise PreconditionFailed("order status was changed by another request")
        db.refresh(o)

        if member:
            if target == OrderStatus.CANCELLED and (o.points_earned or o.points_used):
                before = member.points
                points.reverse_settlement(member, o.points_earned, o.points_used)
                logger.info("Member %s points %d -> %d after cancelling order %s",
                            member.id, before, member.points, o.id)
            if OrderStatus.COMPLETED in (current, target):
                db.flush()
                membership.refresh_tier(db, member)

        log_audit(db, actor_staff_id, "order", o.id, "STATUS",
                  before={"status": current.value}, after={"status": target.value}, reason=note)

    logger.info("Order %s %s -> %s", o.id, current.value, target.value)
    return o


def order_payload(db: Session, o: Order, with_member: bool = True) -> dict:
    """Order with its lines expanded (menu, category, toppings) and the member."""
    lines = db.query(OrderItem).filter(OrderItem.order_id == o.id).order_by(OrderItem.created_at).all()
    menu_ids = {l.menu_id for l in lines}
    menus = {m.id: m for m in db.query(MenuItem).filter(MenuItem.id.in_(menu_ids)).all()} if menu_ids else {}
    cat_ids = {m.category_id for m in menus.values()}
    cats = {c.id: c for c in db.query(Category).filter(Category.id.in_(cat_ids)).all()} if cat_ids else {}

    links = (
        db.query(OrderItemTopping.order_item_id, Topping)
          .join(Topping, Topping.id == OrderItemTopping.topping_id)
          .filter(OrderItemTopping.order_item_id.in_([l.id for l in lines]))
          .all()
    ) if lines else []
    toppings_by_line: dict[str, list[dict]] = {}
    for line_id, t in links:
        toppings_by_line.setdefault(line_id, []).append({"id": t.id, "name": t.name, "price": to_float(t.price)})

    items = []
    for l in lines:
        menu = menus.get(l.menu_id)
        cat = cats.get(menu.category_id) if menu else None
        items.append({
            "id": l.id,
            "menu_id": l.menu_id,
            "menu_name": menu.name if menu else None,
            "category_name": cat.name if cat else None,
            "quantity": l.quantity,
            "sweetness": l.sweetness.value,
            "note": l.note,
            "unit_price": to_float(l.unit_price),
            "line_total": to_float(l.line_total),
            "toppings": toppings_by_line.get(l.id, []),
        })

    member = None
    if with_member and o.member_id:
        m = db.get(Member, o.member_id)
        if m:
            member = {"id": m.id, "name": m.name, "phone": m.phone, "points": m.points, "tier": m.tier.value}

    return {
        "id": o.id,
        "status": o.status.value,
        "member_id": o.member_id,
        "staff_id": o.staff_id,
        "shift_id": o.shift_id,
        "payment_method": o.payment_method.value,
        "subtotal": to_float(o.subtotal),
        "tier_discount": to_float(o.tier_discount),
        "points_discount": to_float(o.points_discount),
        "discount_amount": to_float(o.discount_amount),
        "total_price": to_float(o.total_price),
        "points_earned": o.points_earned,
        "points_used": o.points_used,
        "amount_received": to_float(o.amount_received),
        "change": to_float(o.change),
        "note": o.note,
        "created_at": o.created_at.isoformat() if o.created_at else None,
        "items": items,
        "member": member,
    }
