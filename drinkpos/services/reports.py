"""Sales and bestseller aggregation over COMPLETED orders."""
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from drinkpos.config import settings
from drinkpos.models.core import (
    Category, MenuItem, Order, OrderItem, OrderItemTopping, OrderStatus, PaymentMethod, Staff, Topping,
)
from drinkpos.services.pricing import money, to_float

PAYMENT_LABELS = {PaymentMethod.CASH: "Cash", PaymentMethod.BANK_TRANSFER: "QR Code"}


def _tz() -> ZoneInfo:
    return ZoneInfo(settings.SHOP_TZ)


def _local(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes; everything is stored in UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(_tz())


def period_window(period: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Local-midnight start of the period up to now (both tz-aware)."""
    now = (now or datetime.now(timezone.utc)).astimezone(_tz())
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "today":
        start = midnight
    elif period == "month":
        start = midnight - timedelta(days=30)
    elif period == "year":
        start = midnight - timedelta(days=365)
    else:
        start = midnight - timedelta(days=7)
    return start, now


def _pct(part, whole) -> int:
    if not whole:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def growth_percent(current: int, previous: int) -> int:
    if previous > 0:
        return int((Decimal(current - previous) * 100 / previous).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return 100 if current > 0 else 0


def _completed_orders(db: Session, start: datetime, end: datetime) -> list[Order]:
    return (
        db.query(Order)
          .filter(Order.status == OrderStatus.COMPLETED,
                  Order.created_at >= start.astimezone(timezone.utc),
                  Order.created_at <= end.astimezone(timezone.utc))
          .order_by(Order.created_at.asc())
          .all()
    )


def _lines(db: Session, order_ids: list[str]) -> list[OrderItem]:
    if not order_ids:
        return []
    return db.query(OrderItem).filter(OrderItem.order_id.in_(order_ids)).all()


def _menu_index(db: Session, menu_ids: set[str]) -> tuple[dict[str, MenuItem], dict[str, str]]:
    if not menu_ids:
        return {}, {}
    menus = {m.id: m for m in db.query(MenuItem).filter(MenuItem.id.in_(menu_ids)).all()}
    cat_ids = {m.category_id for m in menus.values()}
    cat_names = {c.id: c.name for c in db.query(Category).filter(Category.id.in_(cat_ids)).all()}
    return menus, cat_names


def _category_breakdown(lines: list[OrderItem], menus: dict, cat_names: dict) -> list[dict]:
    acc: dict[str, dict] = {}
    for l in lines:
        menu = menus.get(l.menu_id)
        name = cat_names.get(menu.category_id, "Unknown") if menu else "Unknown"
        row = acc.setdefault(name, {"name": name, "quantity": 0, "revenue": Decimal("0")})
        row["quantity"] += l.quantity
        row["revenue"] += money(l.line_total)
    out = sorted(acc.values(), key=lambda r: r["quantity"], reverse=True)
    for r in out:
        r["revenue"] = to_float(r["revenue"])
    return out


def sales_report(db: Session, period: str = "week", now: datetime | None = None) -> dict:
    start, end = period_window(period, now)
    orders = _completed_orders(db, start, end)
    lines = _lines(db, [o.id for o in orders])
    menus, cat_names = _menu_index(db, {l.menu_id for l in lines})

    total = sum((money(o.total_price) for o in orders), Decimal("0"))
    count = len(orders)

    daily: dict = {}
    day = start.date()
    while day <= end.date():
        daily[day] = {"date": day.isoformat(), "day": day.strftime("%a"), "sales": Decimal("0"), "orders": 0}
        day += timedelta(days=1)
    hourly: dict[str, Decimal] = defaultdict(Decimal)
    by_method: dict[PaymentMethod, Decimal] = defaultdict(Decimal)

    for o in orders:
        local = _local(o.created_at)
        bucket = daily.get(local.date())
        if bucket is not None:
            bucket["sales"] += money(o.total_price)
            bucket["orders"] += 1
        hourly[f"{local.hour:02d}:00"] += money(o.total_price)
        by_method[o.payment_method] += money(o.total_price)

    return {
        "period": period,
        "date_from": start.date().isoformat(),
        "date_to": end.date().isoformat(),
        "total_sales": to_float(total),
        "total_orders": count,
        "avg_per_order": to_float(total / count) if count else 0.0,
        "total_glasses": sum(l.quantity for l in lines),
        "daily_sales": [{**d, "sales": to_float(d["sales"])} for d in daily.values()],
        "hourly_sales": [{"hour": h, "sales": to_float(v)} for h, v in sorted(hourly.items())],
        "payments": [
            {"method": PAYMENT_LABELS[m], "amount": to_float(by_method[m]), "percentage": _pct(by_method[m], total)}
            for m in (PaymentMethod.CASH, PaymentMethod.BANK_TRANSFER)
        ],
        "categories": _category_breakdown(lines, menus, cat_names),
    }


def bestsellers(db: Session, period: str = "week", now: datetime | None = None, limit: int = 10) -> dict:
    start, end = period_window(period, now)
    prev_start = start - (end - start)

    lines = _lines(db, [o.id for o in _completed_orders(db, start, end)])
    prev_lines = _lines(db, [o.id for o in _completed_orders(db, prev_start, start - timedelta(microseconds=1))])
    menus, cat_names = _menu_index(db, {l.menu_id for l in lines})

    qty: dict[str, int] = defaultdict(int)
    revenue: dict[str, Decimal] = defaultdict(Decimal)
    for l in lines:
        qty[l.menu_id] += l.quantity
        revenue[l.menu_id] += money(l.line_total)
    prev_qty: dict[str, int] = defaultdict(int)
    for l in prev_lines:
        prev_qty[l.menu_id] += l.quantity

    ranked = sorted(qty.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    top = []
    for rank, (menu_id, sold) in enumerate(ranked, start=1):
        menu = menus.get(menu_id)
        top.append({
            "rank": rank,
            "menu_id": menu_id,
            "name": menu.name if menu else "Unknown",
            "category_name": cat_names.get(menu.category_id, "Unknown") if menu else "Unknown",
            "sales": sold,
            "revenue": to_float(revenue[menu_id]),
            "growth": growth_percent(sold, prev_qty.get(menu_id, 0)),
        })

    # toppings apply once per glass
    line_qty = {l.id: l.quantity for l in lines}
    usage: dict[str, dict] = {}
    if line_qty:
        rows = (
            db.query(OrderItemTopping.order_item_id, Topping)
              .join(Topping, Topping.id == OrderItemTopping.topping_id)
              .filter(OrderItemTopping.order_item_id.in_(list(line_qty)))
              .all()
        )
        for line_id, t in rows:
            u = usage.setdefault(t.id, {"id": t.id, "name": t.name, "count": 0, "revenue": Decimal("0")})
            u["count"] += line_qty[line_id]
            u["revenue"] += money(t.price) * line_qty[line_id]
    toppings = sorted(usage.values(), key=lambda u: u["count"], reverse=True)[:limit]
    for u in toppings:
        u["revenue"] = to_float(u["revenue"])

    return {
        "period": period,
        "bestsellers": top,
        "categories": _category_breakdown(lines, menus, cat_names),
        "toppings": toppings,
    }


def _stat(value, previous) -> dict:
    change = growth_percent(value, previous)
    return {"value": value, "change": change, "positive": change >= 0}


def dashboard(db: Session, now: datetime | None = None, recent: int = 5, top: int = 5) -> dict:
    """Today against yesterday, plus the latest orders and today's top sellers."""
    start, end = period_window("today", now)
    yesterday = start - timedelta(days=1)

    today_orders = _completed_orders(db, start, end)
    prev_orders = _completed_orders(db, yesterday, start - timedelta(microseconds=1))
    today_lines = _lines(db, [o.id for o in today_orders])
    prev_lines = _lines(db, [o.id for o in prev_orders])

    sales = sum((money(o.total_price) for o in today_orders), Decimal("0"))
    prev_sales = sum((money(o.total_price) for o in prev_orders), Decimal("0"))
    glasses = sum(l.quantity for l in today_lines)
    prev_glasses = sum(l.quantity for l in prev_lines)

    stats = {
        "today_sales": {**_stat(sales, prev_sales), "value": to_float(sales)},
        "order_count": _stat(len(today_orders), len(prev_orders)),
        "glasses_count": _stat(glasses, prev_glasses),
        "menu_count": {"value": db.query(MenuItem).filter(MenuItem.available.is_(True)).count(),
                       "change": 0, "positive": True},
        "staff_count": {"value": db.query(Staff).filter(Staff.active.is_(True)).count(),
                        "change": 0, "positive": True},
    }

    # recent orders include every status
    latest = (
        db.query(Order)
          .filter(Order.created_at >= start.astimezone(timezone.utc),
                  Order.created_at <= end.astimezone(timezone.utc))
          .order_by(Order.created_at.desc())
          .limit(recent)
          .all()
    )
    latest_lines = _lines(db, [o.id for o in latest])
    menus, _ = _menu_index(db, {l.menu_id for l in latest_lines} | {l.menu_id for l in today_lines})
    by_order: dict[str, list[str]] = defaultdict(list)
    for l in latest_lines:
        menu = menus.get(l.menu_id)
        by_order[l.order_id].append(f"{menu.name if menu else 'Unknown'} x{l.quantity}")

    qty: dict[str, int] = defaultdict(int)
    for l in today_lines:
        qty[l.menu_id] += l.quantity
    ranked = sorted(qty.items(), key=lambda kv: kv[1], reverse=True)[:top]
    best = ranked[0][1] if ranked else 1

    return {
        "stats": stats,
        "recent_orders": [
            {
                "id": o.id,
                "time": _local(o.created_at).strftime("%H:%M"),
                "items": ", ".join(by_order.get(o.id, [])),
                "total": to_float(o.total_price),
                "status": o.status.value,
            }
            for o in latest
        ],
        "top_selling": [
            {
                "menu_id": menu_id,
                "name": menus[menu_id].name if menu_id in menus else "Unknown",
                "sales": sold,
                "percentage": _pct(sold, best),
            }
            for menu_id, sold in ranked
        ],
    }
