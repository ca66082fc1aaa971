from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List

from drinkpos.db import get_db
from drinkpos.deps import require_admin, require_auth
from drinkpos.errors import NotFound
from drinkpos.models.core import Category, MenuItem, OrderItem, Topping
from drinkpos.schemas.catalog import (
    CategoryIn, CategoryOut, MenuItemIn, MenuItemOut, PopularMenuItemOut, ToppingIn, ToppingOut,
)

router = APIRouter(prefix="/catalog", tags=["catalog"])


def _menu_out(m: MenuItem) -> MenuItemOut:
    return MenuItemOut(id=m.id, name=m.name, category_id=m.category_id, price=float(m.price),
                       description=m.description, available=m.available)


def _topping_out(t: Topping) -> ToppingOut:
    return ToppingOut(id=t.id, name=t.name, price=float(t.price), available=t.available)


# ── Categories ──────────────────────────────────────────────────────────────

@router.post("/categories", response_model=CategoryOut)
def create_category(body: CategoryIn, db: Session = Depends(get_db), sub: str = Depends(require_admin)):
    c = Category(**body.model_dump())
    db.add(c); db.commit(); db.refresh(c)
    return CategoryOut(id=c.id, name=c.name, position=c.position)

@router.get("/categories", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    rows = db.query(Category).order_by(Category.position, Category.name).all()
    return [CategoryOut(id=c.id, name=c.name, position=c.position) for c in rows]


# ── Menu items ──────────────────────────────────────────────────────────────

@router.post("/menu", response_model=MenuItemOut)
def create_menu_item(body: MenuItemIn, db: Session = Depends(get_db), sub: str = Depends(require_admin)):
    if not db.get(Category, body.category_id):
        raise NotFound("category not found")
    m = MenuItem(**{**body.model_dump(), "price": Decimal(str(body.price))})
    db.add(m); db.commit(); db.refresh(m)
    return _menu_out(m)

@router.get("/menu", response_model=List[MenuItemOut])
def list_menu(category_id: str | None = None, available_only: bool = False,
              db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    q = db.query(MenuItem)
    if category_id:
        q = q.filter(MenuItem.category_id == category_id)
    if available_only:
        q = q.filter(MenuItem.available.is_(True))
    return [_menu_out(m) for m in q.order_by(MenuItem.name).all()]

@router.get("/menu/popular", response_model=List[PopularMenuItemOut])
def popular_menu(limit: int = 10, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    """Menu items ranked by how many order lines reference them."""
    rows = (
        db.query(OrderItem.menu_id, func.count(OrderItem.id).label("lines"))
          .group_by(OrderItem.menu_id)
          .order_by(func.count(OrderItem.id).desc())
          .limit(limit)
          .all()
    )
    menus = {m.id: m for m in db.query(MenuItem).filter(MenuItem.id.in_([r.menu_id for r in rows])).all()}
    cats = {c.id: c.name for c in db.query(Category).filter(
        Category.id.in_({m.category_id for m in menus.values()})).all()}
    out = []
    for menu_id, lines in rows:
        m = menus.get(menu_id)
        if not m:
            continue
        out.append(PopularMenuItemOut(**_menu_out(m).model_dump(),
                                      category_name=cats.get(m.category_id), popularity=lines))
    return out

@router.get("/menu/{menu_id}", response_model=MenuItemOut)
def get_menu_item(menu_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    m = db.get(MenuItem, menu_id)
    if not m:
        raise NotFound("menu item not found")
    return _menu_out(m)

@router.post("/menu/{menu_id}/availability", response_model=MenuItemOut)
def set_menu_availability(menu_id: str, available: bool, db: Session = Depends(get_db),
                          sub: str = Depends(require_admin)):
    m = db.get(MenuItem, menu_id)
    if not m:
        raise NotFound("menu item not found")
    m.available = available
    db.commit()
    return _menu_out(m)


# ── Toppings ────────────────────────────────────────────────────────────────

@router.post("/toppings", response_model=ToppingOut)
def create_topping(body: ToppingIn, db: Session = Depends(get_db), sub: str = Depends(require_admin)):
    t = Topping(**{**body.model_dump(), "price": Decimal(str(body.price))})
    db.add(t); db.commit(); db.refresh(t)
    return _topping_out(t)

@router.get("/toppings", response_model=List[ToppingOut])
def list_toppings(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return [_topping_out(t) for t in db.query(Topping).order_by(Topping.name).all()]

@router.post("/toppings/{topping_id}/availability", response_model=ToppingOut)
def set_topping_availability(topping_id: str, available: bool, db: Session = Depends(get_db),
                             sub: str = Depends(require_admin)):
    t = db.get(Topping, topping_id)
    if not t:
        raise NotFound("topping not found")
    t.available = available
    db.commit()
    return _topping_out(t)
