import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Literal
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from drinkpos.db import get_db, atomic
from drinkpos.config import settings
from drinkpos.deps import require_admin
from drinkpos.errors import Conflict
from drinkpos.util.security import hash_pin
from drinkpos.models.core import Staff, StaffRole, Category, MenuItem, Topping

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)

ADMIN_PHONE = "0999999999"
ADMIN_PIN = "123456"

SEED_MENU = {
    "Coffee": [("Iced Americano", 45), ("Iced Latte", 55), ("Mocha", 60)],
    "Tea": [("Thai Milk Tea", 40), ("Green Milk Tea", 45), ("Lemon Tea", 35)],
    "Smoothie": [("Strawberry Smoothie", 65), ("Mango Smoothie", 65)],
}
SEED_TOPPINGS = [
    ("Pearls", 10), ("Whipped Cream", 15), ("Espresso Shot", 15),
    ("Jelly", 10), ("Cream Cheese", 20), ("Brown Sugar", 10),
]

@router.post("/dev-bootstrap")
def dev_bootstrap(db: Session = Depends(get_db)):
    if settings.APP_ENV != "dev":
        raise HTTPException(403, detail="Not allowed")

    with atomic(db):
        admin = db.query(Staff).filter(Staff.phone == ADMIN_PHONE).first()
        if not admin:
            admin = Staff(name="Admin", phone=ADMIN_PHONE, pin_hash=hash_pin(ADMIN_PIN), role=StaffRole.ADMIN)
            db.add(admin); db.flush()

        if not db.query(Category).first():
            for pos, (cat_name, items) in enumerate(SEED_MENU.items(), start=1):
                c = Category(name=cat_name, position=pos)
                db.add(c); db.flush()
                for name, price in items:
                    db.add(MenuItem(name=name, price=Decimal(price), category_id=c.id))

        if not db.query(Topping).first():
            for name, price in SEED_TOPPINGS:
                db.add(Topping(name=name, price=Decimal(price)))

    logger.info("Dev bootstrap complete")
    return {
        "admin_staff_id": admin.id,
        "admin_phone": ADMIN_PHONE,
        "categories": db.query(Category).count(),
        "menu_items": db.query(MenuItem).count(),
        "toppings": db.query(Topping).count(),
    }


class StaffIn(BaseModel):
    name: str
    phone: str
    pin: str = Field(pattern=r"^\d{6}$")
    role: Literal["STAFF", "ADMIN"] = "STAFF"

@router.post("/staff")
def create_staff(body: StaffIn, db: Session = Depends(get_db), sub: str = Depends(require_admin)):
    phone = body.phone.strip()
    if db.query(Staff).filter(Staff.phone == phone).first():
        raise Conflict("phone number is already registered")
    s = Staff(name=body.name.strip(), phone=phone, pin_hash=hash_pin(body.pin), role=StaffRole(body.role))
    try:
        db.add(s); db.commit(); db.refresh(s)
    except IntegrityError:
        db.rollback()
        raise Conflict("phone number is already registered")
    logger.info("Staff %s created by %s", s.id, sub)
    return {"id": s.id, "name": s.name, "phone": s.phone, "role": s.role.value}
