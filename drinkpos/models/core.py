from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Enum, Text, DateTime, Integer, Index, text
)
from sqlalchemy.orm import Mapped, mapped_column
from enum import Enum as PyEnum
from datetime import datetime
from decimal import Decimal
from drinkpos.db import Base
from drinkpos.models.common import IdMixin, TSMMixin

# ── Enums ───────────────────────────────────────────────────────────────────
class OrderStatus(PyEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

class PaymentMethod(PyEnum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"  # QR / PromptPay

class Sweetness(PyEnum):
    ZERO = "ZERO"
    TWENTY_FIVE = "TWENTY_FIVE"
    FIFTY = "FIFTY"
    SEVENTY_FIVE = "SEVENTY_FIVE"
    NORMAL = "NORMAL"
    EXTRA = "EXTRA"

class MemberTier(PyEnum):
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"

class ShiftStatus(PyEnum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"

class StaffRole(PyEnum):
    STAFF = "STAFF"
    ADMIN = "ADMIN"

# ── Staff ───────────────────────────────────────────────────────────────────
class Staff(Base, IdMixin, TSMMixin):
    __tablename__ = "staff"
    name: Mapped[str] = mapped_column(String(160))
    phone: Mapped[str] = mapped_column(String(20), unique=True)
    pin_hash: Mapped[str] = mapped_column(String(200))
    role: Mapped[StaffRole] = mapped_column(Enum(StaffRole), default=StaffRole.STAFF)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Catalog ─────────────────────────────────────────────────────────────────
class Category(Base, IdMixin, TSMMixin):
    __tablename__ = "category"
    name: Mapped[str] = mapped_column(String(120))
    position: Mapped[int] = mapped_column(default=0)

class MenuItem(Base, IdMixin, TSMMixin):
    __tablename__ = "menu_item"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    category_id: Mapped[str] = mapped_column(String(36), ForeignKey("category.id"))
    available: Mapped[bool] = mapped_column(Boolean, default=True)

class Topping(Base, IdMixin, TSMMixin):
    __tablename__ = "topping"
    name: Mapped[str] = mapped_column(String(120))
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    available: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Members ─────────────────────────────────────────────────────────────────
class Member(Base, IdMixin, TSMMixin):
    __tablename__ = "member"
    phone: Mapped[str] = mapped_column(String(20), unique=True)
    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str | None] = mapped_column(String(160))
    points: Mapped[int] = mapped_column(Integer, default=0)
    tier: Mapped[MemberTier] = mapped_column(Enum(MemberTier), default=MemberTier.BRONZE)

# ── Shifts ──────────────────────────────────────────────────────────────────
class Shift(Base, IdMixin, TSMMixin):
    __tablename__ = "shift"
    staff_id: Mapped[str] = mapped_column(String(36), ForeignKey("staff.id"))
    status: Mapped[ShiftStatus] = mapped_column(Enum(ShiftStatus), default=ShiftStatus.OPEN)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    starting_cash: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ending_cash: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    cash_sales: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    qr_sales: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    total_sales: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    note: Mapped[str | None] = mapped_column(Text)
    __table_args__ = (
        # at most one OPEN shift per staff member
        Index(
            "uq_shift_staff_open", "staff_id", unique=True,
            sqlite_where=text("status = 'OPEN'"),
            postgresql_where=text("status = 'OPEN'"),
        ),
    )

# ── Orders ──────────────────────────────────────────────────────────────────
class Order(Base, IdMixin, TSMMixin):
    __tablename__ = "order"
    member_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("member.id"), index=True)
    staff_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("staff.id"))
    shift_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("shift.id"), index=True)
    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.COMPLETED)
    payment_method: Mapped[PaymentMethod] = mapped_column(Enum(PaymentMethod))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    tier_discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    points_discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)  # tier + points
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    points_earned: Mapped[int] = mapped_column(Integer, default=0)
    points_used: Mapped[int] = mapped_column(Integer, default=0)
    amount_received: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    change: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    note: Mapped[str | None] = mapped_column(Text)

class OrderItem(Base, IdMixin, TSMMixin):
    __tablename__ = "order_item"
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("order.id"), index=True)
    menu_id: Mapped[str] = mapped_column(String(36), ForeignKey("menu_item.id"))
    quantity: Mapped[int] = mapped_column(Integer)
    sweetness: Mapped[Sweetness] = mapped_column(Enum(Sweetness), default=Sweetness.NORMAL)
    note: Mapped[str | None] = mapped_column(Text)
    # price snapshot at sale time (menu + toppings, per glass)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    line_total: Mapped[Decimal] = mapped_column(Numeric(10, 2))

class OrderItemTopping(Base, TSMMixin):
    __tablename__ = "order_item_topping"
    order_item_id: Mapped[str] = mapped_column(String(36), ForeignKey("order_item.id"), primary_key=True)
    topping_id: Mapped[str] = mapped_column(String(36), ForeignKey("topping.id"), primary_key=True)

# ── Audit ───────────────────────────────────────────────────────────────────
class AuditLog(Base, IdMixin, TSMMixin):
    __tablename__ = "audit_log"
    actor_staff_id: Mapped[str | None] = mapped_column(String(36))
    entity: Mapped[str] = mapped_column(String(60))
    entity_id: Mapped[str] = mapped_column(String(36))
    action: Mapped[str] = mapped_column(String(60))
    reason: Mapped[str | None] = mapped_column(Text)
    before: Mapped[str | None] = mapped_column(Text)
    after: Mapped[str | None] = mapped_column(Text)
