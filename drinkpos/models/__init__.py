# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    OrderStatus, PaymentMethod, Sweetness, MemberTier, ShiftStatus, StaffRole,

    # Staff & catalog
    Staff, Category, MenuItem, Topping,

    # Members
    Member,

    # Shifts & orders
    Shift, Order, OrderItem, OrderItemTopping,

    # Audit
    AuditLog,
)

__all__ = [
    "OrderStatus", "PaymentMethod", "Sweetness", "MemberTier", "ShiftStatus", "StaffRole",
    "Staff", "Category", "MenuItem", "Topping",
    "Member",
    "Shift", "Order", "OrderItem", "OrderItemTopping",
    "AuditLog",
]
