from pydantic import BaseModel, Field
from typing import Optional, Literal

OrderStatusLiteral = Literal["PENDING", "PROCESSING", "COMPLETED", "CANCELLED"]
PaymentMethodLiteral = Literal["CASH", "BANK_TRANSFER"]
SweetnessLiteral = Literal["ZERO", "TWENTY_FIVE", "FIFTY", "SEVENTY_FIVE", "NORMAL", "EXTRA"]

class LineItemIn(BaseModel):
    menu_id: str
    quantity: int = Field(ge=1)
    sweetness: SweetnessLiteral = "NORMAL"
    note: Optional[str] = None
    topping_ids: list[str] = []

class OrderIn(BaseModel):
    member_id: Optional[str] = None
    staff_id: Optional[str] = None
    shift_id: Optional[str] = None
    payment_method: PaymentMethodLiteral
    amount_received: Optional[float] = Field(default=None, ge=0)
    items: list[LineItemIn] = Field(min_length=1)
    points_used: int = Field(default=0, ge=0)
    status: Literal["PENDING", "COMPLETED"] = "COMPLETED"
    note: Optional[str] = None
    # client-computed totals; verified against the server's figures when sent
    total_price: Optional[float] = None
    discount_amount: Optional[float] = None
    points_earned: Optional[int] = None

class StatusIn(BaseModel):
    status: OrderStatusLiteral
    note: Optional[str] = None

class ToppingRef(BaseModel):
    id: str
    name: str
    price: float

class LineItemOut(BaseModel):
    id: str
    menu_id: str
    menu_name: Optional[str] = None
    category_name: Optional[str] = None
    quantity: int
    sweetness: SweetnessLiteral
    note: Optional[str] = None
    unit_price: float
    line_total: float
    toppings: list[ToppingRef] = []

class OrderOut(BaseModel):
    id: str
    status: OrderStatusLiteral
    member_id: Optional[str] = None
    staff_id: Optional[str] = None
    shift_id: Optional[str] = None
    payment_method: PaymentMethodLiteral
    subtotal: float
    tier_discount: float
    points_discount: float
    discount_amount: float
    total_price: float
    points_earned: int
    points_used: int
    amount_received: Optional[float] = None
    change: Optional[float] = None
    note: Optional[str] = None
    created_at: Optional[str] = None
    items: list[LineItemOut] = []
    member: Optional[dict] = None
