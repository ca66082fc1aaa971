from pydantic import BaseModel, Field
from typing import Optional

from drinkpos.schemas.orders import LineItemIn

class QuoteIn(BaseModel):
    items: list[LineItemIn] = Field(min_length=1)
    member_id: Optional[str] = None
    points_used: int = Field(default=0, ge=0)

class QuoteLineOut(BaseModel):
    menu_id: str
    menu_name: Optional[str] = None
    quantity: int
    unit_price: float
    line_total: float

class QuoteOut(BaseModel):
    lines: list[QuoteLineOut]
    subtotal: float
    glasses: int
    tier: Optional[str] = None
    discount_percent: int
    tier_discount: float
    max_redeemable_points: int
    points_used: int
    points_discount: float
    discount_amount: float
    total: float
    points_earned: int
