from pydantic import BaseModel, Field
from typing import Optional, Literal

MemberTierLiteral = Literal["BRONZE", "SILVER", "GOLD", "PLATINUM"]

class MemberIn(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None
    points: int = Field(default=0, ge=0)

class MemberOut(BaseModel):
    id: str
    name: str
    phone: str
    email: Optional[str] = None
    points: int
    tier: MemberTierLiteral

class MemberDiscountOut(BaseModel):
    member_id: str
    tier: MemberTierLiteral
    discount_percent: int
    points: int
    glasses: int
    subtotal: Optional[float] = None
    tier_discount: Optional[float] = None
    max_redeemable_points: Optional[int] = None
