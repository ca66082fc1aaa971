from pydantic import BaseModel, Field
from typing import Optional

class ShiftOpenIn(BaseModel):
    staff_id: str
    starting_cash: float = Field(ge=0)

class ShiftCloseIn(BaseModel):
    ending_cash: float = Field(ge=0)
    # default to the live summary when omitted
    cash_sales: Optional[float] = Field(default=None, ge=0)
    qr_sales: Optional[float] = Field(default=None, ge=0)
    note: Optional[str] = None

class ShiftSummaryOut(BaseModel):
    shift_id: str
    total_sales: float
    total_orders: int
    cash_sales: float
    qr_sales: float
    expected_cash: float

class ShiftOut(BaseModel):
    id: str
    staff_id: str
    status: str
    opened_at: Optional[str] = None
    starting_cash: float
    closed_at: Optional[str] = None
    ending_cash: Optional[float] = None
    cash_sales: Optional[float] = None
    qr_sales: Optional[float] = None
    total_sales: Optional[float] = None
    note: Optional[str] = None
    expected_cash: Optional[float] = None
    difference: Optional[float] = None
