from pydantic import BaseModel
from typing import Literal, Union

PeriodLiteral = Literal["today", "week", "month", "year"]

class DailySales(BaseModel):
    date: str
    day: str
    sales: float
    orders: int

class HourlySales(BaseModel):
    hour: str
    sales: float

class PaymentShare(BaseModel):
    method: str
    amount: float
    percentage: int

class CategoryShare(BaseModel):
    name: str
    quantity: int
    revenue: float

class SalesReportOut(BaseModel):
    period: PeriodLiteral
    date_from: str
    date_to: str
    total_sales: float
    total_orders: int
    avg_per_order: float
    total_glasses: int
    daily_sales: list[DailySales]
    hourly_sales: list[HourlySales]
    payments: list[PaymentShare]
    categories: list[CategoryShare]

class Bestseller(BaseModel):
    rank: int
    menu_id: str
    name: str
    category_name: str
    sales: int
    revenue: float
    growth: int

class ToppingUsage(BaseModel):
    id: str
    name: str
    count: int
    revenue: float

class BestsellersOut(BaseModel):
    period: PeriodLiteral
    bestsellers: list[Bestseller]
    categories: list[CategoryShare]
    toppings: list[ToppingUsage]

class StatCard(BaseModel):
    value: Union[int, float]
    change: int
    positive: bool

class DashboardStats(BaseModel):
    today_sales: StatCard
    order_count: StatCard
    glasses_count: StatCard
    menu_count: StatCard
    staff_count: StatCard

class RecentOrder(BaseModel):
    id: str
    time: str
    items: str
    total: float
    status: str

class TopSelling(BaseModel):
    menu_id: str
    name: str
    sales: int
    percentage: int

class DashboardOut(BaseModel):
    stats: DashboardStats
    recent_orders: list[RecentOrder]
    top_selling: list[TopSelling]
