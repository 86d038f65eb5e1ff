from typing import List

from .common import CamelModel


class TotalStats(CamelModel):
    total_amount: float = 0.0
    total_count: int = 0
    avg_amount: float = 0.0


class CategoryStats(CamelModel):
    category: str
    total_amount: float
    count: int


class MonthlyStats(CamelModel):
    year: int
    month: int
    total: float
    count: int


class ExpenseStats(CamelModel):
    total: TotalStats
    categories: List[CategoryStats]
    monthly_expenses: List[MonthlyStats]
