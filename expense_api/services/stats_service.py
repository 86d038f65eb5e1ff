import uuid
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import extract, func
from sqlmodel import Session, select

from ..models.expense import DateRange, Expense
from ..models.stats import CategoryStats, ExpenseStats, MonthlyStats, TotalStats
from .expense_service import date_conditions

CENT = Decimal("0.01")


def _cents(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def expense_stats(session: Session, user_id: uuid.UUID, date_range: DateRange) -> ExpenseStats:
    """Totals, per-category subtotals and per-month subtotals, recomputed on every call.

    The grand total is the sum of the rounded category subtotals, so the two
    always agree to the cent. With no matching expenses every figure is 0,
    the average included.
    """
    conditions = date_conditions(user_id, date_range)

    category_total = func.sum(Expense.amount).label("total_amount")
    category_rows = session.exec(
        select(Expense.category, category_total, func.count(Expense.id))
        .where(*conditions)
        .group_by(Expense.category)
        .order_by(category_total.desc(), Expense.category.asc())
    ).all()
    subtotals = [(category, _cents(amount), count) for category, amount, count in category_rows]
    categories = [
        CategoryStats(category=category, total_amount=float(amount), count=count)
        for category, amount, count in subtotals
    ]

    total_amount = sum((amount for _, amount, _ in subtotals), Decimal(0))
    total_count = sum(count for _, _, count in subtotals)
    total = TotalStats(
        total_amount=float(total_amount),
        total_count=total_count,
        avg_amount=float((total_amount / total_count).quantize(CENT, rounding=ROUND_HALF_UP)) if total_count else 0.0,
    )

    year = extract("year", Expense.date).label("year")
    month = extract("month", Expense.date).label("month")
    monthly_rows = session.exec(
        select(year, month, func.sum(Expense.amount), func.count(Expense.id))
        .where(*conditions)
        .group_by(year, month)
        .order_by(year.desc(), month.desc())
    ).all()
    monthly = [
        MonthlyStats(year=int(y), month=int(m), total=float(_cents(amount)), count=count)
        for y, m, amount, count in monthly_rows
    ]

    return ExpenseStats(total=total, categories=categories, monthly_expenses=monthly)
