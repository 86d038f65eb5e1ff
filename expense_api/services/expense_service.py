import math
import uuid
from typing import List, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from ..core.errors import NotFoundError, ValidationError
from ..models.common import utcnow
from ..models.expense import (
    DateRange,
    Expense,
    ExpenseCreate,
    ExpenseQuery,
    ExpenseUpdate,
    Pagination,
)


SORT_COLUMNS = {
    "date": Expense.date,
    "amount": Expense.amount,
    "category": Expense.category,
    "createdAt": Expense.created_at,
}

REQUIRED_FIELDS = ("amount", "category", "date")


def date_conditions(user_id: uuid.UUID, date_range: DateRange) -> list:
    """WHERE clauses for one user's expenses inside an inclusive date range."""
    conditions = [Expense.user_id == user_id]
    if date_range.start_date is not None:
        conditions.append(Expense.date >= date_range.start_date)
    if date_range.end_date is not None:
        conditions.append(Expense.date <= date_range.end_date)
    return conditions


def create_expense(session: Session, user_id: uuid.UUID, payload: ExpenseCreate) -> Expense:
    now = utcnow()
    expense = Expense(
        id=uuid.uuid4(),
        user_id=user_id,
        amount=payload.amount,
        category=payload.category,
        note=payload.note,
        date=payload.date,
        created_at=now,
        updated_at=now,
    )

    session.add(expense)
    session.commit()
    session.refresh(expense)
    return expense


def get_expense(session: Session, user_id: uuid.UUID, expense_id: uuid.UUID) -> Expense:
    expense = session.get(Expense, expense_id)
    if not expense or expense.user_id != user_id:
        raise NotFoundError("Expense not found")
    return expense


def update_expense(
    session: Session,
    user_id: uuid.UUID,
    expense_id: uuid.UUID,
    patch: ExpenseUpdate,
) -> Expense:
    expense = get_expense(session, user_id, expense_id)

    changes = patch.model_dump(exclude_unset=True)
    nulled = [field for field in REQUIRED_FIELDS if field in changes and changes[field] is None]
    if nulled:
        raise ValidationError(details=[f"{field}: cannot be null" for field in nulled])

    if not changes:
        return expense

    for field, value in changes.items():
        setattr(expense, field, value)
    expense.updated_at = utcnow()

    session.add(expense)
    session.commit()
    session.refresh(expense)
    return expense


def delete_expense(session: Session, user_id: uuid.UUID, expense_id: uuid.UUID) -> None:
    expense = get_expense(session, user_id, expense_id)
    session.delete(expense)
    session.commit()


def list_expenses(
    session: Session,
    user_id: uuid.UUID,
    query: ExpenseQuery,
) -> Tuple[List[Expense], Pagination]:
    """
    One page of the user's expenses plus pagination info.

    - Filters: category (exact), inclusive date range, inclusive amount range.
    - Ties on the sort column are broken by id so that pages never overlap.
    """
    conditions = date_conditions(user_id, query)
    if query.category is not None:
        conditions.append(Expense.category == query.category)
    if query.min_amount is not None:
        conditions.append(Expense.amount >= query.min_amount)
    if query.max_amount is not None:
        conditions.append(Expense.amount <= query.max_amount)

    column = SORT_COLUMNS[query.sort_by]
    order = column.desc() if query.sort_order == "desc" else column.asc()

    statement = (
        select(Expense)
        .where(*conditions)
        .order_by(order, Expense.id.asc())
        .offset(query.offset)
        .limit(query.limit)
    )
    expenses = list(session.exec(statement).all())

    total = session.exec(select(func.count(Expense.id)).where(*conditions)).one()
    pagination = Pagination(
        page=query.page,
        limit=query.limit,
        total=total,
        total_pages=math.ceil(total / query.limit),
    )
    return expenses, pagination
