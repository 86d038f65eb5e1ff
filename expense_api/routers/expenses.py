import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from ..core.errors import ValidationError
from ..core.security import get_current_user
from ..database import get_session
from ..models.common import ApiResponse
from ..models.expense import (
    DateRange,
    ExpenseCreate,
    ExpenseList,
    ExpenseQuery,
    ExpenseRead,
    ExpenseUpdate,
    SortField,
    SortOrder,
)
from ..models.stats import ExpenseStats
from ..models.user import User
from ..services import expense_service, stats_service

router = APIRouter(
    prefix="/expenses",
    tags=["expenses"],
)

LIST_PARAMS = {"page", "limit", "category", "startDate", "endDate", "minAmount", "maxAmount", "sortBy", "sortOrder"}
STATS_PARAMS = {"startDate", "endDate"}


# ─────────────────────────────
#   QUERY PARSING
# ─────────────────────────────

def _reject_unknown(request: Request, allowed: set) -> None:
    unknown = sorted(set(request.query_params.keys()) - allowed)
    if unknown:
        raise ValidationError(
            "Unrecognized query parameters",
            details=[f"{name}: not a recognized parameter" for name in unknown],
        )


def _build(model, **values):
    try:
        return model(**values)
    except PydanticValidationError as e:
        raise ValidationError(details=[err["msg"] for err in e.errors()])


def expense_query(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = Query(None, min_length=1, max_length=50),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    min_amount: Optional[float] = Query(None, alias="minAmount", ge=0),
    max_amount: Optional[float] = Query(None, alias="maxAmount", ge=0),
    sort_by: SortField = Query("date", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
) -> ExpenseQuery:
    _reject_unknown(request, LIST_PARAMS)
    return _build(
        ExpenseQuery,
        page=page,
        limit=limit,
        category=category,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def stats_range(
    request: Request,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
) -> DateRange:
    _reject_unknown(request, STATS_PARAMS)
    return _build(DateRange, start_date=start_date, end_date=end_date)


# ─────────────────────────────
#   ENDPOINTS
# ─────────────────────────────

@router.get(
    "",
    response_model=ApiResponse[ExpenseList],
)
def list_expenses(
    current_user: User = Depends(get_current_user),
    query: ExpenseQuery = Depends(expense_query),
    session: Session = Depends(get_session),
):
    """
    List the authenticated user's expenses.

    - Filters: category, startDate/endDate, minAmount/maxAmount.
    - Sorted by date descending unless sortBy/sortOrder say otherwise.
    """
    expenses, pagination = expense_service.list_expenses(session, current_user.id, query)
    return ApiResponse(
        data=ExpenseList(
            expenses=[ExpenseRead.model_validate(e) for e in expenses],
            pagination=pagination,
        )
    )


@router.post(
    "",
    response_model=ApiResponse[ExpenseRead],
    status_code=status.HTTP_201_CREATED,
)
def create_expense(
    expense_in: ExpenseCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Create an expense for the authenticated user.

    - user_id comes from the bearer token via get_current_user.
    - category is free text; it does not have to name an existing category.
    """
    expense = expense_service.create_expense(session, current_user.id, expense_in)
    return ApiResponse(message="Expense created successfully", data=ExpenseRead.model_validate(expense))


@router.get(
    "/stats",
    response_model=ApiResponse[ExpenseStats],
)
def get_expense_stats(
    current_user: User = Depends(get_current_user),
    date_range: DateRange = Depends(stats_range),
    session: Session = Depends(get_session),
):
    """Totals and per-category/per-month subtotals over an optional date range."""
    return ApiResponse(data=stats_service.expense_stats(session, current_user.id, date_range))


@router.get(
    "/{expense_id}",
    response_model=ApiResponse[ExpenseRead],
)
def get_expense(
    expense_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    expense = expense_service.get_expense(session, current_user.id, expense_id)
    return ApiResponse(data=ExpenseRead.model_validate(expense))


@router.put("/{expense_id}", response_model=ApiResponse[ExpenseRead])
@router.patch("/{expense_id}", response_model=ApiResponse[ExpenseRead])
def update_expense(
    expense_id: uuid.UUID,
    expense_in: ExpenseUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Partially update an expense of the authenticated user."""
    expense = expense_service.update_expense(session, current_user.id, expense_id, expense_in)
    return ApiResponse(message="Expense updated successfully", data=ExpenseRead.model_validate(expense))


@router.delete(
    "/{expense_id}",
    response_model=ApiResponse,
)
def delete_expense(
    expense_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    expense_service.delete_expense(session, current_user.id, expense_id)
    return ApiResponse(message="Expense deleted successfully")
