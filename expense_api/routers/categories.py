import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from ..core.security import get_current_user
from ..database import get_session
from ..models.category import CategoryCreate, CategoryRead, CategoryUpdate
from ..models.common import ApiResponse
from ..models.user import User
from ..services import category_service


router = APIRouter(
    prefix="/categories",
    tags=["categories"],
)


@router.get(
    "",
    response_model=ApiResponse[List[CategoryRead]],
)
def list_categories(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Categories of the authenticated user, sorted by name."""
    categories = category_service.list_categories(session, current_user.id)
    return ApiResponse(data=[CategoryRead.model_validate(c) for c in categories])


@router.post(
    "",
    response_model=ApiResponse[CategoryRead],
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    payload: CategoryCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    category = category_service.create_category(session, current_user.id, payload)
    return ApiResponse(message="Category created successfully", data=CategoryRead.model_validate(category))


@router.get(
    "/{category_id}",
    response_model=ApiResponse[CategoryRead],
)
def get_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    category = category_service.get_category(session, current_user.id, category_id)
    return ApiResponse(data=CategoryRead.model_validate(category))


@router.put("/{category_id}", response_model=ApiResponse[CategoryRead])
@router.patch("/{category_id}", response_model=ApiResponse[CategoryRead])
def update_category(
    category_id: uuid.UUID,
    patch: CategoryUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Change only the supplied fields of a category."""
    category = category_service.update_category(session, current_user.id, category_id, patch)
    return ApiResponse(message="Category updated successfully", data=CategoryRead.model_validate(category))


@router.delete(
    "/{category_id}",
    response_model=ApiResponse,
)
def delete_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Delete a category. Expenses filed under its name are left untouched."""
    category_service.delete_category(session, current_user.id, category_id)
    return ApiResponse(message="Category deleted successfully")
