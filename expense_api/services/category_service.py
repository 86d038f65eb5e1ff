import logging
import uuid
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..models.category import Category, CategoryCreate, CategoryUpdate
from ..models.common import utcnow

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES = [
    {
        "name": "Food & Dining",
        "description": "Restaurants, groceries, and food delivery",
        "color": "#ef4444",
    },
    {
        "name": "Transportation",
        "description": "Gas, public transport, rideshare, and car maintenance",
        "color": "#3b82f6",
    },
    {
        "name": "Entertainment",
        "description": "Movies, games, hobbies, and leisure activities",
        "color": "#8b5cf6",
    },
    {
        "name": "Shopping",
        "description": "Clothing, electronics, and general shopping",
        "color": "#f59e0b",
    },
    {
        "name": "Bills & Utilities",
        "description": "Electricity, water, internet, phone, and other bills",
        "color": "#10b981",
    },
    {
        "name": "Healthcare",
        "description": "Medical expenses, prescriptions, and health insurance",
        "color": "#06b6d4",
    },
    {
        "name": "Education",
        "description": "Tuition, books, courses, and learning materials",
        "color": "#84cc16",
    },
    {
        "name": "Travel",
        "description": "Vacations, business trips, and travel expenses",
        "color": "#f97316",
    },
]

DUPLICATE_NAME = "Category with this name already exists"


def seed_default_categories(session: Session, user_id: uuid.UUID) -> int:
    """Insert the default catalog for a new user.

    Best-effort: any store failure is logged and rolled back, and 0 is returned
    so that registration is never failed by it.
    """
    now = utcnow()
    categories = [
        Category(user_id=user_id, is_default=True, created_at=now, updated_at=now, **item)
        for item in DEFAULT_CATEGORIES
    ]
    try:
        session.add_all(categories)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error creating default categories for user %s", user_id)
        return 0

    logger.info("Created %d default categories for user %s", len(categories), user_id)
    return len(categories)


def list_categories(session: Session, user_id: uuid.UUID) -> List[Category]:
    stmt = select(Category).where(Category.user_id == user_id).order_by(Category.name.asc())
    return list(session.exec(stmt).all())


def get_category(session: Session, user_id: uuid.UUID, category_id: uuid.UUID) -> Category:
    category = session.get(Category, category_id)
    if not category or category.user_id != user_id:
        raise NotFoundError("Category not found")
    return category


def _commit_category(session: Session, category: Category) -> Category:
    session.add(category)
    try:
        session.commit()
    except IntegrityError:
        # (user_id, name) unique constraint; covers concurrent inserts too
        session.rollback()
        logger.info("Duplicate category name %r for user %s", category.name, category.user_id)
        raise ConflictError(DUPLICATE_NAME)
    session.refresh(category)
    return category


def create_category(session: Session, user_id: uuid.UUID, payload: CategoryCreate) -> Category:
    now = utcnow()
    category = Category(
        id=uuid.uuid4(),
        user_id=user_id,
        name=payload.name,
        description=payload.description,
        color=payload.color,
        is_default=False,
        created_at=now,
        updated_at=now,
    )
    return _commit_category(session, category)


def update_category(
    session: Session,
    user_id: uuid.UUID,
    category_id: uuid.UUID,
    patch: CategoryUpdate,
) -> Category:
    category = get_category(session, user_id, category_id)

    changes = patch.model_dump(exclude_unset=True)
    for field in ("name", "color"):
        if field in changes and changes[field] is None:
            raise ValidationError(details=[f"{field}: cannot be null"])

    if not changes:
        return category

    for field, value in changes.items():
        setattr(category, field, value)
    category.updated_at = utcnow()
    return _commit_category(session, category)


def delete_category(session: Session, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
    # Expenses keep their category string; nothing cascades.
    category = get_category(session, user_id, category_id)
    session.delete(category)
    session.commit()
