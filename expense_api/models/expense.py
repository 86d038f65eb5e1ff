import math
import re
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator, model_validator
from sqlalchemy import Index
from sqlmodel import SQLModel, Field

from .common import CamelModel, UTCTimestamp, to_utc, utcnow


class Expense(SQLModel, table=True):
    __tablename__ = "expenses"
    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        Index("ix_expenses_user_category", "user_id", "category"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True
    )

    amount: float
    category: str = Field(max_length=50)
    note: Optional[str] = Field(default=None, max_length=500)
    date: datetime = Field(sa_type=UTCTimestamp)

    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)


# ─────────────────────────────
#   SCHEMAS
# ─────────────────────────────

_BARE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_point_in_time(value, end_of_day: bool = False):
    """Accept a datetime or ISO string; a bare YYYY-MM-DD is UTC midnight (or 23:59:59.999999)."""
    if isinstance(value, str):
        value = value.strip()
        if _BARE_DATE_RE.match(value):
            day = date.fromisoformat(value)
            return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)
    return value


def _strip(value):
    return value.strip() if isinstance(value, str) else value


MAX_AMOUNT = 1_000_000_000


def check_amount(value):
    """Money amounts are finite and carry at most two decimal places."""
    if value is None:
        return value
    if not math.isfinite(value):
        raise ValueError("Amount must be a finite number")
    if Decimal(str(value)).as_tuple().exponent < -2:
        raise ValueError("Amount must have at most 2 decimal places")
    return value


class ExpenseCreate(SQLModel):
    amount: float = Field(gt=0, le=MAX_AMOUNT)
    category: str = Field(min_length=1, max_length=50)
    note: Optional[str] = Field(default=None, max_length=500)
    date: datetime

    @field_validator("amount")
    @classmethod
    def valid_amount(cls, value):
        return check_amount(value)

    @field_validator("category", "note", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value):
        return parse_point_in_time(value)

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime) -> datetime:
        return to_utc(value)


class ExpenseUpdate(SQLModel):
    amount: Optional[float] = Field(default=None, gt=0, le=MAX_AMOUNT)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    note: Optional[str] = Field(default=None, max_length=500)
    date: Optional[datetime] = None

    @field_validator("amount")
    @classmethod
    def valid_amount(cls, value):
        return check_amount(value)

    @field_validator("category", "note", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value):
        return parse_point_in_time(value)

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value) if value is not None else None


class ExpenseRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    amount: float
    category: str
    note: Optional[str] = None
    date: datetime
    created_at: datetime
    updated_at: datetime


SortField = Literal["date", "amount", "category", "createdAt"]
SortOrder = Literal["asc", "desc"]


class DateRange(BaseModel):
    """Inclusive date bounds shared by listing and statistics."""

    model_config = ConfigDict(extra="forbid")

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start(cls, value):
        return parse_point_in_time(value)

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end(cls, value):
        return parse_point_in_time(value, end_of_day=True)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value) if value is not None else None

    @model_validator(mode="after")
    def ordered(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


class ExpenseQuery(DateRange):
    page: int = PydanticField(default=1, ge=1)
    limit: int = PydanticField(default=10, ge=1, le=100)
    category: Optional[str] = PydanticField(default=None, min_length=1, max_length=50)
    min_amount: Optional[float] = PydanticField(default=None, ge=0)
    max_amount: Optional[float] = PydanticField(default=None, ge=0)
    sort_by: SortField = "date"
    sort_order: SortOrder = "desc"

    @model_validator(mode="after")
    def amount_range(self):
        if self.min_amount is not None and self.max_amount is not None and self.min_amount > self.max_amount:
            raise ValueError("minAmount must not be greater than maxAmount")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ExpenseList(CamelModel):
    expenses: List[ExpenseRead]
    pagination: Pagination
