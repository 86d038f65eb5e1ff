import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import field_validator
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from .common import CamelModel, UTCTimestamp, utcnow


DEFAULT_COLOR = "#3b82f6"

_HEX_COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


class Category(SQLModel, table=True):
    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_categories_user_name"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    name: str = Field(max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: str = Field(default=DEFAULT_COLOR, max_length=7)
    is_default: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _check_color(value: Optional[str]) -> Optional[str]:
    if value is not None and not _HEX_COLOR_RE.match(value):
        raise ValueError("Please enter a valid hex color")
    return value


class CategoryCreate(SQLModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: str = Field(default=DEFAULT_COLOR)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)

    @field_validator("color")
    @classmethod
    def valid_color(cls, value: str) -> str:
        return _check_color(value)


class CategoryUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: Optional[str] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)

    @field_validator("color")
    @classmethod
    def valid_color(cls, value: Optional[str]) -> Optional[str]:
        return _check_color(value)


class CategoryRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    description: Optional[str] = None
    color: str
    is_default: bool
    created_at: datetime
    updated_at: datetime
