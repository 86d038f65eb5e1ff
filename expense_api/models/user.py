import uuid
from datetime import datetime

from pydantic import EmailStr, field_validator
from sqlmodel import SQLModel, Field

from .common import CamelModel, UTCTimestamp, utcnow


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    name: str = Field(max_length=100)
    email: str = Field(index=True, unique=True, max_length=255)
    hashed_password: str

    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCTimestamp)


class RegisterIn(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class LoginIn(SQLModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserRead(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    created_at: datetime


class AuthData(CamelModel):
    user: UserRead
    token: str


class MeData(CamelModel):
    user: UserRead


class TokenOut(SQLModel):
    access_token: str
    token_type: str
