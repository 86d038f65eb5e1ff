import logging
import uuid
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.errors import AuthError, ConflictError
from ..core.jwt import create_access_token
from ..core.security import dummy_password_hash, hash_password, verify_password
from ..models.common import utcnow
from ..models.user import LoginIn, RegisterIn, User
from .category_service import seed_default_categories

logger = logging.getLogger(__name__)


INVALID_CREDENTIALS = "Invalid credentials"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def issue_token(user: User) -> str:
    return create_access_token({"sub": str(user.id), "email": user.email})


def register_user(session: Session, payload: RegisterIn) -> Tuple[User, str]:
    now = utcnow()
    user = User(
        id=uuid.uuid4(),
        name=payload.name,
        email=normalize_email(payload.email),
        hashed_password=hash_password(payload.password),
        created_at=now,
        updated_at=now,
    )

    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("User already exists with this email")
    session.refresh(user)
    logger.info("Registered user %s", user.id)

    seed_default_categories(session, user.id)

    return user, issue_token(user)


def authenticate_user(session: Session, email: str, password: str) -> User:
    user = session.exec(select(User).where(User.email == normalize_email(email))).first()
    if user is None:
        verify_password(password, dummy_password_hash())
        raise AuthError(INVALID_CREDENTIALS)
    if not verify_password(password, user.hashed_password):
        logger.info("Failed login for user %s", user.id)
        raise AuthError(INVALID_CREDENTIALS)
    return user


def login_user(session: Session, payload: LoginIn) -> Tuple[User, str]:
    user = authenticate_user(session, payload.email, payload.password)
    return user, issue_token(user)
