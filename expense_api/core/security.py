import hashlib
import hmac
import os
import uuid
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session
from jose.exceptions import ExpiredSignatureError, JWTError

from ..database import get_session
from ..models.user import User
from .errors import AuthError
from .jwt import decode_access_token


ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 100_000
SALT_BYTES = 16


def _pbkdf2_hash(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, ITERATIONS)


def hash_password(password: str) -> str:
    salt = os.urandom(SALT_BYTES)
    digest = _pbkdf2_hash(password, salt)
    return f"{ALGORITHM}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, salt_hex, hash_hex = stored.strip().split("$")
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    if algorithm != ALGORITHM:
        return False
    candidate = _pbkdf2_hash(password, salt)
    return hmac.compare_digest(candidate, expected)


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash checked against when the email is unknown, so both login failures cost the same."""
    return hash_password(uuid.uuid4().hex)


def authenticate_token(session: Session, token: Optional[str]) -> User:
    """Resolve a bearer token to its user or raise AuthError."""
    if not token:
        raise AuthError("Access token required")

    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise AuthError("Token expired")
    except JWTError:
        raise AuthError("Invalid token")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthError("Invalid token: bad subject format")

    user = session.get(User, user_id)
    if user is None:
        raise AuthError("User not found")
    return user


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    return authenticate_token(session, token)
