from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from ..core.security import get_current_user
from ..database import get_session
from ..models.common import ApiResponse
from ..models.user import AuthData, LoginIn, MeData, RegisterIn, TokenOut, User, UserRead
from ..services import auth_service


router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


def _auth_data(user: User, token: str) -> AuthData:
    return AuthData(user=UserRead.model_validate(user), token=token)


@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
)
def register_user(
    payload: RegisterIn,
    session: Session = Depends(get_session),
):
    """Create an account, seed its default categories and return a token."""
    user, token = auth_service.register_user(session, payload)
    return ApiResponse(message="User registered successfully", data=_auth_data(user, token))


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_200_OK,
)
def login(payload: LoginIn, session: Session = Depends(get_session)):
    user, token = auth_service.login_user(session, payload)
    return ApiResponse(message="Login successful", data=_auth_data(user, token))


@router.get(
    "/me",
    response_model=ApiResponse[MeData],
    status_code=status.HTTP_200_OK,
)
def me(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=MeData(user=UserRead.model_validate(current_user)))


@router.post(
    "/token",
    response_model=TokenOut,
    status_code=status.HTTP_200_OK,
)
def token(form_data: OAuth2PasswordRequestForm = Depends(), session: Session = Depends(get_session)):
    # OAuth2PasswordRequestForm uses 'username' as the email field
    user = auth_service.authenticate_user(session, form_data.username, form_data.password)
    return TokenOut(access_token=auth_service.issue_token(user), token_type="bearer")
