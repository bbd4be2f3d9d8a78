from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..accounts import AccountService
from ..dependencies import get_account_service
from ..schemas import AuthResponse, LoginRequest, OkResponse, RegisterRequest

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account and return a bearer token for it.",
    responses={
        201: {"description": "Account created"},
        400: {"description": "Invalid input or email already in use"},
    },
)
def register(payload: RegisterRequest, accounts: AccountService = Depends(get_account_service)) -> AuthResponse:
    result = accounts.register(payload)
    return AuthResponse(token=result.token, user=result.user)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login",
    description="Exchange email and password for a bearer token. Email matching is case-insensitive.",
    responses={
        200: {"description": "Logged in"},
        400: {"description": "Invalid input"},
        401: {"description": "Invalid credentials"},
    },
)
def login(payload: LoginRequest, accounts: AccountService = Depends(get_account_service)) -> AuthResponse:
    result = accounts.login(payload)
    return AuthResponse(token=result.token, user=result.user)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=OkResponse,
    summary="Logout",
    description="Tokens are stateless; the client discards its token. Always succeeds.",
)
def logout(accounts: AccountService = Depends(get_account_service)) -> OkResponse:
    accounts.logout()
    return OkResponse(ok=True)
