from __future__ import annotations

from fastapi import APIRouter, Depends

from ..accounts import AccountService
from ..auth import require_subject
from ..dependencies import get_account_service
from ..schemas import ProfileUpdate, UserEnvelope

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(require_subject)],
)


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserEnvelope,
    summary="Get profile",
    description="Return the authenticated user's profile.",
    responses={
        401: {"description": "Missing or invalid token"},
        404: {"description": "User not found"},
    },
)
def get_me(
    subject: str = Depends(require_subject),
    accounts: AccountService = Depends(get_account_service),
) -> UserEnvelope:
    return UserEnvelope(user=accounts.get_profile(subject))


# PUBLIC_INTERFACE
@router.put(
    "/me",
    response_model=UserEnvelope,
    summary="Update profile",
    description="Replace the authenticated user's name and email.",
    responses={
        400: {"description": "Invalid input or email already in use"},
        401: {"description": "Missing or invalid token"},
        404: {"description": "User not found"},
    },
)
def update_me(
    payload: ProfileUpdate,
    subject: str = Depends(require_subject),
    accounts: AccountService = Depends(get_account_service),
) -> UserEnvelope:
    return UserEnvelope(user=accounts.update_profile(subject, payload))
