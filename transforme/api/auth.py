"""Authentication helpers for the admin portal."""

from fastapi import APIRouter, Depends

from transforme.core.permissions import get_permissions
from transforme.core.security import get_current_user
from transforme.models import User
from transforme.schemas.user import CurrentUser

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=CurrentUser)
def read_current_user(current_user: User = Depends(get_current_user)) -> CurrentUser:
    """Return the authenticated user's profile and effective permissions."""

    profile = CurrentUser.model_validate(current_user)
    profile.permissions = sorted(get_permissions(current_user.roles or []))
    return profile
