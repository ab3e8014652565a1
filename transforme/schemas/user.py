"""User schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from transforme.core.permissions import is_valid_role


def _check_roles(roles: list[str]) -> list[str]:
    if not roles:
        raise ValueError("At least one role is required")
    for role in roles:
        if not is_valid_role(role):
            raise ValueError(f"Invalid role: {role}")
    return list(dict.fromkeys(roles))


class UserInvite(BaseModel):
    email: EmailStr
    roles: list[str]

    @field_validator("roles")
    @classmethod
    def validate_roles(cls, value: list[str]) -> list[str]:
        return _check_roles(value)


class UserRolesUpdate(BaseModel):
    roles: list[str]

    @field_validator("roles")
    @classmethod
    def validate_roles(cls, value: list[str]) -> list[str]:
        return _check_roles(value)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str | None
    image: str | None
    roles: list[str] = Field(default_factory=list)
    status: str
    invited_at: datetime | None
    activated_at: datetime | None
    created_at: datetime | None


class CurrentUser(UserOut):
    permissions: list[str] = Field(default_factory=list)


class UserList(BaseModel):
    users: list[UserOut]


class InviteResponse(BaseModel):
    user: UserOut
    email_sent: bool


__all__ = [
    "CurrentUser",
    "InviteResponse",
    "UserInvite",
    "UserList",
    "UserOut",
    "UserRolesUpdate",
]
