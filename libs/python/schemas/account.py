"""Account-related DTOs shared across services."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr


class AccountProfile(BaseModel):
    account_id: int
    user_name: str
    family_name: str
    first_name: str
    email: EmailStr
    is_admin: bool = False
    is_deleted: bool = False
    locked: bool = False


class AccountListItem(BaseModel):
    """Row of an account listing; never carries the password hash."""

    account_id: int
    user_name: str
    family_name: str
    first_name: str
    is_admin: bool
    is_deleted: bool
