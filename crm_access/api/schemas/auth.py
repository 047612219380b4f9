from __future__ import annotations

from pydantic import BaseModel


class UserRoleUser(BaseModel):
    id: str
    email: str
    role: str
    product_tier: str | None = None
    status: str


class UserRoleResponse(BaseModel):
    success: bool
    user: UserRoleUser | None = None
    has_access: bool
    permissions: list[str]
