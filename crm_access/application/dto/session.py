from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AccessTokenPayload:
    principal_id: str


@dataclass(frozen=True)
class UserRoleOutput:
    success: bool
    user_id: str | None
    email: str | None
    role: str | None
    product_tier: str | None
    status: str | None
    permissions: list[str]
    has_access: bool
