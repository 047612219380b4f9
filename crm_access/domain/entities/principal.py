from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


Role = Literal["super_admin", "wl_user", "regular_user"]

ProductTier = Literal[
    "smartcrm",
    "sales_maximizer",
    "ai_boost_unlimited",
    "ai_communication",
    "smartcrm_bundle",
    "whitelabel",
    "super_admin",
    "dev_all_access",
]

PrincipalStatus = Literal["active", "inactive", "suspended"]


@dataclass(frozen=True)
class Principal:
    id: str
    email: str
    role: Role
    product_tier: ProductTier | None
    permissions: frozenset[str] = field(default_factory=frozenset)
    status: PrincipalStatus = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"
