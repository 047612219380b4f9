from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


DenialReason = Literal[
    "no_principal",
    "no_product_tier",
    "role_denied",
    "tier_denied",
    "unknown_resource",
]

GrantReason = Literal[
    "super_admin",
    "break_glass",
    "role_allowed",
    "tier_allowed",
]


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: DenialReason | GrantReason
    resource_key: str

    @property
    def is_configuration_gap(self) -> bool:
        return self.reason == "unknown_resource"


@dataclass(frozen=True)
class AccessPolicy:
    role_acl: dict[str, frozenset[str]]
    tier_acl: dict[str, frozenset[str]]
    break_glass_emails: frozenset[str]
