from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal

from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.services.access_keys import canonical_key
from crm_access.domain.services.access_policy import TIER_ACL
from crm_access.domain.services.tier_catalog import (
    FEATURE_TIERS,
    feature_display_name,
    minimum_tier_for_feature,
    tier_display_name,
)


GateMode = Literal["upgrade", "hidden", "custom"]
GateKind = Literal["children", "nothing", "custom", "upgrade_prompt"]


@dataclass(frozen=True)
class UpgradePrompt:
    feature_key: str
    feature_name: str
    current_tier: str | None
    required_tier: str
    required_tier_name: str


@dataclass(frozen=True)
class GateResult:
    kind: GateKind
    fallback: Any = None
    prompt: UpgradePrompt | None = None

    @property
    def renders_children(self) -> bool:
        return self.kind == "children"


def build_upgrade_prompt(
    feature_key: str,
    *,
    current_tier: str | None,
    policy: AccessPolicy | None = None,
) -> UpgradePrompt:
    tier_acl = policy.tier_acl if policy is not None else TIER_ACL
    required_tier = minimum_tier_for_feature(feature_key, tier_acl, FEATURE_TIERS)
    return UpgradePrompt(
        feature_key=canonical_key(feature_key),
        feature_name=feature_display_name(feature_key),
        current_tier=current_tier,
        required_tier=required_tier,
        required_tier_name=tier_display_name(required_tier),
    )


def evaluate_gate(
    feature_key: str | None,
    can_access: Callable[[str], bool],
    *,
    mode: GateMode = "upgrade",
    current_tier: str | None = None,
    custom_fallback: Any = None,
    policy: AccessPolicy | None = None,
) -> GateResult:
    """Decide what an access gate renders.

    Advisory only: it delegates to the client-side ``can_access`` and never
    replaces the server-side re-check.
    """
    if not feature_key:
        return GateResult(kind="children")

    if can_access(feature_key):
        return GateResult(kind="children")

    if mode == "hidden":
        return GateResult(kind="nothing")
    if mode == "custom":
        if custom_fallback is None:
            return GateResult(kind="nothing")
        return GateResult(kind="custom", fallback=custom_fallback)

    return GateResult(
        kind="upgrade_prompt",
        prompt=build_upgrade_prompt(feature_key, current_tier=current_tier, policy=policy),
    )
