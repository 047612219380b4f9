from __future__ import annotations

from collections.abc import Iterable

from crm_access.domain.entities.access import AccessDecision, AccessPolicy
from crm_access.domain.entities.principal import Principal
from crm_access.domain.services.access_keys import canonical_key


SUPER_ADMIN_ROLE = "super_admin"

_ALL_ROLES = frozenset({"super_admin", "wl_user", "regular_user"})
_SUPER_ADMIN_ONLY = frozenset({SUPER_ADMIN_ROLE})
_PARTNER_ROLES = frozenset({"super_admin", "wl_user"})

ROLE_ACL: dict[str, frozenset[str]] = {
    "admin_dashboard": _SUPER_ADMIN_ONLY,
    "user_management": _SUPER_ADMIN_ONLY,
    "bulk_import_users": _SUPER_ADMIN_ONLY,
    "system_settings": _SUPER_ADMIN_ONLY,
    "billing_management": _SUPER_ADMIN_ONLY,
    "feature_management": _SUPER_ADMIN_ONLY,
    "advanced_analytics": _PARTNER_ROLES,
    "custom_branding": _PARTNER_ROLES,
    "api_access": _PARTNER_ROLES,
    "advanced_features": _PARTNER_ROLES,
    "dashboard": _ALL_ROLES,
    "contacts": _ALL_ROLES,
    "contacts_csv": _ALL_ROLES,
    "pipeline": _ALL_ROLES,
    "pipeline_csv": _ALL_ROLES,
    "calendar": _ALL_ROLES,
    "communication": _ALL_ROLES,
}

_COMMUNICATION_TIERS = frozenset({"super_admin", "whitelabel", "ai_communication", "smartcrm_bundle"})
_AI_TOOL_TIERS = frozenset({"super_admin", "whitelabel", "sales_maximizer", "ai_boost_unlimited", "smartcrm_bundle"})
_WHITELABEL_TIERS = frozenset({"super_admin", "whitelabel"})

TIER_ACL: dict[str, frozenset[str]] = {
    "smartcrm_base": frozenset(
        {
            "super_admin",
            "whitelabel",
            "smartcrm",
            "sales_maximizer",
            "ai_boost_unlimited",
            "ai_communication",
            "smartcrm_bundle",
        }
    ),
    "ai_goals": _AI_TOOL_TIERS,
    "ai_tools": _AI_TOOL_TIERS,
    "video_email": _COMMUNICATION_TIERS,
    "sms_automation": _COMMUNICATION_TIERS,
    "voip_phone": _COMMUNICATION_TIERS,
    "invoicing": _COMMUNICATION_TIERS,
    "lead_automation": _COMMUNICATION_TIERS,
    "circle_prospecting": _COMMUNICATION_TIERS,
    "ai_credits_unlimited": frozenset({"super_admin", "whitelabel", "ai_boost_unlimited", "smartcrm_bundle"}),
    "whitelabel": _WHITELABEL_TIERS,
    "whitelabel_branding": _WHITELABEL_TIERS,
    "whitelabel_settings": _WHITELABEL_TIERS,
}


def default_access_policy(break_glass_emails: Iterable[str] = ()) -> AccessPolicy:
    return AccessPolicy(
        role_acl=dict(ROLE_ACL),
        tier_acl=dict(TIER_ACL),
        break_glass_emails=frozenset(email.strip().lower() for email in break_glass_emails if email.strip()),
    )


def is_break_glass(principal: Principal, policy: AccessPolicy) -> bool:
    return bool(principal.email) and principal.email.strip().lower() in policy.break_glass_emails


def bypass_reason(principal: Principal, policy: AccessPolicy) -> str | None:
    if principal.role == SUPER_ADMIN_ROLE:
        return "super_admin"
    if is_break_glass(principal, policy):
        return "break_glass"
    return None


def decide_access(principal: Principal | None, resource_key: str, policy: AccessPolicy) -> AccessDecision:
    """Combine role ACL, tier ACL and the super-admin bypass; first match wins.

    Never raises: missing principal, tier or table entries resolve to a denial.
    """
    key = canonical_key(resource_key)

    if principal is None:
        return AccessDecision(allowed=False, reason="no_principal", resource_key=key)

    # The bypass is the only path that allows a principal without a product tier.
    bypass = bypass_reason(principal, policy)
    if bypass is not None:
        return AccessDecision(allowed=True, reason=bypass, resource_key=key)

    tier = principal.product_tier
    if not tier:
        return AccessDecision(allowed=False, reason="no_product_tier", resource_key=key)

    allowed_roles = policy.role_acl.get(key)
    if allowed_roles is not None and principal.role not in allowed_roles:
        return AccessDecision(allowed=False, reason="role_denied", resource_key=key)

    required_tiers = policy.tier_acl.get(key)
    if required_tiers is not None:
        if tier in required_tiers:
            return AccessDecision(allowed=True, reason="tier_allowed", resource_key=key)
        return AccessDecision(allowed=False, reason="tier_denied", resource_key=key)

    if allowed_roles is not None:
        return AccessDecision(allowed=True, reason="role_allowed", resource_key=key)

    return AccessDecision(allowed=False, reason="unknown_resource", resource_key=key)


def can_access(principal: Principal | None, resource_key: str, policy: AccessPolicy) -> bool:
    return decide_access(principal, resource_key, policy).allowed


def has_product_tier(principal: Principal | None, policy: AccessPolicy) -> bool:
    if principal is None:
        return False
    if bypass_reason(principal, policy) is not None:
        return True
    return bool(principal.product_tier)
