from __future__ import annotations

from collections.abc import Mapping

from crm_access.domain.services.access_keys import canonical_key


DEV_ALL_ACCESS_TIER = "dev_all_access"

# Lowest first.
TIER_ORDER: tuple[str, ...] = (
    "smartcrm",
    "sales_maximizer",
    "ai_boost_unlimited",
    "ai_communication",
    "smartcrm_bundle",
    "whitelabel",
    "super_admin",
)

LOWEST_PAID_TIER = TIER_ORDER[0]

_ALL_TIERS = frozenset(TIER_ORDER)
_AI_TIERS = frozenset(
    {"super_admin", "whitelabel", "smartcrm_bundle", "sales_maximizer", "ai_boost_unlimited", "ai_communication"}
)
_COMMUNICATION_TIERS = frozenset({"super_admin", "whitelabel", "smartcrm_bundle", "ai_communication"})
_BUNDLE_TIERS = frozenset({"super_admin", "whitelabel", "smartcrm_bundle"})

FEATURE_TIERS: dict[str, frozenset[str]] = {
    "dashboard": _ALL_TIERS,
    "contacts": _ALL_TIERS,
    "pipeline": _ALL_TIERS,
    "calendar": _ALL_TIERS,
    "tasks": _ALL_TIERS,
    "ai_goals": _AI_TIERS,
    "ai_tools": _AI_TIERS,
    "ai_assistant": _AI_TIERS,
    "communications": _ALL_TIERS,
    "video_email": _COMMUNICATION_TIERS,
    "phone_system": _COMMUNICATION_TIERS,
    "sms": _COMMUNICATION_TIERS,
    "invoicing": _COMMUNICATION_TIERS,
    "content_library": _BUNDLE_TIERS,
    "forms_surveys": _BUNDLE_TIERS,
    "analytics": _ALL_TIERS,
    "whitelabel": frozenset({"super_admin", "whitelabel"}),
    "admin": frozenset({"super_admin"}),
}

FEATURE_NAMES: dict[str, str] = {
    "dashboard": "Dashboard",
    "contacts": "Contacts",
    "pipeline": "Pipeline",
    "calendar": "Calendar",
    "tasks": "Tasks",
    "ai_goals": "AI Goals",
    "ai_tools": "AI Tools",
    "ai_assistant": "AI Assistant",
    "communications": "Communications",
    "video_email": "Video Email",
    "phone_system": "Phone System",
    "sms": "SMS",
    "invoicing": "Invoicing",
    "content_library": "Content Library",
    "forms_surveys": "Forms & Surveys",
    "analytics": "Analytics",
    "whitelabel": "White Label",
    "admin": "Admin Panel",
}

TIER_NAMES: dict[str, str] = {
    "smartcrm": "SmartCRM",
    "sales_maximizer": "Sales Maximizer",
    "ai_boost_unlimited": "AI Boost Unlimited",
    "ai_communication": "AI Communication",
    "smartcrm_bundle": "SmartCRM Bundle",
    "whitelabel": "Whitelabel",
    "super_admin": "Super Admin",
}


def is_known_tier(tier: str | None) -> bool:
    return tier in _ALL_TIERS or tier == DEV_ALL_ACCESS_TIER


def allowed_tiers(feature_key: str) -> frozenset[str]:
    return FEATURE_TIERS.get(canonical_key(feature_key), frozenset())


def has_feature_access(product_tier: str | None, feature_key: str) -> bool:
    """Advisory client-side check; protected endpoints must re-check on the server."""
    if not product_tier:
        return False
    if product_tier == DEV_ALL_ACCESS_TIER:
        return True
    return product_tier in allowed_tiers(feature_key)


def feature_display_name(feature_key: str) -> str:
    key = canonical_key(feature_key)
    name = FEATURE_NAMES.get(key)
    if name is not None:
        return name
    return " ".join(word.capitalize() for word in key.split("_") if word) or feature_key


def tier_display_name(tier: str) -> str:
    return TIER_NAMES.get(tier, tier)


def minimum_tier_for_feature(
    feature_key: str,
    *tables: Mapping[str, frozenset[str]],
) -> str:
    """Lowest tier, in declared order, whose allowed set includes the feature.

    ``tables`` are consulted in order; the first one that knows the key wins.
    Defaults to the catalog when no tables are given.
    """
    key = canonical_key(feature_key)
    allowed: frozenset[str] | None = None
    for table in tables or (FEATURE_TIERS,):
        if key in table:
            allowed = table[key]
            break
    if allowed:
        for tier in TIER_ORDER:
            if tier in allowed:
                return tier
    return LOWEST_PAID_TIER
