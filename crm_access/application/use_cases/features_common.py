from __future__ import annotations

from datetime import datetime, timezone
import logging

from crm_access.application.access_engine import AccessEngine
from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import EffectiveFeature, Feature
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import FeatureAccessDeniedError, FeatureNotFoundError, InvalidProductTierError
from crm_access.domain.services.access_keys import canonical_key
from crm_access.domain.services.feature_resolution import build_effective_features
from crm_access.domain.services.tier_catalog import TIER_ORDER


logger = logging.getLogger(__name__)

FEATURE_MANAGEMENT_RESOURCE = "feature_management"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_feature_admin(actor: Principal | None, policy: AccessPolicy) -> Principal:
    decision = AccessEngine(principal=actor, policy=policy).decide(FEATURE_MANAGEMENT_RESOURCE)
    if not decision.allowed or actor is None:
        logger.warning(
            "Rejected feature-management call: principal=%s reason=%s",
            actor.id if actor is not None else None,
            decision.reason,
        )
        raise FeatureAccessDeniedError("Super admin privileges are required to manage features.")
    return actor


def validate_product_tier(product_tier: str) -> str:
    tier = product_tier.strip()
    if tier not in TIER_ORDER:
        raise InvalidProductTierError(f"Unknown product tier '{product_tier}'.")
    return tier


def get_feature_or_raise(feature_port: FeaturePort, *, feature_id: str) -> Feature:
    feature = feature_port.get_feature_by_id(feature_id=feature_id)
    if feature is None:
        raise FeatureNotFoundError(f"Feature '{feature_id}' not found.")
    return feature


def find_feature_by_key(feature_port: FeaturePort, *, feature_key: str) -> Feature | None:
    return feature_port.get_feature_by_key(feature_key=canonical_key(feature_key))


def load_effective_features(
    feature_port: FeaturePort,
    *,
    principal: Principal,
    now: datetime,
) -> list[EffectiveFeature]:
    # No purchased tier means no tier defaults; only overrides can enable anything.
    tier_features = (
        feature_port.list_tier_features(product_tier=principal.product_tier)
        if principal.product_tier
        else []
    )
    return build_effective_features(
        features=feature_port.list_features(),
        tier_features=tier_features,
        overrides=feature_port.list_user_overrides(profile_id=principal.id),
        now=now,
    )
