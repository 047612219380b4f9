from __future__ import annotations

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import TierFeature
from crm_access.domain.entities.principal import Principal

from .features_common import require_feature_admin, validate_product_tier


class GetTierFeaturesUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, *, actor: Principal, product_tier: str) -> list[TierFeature]:
        require_feature_admin(actor, self._policy)
        tier = validate_product_tier(product_tier)
        return self._feature_port.list_tier_features(product_tier=tier)
