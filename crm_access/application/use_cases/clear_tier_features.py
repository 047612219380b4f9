from __future__ import annotations

import logging

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.principal import Principal

from .features_common import require_feature_admin, validate_product_tier


logger = logging.getLogger(__name__)


class ClearTierFeaturesUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, *, actor: Principal, product_tier: str, feature_id: str | None = None) -> int:
        require_feature_admin(actor, self._policy)
        tier = validate_product_tier(product_tier)
        removed = self._feature_port.clear_tier_features(product_tier=tier, feature_id=feature_id)
        logger.info("Removed %d tier rows from %s (feature=%s, by %s)", removed, tier, feature_id, actor.id)
        return removed
