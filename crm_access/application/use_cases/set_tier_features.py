from __future__ import annotations

import logging

from crm_access.application.dto.features import SetTierFeaturesInput
from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import TierFeature
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import FeatureNotFoundError

from .features_common import require_feature_admin, validate_product_tier


logger = logging.getLogger(__name__)


class SetTierFeaturesUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, command: SetTierFeaturesInput, *, actor: Principal) -> list[TierFeature]:
        require_feature_admin(actor, self._policy)
        tier = validate_product_tier(command.product_tier)
        feature_ids = list(dict.fromkeys(command.feature_ids))

        def _tx(feature_port: FeaturePort) -> list[TierFeature]:
            known = {feature.id for feature in feature_port.list_features()}
            missing = [feature_id for feature_id in feature_ids if feature_id not in known]
            if missing:
                raise FeatureNotFoundError(f"Unknown feature ids: {', '.join(missing)}.")
            feature_port.replace_tier_features(product_tier=tier, feature_ids=feature_ids)
            return feature_port.list_tier_features(product_tier=tier)

        rows = self._feature_port.execute_in_transaction(_tx)
        logger.info("Tier %s now includes %d features (set by %s)", tier, len(rows), actor.id)
        return rows
