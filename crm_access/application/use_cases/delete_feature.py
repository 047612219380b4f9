from __future__ import annotations

import logging

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import FeatureInUseError

from .features_common import get_feature_or_raise, require_feature_admin


logger = logging.getLogger(__name__)


class DeleteFeatureUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, *, actor: Principal, feature_id: str) -> None:
        require_feature_admin(actor, self._policy)

        def _tx(feature_port: FeaturePort) -> str:
            feature = get_feature_or_raise(feature_port, feature_id=feature_id)
            if feature_port.count_child_features(feature_id=feature_id) > 0:
                raise FeatureInUseError(f"Feature '{feature.feature_key}' still has sub-features.")
            feature_port.delete_feature(feature_id=feature_id)
            return feature.feature_key

        feature_key = self._feature_port.execute_in_transaction(_tx)
        logger.info("Feature %s deleted by %s", feature_key, actor.id)
