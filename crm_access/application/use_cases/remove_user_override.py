from __future__ import annotations

import logging

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.principal import Principal

from .features_common import require_feature_admin


logger = logging.getLogger(__name__)


class RemoveUserOverrideUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, *, actor: Principal, user_id: str, feature_id: str) -> bool:
        require_feature_admin(actor, self._policy)
        removed = self._feature_port.delete_user_override(profile_id=user_id, feature_id=feature_id)
        if removed:
            logger.info("Override removed: user=%s feature=%s by=%s", user_id, feature_id, actor.id)
        return removed
