from __future__ import annotations

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import UserFeatureOverride
from crm_access.domain.entities.principal import Principal

from .features_common import require_feature_admin


class ListUserOverridesUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, *, actor: Principal, user_id: str) -> list[UserFeatureOverride]:
        require_feature_admin(actor, self._policy)
        return self._feature_port.list_user_overrides(profile_id=user_id)
