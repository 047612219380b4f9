from __future__ import annotations

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import FeatureUsage
from crm_access.domain.entities.principal import Principal

from .features_common import require_feature_admin


class GetFeatureUsageUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(
        self,
        *,
        actor: Principal,
        user_id: str | None = None,
        feature_id: str | None = None,
    ) -> list[FeatureUsage]:
        require_feature_admin(actor, self._policy)
        return self._feature_port.list_feature_usage(profile_id=user_id, feature_id=feature_id)
