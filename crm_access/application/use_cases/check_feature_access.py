from __future__ import annotations

import logging
from uuid import uuid4

from crm_access.application.dto.access import FeatureCheckOutput
from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import Feature
from crm_access.domain.entities.principal import Principal
from crm_access.domain.services.access_keys import canonical_key
from crm_access.domain.services.access_policy import bypass_reason, decide_access
from crm_access.domain.services.feature_resolution import is_globally_available

from .features_common import find_feature_by_key, load_effective_features, utcnow


logger = logging.getLogger(__name__)


class CheckFeatureAccessUseCase:
    """Server-authoritative feature check used by route guards.

    The database catalog (tier rows plus per-user overrides) decides for keys it
    knows; other keys fall back to the static role/tier tables.
    """

    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, *, principal: Principal, feature_key: str) -> FeatureCheckOutput:
        key = canonical_key(feature_key)
        now = utcnow()
        feature = find_feature_by_key(self._feature_port, feature_key=key)

        if feature is None:
            decision = decide_access(principal, key, self._policy)
            if decision.is_configuration_gap:
                logger.warning("Feature check for unknown key %r by principal %s", key, principal.id)
            return FeatureCheckOutput(
                feature_key=key,
                has_access=decision.allowed,
                reason=decision.reason,
                feature=None,
            )

        effective = next(
            (
                item
                for item in load_effective_features(self._feature_port, principal=principal, now=now)
                if item.feature_id == feature.id
            ),
            None,
        )

        bypass = bypass_reason(principal, self._policy)
        if bypass is not None and self._is_available(feature):
            has_access, reason = True, bypass
        elif effective is not None and effective.enabled:
            has_access, reason = True, effective.source
        else:
            has_access = False
            reason = "no_product_tier" if not principal.product_tier else "feature_denied"

        if has_access:
            self._feature_port.record_feature_usage(
                usage_id=str(uuid4()),
                profile_id=principal.id,
                feature_id=feature.id,
                now=now,
            )
        else:
            logger.info("Feature %s denied for principal %s (%s)", key, principal.id, reason)

        return FeatureCheckOutput(feature_key=key, has_access=has_access, reason=reason, feature=effective)

    def _is_available(self, feature: Feature) -> bool:
        features_by_id = {item.id: item for item in self._feature_port.list_features()}
        return is_globally_available(feature, features_by_id=features_by_id)
