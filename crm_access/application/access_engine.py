from __future__ import annotations

import logging

from crm_access.domain.entities.access import AccessDecision, AccessPolicy
from crm_access.domain.entities.principal import Principal
from crm_access.domain.services import access_policy, tier_catalog


logger = logging.getLogger(__name__)


class AccessEngine:
    """Per-session access checks for one principal.

    Built once per request from the resolved principal and an explicit policy;
    the decisions themselves come from the pure functions in
    ``crm_access.domain.services``. This class only adds denial logging.
    """

    def __init__(self, *, principal: Principal | None, policy: AccessPolicy):
        self._principal = principal
        self._policy = policy

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def policy(self) -> AccessPolicy:
        return self._policy

    def decide(self, resource_key: str) -> AccessDecision:
        decision = access_policy.decide_access(self._principal, resource_key, self._policy)
        if decision.allowed:
            return decision

        principal_id = self._principal.id if self._principal is not None else None
        if decision.is_configuration_gap:
            logger.warning(
                "Access denied for unknown resource %r (principal=%s); missing catalog entry?",
                decision.resource_key,
                principal_id,
            )
        else:
            logger.info(
                "Access denied: resource=%s principal=%s reason=%s",
                decision.resource_key,
                principal_id,
                decision.reason,
            )
        return decision

    def can_access(self, resource_key: str) -> bool:
        return self.decide(resource_key).allowed

    def has_feature_access(self, feature_key: str) -> bool:
        tier = self._principal.product_tier if self._principal is not None else None
        return tier_catalog.has_feature_access(tier, feature_key)

    def has_product_tier(self) -> bool:
        return access_policy.has_product_tier(self._principal, self._policy)

    def is_super_admin(self) -> bool:
        if self._principal is None:
            return False
        return access_policy.bypass_reason(self._principal, self._policy) is not None

    def has_role(self, role: str) -> bool:
        return self._principal is not None and self._principal.role == role

    def has_permission(self, permission: str) -> bool:
        if self._principal is None:
            return False
        return self.is_super_admin() or permission in self._principal.permissions
