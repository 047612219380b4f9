from __future__ import annotations

import logging

from crm_access.application.dto.features import UpdateFeatureInput
from crm_access.application.ports.feature_port import FeaturePort
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.feature import Feature
from crm_access.domain.entities.principal import Principal
from crm_access.domain.exceptions import FeatureHierarchyError, FeatureNotFoundError
from crm_access.domain.services.feature_resolution import would_create_cycle

from .features_common import get_feature_or_raise, require_feature_admin, utcnow


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "description", "category", "parent_id", "is_enabled"})


class UpdateFeatureUseCase:
    def __init__(self, *, feature_port: FeaturePort, policy: AccessPolicy):
        self._feature_port = feature_port
        self._policy = policy

    def execute(self, command: UpdateFeatureInput, *, actor: Principal) -> Feature:
        require_feature_admin(actor, self._policy)

        # feature_key is the external contract key and never changes.
        unknown = set(command.changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}.")
        changes = dict(command.changes)
        for field in ("name", "category"):
            if field in changes:
                value = (changes[field] or "").strip()
                if not value:
                    raise ValueError(f"{field} cannot be empty.")
                changes[field] = value

        def _tx(feature_port: FeaturePort) -> Feature:
            get_feature_or_raise(feature_port, feature_id=command.feature_id)

            parent_id = changes.get("parent_id")
            if parent_id is not None:
                features_by_id = {item.id: item for item in feature_port.list_features()}
                if parent_id not in features_by_id:
                    raise FeatureHierarchyError(f"Parent feature '{parent_id}' not found.")
                if would_create_cycle(
                    feature_id=command.feature_id,
                    new_parent_id=parent_id,
                    features_by_id=features_by_id,
                ):
                    raise FeatureHierarchyError("Parent assignment would create a cycle.")

            if not changes:
                return get_feature_or_raise(feature_port, feature_id=command.feature_id)

            updated = feature_port.update_feature(feature_id=command.feature_id, changes=changes, now=utcnow())
            if updated is None:
                raise FeatureNotFoundError(f"Feature '{command.feature_id}' not found.")
            return updated

        feature = self._feature_port.execute_in_transaction(_tx)
        logger.info("Feature %s updated by %s: %s", feature.feature_key, actor.id, sorted(changes))
        return feature
