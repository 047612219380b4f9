from __future__ import annotations

from typing import Protocol

from crm_access.application.dto.access import FeatureCheckResult


class FeatureCheckPort(Protocol):
    def check_feature(self, *, feature_key: str) -> FeatureCheckResult:
        ...
