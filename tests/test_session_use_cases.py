from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging

import pytest

from crm_access.application.dto.session import AccessTokenPayload
from crm_access.application.use_cases.check_feature_access import CheckFeatureAccessUseCase
from crm_access.application.use_cases.get_user_role import GetUserRoleUseCase
from crm_access.application.use_cases.resolve_principal import ResolvePrincipalUseCase
from crm_access.domain.entities.feature import TierFeature
from crm_access.domain.exceptions import PrincipalInactiveError, PrincipalNotFoundError
from crm_access.domain.services.access_policy import default_access_policy
from access_fakes import FakeFeaturePort, FakePrincipalPort, make_feature, make_principal


POLICY = default_access_policy(["ops@example.com"])


class FakeTokenPort:
    def decode_access_token(self, *, token: str) -> AccessTokenPayload:
        if not token.startswith("token-"):
            raise ValueError("Invalid access token.")
        return AccessTokenPayload(principal_id=token.removeprefix("token-"))


def _catalog() -> FakeFeaturePort:
    return FakeFeaturePort(
        features=[
            make_feature("f-comm", "communications", is_enabled=False),
            make_feature("f-sms", "sms", parent_id="f-comm"),
            make_feature("f-video", "video_email", name="Video Email"),
        ],
        tier_features=[
            TierFeature(product_tier="ai_communication", feature_id="f-video", included_by_default=True),
            TierFeature(product_tier="ai_communication", feature_id="f-sms", included_by_default=True),
        ],
    )


def test_resolve_principal_returns_active_principal():
    principals = FakePrincipalPort([make_principal()])
    use_case = ResolvePrincipalUseCase(token_port=FakeTokenPort(), principal_port=principals, environment="development")

    principal = use_case.execute(token="token-user-1")

    assert principal.id == "user-1"


def test_resolve_principal_rejects_unknown_and_inactive_principals():
    principals = FakePrincipalPort([make_principal(id="user-2", status="suspended")])
    use_case = ResolvePrincipalUseCase(token_port=FakeTokenPort(), principal_port=principals, environment="development")

    with pytest.raises(PrincipalNotFoundError):
        use_case.execute(token="token-user-1")
    with pytest.raises(PrincipalInactiveError):
        use_case.execute(token="token-user-2")
    with pytest.raises(ValueError):
        use_case.execute(token="garbage")


def test_dev_all_access_tier_is_dropped_in_production(caplog):
    principals = FakePrincipalPort([make_principal(product_tier="dev_all_access")])
    production = ResolvePrincipalUseCase(token_port=FakeTokenPort(), principal_port=principals, environment="production")
    development = ResolvePrincipalUseCase(token_port=FakeTokenPort(), principal_port=principals, environment="development")

    with caplog.at_level(logging.WARNING):
        assert production.execute(token="token-user-1").product_tier is None

    assert "dev_all_access" in caplog.text
    assert development.execute(token="token-user-1").product_tier == "dev_all_access"


def test_user_role_for_anonymous_session():
    output = GetUserRoleUseCase(policy=POLICY).execute(principal=None)

    assert output.success is False
    assert output.user_id is None
    assert output.has_access is False
    assert output.permissions == []


def test_user_role_reports_permissions_and_tier_access():
    use_case = GetUserRoleUseCase(policy=POLICY)

    regular = use_case.execute(principal=make_principal(permissions=frozenset({"b", "a"})))
    admin = use_case.execute(principal=make_principal(role="super_admin", product_tier=None))
    break_glass = use_case.execute(principal=make_principal(email="ops@example.com", product_tier=None))

    assert (regular.success, regular.permissions, regular.has_access) == (True, ["a", "b"], True)
    assert (admin.permissions, admin.has_access) == (["all"], True)
    assert (break_glass.permissions, break_glass.has_access) == (["all"], True)


def test_check_feature_uses_catalog_for_known_keys_and_records_usage():
    port = _catalog()
    use_case = CheckFeatureAccessUseCase(feature_port=port, policy=POLICY)
    principal = make_principal(product_tier="ai_communication")

    output = use_case.execute(principal=principal, feature_key="videoEmail")

    assert output.has_access is True
    assert output.reason == "tier"
    assert output.feature.name == "Video Email"
    assert port.list_feature_usage(profile_id="user-1")[0].access_count == 1


def test_check_feature_respects_disabled_ancestors():
    port = _catalog()
    use_case = CheckFeatureAccessUseCase(feature_port=port, policy=POLICY)

    regular = use_case.execute(principal=make_principal(product_tier="ai_communication"), feature_key="sms")
    admin = use_case.execute(principal=make_principal(role="super_admin", product_tier=None), feature_key="sms")

    assert regular.has_access is False
    assert regular.reason == "feature_denied"
    assert admin.has_access is False
    assert port.usage == {}


def test_check_feature_applies_overrides():
    port = _catalog()
    port.upsert_user_override(
        override_id="ov-1",
        profile_id="user-1",
        feature_id="f-video",
        enabled=True,
        expires_at=datetime.now(timezone.utc) + timedelta(days=1),
        granted_by="admin-1",
        granted_at=datetime.now(timezone.utc),
    )
    use_case = CheckFeatureAccessUseCase(feature_port=port, policy=POLICY)

    output = use_case.execute(principal=make_principal(product_tier="smartcrm"), feature_key="video_email")

    assert output.has_access is True
    assert output.reason == "override"


def test_check_feature_without_tier_is_denied_with_reason():
    use_case = CheckFeatureAccessUseCase(feature_port=_catalog(), policy=POLICY)

    output = use_case.execute(principal=make_principal(product_tier=None), feature_key="video_email")

    assert output.has_access is False
    assert output.reason == "no_product_tier"


def test_check_feature_bypass_for_super_admin_and_break_glass():
    use_case = CheckFeatureAccessUseCase(feature_port=_catalog(), policy=POLICY)

    admin = use_case.execute(principal=make_principal(role="super_admin", product_tier=None), feature_key="video_email")
    ops = use_case.execute(principal=make_principal(email="ops@example.com", product_tier=None), feature_key="video_email")

    assert (admin.has_access, admin.reason) == (True, "super_admin")
    assert (ops.has_access, ops.reason) == (True, "break_glass")


def test_check_feature_falls_back_to_static_policy(caplog):
    use_case = CheckFeatureAccessUseCase(feature_port=_catalog(), policy=POLICY)
    principal = make_principal(product_tier="smartcrm")

    with caplog.at_level(logging.WARNING):
        known = use_case.execute(principal=principal, feature_key="smartcrm_base")
        unknown = use_case.execute(principal=principal, feature_key="teleportation")

    assert (known.has_access, known.reason, known.feature) == (True, "tier_allowed", None)
    assert (unknown.has_access, unknown.reason) == (False, "unknown_resource")
    assert "teleportation" in caplog.text
