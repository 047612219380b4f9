from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
import pytest

from crm_access.api import deps
from crm_access.api.deps import (
    get_check_feature_access_use_case,
    get_clear_tier_features_use_case,
    get_create_feature_use_case,
    get_current_principal,
    get_current_principal_optional,
    get_delete_feature_use_case,
    get_effective_feature_use_case,
    get_effective_features_use_case,
    get_feature_usage_use_case,
    get_list_features_use_case,
    get_remove_user_override_use_case,
    get_set_tier_features_use_case,
    get_set_user_override_use_case,
    get_update_feature_use_case,
    get_user_role_use_case,
)
from crm_access.application.use_cases.check_feature_access import CheckFeatureAccessUseCase
from crm_access.application.use_cases.clear_tier_features import ClearTierFeaturesUseCase
from crm_access.application.use_cases.create_feature import CreateFeatureUseCase
from crm_access.application.use_cases.delete_feature import DeleteFeatureUseCase
from crm_access.application.use_cases.get_effective_feature import GetEffectiveFeatureUseCase
from crm_access.application.use_cases.get_effective_features import GetEffectiveFeaturesUseCase
from crm_access.application.use_cases.get_feature_usage import GetFeatureUsageUseCase
from crm_access.application.use_cases.get_user_role import GetUserRoleUseCase
from crm_access.application.use_cases.list_features import ListFeaturesUseCase
from crm_access.application.use_cases.remove_user_override import RemoveUserOverrideUseCase
from crm_access.application.use_cases.resolve_principal import ResolvePrincipalUseCase
from crm_access.application.use_cases.set_tier_features import SetTierFeaturesUseCase
from crm_access.application.use_cases.set_user_override import SetUserOverrideUseCase
from crm_access.application.use_cases.update_feature import UpdateFeatureUseCase
from crm_access.domain.entities.feature import TierFeature
from crm_access.domain.services.access_policy import default_access_policy
from crm_access.infrastructure.db.repositories.features_repository import SqlFeaturesRepository
from crm_access.infrastructure.db.repositories.profiles_repository import SqlProfilesRepository
from crm_access.infrastructure.security.token_service import JwtTokenService
from crm_access.main import app
from access_fakes import FakeFeaturePort, FakePrincipalPort, make_admin, make_feature, make_principal, mint_access_token


POLICY = default_access_policy()


@pytest.fixture
def feature_port():
    port = FakeFeaturePort(
        features=[
            make_feature("f-comm", "communications"),
            make_feature("f-sms", "sms", parent_id="f-comm", name="SMS"),
            make_feature("f-video", "video_email", name="Video Email"),
        ],
        tier_features=[
            TierFeature(product_tier="ai_communication", feature_id="f-video", included_by_default=True),
        ],
    )
    principal_port = FakePrincipalPort([make_principal(), make_admin()])

    app.dependency_overrides[get_user_role_use_case] = lambda: GetUserRoleUseCase(policy=POLICY)
    app.dependency_overrides[get_check_feature_access_use_case] = lambda: CheckFeatureAccessUseCase(
        feature_port=port, policy=POLICY
    )
    app.dependency_overrides[get_effective_feature_use_case] = lambda: GetEffectiveFeatureUseCase(
        principal_port=principal_port, feature_port=port, policy=POLICY
    )
    app.dependency_overrides[get_effective_features_use_case] = lambda: GetEffectiveFeaturesUseCase(
        principal_port=principal_port, feature_port=port, policy=POLICY
    )
    app.dependency_overrides[get_list_features_use_case] = lambda: ListFeaturesUseCase(feature_port=port, policy=POLICY)
    app.dependency_overrides[get_create_feature_use_case] = lambda: CreateFeatureUseCase(feature_port=port, policy=POLICY)
    app.dependency_overrides[get_update_feature_use_case] = lambda: UpdateFeatureUseCase(feature_port=port, policy=POLICY)
    app.dependency_overrides[get_delete_feature_use_case] = lambda: DeleteFeatureUseCase(feature_port=port, policy=POLICY)
    app.dependency_overrides[get_feature_usage_use_case] = lambda: GetFeatureUsageUseCase(
        feature_port=port, policy=POLICY
    )
    app.dependency_overrides[get_set_tier_features_use_case] = lambda: SetTierFeaturesUseCase(
        feature_port=port, policy=POLICY
    )
    app.dependency_overrides[get_clear_tier_features_use_case] = lambda: ClearTierFeaturesUseCase(
        feature_port=port, policy=POLICY
    )
    app.dependency_overrides[get_set_user_override_use_case] = lambda: SetUserOverrideUseCase(
        principal_port=principal_port, feature_port=port, policy=POLICY
    )
    yield port
    app.dependency_overrides.clear()


def _as(principal) -> None:
    app.dependency_overrides[get_current_principal] = lambda: principal
    app.dependency_overrides[get_current_principal_optional] = lambda: principal


def test_user_role_without_token_reports_no_session(feature_port):
    client = TestClient(app)

    response = client.get("/api/auth/user-role")

    assert response.status_code == 200
    assert response.json() == {"success": False, "user": None, "has_access": False, "permissions": []}


def test_user_role_with_malformed_header_reports_no_session(feature_port):
    client = TestClient(app)

    response = client.get("/api/auth/user-role", headers={"Authorization": "Basic abc"})

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_user_role_for_super_admin(feature_port):
    _as(make_admin())
    client = TestClient(app)

    payload = client.get("/api/auth/user-role").json()

    assert payload["success"] is True
    assert payload["user"]["role"] == "super_admin"
    assert payload["user"]["product_tier"] is None
    assert payload["has_access"] is True
    assert payload["permissions"] == ["all"]


def test_feature_check_requires_authentication(feature_port):
    client = TestClient(app)

    response = client.get("/api/features/check", params={"key": "video_email"})

    assert response.status_code == 401


def test_feature_check_for_tier_member(feature_port):
    _as(make_principal(product_tier="ai_communication"))
    client = TestClient(app)

    payload = client.get("/api/features/check", params={"key": "videoEmail"}).json()

    assert payload["has_access"] is True
    assert payload["feature_key"] == "video_email"
    assert payload["feature_name"] == "Video Email"
    assert payload["feature"]["source"] == "tier"


def test_feature_check_denial_carries_display_name(feature_port):
    _as(make_principal(product_tier="smartcrm"))
    client = TestClient(app)

    denied = client.get("/api/features/check", params={"key": "video_email"}).json()
    unknown = client.get("/api/features/check", params={"key": "lead_automation"}).json()

    assert (denied["has_access"], denied["reason"]) == (False, "feature_denied")
    assert (unknown["has_access"], unknown["reason"]) == (False, "tier_denied")
    assert unknown["feature_name"] == "Lead Automation"
    assert unknown["feature"] is None


def test_feature_check_rejects_blank_key(feature_port):
    _as(make_principal())
    client = TestClient(app)

    assert client.get("/api/features/check", params={"key": "  "}).status_code == 400


def test_own_effective_feature(feature_port):
    _as(make_principal(product_tier="ai_communication"))
    client = TestClient(app)

    ok = client.get("/api/features/effective", params={"key": "video_email"})
    missing = client.get("/api/features/effective", params={"key": "teleportation"})

    assert ok.json() == {"feature_key": "video_email", "enabled": True, "source": "tier"}
    assert missing.status_code == 404


def test_admin_routes_reject_regular_users(feature_port):
    _as(make_principal(role="wl_user", product_tier="whitelabel"))
    client = TestClient(app)

    assert client.get("/api/admin/features").status_code == 403
    assert client.post("/api/admin/features", json={"feature_key": "fax", "name": "Fax", "category": "x"}).status_code == 403


def test_admin_feature_crud(feature_port):
    _as(make_admin())
    client = TestClient(app)

    created = client.post(
        "/api/admin/features",
        json={"feature_key": "leadAutomation", "name": "Lead Automation", "category": "automation"},
    )
    assert created.status_code == 201
    feature_id = created.json()["id"]
    assert created.json()["feature_key"] == "lead_automation"

    duplicate = client.post(
        "/api/admin/features",
        json={"feature_key": "lead_automation", "name": "Again", "category": "automation"},
    )
    assert duplicate.status_code == 409

    listed = client.get("/api/admin/features", params={"category": "automation"})
    assert [item["feature_key"] for item in listed.json()] == ["lead_automation"]

    updated = client.patch(f"/api/admin/features/{feature_id}", json={"is_enabled": False})
    assert updated.json()["is_enabled"] is False

    assert client.get(f"/api/admin/features/{feature_id}").status_code == 200
    assert client.delete(f"/api/admin/features/{feature_id}").status_code == 204
    assert client.get(f"/api/admin/features/{feature_id}").status_code == 404


def test_admin_feature_hierarchy_errors(feature_port):
    _as(make_admin())
    client = TestClient(app)

    cycle = client.patch("/api/admin/features/f-comm", json={"parent_id": "f-sms"})
    in_use = client.delete("/api/admin/features/f-comm")

    assert cycle.status_code == 400
    assert in_use.status_code == 409


def test_admin_tier_features(feature_port):
    _as(make_admin())
    client = TestClient(app)

    replaced = client.post("/api/admin/tier-features/smartcrm", json={"feature_ids": ["f-comm", "f-sms"]})
    unknown_tier = client.post("/api/admin/tier-features/platinum", json={"feature_ids": []})
    unknown_feature = client.post("/api/admin/tier-features/smartcrm", json={"feature_ids": ["missing"]})
    cleared = client.delete("/api/admin/tier-features/smartcrm", params={"feature_id": "f-sms"})

    assert [row["feature_id"] for row in replaced.json()] == ["f-comm", "f-sms"]
    assert unknown_tier.status_code == 400
    assert unknown_feature.status_code == 400
    assert cleared.json() == {"product_tier": "smartcrm", "removed": 1}


def test_admin_user_overrides_and_effective_features(feature_port):
    _as(make_admin())
    client = TestClient(app)
    expires_at = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()

    granted = client.post(
        "/api/admin/users/user-1/features",
        json={"feature_id": "f-video", "enabled": True, "expires_at": expires_at},
    )
    past = client.post(
        "/api/admin/users/user-1/features",
        json={"feature_id": "f-video", "enabled": True, "expires_at": "2000-01-01T00:00:00Z"},
    )
    ghost = client.post("/api/admin/users/ghost/features", json={"feature_id": "f-video", "enabled": True})
    effective = client.get("/api/admin/users/user-1/features/effective").json()

    assert granted.status_code == 200
    assert granted.json()["granted_by"] == "admin-1"
    assert past.status_code == 400
    assert ghost.status_code == 404
    video = next(item for item in effective if item["feature_key"] == "video_email")
    assert (video["enabled"], video["source"]) == (True, "override")


def test_admin_usage_listing(feature_port):
    _as(make_principal(product_tier="ai_communication"))
    client = TestClient(app)
    client.get("/api/features/check", params={"key": "video_email"})
    client.get("/api/features/check", params={"key": "video_email"})

    _as(make_admin())
    rows = client.get("/api/admin/features/usage", params={"user_id": "user-1"}).json()

    assert [(row["feature_key"], row["access_count"]) for row in rows] == [("video_email", 2)]


class UnreachableEngine:
    """Engine that fails the test if any statement would reach Postgres."""

    def connect(self):
        raise AssertionError("database should not be queried")

    def begin(self):
        raise AssertionError("database should not be queried")


def test_malformed_feature_ids_are_not_found(feature_port):
    repository = SqlFeaturesRepository(UnreachableEngine())
    app.dependency_overrides[get_list_features_use_case] = lambda: ListFeaturesUseCase(
        feature_port=repository, policy=POLICY
    )
    app.dependency_overrides[get_remove_user_override_use_case] = lambda: RemoveUserOverrideUseCase(
        feature_port=repository, policy=POLICY
    )
    app.dependency_overrides[get_clear_tier_features_use_case] = lambda: ClearTierFeaturesUseCase(
        feature_port=repository, policy=POLICY
    )
    _as(make_admin())
    client = TestClient(app)

    assert client.get("/api/admin/features/abc").status_code == 404

    removed = client.delete("/api/admin/users/abc/features/xyz")
    assert removed.status_code == 200
    assert removed.json() == {"removed": False}

    cleared = client.delete("/api/admin/tier-features/smartcrm", params={"feature_id": "xyz"})
    assert cleared.status_code == 200
    assert cleared.json()["removed"] == 0


def test_token_with_non_uuid_subject_is_unauthorized(feature_port, monkeypatch):
    monkeypatch.setattr(
        deps,
        "get_resolve_principal_use_case",
        lambda: ResolvePrincipalUseCase(
            token_port=JwtTokenService(jwt_secret="test-secret"),
            principal_port=SqlProfilesRepository(UnreachableEngine()),
            environment="development",
        ),
    )
    client = TestClient(app)
    headers = {"Authorization": f"Bearer {mint_access_token('not-a-uuid')}"}

    assert client.get("/api/features/check", params={"key": "sms"}, headers=headers).status_code == 401
    assert client.get("/api/auth/user-role", headers=headers).json()["success"] is False
