from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, TypeVar

from sqlalchemy import text

from crm_access.application.ports.feature_port import FeaturePort
from crm_access.infrastructure.db.mappers.access_mapper import (
    is_uuid,
    map_row_to_feature,
    map_row_to_feature_usage,
    map_row_to_tier_feature,
    map_row_to_user_override,
)


TResult = TypeVar("TResult")

_FEATURE_COLUMNS = "id, feature_key, name, description, category, parent_id, is_enabled, created_at, updated_at"
_OVERRIDE_COLUMNS = "id, profile_id, feature_id, enabled, expires_at, granted_by, granted_at"
_UPDATABLE_COLUMNS = ("name", "description", "category", "parent_id", "is_enabled")


class SqlFeaturesRepository(FeaturePort):
    def __init__(self, engine, *, connection=None):
        self._engine = engine
        self._connection = connection

    @contextmanager
    def _read(self) -> Iterator:
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.connect() as conn:
            yield conn

    @contextmanager
    def _write(self) -> Iterator:
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.begin() as conn:
            yield conn

    def execute_in_transaction(self, fn: Callable[[FeaturePort], TResult]) -> TResult:
        if self._connection is not None:
            return fn(self)
        with self._engine.begin() as conn:
            return fn(SqlFeaturesRepository(self._engine, connection=conn))

    def list_features(self, *, category: str | None = None, is_enabled: bool | None = None):
        sql = f"""
            SELECT {_FEATURE_COLUMNS}
            FROM public.features
            WHERE (CAST(:category AS text) IS NULL OR category = :category)
              AND (CAST(:is_enabled AS boolean) IS NULL OR is_enabled = :is_enabled)
            ORDER BY category, feature_key
        """
        with self._read() as conn:
            rows = conn.execute(text(sql), {"category": category, "is_enabled": is_enabled}).mappings().all()
        return [map_row_to_feature(row) for row in rows]

    def get_feature_by_id(self, *, feature_id: str):
        if not is_uuid(feature_id):
            return None
        sql = f"""
            SELECT {_FEATURE_COLUMNS}
            FROM public.features
            WHERE id = :feature_id
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"feature_id": feature_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_feature(row)

    def get_feature_by_key(self, *, feature_key: str):
        sql = f"""
            SELECT {_FEATURE_COLUMNS}
            FROM public.features
            WHERE feature_key = :feature_key
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"feature_key": feature_key}).mappings().first()
        if row is None:
            return None
        return map_row_to_feature(row)

    def count_child_features(self, *, feature_id: str) -> int:
        if not is_uuid(feature_id):
            return 0
        sql = """
            SELECT count(*)
            FROM public.features
            WHERE parent_id = :feature_id
        """
        with self._read() as conn:
            return int(conn.execute(text(sql), {"feature_id": feature_id}).scalar_one())

    def create_feature(
        self,
        *,
        feature_id: str,
        feature_key: str,
        name: str,
        description: str | None,
        category: str,
        parent_id: str | None,
        is_enabled: bool,
        now: datetime,
    ):
        sql = f"""
            INSERT INTO public.features (
                id, feature_key, name, description, category, parent_id, is_enabled, created_at, updated_at
            ) VALUES (
                :id, :feature_key, :name, :description, :category, :parent_id, :is_enabled, :now, :now
            )
            RETURNING {_FEATURE_COLUMNS}
        """
        params = {
            "id": feature_id,
            "feature_key": feature_key,
            "name": name,
            "description": description,
            "category": category,
            "parent_id": parent_id,
            "is_enabled": is_enabled,
            "now": now,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().one()
        return map_row_to_feature(row)

    def update_feature(self, *, feature_id: str, changes: dict, now: datetime):
        if not is_uuid(feature_id):
            return None
        columns = [column for column in _UPDATABLE_COLUMNS if column in changes]
        assignments = ", ".join(f"{column} = :{column}" for column in columns)
        sql = f"""
            UPDATE public.features
            SET {assignments + ',' if assignments else ''}
                updated_at = :now
            WHERE id = :feature_id
            RETURNING {_FEATURE_COLUMNS}
        """
        params = {column: changes[column] for column in columns}
        params.update({"feature_id": feature_id, "now": now})
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        if row is None:
            return None
        return map_row_to_feature(row)

    def delete_feature(self, *, feature_id: str) -> None:
        if not is_uuid(feature_id):
            return
        params = {"feature_id": feature_id}
        with self._write() as conn:
            conn.execute(text("DELETE FROM public.user_feature_overrides WHERE feature_id = :feature_id"), params)
            conn.execute(text("DELETE FROM public.tier_features WHERE feature_id = :feature_id"), params)
            conn.execute(text("DELETE FROM public.feature_usage WHERE feature_id = :feature_id"), params)
            conn.execute(text("DELETE FROM public.features WHERE id = :feature_id"), params)

    def list_tier_features(self, *, product_tier: str):
        sql = """
            SELECT tf.product_tier, tf.feature_id, tf.included_by_default
            FROM public.tier_features tf
            JOIN public.features f ON f.id = tf.feature_id
            WHERE tf.product_tier = :product_tier
            ORDER BY f.feature_key
        """
        with self._read() as conn:
            rows = conn.execute(text(sql), {"product_tier": product_tier}).mappings().all()
        return [map_row_to_tier_feature(row) for row in rows]

    def replace_tier_features(self, *, product_tier: str, feature_ids: list[str]) -> None:
        with self._write() as conn:
            conn.execute(
                text("DELETE FROM public.tier_features WHERE product_tier = :product_tier"),
                {"product_tier": product_tier},
            )
            if feature_ids:
                conn.execute(
                    text(
                        """
                        INSERT INTO public.tier_features (product_tier, feature_id, included_by_default)
                        VALUES (:product_tier, :feature_id, true)
                        """
                    ),
                    [{"product_tier": product_tier, "feature_id": feature_id} for feature_id in feature_ids],
                )

    def clear_tier_features(self, *, product_tier: str, feature_id: str | None = None) -> int:
        if feature_id is not None and not is_uuid(feature_id):
            return 0
        sql = """
            DELETE FROM public.tier_features
            WHERE product_tier = :product_tier
              AND (CAST(:feature_id AS uuid) IS NULL OR feature_id = CAST(:feature_id AS uuid))
        """
        with self._write() as conn:
            result = conn.execute(text(sql), {"product_tier": product_tier, "feature_id": feature_id})
        return int(result.rowcount or 0)

    def list_user_overrides(self, *, profile_id: str):
        if not is_uuid(profile_id):
            return []
        sql = f"""
            SELECT {_OVERRIDE_COLUMNS}
            FROM public.user_feature_overrides
            WHERE profile_id = :profile_id
            ORDER BY granted_at
        """
        with self._read() as conn:
            rows = conn.execute(text(sql), {"profile_id": profile_id}).mappings().all()
        return [map_row_to_user_override(row) for row in rows]

    def upsert_user_override(
        self,
        *,
        override_id: str,
        profile_id: str,
        feature_id: str,
        enabled: bool,
        expires_at: datetime | None,
        granted_by: str,
        granted_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.user_feature_overrides (
                id, profile_id, feature_id, enabled, expires_at, granted_by, granted_at
            ) VALUES (
                :id, :profile_id, :feature_id, :enabled, :expires_at, :granted_by, :granted_at
            )
            ON CONFLICT (profile_id, feature_id) DO UPDATE
            SET enabled = EXCLUDED.enabled,
                expires_at = EXCLUDED.expires_at,
                granted_by = EXCLUDED.granted_by,
                granted_at = EXCLUDED.granted_at
            RETURNING {_OVERRIDE_COLUMNS}
        """
        params = {
            "id": override_id,
            "profile_id": profile_id,
            "feature_id": feature_id,
            "enabled": enabled,
            "expires_at": expires_at,
            "granted_by": granted_by,
            "granted_at": granted_at,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().one()
        return map_row_to_user_override(row)

    def delete_user_override(self, *, profile_id: str, feature_id: str) -> bool:
        if not (is_uuid(profile_id) and is_uuid(feature_id)):
            return False
        sql = """
            DELETE FROM public.user_feature_overrides
            WHERE profile_id = :profile_id
              AND feature_id = :feature_id
        """
        with self._write() as conn:
            result = conn.execute(text(sql), {"profile_id": profile_id, "feature_id": feature_id})
        return bool(result.rowcount)

    def record_feature_usage(self, *, usage_id: str, profile_id: str, feature_id: str, now: datetime) -> None:
        sql = """
            INSERT INTO public.feature_usage (id, profile_id, feature_id, access_count, last_accessed)
            VALUES (:id, :profile_id, :feature_id, 1, :now)
            ON CONFLICT (profile_id, feature_id) DO UPDATE
            SET access_count = public.feature_usage.access_count + 1,
                last_accessed = EXCLUDED.last_accessed
        """
        with self._write() as conn:
            conn.execute(
                text(sql),
                {
                    "id": usage_id,
                    "profile_id": profile_id,
                    "feature_id": feature_id,
                    "now": now,
                },
            )

    def list_feature_usage(self, *, profile_id: str | None = None, feature_id: str | None = None):
        if any(value is not None and not is_uuid(value) for value in (profile_id, feature_id)):
            return []
        sql = """
            SELECT u.id, u.profile_id, u.feature_id, u.access_count, u.last_accessed,
                   f.feature_key, f.name AS feature_name
            FROM public.feature_usage u
            LEFT JOIN public.features f ON f.id = u.feature_id
            WHERE (CAST(:profile_id AS uuid) IS NULL OR u.profile_id = CAST(:profile_id AS uuid))
              AND (CAST(:feature_id AS uuid) IS NULL OR u.feature_id = CAST(:feature_id AS uuid))
            ORDER BY u.last_accessed DESC
        """
        with self._read() as conn:
            rows = conn.execute(text(sql), {"profile_id": profile_id, "feature_id": feature_id}).mappings().all()
        return [map_row_to_feature_usage(row) for row in rows]
