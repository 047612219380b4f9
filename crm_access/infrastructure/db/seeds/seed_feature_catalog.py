from __future__ import annotations

from uuid import uuid4

from sqlalchemy import text

from crm_access.domain.services.tier_catalog import FEATURE_NAMES, FEATURE_TIERS, TIER_ORDER


FEATURE_CATEGORIES = {
    "dashboard": "core",
    "contacts": "core",
    "pipeline": "core",
    "calendar": "core",
    "tasks": "core",
    "analytics": "core",
    "ai_goals": "ai",
    "ai_tools": "ai",
    "ai_assistant": "ai",
    "communications": "communication",
    "video_email": "communication",
    "phone_system": "communication",
    "sms": "communication",
    "invoicing": "communication",
    "content_library": "content",
    "forms_surveys": "content",
    "whitelabel": "platform",
    "admin": "platform",
}


def seed_feature_catalog(engine) -> None:
    with engine.begin() as conn:
        for feature_key, name in FEATURE_NAMES.items():
            conn.execute(
                text(
                    """
                    INSERT INTO public.features (
                        id, feature_key, name, description, category, parent_id, is_enabled, created_at, updated_at
                    ) VALUES (
                        :id, :feature_key, :name, NULL, :category, NULL, true, now(), now()
                    )
                    ON CONFLICT (feature_key) DO UPDATE
                    SET name = EXCLUDED.name,
                        category = EXCLUDED.category,
                        updated_at = now()
                    """
                ),
                {
                    "id": str(uuid4()),
                    "feature_key": feature_key,
                    "name": name,
                    "category": FEATURE_CATEGORIES.get(feature_key, "core"),
                },
            )

        feature_ids = {
            row["feature_key"]: row["id"]
            for row in conn.execute(text("SELECT id, feature_key FROM public.features")).mappings().all()
        }

        for tier in TIER_ORDER:
            for feature_key, tiers in FEATURE_TIERS.items():
                if tier not in tiers:
                    continue
                conn.execute(
                    text(
                        """
                        INSERT INTO public.tier_features (product_tier, feature_id, included_by_default)
                        VALUES (:product_tier, :feature_id, true)
                        ON CONFLICT (product_tier, feature_id) DO UPDATE
                        SET included_by_default = EXCLUDED.included_by_default
                        """
                    ),
                    {
                        "product_tier": tier,
                        "feature_id": str(feature_ids[feature_key]),
                    },
                )
