from __future__ import annotations

import re


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[\s\-]+")


def canonical_key(value: str) -> str:
    """Normalize a feature/resource identifier to lowercase snake_case.

    Legacy callers use camelCase keys (``videoEmail``) while the ACL tables and
    the database use snake_case (``video_email``); both resolve to the same key.
    """
    stripped = value.strip()
    if not stripped:
        return ""
    snake = _CAMEL_BOUNDARY.sub("_", stripped)
    snake = _SEPARATORS.sub("_", snake)
    return snake.lower()


def resolve_access_key(feature_key: str | None = None, resource: str | None = None) -> str | None:
    for candidate in (feature_key, resource):
        if candidate:
            key = canonical_key(candidate)
            if key:
                return key
    return None
