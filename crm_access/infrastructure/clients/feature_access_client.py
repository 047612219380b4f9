from __future__ import annotations

import logging
from threading import Lock
import time

import httpx

from crm_access.application.dto.access import FeatureCheckResult
from crm_access.application.ports.feature_check_port import FeatureCheckPort
from crm_access.domain.services.access_keys import canonical_key


logger = logging.getLogger(__name__)

FEATURE_CHECK_PATH = "/api/features/check"


class FeatureAccessClient(FeatureCheckPort):
    """HTTP client for the feature-check endpoint.

    Results are cached per (token, key) for ``cache_ttl_seconds``. Transport
    failures, non-2xx answers and non-object payloads resolve to a denial and
    are never cached. Expired entries are pruned on every write.
    """

    def __init__(
        self,
        *,
        api_base: str,
        timeout_seconds: float,
        cache_ttl_seconds: float = 30,
        access_token: str | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout_seconds
        self.cache_ttl_seconds = cache_ttl_seconds
        self.access_token = access_token
        self._cache: dict[tuple[str, str], tuple[float, FeatureCheckResult]] = {}
        self._lock = Lock()

    def with_token(self, access_token: str | None) -> FeatureAccessClient:
        client = FeatureAccessClient(
            api_base=self.api_base,
            timeout_seconds=self.timeout,
            cache_ttl_seconds=self.cache_ttl_seconds,
            access_token=access_token,
        )
        client._cache = self._cache
        client._lock = self._lock
        return client

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def _cache_get(self, *, token: str, feature_key: str) -> FeatureCheckResult | None:
        if self.cache_ttl_seconds <= 0:
            return None
        key = (token, feature_key)
        now = time.monotonic()
        with self._lock:
            cached = self._cache.get(key)
            if cached is None:
                return None
            expires_at, value = cached
            if expires_at <= now:
                self._cache.pop(key, None)
                return None
            return value

    def _cache_set(self, *, token: str, feature_key: str, value: FeatureCheckResult) -> None:
        if self.cache_ttl_seconds <= 0:
            return
        now = time.monotonic()
        expires_at = now + self.cache_ttl_seconds
        with self._lock:
            for stale in [key for key, (expiry, _) in self._cache.items() if expiry <= now]:
                del self._cache[stale]
            self._cache[(token, feature_key)] = (expires_at, value)

    def check_feature(self, *, feature_key: str) -> FeatureCheckResult:
        key = canonical_key(feature_key)
        if not self.access_token:
            # Unauthenticated principals never reach the server.
            return FeatureCheckResult(has_access=False)

        cached = self._cache_get(token=self.access_token, feature_key=key)
        if cached is not None:
            logger.debug("Feature check cache hit for %s", key)
            return cached

        url = f"{self.api_base}{FEATURE_CHECK_PATH}"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(url, params={"key": key}, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Feature check for %s failed: %s", key, exc)
            return FeatureCheckResult(has_access=False)

        if not isinstance(payload, dict):
            logger.warning("Feature check for %s returned a non-object payload", key)
            return FeatureCheckResult(has_access=False)

        value = FeatureCheckResult(
            has_access=payload.get("has_access") is True,
            feature_name=payload.get("feature_name"),
        )
        self._cache_set(token=self.access_token, feature_key=key, value=value)
        return value
