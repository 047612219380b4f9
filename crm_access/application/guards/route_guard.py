from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Literal

from crm_access.application.dto.access import FeatureCheckResult
from crm_access.domain.entities.access import AccessPolicy
from crm_access.domain.entities.principal import Principal
from crm_access.domain.services.access_keys import resolve_access_key
from crm_access.domain.services.access_policy import default_access_policy, has_product_tier
from crm_access.domain.services.tier_catalog import feature_display_name


logger = logging.getLogger(__name__)

SIGNIN_ROUTE = "/signin"
UPGRADE_ROUTE = "/upgrade"

GuardState = Literal[
    "loading_auth",
    "loading_tier",
    "loading_feature",
    "rendered",
    "redirected",
    "unmounted",
]


class GuardStateError(RuntimeError):
    """Route guard events were delivered out of order."""


@dataclass(frozen=True)
class RouteRequirement:
    feature_key: str | None = None
    resource: str | None = None
    require_product_tier: bool = False

    @property
    def required_feature(self) -> str | None:
        return resolve_access_key(self.feature_key, self.resource)


@dataclass(frozen=True)
class Redirect:
    to: str
    from_location: str
    reason: str | None = None
    required_feature: str | None = None
    feature_name: str | None = None
    message: str | None = None

    def navigation_state(self) -> dict[str, Any]:
        state: dict[str, Any] = {"from": self.from_location}
        if self.reason is not None:
            state["reason"] = self.reason
        if self.required_feature is not None:
            state["required_feature"] = self.required_feature
        if self.feature_name is not None:
            state["feature_name"] = self.feature_name
        if self.message is not None:
            state["message"] = self.message
        return state


@dataclass(frozen=True)
class GuardView:
    kind: Literal["spinner", "children", "redirect", "nothing"]
    redirect: Redirect | None = None


class RouteGuard:
    """Authentication, product-tier and feature checks for one route mount.

    States advance ``loading_auth -> loading_tier -> loading_feature`` (the last
    two only when the route asks for them) and end in ``rendered`` or
    ``redirected``. There is no retry: a new mount builds a new guard.
    """

    def __init__(
        self,
        requirement: RouteRequirement,
        *,
        location: str,
        policy: AccessPolicy | None = None,
    ):
        self._requirement = requirement
        self._location = location
        self._policy = policy if policy is not None else default_access_policy()
        self._state: GuardState = "loading_auth"
        self._principal_id: str | None = None
        self._feature_result: FeatureCheckResult | None = None
        self._redirect: Redirect | None = None

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def redirect(self) -> Redirect | None:
        return self._redirect

    @property
    def needs_feature_check(self) -> bool:
        # Never probe the feature endpoint for an unauthenticated principal.
        return (
            self._principal_id is not None
            and self._requirement.required_feature is not None
            and self._feature_result is None
            and self._state in {"loading_tier", "loading_feature"}
        )

    def unmount(self) -> None:
        self._state = "unmounted"

    def on_auth_resolved(self, principal_id: str | None) -> GuardState:
        if self._state == "unmounted":
            return self._state
        if self._state != "loading_auth":
            raise GuardStateError(f"Authentication already resolved (state={self._state}).")

        if principal_id is None:
            return self._finish_redirect(Redirect(to=SIGNIN_ROUTE, from_location=self._location))

        self._principal_id = principal_id
        if self._requirement.require_product_tier:
            self._state = "loading_tier"
            return self._state
        return self._advance_to_feature()

    def on_role_resolved(self, principal: Principal | None) -> GuardState:
        if self._state == "unmounted":
            return self._state
        if self._state != "loading_tier":
            raise GuardStateError(f"Role result not expected (state={self._state}).")

        if not has_product_tier(principal, self._policy):
            return self._finish_redirect(
                Redirect(
                    to=UPGRADE_ROUTE,
                    from_location=self._location,
                    reason="no_product_tier",
                    message="Please purchase a subscription to access this feature",
                )
            )
        return self._advance_to_feature()

    def on_feature_resolved(self, result: FeatureCheckResult) -> GuardState:
        if self._state == "unmounted":
            logger.debug("Discarding feature check for unmounted route %s", self._location)
            return self._state
        if self._principal_id is None or self._state not in {"loading_tier", "loading_feature"}:
            raise GuardStateError(f"Feature result not expected (state={self._state}).")
        if self._requirement.required_feature is None:
            raise GuardStateError("Route does not require a feature.")

        self._feature_result = result
        if self._state == "loading_feature":
            return self._apply_feature_result()
        # Arrived while the tier check is still pending; applied after it resolves.
        return self._state

    def view(self) -> GuardView:
        if self._state == "rendered":
            return GuardView(kind="children")
        if self._state == "redirected":
            return GuardView(kind="redirect", redirect=self._redirect)
        if self._state == "unmounted":
            return GuardView(kind="nothing")
        return GuardView(kind="spinner")

    def _advance_to_feature(self) -> GuardState:
        if self._requirement.required_feature is None:
            self._state = "rendered"
            return self._state
        self._state = "loading_feature"
        if self._feature_result is not None:
            return self._apply_feature_result()
        return self._state

    def _apply_feature_result(self) -> GuardState:
        result = self._feature_result
        required = self._requirement.required_feature
        if result is not None and result.has_access:
            self._state = "rendered"
            return self._state
        return self._finish_redirect(
            Redirect(
                to=UPGRADE_ROUTE,
                from_location=self._location,
                required_feature=required,
                feature_name=(result.feature_name if result is not None else None)
                or feature_display_name(required or ""),
            )
        )

    def _finish_redirect(self, redirect: Redirect) -> GuardState:
        self._redirect = redirect
        self._state = "redirected"
        return self._state


def run_route_guard(
    requirement: RouteRequirement,
    *,
    location: str,
    load_principal: Callable[[], Principal | None],
    check_feature: Callable[[str], FeatureCheckResult],
    policy: AccessPolicy | None = None,
) -> GuardView:
    """Drive a guard to completion with synchronous loaders."""
    guard = RouteGuard(requirement, location=location, policy=policy)
    principal = load_principal()
    guard.on_auth_resolved(principal.id if principal is not None else None)
    if guard.state == "loading_tier":
        guard.on_role_resolved(principal)
    if guard.needs_feature_check:
        guard.on_feature_resolved(check_feature(requirement.required_feature))
    return guard.view()
