from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class PrincipalNotFoundError(DomainError):
    """Principal referenced by the session or an admin call does not exist."""


class PrincipalInactiveError(DomainError):
    """Principal exists but is inactive or suspended."""


class FeatureNotFoundError(DomainError):
    """Feature id or key is not in the catalog."""


class FeatureKeyConflictError(DomainError):
    """A feature with the same key already exists."""


class FeatureHierarchyError(DomainError):
    """Parent assignment is invalid (missing parent or cycle)."""


class FeatureInUseError(DomainError):
    """Feature still has sub-features and cannot be deleted."""


class InvalidProductTierError(DomainError):
    """Product tier is not one of the known tiers."""


class OverrideInputError(DomainError):
    """Invalid parameters for a user feature override."""


class FeatureAccessDeniedError(DomainError):
    """Actor lacks access to the requested feature or admin operation."""
