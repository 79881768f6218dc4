# Overview: Permission system package.
# Re-exports the public API.

from .categories import Feature, Action
from .definitions import (
    FEATURE_DEFINITIONS,
    FEATURES,
    ACTIONS,
    FEATURE_ROUTES,
    NAV_ITEMS,
    DEFAULT_ADMIN_ROUTE,
    FALLBACK_ROUTE,
)
from .roles import AdminRole, WorkerRole, FeatureGrant, Role
from .helpers import (
    get_feature_definition,
    validate_feature,
    validate_action,
    visible_nav_items,
    first_permitted_route,
)

__all__ = [
    "Feature",
    "Action",
    "FEATURE_DEFINITIONS",
    "FEATURES",
    "ACTIONS",
    "FEATURE_ROUTES",
    "NAV_ITEMS",
    "DEFAULT_ADMIN_ROUTE",
    "FALLBACK_ROUTE",
    "AdminRole",
    "WorkerRole",
    "FeatureGrant",
    "Role",
    "get_feature_definition",
    "validate_feature",
    "validate_action",
    "visible_nav_items",
    "first_permitted_route",
]
