# Overview: Utility functions for feature lookups, navigation filtering and landing routes.

from .categories import Action
from .definitions import (
    ACTIONS,
    DEFAULT_ADMIN_ROUTE,
    FALLBACK_ROUTE,
    FEATURE_DEFINITIONS,
    FEATURE_ROUTES,
    FEATURES,
    NAV_ITEMS,
)


def get_feature_definition(code):
    """Get full definition for a feature code."""
    for feature in FEATURE_DEFINITIONS:
        if feature[0] == code:
            return {
                "code": feature[0],
                "name": feature[1],
                "description": feature[2],
            }
    return None


def validate_feature(code):
    """Check if a feature code is valid."""
    return code in FEATURES


def validate_action(action):
    """Check if an action name is valid."""
    return action in ACTIONS


def visible_nav_items(role):
    """
    Navigation items the role may see.

    admin_only items are hidden from workers whatever they are granted;
    items without a feature are shown to everyone; the rest need view.
    """
    items = []
    for path, label, feature, admin_only in NAV_ITEMS:
        if admin_only:
            if not role.is_admin:
                continue
        elif feature is not None and not role.can(feature, Action.VIEW):
            continue
        items.append({
            "path": path,
            "label": label,
            "feature": feature,
            "admin_only": admin_only,
        })
    return items


def first_permitted_route(role):
    """Where to send a user after login."""
    if role.is_admin:
        return DEFAULT_ADMIN_ROUTE
    for feature, route in FEATURE_ROUTES:
        if role.can(feature, Action.VIEW):
            return route
    return FALLBACK_ROUTE
