"""
Permission gate tests (pure, no database).

Verifies:
- Admins may do everything
- Workers may do exactly what their grants allow
- Navigation hides admin-only items from workers
- Workers land on the first feature they can view
"""

import pytest

from shopbook.permissions import (
    AdminRole,
    WorkerRole,
    FeatureGrant,
    Feature,
    Action,
    FEATURES,
    ACTIONS,
    visible_nav_items,
    first_permitted_route,
    validate_feature,
    validate_action,
    get_feature_definition,
)


def worker(**grants):
    return WorkerRole(grants=grants)


class TestCapabilityCheck:

    @pytest.mark.parametrize("feature", FEATURES)
    @pytest.mark.parametrize("action", ACTIONS)
    def test_admin_can_everything(self, feature, action):
        assert AdminRole().can(feature, action) is True

    def test_worker_without_grant_is_denied(self):
        role = worker()
        assert role.can(Feature.CREDITS, Action.VIEW) is False

    def test_worker_grant_is_per_action(self):
        role = worker(credits=FeatureGrant(can_view=True, can_edit=True))

        assert role.can(Feature.CREDITS, Action.VIEW)
        assert role.can(Feature.CREDITS, Action.EDIT)
        assert not role.can(Feature.CREDITS, Action.CREATE)
        assert not role.can(Feature.CREDITS, Action.DELETE)
        assert not role.can(Feature.SALES, Action.VIEW)

    def test_unknown_action_is_denied(self):
        role = worker(credits=FeatureGrant(can_view=True))
        assert role.can(Feature.CREDITS, "approve") is False


class TestNavigation:

    def test_admin_sees_everything(self):
        paths = [item["path"] for item in visible_nav_items(AdminRole())]

        assert "/dashboard" in paths
        assert "/workers" in paths
        assert "/settings" in paths

    def test_worker_never_sees_admin_items(self):
        grants = {feature: FeatureGrant(True, True, True, True) for feature in FEATURES}
        paths = [item["path"] for item in visible_nav_items(WorkerRole(grants=grants))]

        assert "/dashboard" not in paths
        assert "/workers" not in paths
        assert "/credits" in paths

    def test_worker_needs_view(self):
        role = worker(sales=FeatureGrant(can_create=True), credits=FeatureGrant(can_view=True))
        paths = [item["path"] for item in visible_nav_items(role)]

        assert paths == ["/credits", "/credit-management", "/settings"]


class TestLandingRoute:

    def test_admin_lands_on_dashboard(self):
        assert first_permitted_route(AdminRole()) == "/"

    def test_worker_lands_on_first_viewable_feature(self):
        role = worker(credits=FeatureGrant(can_view=True), sales=FeatureGrant(can_view=True))
        assert first_permitted_route(role) == "/sales"

    def test_worker_without_views_falls_back_to_settings(self):
        role = worker(expenses=FeatureGrant(can_view=True))
        assert first_permitted_route(role) == "/settings"


def test_feature_lookup_helpers():
    assert validate_feature("receive_payment")
    assert not validate_feature("payroll")
    assert validate_action("delete")
    assert not validate_action("approve")
    assert get_feature_definition("expenses")["name"] == "Expenses"
    assert get_feature_definition("payroll") is None
