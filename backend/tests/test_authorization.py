"""
Authorization tests for Shopbook.

Verifies:
- Unauthenticated requests return 401
- Workers without a grant are denied (403) and the denial is logged
- Granted workers get exactly the granted actions
- Worker management and settings writes are admin only
- Deactivating a worker revokes its sessions
"""

import pytest

from shopbook.extensions import db
from shopbook.models import SecurityEvent


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/workers"),
            ("POST", "/api/workers"),
            ("GET", "/api/credits"),
            ("POST", "/api/credits"),
            ("GET", "/api/credits/summary"),
            ("POST", "/api/credits/1/payments"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("POST", "/api/payments/preview"),
            ("POST", "/api/payments/receive"),
            ("GET", "/api/payments/ledger"),
            ("GET", "/api/customers"),
            ("GET", "/api/expenses"),
            ("GET", "/api/settings"),
            ("PUT", "/api/settings"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/credits", headers={"Authorization": "Bearer not-a-real-token"})
        assert resp.status_code == 401

    def test_logged_out_token_rejected(self, client, admin_headers):
        assert client.post("/api/auth/logout", headers=admin_headers).status_code == 200
        assert client.get("/api/auth/me", headers=admin_headers).status_code == 401


# =============================================================================
# WORKER WITHOUT GRANTS (403)
# =============================================================================


class TestWorkerDenied:
    """A worker starts with no access at all."""

    @pytest.mark.parametrize(
        "method,path,permission",
        [
            ("GET", "/api/credits", "credits:view"),
            ("POST", "/api/credits", "credits:create"),
            ("GET", "/api/sales", "sales:view"),
            ("POST", "/api/sales", "invoice:create"),
            ("POST", "/api/payments/receive", "receive_payment:create"),
            ("GET", "/api/payments/ledger", "receive_payment:view"),
            ("GET", "/api/customers", "customers:view"),
            ("GET", "/api/expenses", "expenses:view"),
        ],
    )
    def test_denied_without_grant(self, client, worker_headers, method, path, permission):
        resp = getattr(client, method.lower())(path, json={}, headers=worker_headers)

        assert resp.status_code == 403
        feature, action = permission.split(":")
        assert resp.json["required_permission"] == {"feature": feature, "action": action}

    def test_denial_is_logged(self, client, worker, worker_headers):
        client.get("/api/credits", headers=worker_headers)

        event = db.session.query(SecurityEvent).filter_by(
            user_id=worker.id, event_type="PERMISSION_DENIED"
        ).first()
        assert event is not None
        assert event.success is False
        assert event.action == "credits:view"
        assert event.owner_id == worker.admin_id

    def test_cannot_manage_workers(self, client, worker_headers):
        assert client.get("/api/workers", headers=worker_headers).status_code == 403

    def test_cannot_change_settings(self, client, worker_headers):
        resp = client.put("/api/settings", json={"business_name": "Mine"}, headers=worker_headers)
        assert resp.status_code == 403

    def test_can_read_owner_settings(self, client, worker_headers):
        resp = client.get("/api/settings", headers=worker_headers)

        assert resp.status_code == 200
        assert resp.json["settings"]["business_name"] == "Shop A"


# =============================================================================
# GRANTED WORKER
# =============================================================================


class TestWorkerGrants:

    def test_view_grant_allows_only_view(self, client, worker, worker_headers, grant):
        grant(worker.id, {"feature": "credits", "can_view": True})

        assert client.get("/api/credits", headers=worker_headers).status_code == 200
        resp = client.post(
            "/api/credits",
            json={"customer_name": "Ali", "credit_type": "given", "amount_cents": 1000},
            headers=worker_headers,
        )
        assert resp.status_code == 403

    def test_worker_writes_into_admin_book(self, client, worker, worker_headers, admin_headers, grant):
        grant(worker.id, {"feature": "credits", "can_view": True, "can_create": True})

        resp = client.post(
            "/api/credits",
            json={"customer_name": "Ali", "credit_type": "given", "amount_cents": 1000},
            headers=worker_headers,
        )
        assert resp.status_code == 201
        assert resp.json["credit"]["owner_id"] == worker.admin_id

        listing = client.get("/api/credits", headers=admin_headers).json
        assert listing["count"] == 1

    def test_me_reports_nav_and_landing(self, client, worker, worker_headers, grant):
        grant(worker.id, {"feature": "sales", "can_view": True})

        me = client.get("/api/auth/me", headers=worker_headers).json
        assert me["role"] == "worker"
        assert me["landing_route"] == "/sales"
        paths = [item["path"] for item in me["nav_items"]]
        assert "/workers" not in paths
        assert "/sales" in paths
        sales_row = next(p for p in me["permissions"] if p["feature"] == "sales")
        assert sales_row["can_view"] is True
        assert sales_row["can_delete"] is False

    def test_replacing_matrix_removes_old_grants(self, client, worker, worker_headers, grant):
        grant(worker.id, {"feature": "credits", "can_view": True})
        grant(worker.id, {"feature": "expenses", "can_view": True})

        assert client.get("/api/credits", headers=worker_headers).status_code == 403
        assert client.get("/api/expenses", headers=worker_headers).status_code == 200

    def test_matrix_carries_feature_labels(self, client, worker, admin_headers):
        resp = client.get(f"/api/workers/{worker.id}/permissions", headers=admin_headers)

        assert resp.status_code == 200
        row = next(p for p in resp.json["permissions"] if p["feature"] == "receive_payment")
        assert row["name"] == "Receive Payment"
        assert row["description"]
        assert row["can_view"] is False

    def test_unknown_feature_rejected(self, client, worker, admin_headers):
        resp = client.put(
            f"/api/workers/{worker.id}/permissions",
            json={"permissions": [{"feature": "payroll", "can_view": True}]},
            headers=admin_headers,
        )
        assert resp.status_code == 400


# =============================================================================
# WORKER LIFECYCLE
# =============================================================================


class TestWorkerLifecycle:

    def test_create_worker_requires_phone(self, client, admin_headers):
        resp = client.post(
            "/api/workers",
            json={"email": "w2@shop.pk", "password": "Password123!", "full_name": "W Two", "phone_number": "123"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_create_worker_with_permissions(self, client, admin_headers):
        resp = client.post(
            "/api/workers",
            json={
                "email": "w2@shop.pk",
                "password": "Password123!",
                "full_name": "W Two",
                "phone_number": "03001234567",
                "permissions": [{"feature": "invoice", "can_view": True, "can_create": True}],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        row = next(p for p in resp.json["worker"]["permissions"] if p["feature"] == "invoice")
        assert row["can_create"] is True

    def test_duplicate_email_conflicts(self, client, worker, admin_headers):
        resp = client.post(
            "/api/workers",
            json={"email": worker.email, "password": "Password123!", "full_name": "Dup", "phone_number": "03001234567"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_deactivation_revokes_sessions(self, client, worker, worker_headers, admin_headers):
        assert client.get("/api/auth/me", headers=worker_headers).status_code == 200

        resp = client.delete(f"/api/workers/{worker.id}", headers=admin_headers)
        assert resp.status_code == 200

        assert client.get("/api/auth/me", headers=worker_headers).status_code == 401
        login = client.post("/api/auth/login", json={"email": worker.email, "password": "Password123!"})
        assert login.status_code == 401

    def test_admin_cannot_touch_other_admins_worker(self, client, worker, other_admin_headers):
        resp = client.delete(f"/api/workers/{worker.id}", headers=other_admin_headers)
        assert resp.status_code == 404
