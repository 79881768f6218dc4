"""
Customer directory, expenses and settings API tests.

Verifies:
- Customer names are cleaned and matched case-insensitively
- Soft-deleted customers drop out of suggestions and come back when reused
- Expenses validate type, amount and date, and summarize per type
- Settings are readable by the owner's users and writable by the admin only
- The owner's timezone defines "today"
"""

import pytest


# =============================================================================
# CUSTOMERS
# =============================================================================


class TestCustomers:

    def test_get_or_create(self, client, admin_headers):
        first = client.post(
            "/api/customers", json={"customer_name": "  Ali   Khan ", "customer_phone": "0300"}, headers=admin_headers
        )
        second = client.post(
            "/api/customers", json={"customer_name": "ALI KHAN", "customer_phone": "0311"}, headers=admin_headers
        )

        assert first.status_code == 201
        assert first.json["customer"]["customer_name"] == "Ali Khan"
        assert second.status_code == 200
        assert second.json["created"] is False
        assert second.json["customer"]["id"] == first.json["customer"]["id"]
        assert second.json["customer"]["customer_phone"] == "0311"

    def test_suggestions_sorted_and_searchable(self, client, admin_headers):
        for name in ("Zara", "ali", "Bilal"):
            client.post("/api/customers", json={"customer_name": name}, headers=admin_headers)

        names = [c["customer_name"] for c in client.get("/api/customers", headers=admin_headers).json["customers"]]
        assert names == ["ali", "Bilal", "Zara"]

        found = client.get("/api/customers?search=BIL", headers=admin_headers).json["customers"]
        assert [c["customer_name"] for c in found] == ["Bilal"]

    def test_rename_conflict(self, client, admin_headers):
        client.post("/api/customers", json={"customer_name": "Ali"}, headers=admin_headers)
        bilal = client.post("/api/customers", json={"customer_name": "Bilal"}, headers=admin_headers).json["customer"]

        resp = client.patch(f"/api/customers/{bilal['id']}", json={"customer_name": "ali"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_soft_delete_and_revive(self, client, admin_headers):
        ali = client.post("/api/customers", json={"customer_name": "Ali"}, headers=admin_headers).json["customer"]

        assert client.delete(f"/api/customers/{ali['id']}", headers=admin_headers).status_code == 200
        assert client.get("/api/customers", headers=admin_headers).json["count"] == 0

        revived = client.post("/api/customers", json={"customer_name": "Ali"}, headers=admin_headers)
        assert revived.json["customer"]["id"] == ali["id"]
        assert revived.json["customer"]["is_deleted"] is False

    def test_blank_name_rejected(self, client, admin_headers):
        resp = client.post("/api/customers", json={"customer_name": "  "}, headers=admin_headers)
        assert resp.status_code == 400


# =============================================================================
# EXPENSES
# =============================================================================


class TestExpenses:

    def _create(self, client, headers, **overrides):
        payload = {"expense_type": "Rent", "amount_cents": 50000, "expense_date": "2024-05-01"}
        payload.update(overrides)
        return client.post("/api/expenses", json=payload, headers=headers)

    def test_create_and_list(self, client, admin_headers):
        resp = self._create(client, admin_headers, description="May rent")

        assert resp.status_code == 201
        assert resp.json["expense"]["expense_date"] == "2024-05-01"
        assert client.get("/api/expenses", headers=admin_headers).json["count"] == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"expense_type": "Bribes"},
            {"amount_cents": 0},
            {"amount_cents": "12.50"},
            {"expense_date": ""},
            {"expense_date": "01/05/2024"},
            {"unknown_field": 1},
        ],
    )
    def test_invalid_expense(self, client, admin_headers, overrides):
        assert self._create(client, admin_headers, **overrides).status_code == 400

    def test_filters_and_summary(self, client, admin_headers):
        self._create(client, admin_headers, expense_type="Rent", amount_cents=50000, expense_date="2024-05-01")
        self._create(client, admin_headers, expense_type="Food", amount_cents=2000, expense_date="2024-05-10")
        self._create(client, admin_headers, expense_type="Food", amount_cents=3000, expense_date="2024-06-01")

        may = client.get("/api/expenses?start_date=2024-05-01&end_date=2024-05-31", headers=admin_headers).json
        assert may["count"] == 2

        summary = client.get("/api/expenses/summary", headers=admin_headers).json
        assert summary["total_cents"] == 55000
        assert summary["by_type"] == [
            {"expense_type": "Rent", "total_cents": 50000},
            {"expense_type": "Food", "total_cents": 5000},
        ]

    def test_update_and_delete(self, client, admin_headers):
        expense = self._create(client, admin_headers).json["expense"]

        updated = client.patch(f"/api/expenses/{expense['id']}", json={"amount_cents": 60000}, headers=admin_headers)
        assert updated.json["expense"]["amount_cents"] == 60000

        assert client.delete(f"/api/expenses/{expense['id']}", headers=admin_headers).status_code == 200
        assert client.patch(f"/api/expenses/{expense['id']}", json={}, headers=admin_headers).status_code == 404


# =============================================================================
# SETTINGS
# =============================================================================


class TestSettings:

    def test_defaults_after_signup(self, client, admin_headers):
        settings = client.get("/api/settings", headers=admin_headers).json["settings"]

        assert settings["business_name"] == "Shop A"
        assert settings["timezone"] == "Asia/Karachi"
        assert settings["currency_label"] == "Rs."

    def test_admin_updates(self, client, admin_headers):
        resp = client.put(
            "/api/settings",
            json={"business_name": "Khan Traders", "timezone": "Asia/Dubai", "logo_url": "https://cdn.example/logo.png"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json["settings"]["timezone"] == "Asia/Dubai"
        assert client.get("/api/auth/me", headers=admin_headers).json["settings"]["business_name"] == "Khan Traders"

    @pytest.mark.parametrize(
        "payload",
        [
            {"timezone": "Mars/Olympus"},
            {"currency_label": ""},
            {"next_invoice_number": 1},
        ],
    )
    def test_invalid_updates(self, client, admin_headers, payload):
        assert client.put("/api/settings", json=payload, headers=admin_headers).status_code == 400

    def test_owners_are_isolated(self, client, admin_headers, other_admin_headers):
        client.put("/api/settings", json={"business_name": "Changed"}, headers=admin_headers)

        other = client.get("/api/settings", headers=other_admin_headers).json["settings"]
        assert other["business_name"] == "Shop B"
