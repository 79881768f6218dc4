"""
CSV export and payment import tests.

Verifies:
- Exports are text/csv attachments with rupee amounts and the listing filters
- The customer export totals what each customer owes on given credits
- Payment import records one ledger row per valid row with empty details,
  reports bad rows and registers new customers
- Import needs receive_payment:create; exports need view on their feature
"""

import csv
import io

import pytest

from shopbook.extensions import db
from shopbook.models import Customer, PaymentLedgerEntry


def read_export(resp):
    assert resp.status_code == 200, resp.get_data(as_text=True)
    assert resp.mimetype == "text/csv"
    return list(csv.DictReader(io.StringIO(resp.get_data(as_text=True))))


def upload(client, headers, text, filename="payments.csv"):
    return client.post(
        "/api/payments/import",
        data={"file": (io.BytesIO(text.encode("utf-8")), filename)},
        headers=headers,
        content_type="multipart/form-data",
    )


# =============================================================================
# EXPORTS
# =============================================================================


class TestExports:

    def test_credits_export(self, client, admin_headers):
        client.post(
            "/api/credits",
            json={"customer_name": "Ali, Khan", "credit_type": "given", "amount_cents": 125050, "notes": "Line one"},
            headers=admin_headers,
        )
        client.post(
            "/api/credits",
            json={"customer_name": "Bilal", "credit_type": "taken", "amount_cents": 5000},
            headers=admin_headers,
        )

        resp = client.get("/api/exports/credits?credit_type=given", headers=admin_headers)

        assert resp.headers["Content-Disposition"].startswith("attachment; filename=credits_")
        rows = read_export(resp)
        assert len(rows) == 1
        assert rows[0]["Customer Name"] == "Ali, Khan"
        assert rows[0]["Amount"] == "1250.50"
        assert rows[0]["Remaining Amount"] == "1250.50"
        assert rows[0]["Status"] == "pending"

    def test_expenses_export_uses_filters(self, client, admin_headers):
        for expense_date, amount in (("2024-05-01", 50000), ("2024-06-01", 2000)):
            client.post(
                "/api/expenses",
                json={"expense_type": "Rent", "amount_cents": amount, "expense_date": expense_date},
                headers=admin_headers,
            )

        rows = read_export(client.get("/api/exports/expenses?start_date=2024-06-01", headers=admin_headers))

        assert rows == [{"Date": "2024-06-01", "Type": "Rent", "Description": "", "Amount": "20.00"}]

    def test_customers_export_totals(self, client, admin_headers):
        resp = client.post(
            "/api/credits",
            json={"customer_name": "Ali Khan", "credit_type": "given", "amount_cents": 10000},
            headers=admin_headers,
        )
        client.post(
            f"/api/credits/{resp.json['credit']['id']}/payments", json={"amount_cents": 4000}, headers=admin_headers
        )
        client.post(
            "/api/credits",
            json={"customer_name": "ali khan", "credit_type": "taken", "amount_cents": 90000},
            headers=admin_headers,
        )
        client.post("/api/customers", json={"customer_name": "Zara"}, headers=admin_headers)

        rows = read_export(client.get("/api/exports/customers", headers=admin_headers))

        assert [(r["Customer Name"], r["Total Credit"], r["Total Paid"], r["Remaining Balance"]) for r in rows] == [
            ("Ali Khan", "100.00", "40.00", "60.00"),
            ("Zara", "0.00", "0.00", "0.00"),
        ]

    def test_payments_export(self, client, admin_headers):
        client.post(
            "/api/sales",
            json={
                "customer_name": "Ali Khan",
                "items": [{"description": "Rice", "quantity": 1, "unit_price_cents": 10000}],
                "paid_amount_cents": 0,
            },
            headers=admin_headers,
        )
        client.post(
            "/api/payments/receive",
            json={"customer_name": "Ali Khan", "amount_cents": 2500, "payment_date": "2024-05-02T10:00:00Z"},
            headers=admin_headers,
        )

        rows = read_export(client.get("/api/exports/payments", headers=admin_headers))

        assert rows == [{
            "Date": "2024-05-02",
            "Customer Name": "Ali Khan",
            "Customer Phone": "",
            "Amount": "25.00",
            "Payment Method": "cash",
            "Notes": "Payment received via cash",
        }]

    @pytest.mark.parametrize(
        "path",
        ["/api/exports/credits", "/api/exports/expenses", "/api/exports/customers", "/api/exports/payments"],
    )
    def test_exports_need_view(self, client, worker_headers, path):
        assert client.get(path, headers=worker_headers).status_code == 403


# =============================================================================
# PAYMENT IMPORT
# =============================================================================


class TestPaymentImport:

    def test_import_csv_file(self, client, admin_headers):
        text = (
            "Date,Customer Name,Customer Phone,Amount,Notes\n"
            "2024-05-01,Ali Khan,03001234567,\"1,500.00\",Old book\n"
            "2024-05-02,Bilal,,250,\n"
            "2024-05-03,,,100,No name\n"
            "2024-05-04,Zara,,0,Zero\n"
        )

        resp = upload(client, admin_headers, text)

        assert resp.status_code == 201, resp.json
        assert resp.json["imported"] == 2
        assert [s["row"] for s in resp.json["skipped"]] == [4, 5]
        assert resp.json["skipped"][0]["errors"] == ["Customer name is required"]

        entries = db.session.query(PaymentLedgerEntry).order_by(PaymentLedgerEntry.id).all()
        assert [(e.customer_name, e.payment_amount_cents, e.details) for e in entries] == [
            ("Ali Khan", 150000, []),
            ("Bilal", 25000, []),
        ]
        assert entries[0].notes == "Old book"
        assert db.session.query(Customer).filter_by(customer_name="Bilal").count() == 1

    def test_import_json_rows(self, client, admin_headers):
        resp = client.post(
            "/api/payments/import",
            json={"rows": [{"customer_name": "Ali Khan", "amount": "99.99", "payment_method": "online"}]},
            headers=admin_headers,
        )

        assert resp.status_code == 201, resp.json
        entry = resp.json["entries"][0]
        assert entry["payment_amount_cents"] == 9999
        assert entry["payment_method"] == "online"
        assert entry["details"] == []

    def test_no_valid_rows(self, client, admin_headers):
        resp = upload(client, admin_headers, "Date,Customer Name,Amount\n2024-05-01,Ali,abc\n")

        assert resp.status_code == 400
        assert resp.json["error"] == "No valid payments found in CSV"
        assert db.session.query(PaymentLedgerEntry).count() == 0

    def test_bad_date_is_reported(self, client, admin_headers):
        resp = client.post(
            "/api/payments/import",
            json={"rows": [
                {"customer_name": "Ali", "amount": "10", "date": "01/05/2024"},
                {"customer_name": "Ali", "amount": "10", "date": "2024-05-01"},
            ]},
            headers=admin_headers,
        )

        assert resp.json["imported"] == 1
        assert resp.json["skipped"] == [{"row": 2, "errors": ["date must be YYYY-MM-DD"]}]

    def test_unsupported_file(self, client, admin_headers):
        assert upload(client, admin_headers, "x", filename="payments.xlsx").status_code == 400

    def test_missing_input(self, client, admin_headers):
        assert client.post("/api/payments/import", json={}, headers=admin_headers).status_code == 400

    def test_import_needs_create(self, client, worker, worker_headers, grant):
        grant(worker.id, {"feature": "receive_payment", "can_view": True})

        resp = upload(client, worker_headers, "Customer Name,Amount\nAli,10\n")

        assert resp.status_code == 403
        assert resp.json["required_permission"] == {"feature": "receive_payment", "action": "create"}

    def test_imported_payment_shows_in_history(self, client, admin_headers):
        client.post(
            "/api/sales",
            json={
                "customer_name": "Ali Khan",
                "items": [{"description": "Rice", "quantity": 1, "unit_price_cents": 10000}],
                "paid_amount_cents": 0,
                "invoice_date": "2024-05-01T10:00:00Z",
            },
            headers=admin_headers,
        )
        upload(client, admin_headers, "Date,Customer Name,Amount\n2024-05-02,ali khan,30\n")

        history = client.get("/api/payments/customers/Ali%20Khan/history", headers=admin_headers).json

        assert [(e["transaction_type"], e["balance_after_cents"]) for e in history["entries"]] == [
            ("payment_received", 7000),
            ("credit_given", 10000),
        ]
