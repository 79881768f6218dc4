"""
Concurrency helper, CLI and maintenance tests.
"""

from datetime import timedelta

import pytest
from sqlalchemy.orm.exc import StaleDataError

from shopbook.extensions import db
from shopbook.models import Credit, SecurityEvent, User
from shopbook.services import maintenance_service, permission_service
from shopbook.services.concurrency import run_with_retry, ConcurrentUpdateError
from shopbook.time_utils import utcnow


class TestRunWithRetry:

    def test_retries_stale_writes(self, app, db_session):
        calls = []

        def op():
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("stale")
            return "done"

        assert run_with_retry(op, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_gives_up_with_conflict(self, app, db_session):
        def op():
            raise StaleDataError("stale")

        with pytest.raises(ConcurrentUpdateError):
            run_with_retry(op, attempts=2, backoff_base=0)

    def test_other_errors_are_not_retried(self, app, db_session):
        calls = []

        def op():
            calls.append(1)
            raise KeyError("boom")

        with pytest.raises(KeyError):
            run_with_retry(op, backoff_base=0)
        assert len(calls) == 1


class TestCli:

    def test_create_admin_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create-admin",
            "--email", "cli@shop.pk",
            "--password", "Password123!",
            "--full-name", "Cli Owner",
        ])
        assert result.exit_code == 0, result.output
        assert db.session.query(User).filter_by(email="cli@shop.pk").count() == 1

        listing = runner.invoke(args=["users", "list"])
        assert "cli@shop.pk" in listing.output

    def test_create_admin_rejects_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create-admin",
            "--email", "cli@shop.pk",
            "--password", "weak",
            "--full-name", "Cli Owner",
        ])
        assert result.exit_code != 0

    def test_refresh_status_marks_overdue(self, app, client, admin, admin_headers):
        resp = client.post(
            "/api/credits",
            json={"customer_name": "Ali", "credit_type": "given", "amount_cents": 1000, "due_date": "2099-01-01"},
            headers=admin_headers,
        )
        credit_id = resp.json["credit"]["id"]

        # Push the due date into the past behind the service's back
        db.session.query(Credit).filter_by(id=credit_id).update({"due_date": utcnow().date() - timedelta(days=3)})
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["credits", "refresh-status", "--owner-id", str(admin.id)])

        assert result.exit_code == 0, result.output
        assert "Updated 1 credit(s)." in result.output
        db.session.expire_all()
        assert db.session.get(Credit, credit_id).status == "overdue"


def test_cleanup_security_events(app, admin):
    old = permission_service.log_security_event(user_id=admin.id, event_type="LOGIN_FAILED", success=False, owner_id=admin.id)
    old.occurred_at = utcnow() - timedelta(days=120)
    db.session.commit()
    permission_service.log_security_event(user_id=admin.id, event_type="LOGIN_FAILED", success=False, owner_id=admin.id)

    deleted = maintenance_service.cleanup_security_events(retention_days=90)

    assert deleted == 1
    assert db.session.query(SecurityEvent).count() == 1
