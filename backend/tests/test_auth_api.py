"""
Signup, login and session tests.

Verifies:
- Signup creates an admin with a settings row and returns a working token
- Password strength rules apply
- Failed logins are recorded as security events
- Tokens are stored hashed and expire on idle
"""

from datetime import timedelta

import pytest

from shopbook.extensions import db
from shopbook.models import SecurityEvent, SessionToken, AppSettings
from shopbook.services import session_service
from shopbook.services.session_service import hash_token, SESSION_IDLE_TIMEOUT


SIGNUP = {
    "email": "New.Owner@Shop.pk",
    "password": "Password123!",
    "full_name": "New Owner",
    "phone_number": "0300 123 4567",
    "business_name": "New Shop",
}


class TestSignup:

    def test_signup_returns_admin_and_token(self, client, db_session):
        resp = client.post("/api/auth/signup", json=SIGNUP)

        assert resp.status_code == 201, resp.json
        user = resp.json["user"]
        assert user["email"] == "new.owner@shop.pk"
        assert user["role"] == "admin"
        assert user["owner_id"] == user["id"]
        assert resp.json["owner_id"] == user["id"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {resp.json['token']}"})
        assert me.status_code == 200
        assert me.json["landing_route"] == "/"
        assert all(p["can_delete"] for p in me.json["permissions"])

        settings = db.session.query(AppSettings).filter_by(owner_id=user["id"]).one()
        assert settings.business_name == "New Shop"

    @pytest.mark.parametrize(
        "password",
        ["short1!", "password123!", "PASSWORD123!", "Password!!!", "Password1234"],
    )
    def test_weak_password_rejected(self, client, db_session, password):
        resp = client.post("/api/auth/signup", json={**SIGNUP, "password": password})
        assert resp.status_code == 400

    def test_duplicate_email_conflicts(self, client, db_session):
        client.post("/api/auth/signup", json=SIGNUP)
        resp = client.post("/api/auth/signup", json={**SIGNUP, "email": "new.owner@shop.pk"})
        assert resp.status_code == 409

    def test_bad_email_rejected(self, client, db_session):
        resp = client.post("/api/auth/signup", json={**SIGNUP, "email": "not-an-email"})
        assert resp.status_code == 400


class TestLogin:

    def test_login_is_case_insensitive_on_email(self, client, admin):
        resp = client.post("/api/auth/login", json={"email": "OWNER_A@shop.pk", "password": "Password123!"})

        assert resp.status_code == 200
        stored = db.session.query(SessionToken).filter_by(user_id=admin.id).one()
        assert stored.token_hash == hash_token(resp.json["token"])
        assert stored.token_hash != resp.json["token"]

    def test_wrong_password_is_logged(self, client, admin):
        resp = client.post("/api/auth/login", json={"email": admin.email, "password": "Wrong123!"})

        assert resp.status_code == 401
        event = db.session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.success is False

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"email": "x@y.z"}).status_code == 400

    def test_logout_twice(self, client, admin_headers):
        assert client.post("/api/auth/logout", headers=admin_headers).status_code == 200
        assert client.post("/api/auth/logout", headers=admin_headers).status_code == 401


class TestSessionLifetime:

    def test_idle_session_is_revoked(self, app, admin):
        session, token = session_service.create_session(admin.id)
        session.last_used_at = session.last_used_at - SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db.session.commit()

        assert session_service.validate_session(token) is None
        db.session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_expired_session_is_rejected(self, app, admin):
        session, token = session_service.create_session(admin.id)
        session.expires_at = session.created_at - timedelta(seconds=1)
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_context_uses_owner_timezone(self, app, admin):
        _, token = session_service.create_session(admin.id)
        context = session_service.validate_session(token)

        assert context.owner_id == admin.id
        assert context.is_admin
        assert context.settings.timezone == "Asia/Karachi"
        assert context.today() is not None
