"""
HTTP-level tests for the /auth router.

The real OTP service, store and local account provider run against SQLite;
only the mail channel is swapped for a recorder.
"""
import pytest
from fastapi.testclient import TestClient

from otp_auth.core.dependencies import get_notifier
from otp_auth.core.rate_limiter import limiter
from otp_auth.database import get_db
from otp_auth.main import app
from otp_auth.models.otp import OTPRecord


@pytest.fixture
def client(db, notifier):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        limiter.enabled = True
        app.dependency_overrides.clear()


def _send(client, email, purpose):
    return client.post("/auth/send-otp", json={"email": email, "purpose": purpose})


def _verify(client, email, purpose, code, password):
    return client.post(
        "/auth/verify-otp",
        json={"email": email, "purpose": purpose, "code": code, "password": password},
    )


class TestSignupFlow:
    def test_signup_then_signin(self, client, notifier):
        resp = _send(client, "new@x.com", "signup")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Email sent successfully"
        assert resp.json()["expires_at"] is not None

        resp = _verify(client, "new@x.com", "signup", notifier.last_code, "first-pass")
        assert resp.status_code == 200
        session = resp.json()["session"]
        assert session["user"]["email"] == "new@x.com"
        assert session["access_token"]

        resp = client.post("/auth/signin", json={"email": "new@x.com", "password": "first-pass"})
        assert resp.status_code == 200
        assert resp.json()["session"]["user"]["email"] == "new@x.com"

    def test_signup_for_existing_account_is_conflict(self, client, notifier, db):
        _send(client, "new@x.com", "signup")
        _verify(client, "new@x.com", "signup", notifier.last_code, "first-pass")

        resp = _send(client, "new@x.com", "signup")

        assert resp.status_code == 409
        assert resp.json()["detail"] == "User already exists"
        assert db.query(OTPRecord).count() == 0


class TestResetFlow:
    def test_reset_replaces_password(self, client, notifier, db):
        _send(client, "a@x.com", "signup")
        _verify(client, "a@x.com", "signup", notifier.last_code, "old-pass")

        assert _send(client, "a@x.com", "reset").status_code == 200
        resp = _verify(client, "a@x.com", "reset", notifier.last_code, "new-pass")

        assert resp.status_code == 200
        assert db.query(OTPRecord).filter_by(email="a@x.com", purpose="reset").count() == 0
        resp = client.post("/auth/signin", json={"email": "a@x.com", "password": "old-pass"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid login credentials"

    def test_reset_for_unknown_account(self, client, notifier):
        _send(client, "ghost@x.com", "reset")

        resp = _verify(client, "ghost@x.com", "reset", notifier.last_code, "new-pass")

        assert resp.status_code == 404


class TestErrors:
    def test_fourth_send_is_rate_limited(self, client):
        for _ in range(3):
            assert _send(client, "a@x.com", "reset").status_code == 200

        resp = _send(client, "a@x.com", "reset")

        assert resp.status_code == 429
        assert "Too many attempts" in resp.json()["detail"]

    def test_bogus_purpose(self, client, db):
        resp = _send(client, "a@x.com", "bogus")

        assert resp.status_code == 400
        assert db.query(OTPRecord).count() == 0

    def test_missing_fields_are_400(self, client, db):
        resp = client.post("/auth/send-otp", json={"email": "a@x.com"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Missing parameters"
        assert db.query(OTPRecord).count() == 0

    def test_wrong_code(self, client, notifier):
        _send(client, "a@x.com", "signup")
        wrong = "0000" if notifier.last_code != "0000" else "1111"

        resp = _verify(client, "a@x.com", "signup", wrong, "pw-pw-pw")

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid OTP code"

    def test_no_code_issued(self, client):
        resp = _verify(client, "a@x.com", "signup", "1234", "pw-pw-pw")

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid or expired OTP"

    def test_delivery_failure(self, client, notifier, db):
        notifier.fail = True

        resp = _send(client, "a@x.com", "signup")

        assert resp.status_code == 502
        assert db.query(OTPRecord).count() == 1


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
