"""Tests for accounts, bearer tokens, browser sessions and CSRF."""
import pytest
from werkzeug.security import generate_password_hash

from app.invites import create_app
from app.invites.auth import reset_rate_limits
from app.invites.db import session_scope
from app.invites.models import AuditEvent, Base, User


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "media"))
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "SMTP_SERVER"):
        monkeypatch.delenv(k, raising=False)
    reset_rate_limits()

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        s.add(User(email="owner@example.com", password_hash=generate_password_hash("pw"), name="Olga", is_active=True))
        s.add(User(email="gone@example.com", password_hash=generate_password_hash("pw"), is_active=False))
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _wedding_payload():
    return {
        "bride": "Anna",
        "groom": "Ben",
        "wedding_date": "2099-06-01",
        "venue": "Garden Hall",
        "venue_address": "1 Main St",
    }


def test_register_returns_token_and_user(client):
    r = client.post("/api/auth/register", json={"email": "New@Example.com", "password": "long-enough", "name": "Nina"})
    assert r.status_code == 201
    assert r.json["user"]["email"] == "new@example.com"
    assert r.json["user"]["has_paid_subscription"] is False

    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {r.json['token']}"})
    assert r.status_code == 200
    assert r.json["name"] == "Nina"


def test_register_validation_and_duplicates(client):
    r = client.post("/api/auth/register", json={"email": "nobody", "password": "short"})
    assert r.status_code == 400
    assert len(r.json["errors"]) == 2

    r = client.post("/api/auth/register", json={"email": "owner@example.com", "password": "long-enough"})
    assert r.status_code == 409
    assert r.json["error"] == "conflict"


def test_token_exchange(client):
    r = client.post("/api/auth/token", json={"email": "owner@example.com", "password": "pw"})
    assert r.status_code == 200
    assert r.json["token_type"] == "Bearer"
    assert r.json["expires_in"] > 0
    assert r.json["user"]["email"] == "owner@example.com"


def test_token_rejects_bad_credentials_and_inactive_users(client, app):
    r = client.post("/api/auth/token", json={"email": "owner@example.com", "password": "nope"})
    assert r.status_code == 401

    r = client.post("/api/auth/token", json={"email": "gone@example.com", "password": "pw"})
    assert r.status_code == 401

    with session_scope(app) as s:
        failures = s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").count()
    assert failures == 2


def test_token_rate_limit(client):
    for _ in range(5):
        r = client.post("/api/auth/token", json={"email": "owner@example.com", "password": "nope"})
        assert r.status_code == 401

    r = client.post("/api/auth/token", json={"email": "owner@example.com", "password": "pw"})
    assert r.status_code == 429


def test_invalid_bearer_token_is_unauthenticated(client):
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-real-token"})
    assert r.status_code == 401
    assert r.json["error"] == "unauthorized"


def test_bearer_requests_skip_csrf(client):
    token = client.post("/api/auth/token", json={"email": "owner@example.com", "password": "pw"}).json["token"]
    r = client.post("/api/weddings", json=_wedding_payload(), headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 201


def test_session_writes_require_csrf(client):
    r = client.post("/auth/login", data={"email": "owner@example.com", "password": "pw"})
    assert r.status_code == 302

    r = client.get("/api/auth/me")
    assert r.status_code == 200

    r = client.post("/api/weddings", json=_wedding_payload())
    assert r.status_code == 400
    assert "CSRF" in r.json["message"]

    with client.session_transaction() as sess:
        csrf = sess["csrf_token"]
    r = client.post("/api/weddings", json=_wedding_payload(), headers={"X-CSRF-Token": csrf})
    assert r.status_code == 201


def test_login_failure_and_logout(client):
    r = client.get("/auth/login")
    assert r.status_code == 200

    r = client.post("/auth/login", data={"email": "owner@example.com", "password": "wrong"})
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    client.post("/auth/login", data={"email": "owner@example.com", "password": "pw"})
    r = client.get("/auth/logout")
    assert r.status_code == 302
    assert client.get("/api/auth/me").status_code == 401


def test_login_next_only_allows_local_paths(client):
    r = client.post("/auth/login", data={"email": "owner@example.com", "password": "pw", "next": "//evil.example"})
    assert r.status_code == 302
    assert "evil.example" not in r.headers["Location"]
