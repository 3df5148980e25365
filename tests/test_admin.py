"""Tests for site administration: status, accounts, subscriptions and the audit trail."""
import pytest
from werkzeug.security import generate_password_hash

from app.invites import create_app
from app.invites.auth import reset_rate_limits
from app.invites.db import session_scope
from app.invites.models import Base, Permission, Role, User


def _seed_all_permissions(s):
    perm_keys = [
        ("admin.view", "Admin: view status"),
        ("users.manage", "Users: manage accounts and subscriptions"),
        ("weddings.manage_all", "Weddings: act on every wedding"),
        ("audit.view", "Audit: view trail"),
    ]
    perms = []
    for key, name in perm_keys:
        p = Permission(key=key, name=name)
        s.add(p)
        perms.append(p)
    return perms


@pytest.fixture()
def client(tmp_path, monkeypatch):
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
        perms = _seed_all_permissions(s)
        r = Role(key="admin", name="Administrator")
        for p in perms:
            r.permissions.append(p)
        admin = User(email="admin@example.com", password_hash=generate_password_hash("pw"), name="Admin", is_active=True)
        admin.roles.append(r)
        owner = User(email="owner@example.com", password_hash=generate_password_hash("pw"), name="Olga", is_active=True)
        s.add_all([r, admin, owner])

    return app.test_client()


def _auth(client, email):
    r = client.post("/api/auth/token", json={"email": email, "password": "pw"})
    return {"Authorization": f"Bearer {r.json['token']}"}


def _user_id(client, admin, email):
    users = client.get(f"/api/admin/users?q={email}", headers=admin).json
    return users[0]["id"]


def test_status_requires_permission(client):
    owner = _auth(client, "owner@example.com")
    r = client.get("/api/admin/status", headers=owner)
    assert r.status_code == 403
    assert r.json["message"] == "Missing permission: admin.view"

    admin = _auth(client, "admin@example.com")
    r = client.get("/api/admin/status", headers=admin)
    assert r.status_code == 200
    assert r.json["db_connected"] is True
    assert r.json["storage_backend"] == "local"
    assert r.json["smtp_configured"] is False
    assert r.json["counts"]["users"] == 2


def test_users_list_with_wedding_counts(client):
    admin = _auth(client, "admin@example.com")
    owner = _auth(client, "owner@example.com")
    payload = {"bride": "Anna", "groom": "Ben", "wedding_date": "2099-06-01", "venue": "Hall", "venue_address": "1 Main St"}
    client.post("/api/weddings", json=payload, headers=owner)

    r = client.get("/api/admin/users?q=olga", headers=admin)
    assert r.status_code == 200
    assert len(r.json) == 1
    assert r.json[0]["email"] == "owner@example.com"
    assert r.json[0]["wedding_count"] == 1


def test_grant_subscription_unlocks_premium_templates(client):
    admin = _auth(client, "admin@example.com")
    owner = _auth(client, "owner@example.com")
    uid = _user_id(client, admin, "owner@example.com")
    payload = {
        "bride": "Anna",
        "groom": "Ben",
        "wedding_date": "2099-06-01",
        "venue": "Hall",
        "venue_address": "1 Main St",
        "template": "gul",
    }
    assert client.post("/api/weddings", json=payload, headers=owner).status_code == 403

    r = client.post(f"/api/admin/users/{uid}/subscription", json={"has_paid_subscription": True, "payment_order_id": "A-1"}, headers=admin)
    assert r.status_code == 200
    assert r.json["has_paid_subscription"] is True

    users = client.get("/api/admin/users?q=owner", headers=admin).json
    assert users[0]["payment_method"] == "manual"
    assert users[0]["payment_order_id"] == "A-1"
    assert users[0]["payment_date"] is not None

    assert client.post("/api/weddings", json=payload, headers=owner).status_code == 201


def test_subscription_requires_flag(client):
    admin = _auth(client, "admin@example.com")
    uid = _user_id(client, admin, "owner@example.com")
    r = client.post(f"/api/admin/users/{uid}/subscription", json={}, headers=admin)
    assert r.status_code == 400


def test_deactivate_user(client):
    admin = _auth(client, "admin@example.com")
    owner = _auth(client, "owner@example.com")
    uid = _user_id(client, admin, "owner@example.com")

    r = client.post(f"/api/admin/users/{uid}/active", json={"is_active": False, "reason": "spam"}, headers=admin)
    assert r.status_code == 200
    assert r.json["is_active"] is False
    assert client.get("/api/auth/me", headers=owner).status_code == 401

    admin_id = _user_id(client, admin, "admin@example.com")
    r = client.post(f"/api/admin/users/{admin_id}/active", json={"is_active": False}, headers=admin)
    assert r.status_code == 409


def test_manage_all_sees_every_wedding(client):
    admin = _auth(client, "admin@example.com")
    owner = _auth(client, "owner@example.com")
    payload = {"bride": "Anna", "groom": "Ben", "wedding_date": "2099-06-01", "venue": "Hall", "venue_address": "1 Main St"}
    w = client.post("/api/weddings", json=payload, headers=owner).json

    assert client.get("/api/weddings", headers=admin).json == []
    assert [x["id"] for x in client.get("/api/weddings?all=1", headers=admin).json] == [w["id"]]
    assert client.get(f"/api/weddings/{w['id']}", headers=admin).status_code == 200


def test_audit_trail_filters(client):
    admin = _auth(client, "admin@example.com")
    owner = _auth(client, "owner@example.com")
    payload = {"bride": "Anna", "groom": "Ben", "wedding_date": "2099-06-01", "venue": "Hall", "venue_address": "1 Main St"}
    w = client.post("/api/weddings", json=payload, headers=owner).json

    r = client.get("/api/admin/audit?action=wedding.create", headers=admin)
    assert r.status_code == 200
    assert [e["entity_id"] for e in r.json] == [str(w["id"])]
    assert r.json[0]["actor_user_email"] == "owner@example.com"

    r = client.get("/api/admin/audit?entity_type=User&limit=1", headers=admin)
    assert len(r.json) == 1

    r = client.get("/api/admin/audit?date_from=2000-01-01&date_to=2000-01-02", headers=admin)
    assert r.json == []

    assert client.get("/api/admin/audit?limit=many", headers=admin).status_code == 400
    assert client.get("/api/admin/audit", headers=owner).status_code == 403
