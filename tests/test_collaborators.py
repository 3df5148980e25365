"""Tests for inviting collaborators and per-wedding access."""
import pytest
from werkzeug.security import generate_password_hash

from app.invites import create_app
from app.invites.auth import reset_rate_limits
from app.invites.db import session_scope
from app.invites.models import Base, User
from app.invites.modules.collaborators.service import access_level_for


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
        for email in ("owner@example.com", "helper@example.com", "stranger@example.com"):
            s.add(User(email=email, password_hash=generate_password_hash("pw"), is_active=True))
    return app.test_client()


def _auth(client, email):
    r = client.post("/api/auth/token", json={"email": email, "password": "pw"})
    return {"Authorization": f"Bearer {r.json['token']}"}


def _wedding(client, h):
    payload = {"bride": "Anna", "groom": "Ben", "wedding_date": "2099-06-01", "venue": "Hall", "venue_address": "1 Main St"}
    return client.post("/api/weddings", json=payload, headers=h).json


def _invite(client, h, wedding_id, **payload):
    payload.setdefault("email", "Helper@Example.com")
    return client.post(f"/api/weddings/{wedding_id}/collaborators", json=payload, headers=h)


def test_access_levels():
    assert access_level_for({"canEditDetails": True}) == "manager"
    assert access_level_for({"canManagePhotos": True}) == "editor"
    assert access_level_for({"canViewAnalytics": True}) == "viewer"


def test_invite_accept_and_use_access(client):
    owner = _auth(client, "owner@example.com")
    helper = _auth(client, "helper@example.com")
    w = _wedding(client, owner)

    r = _invite(client, owner, w["id"], name="Helen")
    assert r.status_code == 201
    collab = r.json
    assert collab["email"] == "helper@example.com"
    assert collab["status"] == "pending"
    assert collab["permissions"]["canManageGuests"] is True
    assert collab["permissions"]["canEditDetails"] is False
    assert collab["notified"] is False

    # Not shared until accepted
    assert client.get(f"/api/weddings/{w['id']}", headers=helper).status_code == 404

    r = client.post(f"/api/collaborators/{collab['id']}/accept", headers=helper)
    assert r.status_code == 200
    assert r.json["access_level"] == "editor"
    assert r.json["collaborator"]["status"] == "accepted"

    r = client.get(f"/api/weddings/{w['id']}/access", headers=helper)
    assert r.json["is_owner"] is False
    assert r.json["permissions"]["canManageGuests"] is True

    assert [x["id"] for x in client.get("/api/weddings", headers=helper).json] == [w["id"]]

    r = client.post(f"/api/guests/wedding/{w['id']}", json={"name": "Carol"}, headers=helper)
    assert r.status_code == 201
    assert r.json["added_by"] == "collaborator"

    assert client.put(f"/api/weddings/{w['id']}", json={"venue": "Elsewhere"}, headers=helper).status_code == 403
    assert client.get(f"/api/weddings/{w['id']}/milestones", headers=helper).status_code == 200


def test_accept_requires_matching_email(client):
    owner = _auth(client, "owner@example.com")
    stranger = _auth(client, "stranger@example.com")
    w = _wedding(client, owner)
    collab = _invite(client, owner, w["id"]).json

    r = client.post(f"/api/collaborators/{collab['id']}/accept", headers=stranger)
    assert r.status_code == 403


def test_duplicate_and_owner_invites_conflict(client):
    owner = _auth(client, "owner@example.com")
    w = _wedding(client, owner)

    assert _invite(client, owner, w["id"]).status_code == 201
    assert _invite(client, owner, w["id"]).status_code == 409
    assert _invite(client, owner, w["id"], email="owner@example.com").status_code == 409


def test_invite_validation(client):
    owner = _auth(client, "owner@example.com")
    w = _wedding(client, owner)
    r = _invite(client, owner, w["id"], email="nope", permissions={"canFly": True})
    assert r.status_code == 400
    assert len(r.json["errors"]) == 2


def test_only_owner_manages_collaborators(client):
    owner = _auth(client, "owner@example.com")
    helper = _auth(client, "helper@example.com")
    w = _wedding(client, owner)
    collab = _invite(client, owner, w["id"]).json
    client.post(f"/api/collaborators/{collab['id']}/accept", headers=helper)

    assert client.get(f"/api/weddings/{w['id']}/collaborators", headers=helper).status_code == 403
    assert _invite(client, helper, w["id"], email="x@example.com").status_code == 403
    assert client.delete(f"/api/collaborators/{collab['id']}", headers=helper).status_code == 403

    r = client.get(f"/api/weddings/{w['id']}/collaborators", headers=owner)
    assert [c["email"] for c in r.json] == ["helper@example.com"]


def test_revoke_removes_access(client):
    owner = _auth(client, "owner@example.com")
    helper = _auth(client, "helper@example.com")
    w = _wedding(client, owner)
    collab = _invite(client, owner, w["id"], permissions={"canEditDetails": True}).json
    r = client.post(f"/api/collaborators/{collab['id']}/accept", headers=helper)
    assert r.json["access_level"] == "manager"

    r = client.delete(f"/api/collaborators/{collab['id']}", headers=owner)
    assert r.status_code == 200
    assert client.get(f"/api/weddings/{w['id']}", headers=helper).status_code == 404

    r = client.post(f"/api/collaborators/{collab['id']}/accept", headers=helper)
    assert r.status_code == 409

    # A revoked invite does not block a fresh one
    assert _invite(client, owner, w["id"]).status_code == 201
