"""Tests for the public guest book."""
import pytest
from werkzeug.security import generate_password_hash

from app.invites import create_app
from app.invites.auth import reset_rate_limits
from app.invites.db import session_scope
from app.invites.models import Base, User


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
        s.add(User(email="owner@example.com", password_hash=generate_password_hash("pw"), is_active=True))
        s.add(User(email="other@example.com", password_hash=generate_password_hash("pw"), is_active=True))
    return app.test_client()


def _auth(client, email="owner@example.com"):
    r = client.post("/api/auth/token", json={"email": email, "password": "pw"})
    return {"Authorization": f"Bearer {r.json['token']}"}


def _wedding(client, h, **extra):
    payload = {"bride": "Anna", "groom": "Ben", "wedding_date": "2099-06-01", "venue": "Hall", "venue_address": "1 Main St"}
    payload.update(extra)
    return client.post("/api/weddings", json=payload, headers=h).json


def test_post_and_list_entries(client):
    w = _wedding(client, _auth(client))

    r = client.post("/api/guest-book", json={"wedding_id": w["id"], "guest_name": "Dana", "message": "Congratulations!"})
    assert r.status_code == 201
    assert r.json["guest_name"] == "Dana"

    client.post("/api/guest-book", json={"weddingId": w["id"], "guestName": "Eli", "message": "Be happy"})

    r = client.get(f"/api/guest-book/wedding/{w['id']}")
    assert r.status_code == 200
    assert [e["guest_name"] for e in r.json] == ["Eli", "Dana"]


def test_entry_validation(client):
    w = _wedding(client, _auth(client))

    r = client.post("/api/guest-book", json={"guest_name": "Dana", "message": "Hi"})
    assert r.status_code == 400

    r = client.post("/api/guest-book", json={"wedding_id": w["id"], "guest_name": " ", "message": "x" * 2001})
    assert r.status_code == 400
    assert len(r.json["errors"]) == 2

    r = client.post("/api/guest-book", json={"wedding_id": 9999, "guest_name": "Dana", "message": "Hi"})
    assert r.status_code == 404


def test_private_wedding_guest_book_is_hidden(client):
    w = _wedding(client, _auth(client), is_public=False)
    assert client.get(f"/api/guest-book/wedding/{w['id']}").status_code == 404
    r = client.post("/api/guest-book", json={"wedding_id": w["id"], "guest_name": "Dana", "message": "Hi"})
    assert r.status_code == 404


def test_only_authorized_users_delete_entries(client):
    owner = _auth(client)
    other = _auth(client, "other@example.com")
    w = _wedding(client, owner)
    entry = client.post("/api/guest-book", json={"wedding_id": w["id"], "guest_name": "Dana", "message": "Hi"}).json

    assert client.delete(f"/api/guest-book/{entry['id']}").status_code == 401
    assert client.delete(f"/api/guest-book/{entry['id']}", headers=other).status_code == 403

    r = client.delete(f"/api/guest-book/{entry['id']}", headers=owner)
    assert r.status_code == 200
    assert client.get(f"/api/guest-book/wedding/{w['id']}").json == []
