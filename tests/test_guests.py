"""Tests for guest management and the public RSVP flows."""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from werkzeug.security import generate_password_hash

from app.invites import create_app
from app.invites.auth import reset_rate_limits
from app.invites.db import session_scope
from app.invites.models import Base, User
from app.invites.modules.guests.service import resolve_rsvp_answer
from app.invites.modules.weddings.countdown import local_deadline
from app.invites.utils import parse_date


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
        s.add(User(email="other@example.com", password_hash=generate_password_hash("pw"), is_active=True))
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _auth(client, email="owner@example.com"):
    r = client.post("/api/auth/token", json={"email": email, "password": "pw"})
    return {"Authorization": f"Bearer {r.json['token']}"}


def _wedding(client, h, **extra):
    payload = {
        "bride": "Anna",
        "groom": "Ben",
        "wedding_date": "2099-06-01",
        "venue": "Garden Hall",
        "venue_address": "1 Main St",
    }
    payload.update(extra)
    r = client.post("/api/weddings", json=payload, headers=h)
    assert r.status_code == 201
    return r.json


def _guest(client, h, wedding_id, **fields):
    r = client.post(f"/api/guests/wedding/{wedding_id}", json=fields, headers=h)
    assert r.status_code == 201, r.json
    return r.json


def test_resolve_rsvp_answer():
    assert resolve_rsvp_answer("confirmed_with_guest") == ("confirmed", True)
    assert resolve_rsvp_answer("Declined") == ("declined", False)
    assert resolve_rsvp_answer(None) == ("pending", False)
    with pytest.raises(ValueError):
        resolve_rsvp_answer("sure")


def test_owner_guest_crud(client):
    h = _auth(client)
    w = _wedding(client, h)

    g = _guest(client, h, w["id"], name="Carol", email="carol@example.com", side="bride", category="friends")
    assert g["added_by"] == "couple"
    assert g["rsvp_status"] == "pending"

    r = client.patch(f"/api/guests/{g['id']}", json={"rsvp_status": "confirmed", "additional_guests": 2}, headers=h)
    assert r.status_code == 200
    assert r.json["rsvp_status"] == "confirmed"
    assert r.json["responded_at"] is not None

    r = client.get(f"/api/guests/wedding/{w['id']}?status=confirmed", headers=h)
    assert [x["name"] for x in r.json] == ["Carol"]

    r = client.delete(f"/api/guests/{g['id']}", headers=h)
    assert r.status_code == 200
    assert client.get(f"/api/guests/wedding/{w['id']}", headers=h).json == []


def test_guest_validation(client):
    h = _auth(client)
    w = _wedding(client, h)
    r = client.post(
        f"/api/guests/wedding/{w['id']}",
        json={"name": "", "email": "nope", "side": "middle", "additional_guests": 50},
        headers=h,
    )
    assert r.status_code == 400
    assert len(r.json["errors"]) == 4


def test_guest_management_requires_permission(client):
    owner = _auth(client)
    other = _auth(client, "other@example.com")
    w = _wedding(client, owner)

    assert client.get(f"/api/guests/wedding/{w['id']}").status_code == 401
    r = client.get(f"/api/guests/wedding/{w['id']}", headers=other)
    assert r.status_code == 403
    assert "canManageGuests" in r.json["message"]


def test_manual_rsvp(client):
    h = _auth(client)
    w = _wedding(client, h)

    r = client.post(
        f"/api/weddings/{w['id']}/rsvp",
        json={"name": "Walk In", "rsvpStatus": "confirmed_with_guest", "message": "See you!"},
    )
    assert r.status_code == 201
    assert r.json["rsvp_status"] == "confirmed"
    assert r.json["plus_one"] is True
    assert r.json["response_text"] == "confirmed_with_guest"
    assert r.json["added_by"] == "guest"

    r = client.get(f"/api/weddings/{w['id']}/rsvp-stats", headers=h)
    assert r.json["total_guests"] == 1
    assert r.json["headcount"] == 2
    assert r.json["plus_ones"] == 1
    assert r.json["response_rate"] == 1.0


def test_manual_rsvp_requires_name(client):
    h = _auth(client)
    w = _wedding(client, h)
    r = client.post(f"/api/weddings/{w['id']}/rsvp", json={"rsvpStatus": "confirmed"})
    assert r.status_code == 400
    assert "name is required." in r.json["errors"]


def test_preregistered_rsvp(client):
    h = _auth(client)
    w = _wedding(client, h)
    g = _guest(client, h, w["id"], name="Carol Smith")
    _guest(client, h, w["id"], name="Dmitry")

    r = client.get(f"/api/guests/public/{w['id']}?q=car")
    assert r.status_code == 200
    assert r.json == [{"id": g["id"], "name": "Carol Smith", "rsvp_status": "pending"}]

    r = client.put(f"/api/guests/{g['id']}/rsvp", json={"rsvpStatus": "declined"})
    assert r.status_code == 200
    assert r.json["rsvp_status"] == "declined"


def test_manual_mode_hides_guest_list_and_blocks_preregistered(client):
    h = _auth(client)
    w = _wedding(client, h, rsvp_mode="manual")
    g = _guest(client, h, w["id"], name="Carol")

    assert client.get(f"/api/guests/public/{w['id']}").json == []
    r = client.put(f"/api/guests/{g['id']}/rsvp", json={"rsvpStatus": "confirmed"})
    assert r.status_code == 403


def test_preregistered_mode_blocks_manual(client):
    h = _auth(client)
    w = _wedding(client, h, rsvp_mode="preregistered")
    r = client.post(f"/api/weddings/{w['id']}/rsvp", json={"name": "Walk In", "rsvpStatus": "confirmed"})
    assert r.status_code == 403


def test_rsvp_closed_after_deadline(client):
    h = _auth(client)
    w = _wedding(client, h, rsvp_deadline="2000-01-01")
    r = client.post(f"/api/weddings/{w['id']}/rsvp", json={"name": "Late", "rsvpStatus": "confirmed"})
    assert r.status_code == 409
    assert "deadline" in r.json["message"]


def test_private_wedding_rsvp_is_hidden(client):
    h = _auth(client)
    w = _wedding(client, h, is_public=False)
    r = client.post(f"/api/weddings/{w['id']}/rsvp", json={"name": "Walk In", "rsvpStatus": "confirmed"})
    assert r.status_code == 404


def test_export_csv(client):
    h = _auth(client)
    w = _wedding(client, h)
    _guest(client, h, w["id"], name="Carol", email="carol@example.com")

    r = client.get(f"/api/guests/wedding/{w['id']}/export.csv", headers=h)
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    lines = r.data.decode().splitlines()
    assert lines[0].startswith("name,email,phone,rsvp_status")
    assert lines[1].startswith("Carol,carol@example.com")


def test_manual_rsvp_additional_guests_range(client):
    h = _auth(client)
    w = _wedding(client, h)
    for bad in (-1, 21):
        r = client.post(
            f"/api/weddings/{w['id']}/rsvp",
            json={"name": "Walk In", "rsvpStatus": "confirmed", "additionalGuests": bad},
        )
        assert r.status_code == 400
        assert "additional_guests must be between 0 and 20." in r.json["errors"]

    r = client.post(f"/api/weddings/{w['id']}/rsvp", json={"name": "Walk In", "rsvpStatus": "confirmed", "additionalGuests": 20})
    assert r.status_code == 201
    assert r.json["additional_guests"] == 20


def test_preregistered_update_keeps_answer_without_status(client):
    h = _auth(client)
    w = _wedding(client, h)
    g = _guest(client, h, w["id"], name="Carol")
    client.put(f"/api/guests/{g['id']}/rsvp", json={"rsvpStatus": "confirmed_with_guest"})

    r = client.put(f"/api/guests/{g['id']}/rsvp", json={"dietary_restrictions": "vegan"})
    assert r.status_code == 200
    assert r.json["rsvp_status"] == "confirmed"

    carol = client.get(f"/api/guests/wedding/{w['id']}", headers=h).json[0]
    assert carol["rsvp_status"] == "confirmed"
    assert carol["plus_one"] is True
    assert carol["response_text"] == "confirmed_with_guest"
    assert carol["dietary_restrictions"] == "vegan"


def test_deadline_offset_is_converted_to_wedding_zone(client):
    h = _auth(client)
    now = datetime.now(timezone.utc)
    late = (now - timedelta(hours=2)).astimezone(timezone(timedelta(hours=5)))
    w = _wedding(client, h, timezone="America/New_York", rsvp_deadline=late.isoformat())
    r = client.post(f"/api/weddings/{w['id']}/rsvp", json={"name": "Late", "rsvpStatus": "confirmed"})
    assert r.status_code == 409

    soon = (now + timedelta(hours=2)).astimezone(timezone(timedelta(hours=-3)))
    w = _wedding(client, h, timezone="America/New_York", rsvp_deadline=soon.isoformat())
    r = client.post(f"/api/weddings/{w['id']}/rsvp", json={"name": "On Time", "rsvpStatus": "confirmed"})
    assert r.status_code == 201


def test_date_only_deadline_allows_the_whole_day(client):
    h = _auth(client)
    today = datetime.now(ZoneInfo("Asia/Tashkent")).date().isoformat()
    w = _wedding(client, h, rsvp_deadline=today)
    assert w["rsvp_deadline"] == f"{today}T23:59:59"

    r = client.post(f"/api/weddings/{w['id']}/rsvp", json={"name": "Same Day", "rsvpStatus": "confirmed"})
    assert r.status_code == 201


def test_deadline_normalization():
    assert local_deadline("2026-10-18", "Asia/Tashkent") == datetime(2026, 10, 18, 23, 59, 59)
    assert local_deadline("2026-10-18T10:00:00Z", "Asia/Tashkent") == datetime(2026, 10, 18, 15, 0)
    assert local_deadline("2026-10-18T10:00:00", "Asia/Tashkent") == datetime(2026, 10, 18, 10, 0)
    assert local_deadline(None, "Asia/Tashkent") is None
    # Calendar dates keep the day as written
    assert parse_date("2099-06-01T00:30:00+05:00") == date(2099, 6, 1)
