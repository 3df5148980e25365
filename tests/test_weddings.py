"""Tests for wedding CRUD, templates, public pages and the countdown."""
from datetime import date, datetime, time, timezone

import pytest
from werkzeug.security import generate_password_hash

from app.invites import create_app
from app.invites.auth import reset_rate_limits
from app.invites.db import session_scope
from app.invites.models import AuditEvent, Base, User
from app.invites.modules.weddings.countdown import compute_countdown, is_milestone_age, parse_event_time
from app.invites.modules.weddings.service import slugify


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
        s.add_all(
            [
                User(email="owner@example.com", password_hash=generate_password_hash("pw"), name="Olga", is_active=True),
                User(
                    email="paid@example.com",
                    password_hash=generate_password_hash("pw"),
                    is_active=True,
                    has_paid_subscription=True,
                ),
                User(email="other@example.com", password_hash=generate_password_hash("pw"), is_active=True),
            ]
        )
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _auth(client, email):
    r = client.post("/api/auth/token", json={"email": email, "password": "pw"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json['token']}"}


def _wedding_payload(**overrides):
    data = {
        "bride": "Anna",
        "groom": "Ben",
        "wedding_date": "2099-06-01",
        "wedding_time": "4:00 PM",
        "timezone": "Asia/Tashkent",
        "venue": "Garden Hall",
        "venue_address": "1 Main St",
    }
    data.update(overrides)
    return data


def _create(client, headers, **overrides):
    r = client.post("/api/weddings", json=_wedding_payload(**overrides), headers=headers)
    assert r.status_code == 201, r.json
    return r.json


def test_create_wedding_defaults(client, app):
    h = _auth(client, "owner@example.com")
    w = _create(client, h)
    assert w["unique_url"] == "anna-ben"
    assert w["template"] == "gardenRomance"
    assert w["rsvp_mode"] == "both"
    assert w["is_public"] is True
    assert w["display_names"] == "Anna & Ben"
    assert w["available_languages"] == ["en"]

    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "wedding.create").one()
        assert ev.entity_id == str(w["id"])
        assert ev.actor_user_email == "owner@example.com"


def test_create_requires_login(client):
    r = client.post("/api/weddings", json=_wedding_payload())
    assert r.status_code == 401


def test_create_validation_errors(client):
    h = _auth(client, "owner@example.com")
    r = client.post(
        "/api/weddings",
        json={"bride": "Anna", "venue": "", "wedding_date": "not-a-date", "primary_color": "red", "timezone": "Mars/Base"},
        headers=h,
    )
    assert r.status_code == 400
    errors = " ".join(r.json["errors"])
    assert "groom is required" in errors
    assert "venue is required" in errors
    assert "wedding_date" in errors
    assert "primary_color" in errors
    assert "Mars/Base" in errors


def test_birthday_does_not_need_groom(client):
    h = _auth(client, "paid@example.com")
    w = _create(client, h, event_type="birthday", groom="", bride="Lola", age="30", template="birthday")
    assert w["display_names"] == "Lola"
    assert w["event_type"] == "birthday"


def test_template_must_match_event_type(client):
    h = _auth(client, "owner@example.com")
    r = client.post("/api/weddings", json=_wedding_payload(event_type="birthday", template="gul"), headers=h)
    assert r.status_code == 400


def test_premium_template_requires_subscription(client):
    h = _auth(client, "owner@example.com")
    r = client.post("/api/weddings", json=_wedding_payload(template="epic"), headers=h)
    assert r.status_code == 403

    paid = _auth(client, "paid@example.com")
    w = _create(client, paid, template="epic")
    assert w["template"] == "epic"


def test_premium_template_on_update_requires_subscription(client):
    h = _auth(client, "owner@example.com")
    w = _create(client, h)
    r = client.put(f"/api/weddings/{w['id']}", json={"template": "anime_1"}, headers=h)
    assert r.status_code == 403


def test_unique_url_collisions(client):
    h = _auth(client, "owner@example.com")
    assert _create(client, h)["unique_url"] == "anna-ben"
    assert _create(client, h)["unique_url"] == "anna-ben-2"

    _create(client, h, unique_url="our-day")
    r = client.post("/api/weddings", json=_wedding_payload(unique_url="our-day"), headers=h)
    assert r.status_code == 409

    r = client.post("/api/weddings", json=_wedding_payload(unique_url="Bad URL!"), headers=h)
    assert r.status_code == 400


def test_slugify_strips_accents():
    assert slugify("Zoë & José") == "zoe-jose"


def test_list_only_own_weddings(client):
    owner = _auth(client, "owner@example.com")
    other = _auth(client, "other@example.com")
    _create(client, owner)
    _create(client, other, bride="Cleo", groom="Dan")

    r = client.get("/api/weddings", headers=owner)
    assert [w["bride"] for w in r.json] == ["Anna"]


def test_update_and_detail(client, app):
    h = _auth(client, "owner@example.com")
    w = _create(client, h)

    r = client.patch(
        f"/api/weddings/{w['id']}",
        json={"venue": "Lake House", "available_languages": ["en", "ru"], "default_language": "ru"},
        headers=h,
    )
    assert r.status_code == 200
    assert r.json["venue"] == "Lake House"
    assert r.json["default_language"] == "ru"

    r = client.get(f"/api/weddings/{w['id']}", headers=h)
    assert r.status_code == 200
    assert all(r.json["permissions"].values())

    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "wedding.edit").one()
        assert "Lake House" in ev.metadata_json


def test_default_language_must_be_available(client):
    h = _auth(client, "owner@example.com")
    w = _create(client, h)
    r = client.patch(f"/api/weddings/{w['id']}", json={"default_language": "uz"}, headers=h)
    assert r.status_code == 400


def test_unhashable_language_is_a_validation_error(client):
    h = _auth(client, "owner@example.com")
    r = client.post("/api/weddings", json=_wedding_payload(available_languages=[{}]), headers=h)
    assert r.status_code == 400
    assert any(e.startswith("Unsupported languages") for e in r.json["errors"])


def test_other_users_cannot_touch_wedding(client):
    owner = _auth(client, "owner@example.com")
    other = _auth(client, "other@example.com")
    w = _create(client, owner)

    assert client.get(f"/api/weddings/{w['id']}", headers=other).status_code == 404
    assert client.put(f"/api/weddings/{w['id']}", json={"venue": "X"}, headers=other).status_code == 403
    assert client.delete(f"/api/weddings/{w['id']}", headers=other).status_code == 403


def test_delete_wedding(client):
    h = _auth(client, "owner@example.com")
    w = _create(client, h)
    r = client.delete(f"/api/weddings/{w['id']}", headers=h)
    assert r.status_code == 200
    assert client.get(f"/api/weddings/{w['id']}", headers=h).status_code == 404


def test_public_lookup_by_url(client):
    h = _auth(client, "owner@example.com")
    w = _create(client, h)

    r = client.get("/api/weddings/url/anna-ben")
    assert r.status_code == 200
    assert r.json["id"] == w["id"]
    assert "user_id" not in r.json
    assert "is_public" not in r.json

    client.patch(f"/api/weddings/{w['id']}", json={"is_public": False}, headers=h)
    assert client.get("/api/weddings/url/anna-ben").status_code == 404
    assert client.get("/api/weddings/url/anna-ben", headers=h).status_code == 200


def test_countdown_endpoint(client):
    h = _auth(client, "owner@example.com")
    w = _create(client, h)
    r = client.get(f"/api/weddings/{w['id']}/countdown")
    assert r.status_code == 200
    assert r.json["is_past"] is False
    assert r.json["days"] > 0
    assert r.json["event_at"].startswith("2099-06-01T16:00:00+05:00")


def test_templates_catalog(client):
    r = client.get("/api/templates")
    assert r.status_code == 200
    wedding_keys = {t["value"]: t["tier"] for t in r.json["wedding"]}
    assert wedding_keys["standard"] == "free"
    assert wedding_keys["epic"] == "premium"
    assert "birthday" in {t["value"] for t in r.json["birthday"]}


def test_invitation_page_renders_in_requested_language(client):
    h = _auth(client, "owner@example.com")
    w = _create(client, h, available_languages=["en", "ru"])

    r = client.get("/w/anna-ben")
    assert r.status_code == 200
    assert b"Anna &amp; Ben" in r.data
    assert b"You are invited" in r.data

    r = client.get("/w/anna-ben?lang=ru")
    assert "Приглашаем вас".encode() in r.data

    # Unavailable language falls back to the default
    r = client.get("/w/anna-ben?lang=uz")
    assert b"You are invited" in r.data

    client.patch(f"/api/weddings/{w['id']}", json={"is_public": False}, headers=h)
    assert client.get("/w/anna-ben").status_code == 404
    assert client.get("/w/anna-ben", headers=h).status_code == 200


def test_parse_event_time():
    assert parse_event_time("4:00 PM") == time(16, 0)
    assert parse_event_time("4 pm") == time(16, 0)
    assert parse_event_time("12:30 AM") == time(0, 30)
    assert parse_event_time("18:45") == time(18, 45)
    assert parse_event_time("") == time(0, 0)
    with pytest.raises(ValueError):
        parse_event_time("25:00")
    with pytest.raises(ValueError):
        parse_event_time("noonish")


def test_countdown_uses_wedding_timezone():
    # 16:00 in Tashkent (UTC+5) is 11:00 UTC
    now = datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)
    cd = compute_countdown(date(2030, 1, 1), "4:00 PM", "Asia/Tashkent", now=now)
    assert (cd.days, cd.hours, cd.minutes, cd.seconds) == (0, 1, 0, 0)
    assert cd.total_seconds == 3600
    assert cd.is_past is False


def test_countdown_clamps_after_event():
    now = datetime(2030, 1, 2, 0, 0, tzinfo=timezone.utc)
    cd = compute_countdown(date(2030, 1, 1), "4:00 PM", "Asia/Tashkent", now=now)
    assert cd.is_past is True
    assert cd.total_seconds == 0
    assert (cd.days, cd.hours, cd.minutes, cd.seconds) == (0, 0, 0, 0)


def test_milestone_ages():
    assert is_milestone_age("18") is True
    assert is_milestone_age(19) is False
    assert is_milestone_age("thirty") is False
    assert is_milestone_age(None) is False
