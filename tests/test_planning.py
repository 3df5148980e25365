"""Tests for the milestone checklist and the budget."""
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


def _wedding(client, h, bride="Anna"):
    payload = {"bride": bride, "groom": "Ben", "wedding_date": "2099-06-01", "venue": "Hall", "venue_address": "1 Main St"}
    return client.post("/api/weddings", json=payload, headers=h).json


def test_milestone_lifecycle(client):
    h = _auth(client)
    w = _wedding(client, h)

    r = client.post(
        f"/api/weddings/{w['id']}/milestones",
        json={"title": "Book venue", "due_date": "2099-01-10", "priority": "high"},
        headers=h,
    )
    assert r.status_code == 201
    venue = r.json
    assert venue["is_completed"] is False

    cake = client.post(
        f"/api/weddings/{w['id']}/milestones", json={"title": "Order cake", "due_date": "2099-05-01"}, headers=h
    ).json
    assert cake["priority"] == "medium"

    r = client.post(f"/api/milestones/{venue['id']}/complete", headers=h)
    assert r.status_code == 200
    assert r.json["is_completed"] is True
    assert r.json["completed_at"] is not None

    # Open items first, then by due date
    r = client.get(f"/api/weddings/{w['id']}/milestones", headers=h)
    assert [m["title"] for m in r.json] == ["Order cake", "Book venue"]

    r = client.post(f"/api/milestones/{venue['id']}/uncomplete", headers=h)
    assert r.json["is_completed"] is False
    assert r.json["completed_at"] is None

    r = client.patch(f"/api/milestones/{cake['id']}", json={"assigned_to": "Ben"}, headers=h)
    assert r.json["assigned_to"] == "Ben"
    assert r.json["title"] == "Order cake"

    assert client.delete(f"/api/milestones/{cake['id']}", headers=h).status_code == 200
    assert len(client.get(f"/api/weddings/{w['id']}/milestones", headers=h).json) == 1


def test_milestone_validation(client):
    h = _auth(client)
    w = _wedding(client, h)
    r = client.post(f"/api/weddings/{w['id']}/milestones", json={"title": "", "priority": "urgent"}, headers=h)
    assert r.status_code == 400
    errors = " ".join(r.json["errors"])
    assert "title is required" in errors
    assert "due_date is required" in errors
    assert "Invalid priority" in errors


def test_planning_is_private_to_the_couple(client):
    owner = _auth(client)
    other = _auth(client, "other@example.com")
    w = _wedding(client, owner)

    assert client.get(f"/api/weddings/{w['id']}/milestones", headers=other).status_code == 404
    assert client.get(f"/api/weddings/{w['id']}/budget", headers=other).status_code == 404
    r = client.post(f"/api/weddings/{w['id']}/milestones", json={"title": "X", "due_date": "2099-01-01"}, headers=other)
    assert r.status_code == 403


def test_budget_totals_and_spent_recompute(client):
    h = _auth(client)
    w = _wedding(client, h)

    cat = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Venue", "budget_amount": 1000}, headers=h)
    assert cat.status_code == 201
    cat = cat.json
    assert cat["spent_amount"] == 0

    hall = client.post(
        f"/api/weddings/{w['id']}/budget/items",
        json={"category_id": cat["id"], "name": "Hall", "estimated_cost": 800, "actual_cost": 900, "is_paid": True},
        headers=h,
    )
    assert hall.status_code == 201
    hall = hall.json
    client.post(
        f"/api/weddings/{w['id']}/budget/items",
        json={"category_id": cat["id"], "name": "Deposit", "estimated_cost": 100, "is_paid": True},
        headers=h,
    )

    summary = client.get(f"/api/weddings/{w['id']}/budget", headers=h).json
    assert summary["categories"][0]["spent_amount"] == 900
    assert summary["categories"][0]["remaining_amount"] == 100
    assert summary["totals"] == {"budgeted": 1000, "estimated": 900, "actual": 900, "paid": 1000, "remaining": 100}

    r = client.patch(f"/api/budget/items/{hall['id']}", json={"actual_cost": 700}, headers=h)
    assert r.status_code == 200
    summary = client.get(f"/api/weddings/{w['id']}/budget", headers=h).json
    assert summary["categories"][0]["spent_amount"] == 700

    client.delete(f"/api/budget/items/{hall['id']}", headers=h)
    summary = client.get(f"/api/weddings/{w['id']}/budget", headers=h).json
    assert summary["categories"][0]["spent_amount"] == 0
    assert [i["name"] for i in summary["items"]] == ["Deposit"]


def test_item_moves_between_categories(client):
    h = _auth(client)
    w = _wedding(client, h)
    a = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Food"}, headers=h).json
    b = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Drinks"}, headers=h).json
    item = client.post(
        f"/api/weddings/{w['id']}/budget/items",
        json={"category_id": a["id"], "name": "Wine", "actual_cost": 300},
        headers=h,
    ).json

    r = client.patch(f"/api/budget/items/{item['id']}", json={"category_id": b["id"]}, headers=h)
    assert r.status_code == 200
    spent = {c["name"]: c["spent_amount"] for c in client.get(f"/api/weddings/{w['id']}/budget", headers=h).json["categories"]}
    assert spent == {"Food": 0, "Drinks": 300}


def test_item_category_must_belong_to_wedding(client):
    h = _auth(client)
    w1 = _wedding(client, h)
    w2 = _wedding(client, h, bride="Cleo")
    foreign = client.post(f"/api/weddings/{w2['id']}/budget/categories", json={"name": "Music"}, headers=h).json

    r = client.post(
        f"/api/weddings/{w1['id']}/budget/items", json={"category_id": foreign["id"], "name": "DJ"}, headers=h
    )
    assert r.status_code == 400


def test_budget_amounts_must_be_whole_and_positive(client):
    h = _auth(client)
    w = _wedding(client, h)
    r = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Venue", "budget_amount": -5}, headers=h)
    assert r.status_code == 400
    r = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Venue", "budget_amount": "lots"}, headers=h)
    assert r.status_code == 400


def test_delete_category_archives_when_items_exist(client):
    h = _auth(client)
    w = _wedding(client, h)
    empty = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Flowers"}, headers=h).json
    used = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Venue", "budget_amount": 500}, headers=h).json
    client.post(f"/api/weddings/{w['id']}/budget/items", json={"category_id": used["id"], "name": "Hall"}, headers=h)

    r = client.delete(f"/api/budget/categories/{empty['id']}", headers=h)
    assert r.json == {"ok": True, "archived": False}

    r = client.delete(f"/api/budget/categories/{used['id']}", headers=h)
    assert r.json == {"ok": True, "archived": True}

    summary = client.get(f"/api/weddings/{w['id']}/budget", headers=h).json
    assert summary["categories"] == []
    assert summary["totals"]["budgeted"] == 0

    summary = client.get(f"/api/weddings/{w['id']}/budget?include_archived=1", headers=h).json
    assert [c["name"] for c in summary["categories"]] == ["Venue"]
    assert summary["categories"][0]["is_archived"] is True

    r = client.post(f"/api/weddings/{w['id']}/budget/items", json={"category_id": used["id"], "name": "Chairs"}, headers=h)
    assert r.status_code == 409


def test_archived_totals_use_one_set_of_categories(client):
    h = _auth(client)
    w = _wedding(client, h)
    old = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Band", "budget_amount": 400}, headers=h).json
    client.post(
        f"/api/weddings/{w['id']}/budget/items",
        json={"category_id": old["id"], "name": "Deposit", "actual_cost": 150, "is_paid": True},
        headers=h,
    )
    live = client.post(f"/api/weddings/{w['id']}/budget/categories", json={"name": "Venue", "budget_amount": 1000}, headers=h).json
    client.post(
        f"/api/weddings/{w['id']}/budget/items",
        json={"category_id": live["id"], "name": "Hall", "actual_cost": 600},
        headers=h,
    )
    client.delete(f"/api/budget/categories/{old['id']}", headers=h)

    totals = client.get(f"/api/weddings/{w['id']}/budget", headers=h).json["totals"]
    assert totals == {"budgeted": 1000, "estimated": 0, "actual": 600, "paid": 0, "remaining": 400}

    totals = client.get(f"/api/weddings/{w['id']}/budget?include_archived=1", headers=h).json["totals"]
    assert totals == {"budgeted": 1400, "estimated": 0, "actual": 750, "paid": 150, "remaining": 650}
