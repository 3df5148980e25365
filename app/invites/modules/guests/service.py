from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.invites.audit import record_event
from app.invites.constants import (
    DEFAULT_TIMEZONE,
    GUEST_ADDED_BY,
    GUEST_SIDES,
    MAX_ADDITIONAL_GUESTS,
    RSVP_CONFIRMED_WITH_GUEST,
    RSVP_STATUSES,
)
from app.invites.modules.weddings.countdown import local_now
from app.invites.utils import clean_str, isoformat, parse_bool, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.invites.models import User
    from app.invites.modules.guests.models import Guest
    from app.invites.modules.weddings.models import Wedding


class RsvpClosedError(RuntimeError):
    """RSVP deadline has passed."""


class RsvpModeError(PermissionError):
    """The wedding does not accept this kind of RSVP."""


_GUEST_TEXT_FIELDS = (
    "email",
    "phone",
    "plus_one_name",
    "message",
    "dietary_restrictions",
    "address",
    "notes",
)


def resolve_rsvp_answer(answer: str | None) -> tuple[str, bool]:
    """
    Map a form answer to (rsvp_status, plus_one).
    "confirmed_with_guest" is stored as confirmed with a plus-one.
    """
    a = (answer or "pending").strip().lower()
    if a == RSVP_CONFIRMED_WITH_GUEST:
        return "confirmed", True
    if a not in RSVP_STATUSES:
        raise ValueError(f"Invalid RSVP status. Must be one of: {', '.join(RSVP_STATUSES + (RSVP_CONFIRMED_WITH_GUEST,))}")
    return a, False


def check_rsvp_open(wedding: "Wedding", kind: str, now: datetime | None = None) -> None:
    """
    `kind` is "manual" or "preregistered".
    The deadline is wall-clock time in the wedding's timezone; a naive `now` is UTC.
    """
    if wedding.rsvp_mode not in (kind, "both"):
        raise RsvpModeError(f"This invitation does not accept {kind} RSVPs.")
    if wedding.rsvp_deadline is None:
        return
    if local_now(wedding.timezone or DEFAULT_TIMEZONE, now) > wedding.rsvp_deadline:
        raise RsvpClosedError("The RSVP deadline has passed.")


def normalize_rsvp_payload(payload: dict, *, require_name: bool) -> tuple[dict[str, Any], list[str]]:
    values: dict[str, Any] = {}
    errors: list[str] = []

    if require_name:
        name = clean_str(payload.get("name"))
        if not name:
            errors.append("name is required.")
        elif len(name) > 255:
            errors.append("name is too long.")
        values["name"] = name

    # Updates to a pre-registered guest keep the current answer unless a new one is sent.
    has_answer = "rsvp_status" in payload or "rsvpStatus" in payload
    if has_answer or require_name:
        answer = payload.get("rsvp_status", payload.get("rsvpStatus"))
        try:
            status, plus_one = resolve_rsvp_answer(answer)
        except ValueError as e:
            errors.append(str(e))
        else:
            values["rsvp_status"] = status
            values["response_text"] = (clean_str(answer) or status).lower()
            values["plus_one"] = plus_one or parse_bool(payload.get("plus_one", payload.get("plusOne")))
    elif "plus_one" in payload or "plusOne" in payload:
        values["plus_one"] = parse_bool(payload.get("plus_one", payload.get("plusOne")))

    raw_additional = payload.get("additional_guests", payload.get("additionalGuests"))
    if raw_additional is not None or require_name:
        try:
            additional = parse_int(raw_additional, default=0) or 0
        except (TypeError, ValueError):
            errors.append("additional_guests must be a whole number.")
            additional = 0
        if not 0 <= additional <= MAX_ADDITIONAL_GUESTS:
            errors.append(f"additional_guests must be between 0 and {MAX_ADDITIONAL_GUESTS}.")
        values["additional_guests"] = additional

    for key in ("email", "phone", "plus_one_name", "message", "dietary_restrictions"):
        if key in payload:
            values[key] = clean_str(payload.get(key))
    return values, errors


def submit_manual_rsvp(s: "Session", wedding: "Wedding", values: dict, actor: "User | None" = None) -> "Guest":
    from app.invites.modules.guests.models import Guest

    now = datetime.utcnow()
    guest = Guest(wedding_id=wedding.id, added_by="guest", responded_at=now, created_at=now)
    for key, value in values.items():
        setattr(guest, key, value)
    s.add(guest)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="guest.rsvp",
        entity_type="Guest",
        entity_id=str(guest.id),
        metadata={"wedding_id": wedding.id, "name": guest.name, "rsvp_status": guest.rsvp_status, "mode": "manual"},
    )
    return guest


def update_guest_rsvp(s: "Session", guest: "Guest", values: dict, actor: "User | None" = None) -> "Guest":
    old_status = guest.rsvp_status
    for key, value in values.items():
        if key == "name":
            continue
        setattr(guest, key, value)
    guest.responded_at = datetime.utcnow()

    record_event(
        s,
        actor=actor,
        action="guest.rsvp",
        entity_type="Guest",
        entity_id=str(guest.id),
        metadata={
            "wedding_id": guest.wedding_id,
            "name": guest.name,
            "rsvp_status": {"old": old_status, "new": guest.rsvp_status},
            "mode": "preregistered",
        },
    )
    return guest


def normalize_guest_payload(payload: dict, *, partial: bool = False) -> tuple[dict[str, Any], list[str]]:
    """Validate owner-side guest create/update payloads."""
    values: dict[str, Any] = {}
    errors: list[str] = []

    if not partial or "name" in payload:
        name = clean_str(payload.get("name"))
        if not name:
            errors.append("name is required.")
        values["name"] = name

    if "rsvp_status" in payload or "rsvpStatus" in payload:
        answer = payload.get("rsvp_status", payload.get("rsvpStatus"))
        try:
            status, plus_one = resolve_rsvp_answer(answer)
        except ValueError as e:
            errors.append(str(e))
        else:
            values["rsvp_status"] = status
            if plus_one:
                values["plus_one"] = True

    if "plus_one" in payload:
        values["plus_one"] = parse_bool(payload.get("plus_one"))

    if "additional_guests" in payload:
        try:
            additional = parse_int(payload.get("additional_guests"), default=0) or 0
        except (TypeError, ValueError):
            errors.append("additional_guests must be a whole number.")
        else:
            if not 0 <= additional <= MAX_ADDITIONAL_GUESTS:
                errors.append(f"additional_guests must be between 0 and {MAX_ADDITIONAL_GUESTS}.")
            values["additional_guests"] = additional

    if "side" in payload:
        side = (clean_str(payload.get("side")) or "both").lower()
        if side not in GUEST_SIDES:
            errors.append(f"Invalid side. Must be one of: {', '.join(GUEST_SIDES)}")
        values["side"] = side

    if "category" in payload:
        values["category"] = clean_str(payload.get("category")) or "family"

    if "added_by" in payload:
        added_by = clean_str(payload.get("added_by")) or "couple"
        if added_by not in GUEST_ADDED_BY:
            errors.append(f"Invalid added_by. Must be one of: {', '.join(GUEST_ADDED_BY)}")
        values["added_by"] = added_by

    for key in _GUEST_TEXT_FIELDS:
        if key in payload:
            values[key] = clean_str(payload.get(key))

    email = values.get("email")
    if email and "@" not in email:
        errors.append("email is invalid.")
    return values, errors


def create_guest(s: "Session", wedding: "Wedding", values: dict, user: "User") -> "Guest":
    from app.invites.modules.guests.models import Guest

    guest = Guest(wedding_id=wedding.id, created_at=datetime.utcnow())
    values = dict(values)
    if "added_by" not in values:
        values["added_by"] = "couple" if wedding.user_id == user.id else "collaborator"
    for key, value in values.items():
        setattr(guest, key, value)
    if guest.rsvp_status and guest.rsvp_status != "pending":
        guest.responded_at = datetime.utcnow()
    s.add(guest)
    s.flush()

    record_event(
        s,
        actor=user,
        action="guest.create",
        entity_type="Guest",
        entity_id=str(guest.id),
        metadata={"wedding_id": wedding.id, "name": guest.name},
    )
    return guest


def update_guest(s: "Session", guest: "Guest", values: dict, user: "User") -> "Guest":
    changes = {}
    for key, new in values.items():
        old = getattr(guest, key)
        if old != new:
            changes[key] = {"old": old, "new": new}
            setattr(guest, key, new)
    if "rsvp_status" in changes:
        guest.responded_at = datetime.utcnow() if guest.rsvp_status != "pending" else None

    if changes:
        record_event(
            s,
            actor=user,
            action="guest.edit",
            entity_type="Guest",
            entity_id=str(guest.id),
            metadata={"wedding_id": guest.wedding_id, "changes": changes},
        )
    return guest


def delete_guest(s: "Session", guest: "Guest", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="guest.delete",
        entity_type="Guest",
        entity_id=str(guest.id),
        metadata={"wedding_id": guest.wedding_id, "name": guest.name},
    )
    s.delete(guest)


def list_guests(s: "Session", wedding: "Wedding", filters: dict | None = None) -> list["Guest"]:
    from app.invites.modules.guests.models import Guest

    filters = filters or {}
    q = s.query(Guest).filter(Guest.wedding_id == wedding.id)
    if filters.get("status"):
        q = q.filter(Guest.rsvp_status == filters["status"])
    if filters.get("side"):
        q = q.filter(Guest.side == filters["side"])
    if filters.get("category"):
        q = q.filter(Guest.category == filters["category"])
    if filters.get("q"):
        like = f"%{filters['q']}%"
        q = q.filter((Guest.name.ilike(like)) | (Guest.email.ilike(like)) | (Guest.phone.ilike(like)))
    return q.order_by(Guest.name.asc(), Guest.id.asc()).all()


def rsvp_stats(s: "Session", wedding: "Wedding") -> dict:
    guests = list_guests(s, wedding)
    by_status = Counter(g.rsvp_status for g in guests)
    responded = sum(1 for g in guests if g.rsvp_status != "pending")
    total = len(guests)
    return {
        "wedding_id": wedding.id,
        "total_guests": total,
        "by_status": {status: by_status.get(status, 0) for status in RSVP_STATUSES},
        "headcount": sum(g.headcount for g in guests),
        "plus_ones": sum(1 for g in guests if g.rsvp_status == "confirmed" and g.plus_one),
        "by_side": dict(Counter(g.side for g in guests)),
        "by_category": dict(Counter(g.category for g in guests)),
        "invitations_sent": sum(1 for g in guests if g.invitation_sent),
        "response_rate": round(responded / total, 4) if total else 0.0,
    }


def serialize_guest(guest: "Guest") -> dict:
    return {
        "id": guest.id,
        "wedding_id": guest.wedding_id,
        "name": guest.name,
        "email": guest.email,
        "phone": guest.phone,
        "rsvp_status": guest.rsvp_status,
        "response_text": guest.response_text,
        "plus_one": guest.plus_one,
        "plus_one_name": guest.plus_one_name,
        "additional_guests": guest.additional_guests,
        "message": guest.message,
        "category": guest.category,
        "side": guest.side,
        "dietary_restrictions": guest.dietary_restrictions,
        "address": guest.address,
        "invitation_sent": guest.invitation_sent,
        "invitation_sent_at": isoformat(guest.invitation_sent_at),
        "added_by": guest.added_by,
        "notes": guest.notes,
        "created_at": isoformat(guest.created_at),
        "responded_at": isoformat(guest.responded_at),
    }


def serialize_public_guest(guest: "Guest") -> dict:
    return {"id": guest.id, "name": guest.name, "rsvp_status": guest.rsvp_status}
