from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.invites.audit import record_event
from app.invites.constants import GUEST_BOOK_MAX_MESSAGE
from app.invites.utils import clean_str, isoformat

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.invites.models import User
    from app.invites.modules.guest_book.models import GuestBookEntry
    from app.invites.modules.weddings.models import Wedding


def validate_entry_payload(payload: dict) -> list[str]:
    errors = []
    name = clean_str(payload.get("guest_name", payload.get("guestName")))
    if not name:
        errors.append("guest_name is required.")
    elif len(name) > 255:
        errors.append("guest_name must be at most 255 characters.")
    message = clean_str(payload.get("message"))
    if not message:
        errors.append("message is required.")
    elif len(message) > GUEST_BOOK_MAX_MESSAGE:
        errors.append(f"message must be at most {GUEST_BOOK_MAX_MESSAGE} characters.")
    return errors


def create_entry(s: "Session", wedding: "Wedding", payload: dict, actor: "User | None" = None) -> "GuestBookEntry":
    from app.invites.modules.guest_book.models import GuestBookEntry

    entry = GuestBookEntry(
        wedding_id=wedding.id,
        guest_name=clean_str(payload.get("guest_name", payload.get("guestName"))) or "",
        message=clean_str(payload.get("message")) or "",
        created_at=datetime.utcnow(),
    )
    s.add(entry)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="guest_book.create",
        entity_type="GuestBookEntry",
        entity_id=str(entry.id),
        metadata={"wedding_id": wedding.id, "guest_name": entry.guest_name},
    )
    return entry


def delete_entry(s: "Session", entry: "GuestBookEntry", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="guest_book.delete",
        entity_type="GuestBookEntry",
        entity_id=str(entry.id),
        metadata={"wedding_id": entry.wedding_id, "guest_name": entry.guest_name, "message": entry.message[:200]},
    )
    s.delete(entry)


def list_entries(s: "Session", wedding: "Wedding") -> list["GuestBookEntry"]:
    from app.invites.modules.guest_book.models import GuestBookEntry

    return (
        s.query(GuestBookEntry)
        .filter(GuestBookEntry.wedding_id == wedding.id)
        .order_by(GuestBookEntry.created_at.desc(), GuestBookEntry.id.desc())
        .all()
    )


def serialize_entry(entry: "GuestBookEntry") -> dict:
    return {
        "id": entry.id,
        "wedding_id": entry.wedding_id,
        "guest_name": entry.guest_name,
        "message": entry.message,
        "created_at": isoformat(entry.created_at),
    }
