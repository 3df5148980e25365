from __future__ import annotations

from flask import Blueprint, abort, g, jsonify

from app.invites.access import get_visible_wedding_or_404, require_wedding_permission
from app.invites.db import db_session
from app.invites.modules.guest_book.models import GuestBookEntry
from app.invites.modules.guest_book.service import create_entry, delete_entry, list_entries, serialize_entry, validate_entry_payload
from app.invites.rbac import require_login
from app.invites.utils import json_payload, parse_int, validation_error

bp = Blueprint("guest_book", __name__)


@bp.get("/guest-book/wedding/<int:wedding_id>")
def entries_list(wedding_id: int):
    s = db_session()
    wedding = get_visible_wedding_or_404(s, wedding_id)
    return jsonify([serialize_entry(e) for e in list_entries(s, wedding)])


@bp.post("/guest-book")
def entries_create():
    s = db_session()
    payload = json_payload()
    try:
        wedding_id = parse_int(payload.get("wedding_id", payload.get("weddingId")))
    except (TypeError, ValueError):
        wedding_id = None
    if wedding_id is None:
        return validation_error(["wedding_id is required."])
    wedding = get_visible_wedding_or_404(s, wedding_id)

    errors = validate_entry_payload(payload)
    if errors:
        return validation_error(errors)

    entry = create_entry(s, wedding, payload, actor=getattr(g, "current_user", None))
    s.commit()
    return jsonify(serialize_entry(entry)), 201


@bp.delete("/guest-book/<int:entry_id>")
@require_login
def entries_delete(entry_id: int):
    s = db_session()
    entry = s.get(GuestBookEntry, entry_id)
    if not entry:
        abort(404)
    u = require_wedding_permission(s, entry.wedding, "canEditGuestBook")

    delete_entry(s, entry, u)
    s.commit()
    return jsonify({"ok": True})
