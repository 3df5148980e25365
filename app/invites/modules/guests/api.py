from __future__ import annotations

import csv
import io

from flask import Blueprint, Response, abort, current_app, g, jsonify, request

from app.invites.access import get_visible_wedding_or_404, get_wedding_or_404, require_wedding_permission
from app.invites.db import db_session
from app.invites.modules.guests.models import Guest
from app.invites.modules.guests.service import (
    RsvpClosedError,
    RsvpModeError,
    check_rsvp_open,
    create_guest,
    delete_guest,
    list_guests,
    normalize_guest_payload,
    normalize_rsvp_payload,
    rsvp_stats,
    serialize_guest,
    serialize_public_guest,
    submit_manual_rsvp,
    update_guest,
    update_guest_rsvp,
)
from app.invites.rbac import require_login
from app.invites.utils import json_payload, validation_error

bp = Blueprint("guests", __name__)

_EXPORT_COLUMNS = (
    "name",
    "email",
    "phone",
    "rsvp_status",
    "plus_one",
    "plus_one_name",
    "additional_guests",
    "side",
    "category",
    "dietary_restrictions",
    "message",
    "responded_at",
)


def _get_guest_or_404(guest_id: int) -> Guest:
    guest = db_session().get(Guest, guest_id)
    if not guest:
        abort(404)
    return guest


def _rsvp_guard(wedding, kind: str) -> None:
    try:
        check_rsvp_open(wedding, kind)
    except RsvpModeError as e:
        abort(403, description=str(e))
    except RsvpClosedError as e:
        abort(409, description=str(e))


# ---------- Public RSVP ----------
@bp.post("/weddings/<int:wedding_id>/rsvp")
def rsvp_manual(wedding_id: int):
    s = db_session()
    wedding = get_visible_wedding_or_404(s, wedding_id)
    _rsvp_guard(wedding, "manual")

    values, errors = normalize_rsvp_payload(json_payload(), require_name=True)
    if errors:
        return validation_error(errors)

    guest = submit_manual_rsvp(s, wedding, values, actor=getattr(g, "current_user", None))
    s.commit()
    current_app.logger.info("RSVP received wedding_id=%s guest_id=%s status=%s", wedding.id, guest.id, guest.rsvp_status)
    return jsonify(serialize_guest(guest)), 201


@bp.get("/guests/public/<int:wedding_id>")
def guests_public(wedding_id: int):
    s = db_session()
    wedding = get_visible_wedding_or_404(s, wedding_id)
    if wedding.rsvp_mode == "manual":
        return jsonify([])
    search = (request.args.get("q") or "").strip()
    guests = list_guests(s, wedding, {"q": search} if search else None)
    return jsonify([serialize_public_guest(x) for x in guests])


@bp.route("/guests/<int:guest_id>/rsvp", methods=["PUT", "PATCH", "POST"])
def rsvp_preregistered(guest_id: int):
    s = db_session()
    guest = _get_guest_or_404(guest_id)
    wedding = get_visible_wedding_or_404(s, guest.wedding_id)
    _rsvp_guard(wedding, "preregistered")

    values, errors = normalize_rsvp_payload(json_payload(), require_name=False)
    if errors:
        return validation_error(errors)

    update_guest_rsvp(s, guest, values, actor=getattr(g, "current_user", None))
    s.commit()
    return jsonify(serialize_public_guest(guest))


# ---------- Guest management ----------
@bp.get("/guests/wedding/<int:wedding_id>")
@require_login
def guests_list(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    require_wedding_permission(s, wedding, "canManageGuests")

    filters = {
        "status": (request.args.get("status") or "").strip(),
        "side": (request.args.get("side") or "").strip(),
        "category": (request.args.get("category") or "").strip(),
        "q": (request.args.get("q") or "").strip(),
    }
    return jsonify([serialize_guest(x) for x in list_guests(s, wedding, filters)])


@bp.post("/guests/wedding/<int:wedding_id>")
@require_login
def guests_create(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canManageGuests")

    values, errors = normalize_guest_payload(json_payload())
    if errors:
        return validation_error(errors)

    guest = create_guest(s, wedding, values, u)
    s.commit()
    return jsonify(serialize_guest(guest)), 201


@bp.route("/guests/<int:guest_id>", methods=["PUT", "PATCH"])
@require_login
def guest_update(guest_id: int):
    s = db_session()
    guest = _get_guest_or_404(guest_id)
    u = require_wedding_permission(s, guest.wedding, "canManageGuests")

    values, errors = normalize_guest_payload(json_payload(), partial=True)
    if errors:
        return validation_error(errors)

    update_guest(s, guest, values, u)
    s.commit()
    return jsonify(serialize_guest(guest))


@bp.delete("/guests/<int:guest_id>")
@require_login
def guest_delete(guest_id: int):
    s = db_session()
    guest = _get_guest_or_404(guest_id)
    u = require_wedding_permission(s, guest.wedding, "canManageGuests")

    delete_guest(s, guest, u)
    s.commit()
    return jsonify({"ok": True})


@bp.get("/guests/wedding/<int:wedding_id>/export.csv")
@require_login
def guests_export(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    require_wedding_permission(s, wedding, "canManageGuests")

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_EXPORT_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for guest in list_guests(s, wedding):
        writer.writerow(serialize_guest(guest))

    filename = f"guests-{wedding.unique_url}.csv"
    return Response(
        buf.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@bp.get("/weddings/<int:wedding_id>/rsvp-stats")
@require_login
def wedding_rsvp_stats(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    require_wedding_permission(s, wedding, "canViewAnalytics")
    return jsonify(rsvp_stats(s, wedding))
