from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, request

from app.invites.access import get_wedding_or_404, require_wedding_permission
from app.invites.constants import INVITATION_STATUSES
from app.invites.db import db_session
from app.invites.modules.invitations.models import Invitation
from app.invites.modules.invitations.service import (
    list_invitations,
    normalize_send_payload,
    send_invitations,
    send_reminder,
    serialize_invitation,
)
from app.invites.rbac import require_login
from app.invites.utils import json_payload, validation_error

bp = Blueprint("invitations", __name__)


@bp.get("/weddings/<int:wedding_id>/invitations")
@require_login
def invitations_list(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    require_wedding_permission(s, wedding, "canManageGuests")

    status = (request.args.get("status") or "").strip() or None
    if status and status not in INVITATION_STATUSES:
        return validation_error([f"Invalid status. Must be one of: {', '.join(INVITATION_STATUSES)}"])
    items = list_invitations(s, wedding, status=status)
    return jsonify([serialize_invitation(current_app.config, i) for i in items])


@bp.post("/weddings/<int:wedding_id>/invitations")
@require_login
def invitations_send(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canManageGuests")

    guest_ids, invitation_type, errors = normalize_send_payload(json_payload())
    if errors:
        return validation_error(errors)

    created, skipped = send_invitations(s, current_app.config, wedding, guest_ids, invitation_type, u)
    s.commit()
    return (
        jsonify(
            {
                "invitations": [serialize_invitation(current_app.config, i) for i in created],
                "skipped": skipped,
                "sent": sum(1 for i in created if i.status == "sent"),
                "failed": sum(1 for i in created if i.status == "failed"),
            }
        ),
        201,
    )


@bp.post("/invitations/<int:invitation_id>/remind")
@require_login
def invitation_remind(invitation_id: int):
    s = db_session()
    inv = s.get(Invitation, invitation_id)
    if not inv:
        abort(404)
    u = require_wedding_permission(s, inv.wedding, "canManageGuests")

    send_reminder(s, current_app.config, inv, u)
    s.commit()
    return jsonify(serialize_invitation(current_app.config, inv))
