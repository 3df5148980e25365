from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify

from app.invites.access import get_wedding_or_404, require_owner
from app.invites.db import db_session
from app.invites.modules.collaborators.models import GuestCollaborator
from app.invites.modules.collaborators.service import (
    CollaboratorEmailMismatch,
    CollaboratorStateError,
    accept_collaborator,
    invite_collaborator,
    list_collaborators,
    normalize_collaborator_payload,
    revoke_collaborator,
    serialize_collaborator,
)
from app.invites.rbac import require_login
from app.invites.utils import json_payload, validation_error

bp = Blueprint("collaborators", __name__)


def _get_collaborator_or_404(collaborator_id: int) -> GuestCollaborator:
    c = db_session().get(GuestCollaborator, collaborator_id)
    if not c:
        abort(404)
    return c


@bp.get("/weddings/<int:wedding_id>/collaborators")
@require_login
def collaborators_list(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    require_owner(s, wedding)
    return jsonify([serialize_collaborator(c) for c in list_collaborators(s, wedding)])


@bp.post("/weddings/<int:wedding_id>/collaborators")
@require_login
def collaborators_invite(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_owner(s, wedding)

    values, errors = normalize_collaborator_payload(json_payload())
    if errors:
        return validation_error(errors)

    try:
        collab, notified = invite_collaborator(s, current_app.config, wedding, values, u)
    except CollaboratorStateError as e:
        abort(409, description=str(e))
    s.commit()
    data = serialize_collaborator(collab)
    data["notified"] = notified
    return jsonify(data), 201


@bp.delete("/collaborators/<int:collaborator_id>")
@require_login
def collaborator_revoke(collaborator_id: int):
    s = db_session()
    collab = _get_collaborator_or_404(collaborator_id)
    u = require_owner(s, collab.wedding)

    revoke_collaborator(s, collab, u)
    s.commit()
    return jsonify({"ok": True})


@bp.post("/collaborators/<int:collaborator_id>/accept")
@require_login
def collaborator_accept(collaborator_id: int):
    s = db_session()
    collab = _get_collaborator_or_404(collaborator_id)

    try:
        access = accept_collaborator(s, collab, g.current_user)
    except CollaboratorEmailMismatch as e:
        abort(403, description=str(e))
    except CollaboratorStateError as e:
        abort(409, description=str(e))
    s.commit()
    current_app.logger.info("Collaborator accepted id=%s wedding_id=%s user_id=%s", collab.id, collab.wedding_id, g.current_user.id)
    return jsonify(
        {
            "collaborator": serialize_collaborator(collab),
            "wedding_id": access.wedding_id,
            "access_level": access.access_level,
            "permissions": access.permissions,
        }
    )
