from __future__ import annotations

from flask import Blueprint, abort, current_app, g, jsonify, request
from sqlalchemy import or_

from app.invites.access import (
    get_visible_wedding_or_404,
    get_wedding_or_404,
    has_any_access,
    require_owner,
    require_wedding_permission,
    wedding_permissions,
)
from app.invites.db import db_session
from app.invites.models import User
from app.invites.modules.collaborators.models import WeddingAccess
from app.invites.modules.media.service import delete_stored_objects
from app.invites.modules.weddings.models import Wedding
from app.invites.modules.weddings.service import (
    PremiumTemplateError,
    UniqueUrlTakenError,
    countdown_for,
    create_wedding,
    delete_wedding,
    normalize_wedding_payload,
    serialize_wedding,
    template_catalog,
    update_wedding,
)
from app.invites.rbac import require_login, user_has_permission
from app.invites.utils import json_payload, parse_bool, validation_error

bp = Blueprint("weddings", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/templates")
def templates_list():
    return jsonify(template_catalog())


@bp.get("/weddings")
@require_login
def weddings_list():
    s = db_session()
    u = _current_user()

    q = s.query(Wedding)
    if not (parse_bool(request.args.get("all")) and user_has_permission(u, "weddings.manage_all")):
        shared_ids = s.query(WeddingAccess.wedding_id).filter(WeddingAccess.user_id == u.id)
        q = q.filter(or_(Wedding.user_id == u.id, Wedding.id.in_(shared_ids)))
    weddings = q.order_by(Wedding.wedding_date.asc(), Wedding.id.asc()).all()
    return jsonify([serialize_wedding(w) for w in weddings])


@bp.post("/weddings")
@require_login
def weddings_create():
    s = db_session()
    u = _current_user()

    values, errors = normalize_wedding_payload(json_payload())
    if errors:
        return validation_error(errors)

    try:
        wedding = create_wedding(s, values, u)
    except PremiumTemplateError as e:
        abort(403, description=str(e))
    except UniqueUrlTakenError as e:
        abort(409, description=f"unique_url {e} is already taken.")
    s.commit()

    current_app.logger.info("Wedding created id=%s url=%s user_id=%s", wedding.id, wedding.unique_url, u.id)
    return jsonify(serialize_wedding(wedding)), 201


@bp.get("/weddings/<int:wedding_id>")
@require_login
def wedding_detail(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    if not has_any_access(s, _current_user(), wedding):
        abort(404)
    data = serialize_wedding(wedding)
    data["permissions"] = wedding_permissions(s, _current_user(), wedding)
    return jsonify(data)


@bp.route("/weddings/<int:wedding_id>", methods=["PUT", "PATCH"])
@require_login
def wedding_update(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canEditDetails")

    values, errors = normalize_wedding_payload(json_payload(), existing=wedding)
    if errors:
        return validation_error(errors)

    try:
        update_wedding(s, wedding, values, u)
    except PremiumTemplateError as e:
        abort(403, description=str(e))
    except UniqueUrlTakenError as e:
        abort(409, description=f"unique_url {e} is already taken.")
    s.commit()
    return jsonify(serialize_wedding(wedding))


@bp.delete("/weddings/<int:wedding_id>")
@require_login
def wedding_delete(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_owner(s, wedding)

    stale_keys = delete_wedding(s, wedding, u)
    s.commit()
    delete_stored_objects(current_app.config, stale_keys)
    current_app.logger.info("Wedding deleted id=%s by user_id=%s", wedding_id, u.id)
    return jsonify({"ok": True})


@bp.get("/weddings/url/<unique_url>")
def wedding_by_url(unique_url: str):
    s = db_session()
    wedding = s.query(Wedding).filter(Wedding.unique_url == unique_url.lower()).one_or_none()
    if not wedding:
        abort(404)
    wedding = get_visible_wedding_or_404(s, wedding.id)
    return jsonify(serialize_wedding(wedding, public=True))


@bp.get("/weddings/<int:wedding_id>/countdown")
def wedding_countdown(wedding_id: int):
    s = db_session()
    wedding = get_visible_wedding_or_404(s, wedding_id)
    return jsonify(countdown_for(wedding))


@bp.get("/weddings/<int:wedding_id>/access")
@require_login
def wedding_access(wedding_id: int):
    s = db_session()
    u = _current_user()
    wedding = get_wedding_or_404(s, wedding_id)
    if not has_any_access(s, u, wedding):
        abort(404)
    return jsonify(
        {
            "wedding_id": wedding.id,
            "is_owner": wedding.user_id == u.id,
            "permissions": wedding_permissions(s, u, wedding),
        }
    )
