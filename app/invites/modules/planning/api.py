from __future__ import annotations

from flask import Blueprint, abort, jsonify, request

from app.invites.access import get_wedding_or_404, require_wedding_access, require_wedding_permission
from app.invites.db import db_session
from app.invites.modules.planning.models import BudgetCategory, BudgetItem, Milestone
from app.invites.modules.planning.service import (
    CategoryArchivedError,
    budget_summary,
    create_category,
    create_item,
    create_milestone,
    delete_category,
    delete_item,
    delete_milestone,
    list_milestones,
    normalize_category_payload,
    normalize_item_payload,
    normalize_milestone_payload,
    serialize_category,
    serialize_item,
    serialize_milestone,
    set_milestone_completed,
    update_category,
    update_item,
    update_milestone,
)
from app.invites.rbac import require_login
from app.invites.utils import json_payload, parse_bool, validation_error

bp = Blueprint("planning", __name__)


def _get_or_404(model, obj_id: int):
    obj = db_session().get(model, obj_id)
    if not obj:
        abort(404)
    return obj


def _category_for_wedding(wedding_id: int, category_id: int) -> BudgetCategory:
    c = db_session().get(BudgetCategory, category_id)
    if not c or c.wedding_id != wedding_id:
        abort(400, description="category_id does not belong to this wedding.")
    return c


# ---------- Milestones ----------
@bp.get("/weddings/<int:wedding_id>/milestones")
@require_login
def milestones_list(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    require_wedding_access(s, wedding)
    return jsonify([serialize_milestone(m) for m in list_milestones(s, wedding)])


@bp.post("/weddings/<int:wedding_id>/milestones")
@require_login
def milestones_create(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canEditDetails")

    values, errors = normalize_milestone_payload(json_payload())
    if errors:
        return validation_error(errors)

    m = create_milestone(s, wedding, values, u)
    s.commit()
    return jsonify(serialize_milestone(m)), 201


@bp.route("/milestones/<int:milestone_id>", methods=["PUT", "PATCH"])
@require_login
def milestone_update(milestone_id: int):
    s = db_session()
    m = _get_or_404(Milestone, milestone_id)
    u = require_wedding_permission(s, m.wedding, "canEditDetails")

    values, errors = normalize_milestone_payload(json_payload(), partial=True)
    if errors:
        return validation_error(errors)

    update_milestone(s, m, values, u)
    s.commit()
    return jsonify(serialize_milestone(m))


@bp.post("/milestones/<int:milestone_id>/complete")
@require_login
def milestone_complete(milestone_id: int):
    s = db_session()
    m = _get_or_404(Milestone, milestone_id)
    u = require_wedding_permission(s, m.wedding, "canEditDetails")

    completed = parse_bool(json_payload().get("is_completed"), default=True)
    set_milestone_completed(s, m, completed, u)
    s.commit()
    return jsonify(serialize_milestone(m))


@bp.post("/milestones/<int:milestone_id>/uncomplete")
@require_login
def milestone_uncomplete(milestone_id: int):
    s = db_session()
    m = _get_or_404(Milestone, milestone_id)
    u = require_wedding_permission(s, m.wedding, "canEditDetails")

    set_milestone_completed(s, m, False, u)
    s.commit()
    return jsonify(serialize_milestone(m))


@bp.delete("/milestones/<int:milestone_id>")
@require_login
def milestone_delete(milestone_id: int):
    s = db_session()
    m = _get_or_404(Milestone, milestone_id)
    u = require_wedding_permission(s, m.wedding, "canEditDetails")

    delete_milestone(s, m, u)
    s.commit()
    return jsonify({"ok": True})


# ---------- Budget ----------
@bp.get("/weddings/<int:wedding_id>/budget")
@require_login
def budget_get(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    require_wedding_access(s, wedding)
    return jsonify(budget_summary(s, wedding, include_archived=parse_bool(request.args.get("include_archived"))))


@bp.post("/weddings/<int:wedding_id>/budget/categories")
@require_login
def category_create(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canEditDetails")

    values, errors = normalize_category_payload(json_payload())
    if errors:
        return validation_error(errors)

    c = create_category(s, wedding, values, u)
    s.commit()
    return jsonify(serialize_category(c)), 201


@bp.route("/budget/categories/<int:category_id>", methods=["PUT", "PATCH"])
@require_login
def category_update(category_id: int):
    s = db_session()
    c = _get_or_404(BudgetCategory, category_id)
    u = require_wedding_permission(s, c.wedding, "canEditDetails")

    values, errors = normalize_category_payload(json_payload(), partial=True)
    if errors:
        return validation_error(errors)

    update_category(s, c, values, u)
    s.commit()
    return jsonify(serialize_category(c))


@bp.delete("/budget/categories/<int:category_id>")
@require_login
def category_delete(category_id: int):
    s = db_session()
    c = _get_or_404(BudgetCategory, category_id)
    u = require_wedding_permission(s, c.wedding, "canEditDetails")

    deleted = delete_category(s, c, u)
    s.commit()
    return jsonify({"ok": True, "archived": not deleted})


@bp.post("/weddings/<int:wedding_id>/budget/items")
@require_login
def item_create(wedding_id: int):
    s = db_session()
    wedding = get_wedding_or_404(s, wedding_id)
    u = require_wedding_permission(s, wedding, "canEditDetails")

    values, errors = normalize_item_payload(json_payload())
    if errors:
        return validation_error(errors)
    category = _category_for_wedding(wedding.id, values["category_id"])

    try:
        item = create_item(s, category, values, u)
    except CategoryArchivedError as e:
        abort(409, description=str(e))
    s.commit()
    return jsonify(serialize_item(item)), 201


@bp.route("/budget/items/<int:item_id>", methods=["PUT", "PATCH"])
@require_login
def item_update(item_id: int):
    s = db_session()
    item = _get_or_404(BudgetItem, item_id)
    u = require_wedding_permission(s, item.category.wedding, "canEditDetails")

    values, errors = normalize_item_payload(json_payload(), partial=True)
    if errors:
        return validation_error(errors)
    new_category = None
    if values.get("category_id") is not None:
        new_category = _category_for_wedding(item.wedding_id, values["category_id"])

    try:
        update_item(s, item, values, u, new_category=new_category)
    except CategoryArchivedError as e:
        abort(409, description=str(e))
    s.commit()
    return jsonify(serialize_item(item))


@bp.delete("/budget/items/<int:item_id>")
@require_login
def item_delete(item_id: int):
    s = db_session()
    item = _get_or_404(BudgetItem, item_id)
    u = require_wedding_permission(s, item.category.wedding, "canEditDetails")

    delete_item(s, item, u)
    s.commit()
    return jsonify({"ok": True})
